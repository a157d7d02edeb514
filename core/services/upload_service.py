# =============================================================================
# core/services/upload_service.py - Image & Media Uploads
# =============================================================================
# Stores admin uploads (product images, certificate and gallery files) under
# the upload directory and returns their public /uploads/... URL.
#
# - The file type comes from the content's leading bytes, never from the
#   client's filename or Content-Type, and the stored extension follows it
# - Files carrying PHP, script tags or shell calls are refused
# - Stored names are "<sanitized-base>_<YYYYmmdd_HHMMSS>_<6 hex>.<ext>"
# =============================================================================

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from app.exceptions import FileTooLargeError, InvalidFileTypeError, UnsafeFileError

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass(frozen=True)
class FileKind:
    extensions: tuple[str, ...]
    max_mb: int


IMAGE = "image"
VIDEO = "video"
DOCUMENT = "document"

KINDS = {
    IMAGE: FileKind(("jpg", "jpeg", "png", "gif", "webp"), 10),
    VIDEO: FileKind(("mp4", "webm", "ogv"), 100),
    DOCUMENT: FileKind(("pdf",), 20),
}

DANGEROUS_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        rb"<\?php",
        rb"<\?=",
        rb"<script[^>]*>",
        rb"eval\s*\(",
        rb"base64_decode\s*\(",
        rb"exec\s*\(",
        rb"system\s*\(",
        rb"passthru\s*\(",
        rb"shell_exec\s*\(",
        rb"popen\s*\(",
        rb"proc_open\s*\(",
    )
]

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
_SUBDIRECTORY = re.compile(r"^[a-z0-9_-]+(/[a-z0-9_-]+)*$")


def detect_extension(data: bytes) -> str | None:
    """Canonical extension for recognised image, video and PDF signatures."""
    if data.startswith(b"\xff\xd8\xff"):
        return "jpg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data[4:8] == b"ftyp":
        return "mp4"
    if data.startswith(b"\x1a\x45\xdf\xa3"):
        return "webm"
    if data.startswith(b"OggS"):
        return "ogv"
    if data.startswith(b"%PDF-"):
        return "pdf"
    return None


def is_safe_content(data: bytes) -> bool:
    return not any(pattern.search(data) for pattern in DANGEROUS_PATTERNS)


def sanitize_filename(filename: str | None) -> str:
    """
    Reduce a client filename to a safe base name.

    "../My Photo (1).PNG" -> "my_photo_1"; empty results become "file".
    """
    name = Path((filename or "").replace("\\", "/")).name
    base = name.rsplit(".", 1)[0] if "." in name else name
    base = _UNSAFE_NAME_CHARS.sub("", base.replace(" ", "_"))[:100].lower()
    return base or "file"


class UploadService:
    """
    Validates and stores uploaded files.

    Example:
        uploads = UploadService(settings.upload_path, settings.max_upload_size_bytes)
        url = uploads.store(file.filename, file.data, IMAGE, "products")
        # "/uploads/products/ceylon_sticks_20240101_120000_a1b2c3.jpg"
    """

    def __init__(self, upload_dir: Path, max_bytes: int | None = None):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    def limit_bytes(self, kind: str) -> int:
        limit = KINDS[kind].max_mb * MB
        return min(limit, self.max_bytes) if self.max_bytes else limit

    def validate(self, filename: str, data: bytes, kind: str) -> str:
        """
        Check size, type and content; returns the extension to store under.

        Raises:
            FileTooLargeError: Over the kind's limit
            InvalidFileTypeError: Unrecognised content or a mismatched extension
            UnsafeFileError: Script or shell content found
        """
        allowed = KINDS[kind]
        limit = self.limit_bytes(kind)
        if len(data) > limit:
            raise FileTooLargeError(len(data) / MB, limit // MB)

        extension = detect_extension(data)
        claimed = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if extension not in allowed.extensions or claimed not in allowed.extensions:
            raise InvalidFileTypeError(filename, list(allowed.extensions))
        if not is_safe_content(data):
            logger.warning(f"Refused upload {filename!r}: dangerous content")
            raise UnsafeFileError(filename)
        return extension

    def store(self, filename: str, data: bytes, kind: str, subdirectory: str) -> str:
        """Validate and write the file; returns its public URL."""
        if not _SUBDIRECTORY.match(subdirectory):
            raise ValueError(f"Invalid upload subdirectory: {subdirectory}")
        extension = self.validate(filename, data, kind)

        target_dir = self.upload_dir / subdirectory
        target_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        while True:
            name = f"{sanitize_filename(filename)}_{stamp}_{secrets.token_hex(3)}.{extension}"
            target = target_dir / name
            if not target.exists():
                break
        target.write_bytes(data)

        url = f"/uploads/{subdirectory}/{name}"
        logger.info(f"Stored upload {filename!r} as {url} ({len(data)} bytes)")
        return url

    def delete(self, url: str | None) -> bool:
        """Remove a file previously returned by store(); other URLs are ignored."""
        if not url or not url.startswith("/uploads/"):
            return False
        path = (self.upload_dir / url[len("/uploads/"):]).resolve()
        if self.upload_dir.resolve() not in path.parents or not path.is_file():
            return False
        path.unlink()
        logger.info(f"Deleted upload {url}")
        return True

# =============================================================================
# tests/test_upload_service.py - Upload Storage Tests
# =============================================================================
# Content-based type detection, size limits, the dangerous content scan,
# filename sanitizing, storage under the upload directory and deletion.
#
# Run with: pytest tests/test_upload_service.py -v
# =============================================================================

import re

import pytest

from app.exceptions import FileTooLargeError, InvalidFileTypeError, UnsafeFileError
from core.services import UploadService
from core.services.upload_service import (
    DOCUMENT,
    IMAGE,
    MB,
    VIDEO,
    detect_extension,
    sanitize_filename,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64
PDF = b"%PDF-1.7\n" + b"\x00" * 64
MP4 = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64


@pytest.fixture
def uploads(tmp_path):
    return UploadService(tmp_path / "uploads")


class TestDetection:
    """Signature sniffing."""

    @pytest.mark.parametrize("data,expected", [
        (PNG, "png"),
        (JPEG, "jpg"),
        (b"GIF89a" + b"\x00" * 10, "gif"),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "webp"),
        (MP4, "mp4"),
        (b"\x1a\x45\xdf\xa3" + b"\x00" * 10, "webm"),
        (b"OggS" + b"\x00" * 10, "ogv"),
        (PDF, "pdf"),
        (b"<?php echo 1; ?>", None),
        (b"", None),
    ])
    def test_detect_extension(self, data, expected):
        assert detect_extension(data) == expected

    @pytest.mark.parametrize("filename,expected", [
        ("Ceylon Sticks.PNG", "ceylon_sticks"),
        ("../../etc/passwd", "passwd"),
        ("..\\windows\\evil.jpg", "evil"),
        ("My Photo (1).jpeg", "my_photo_1"),
        ("???.png", "file"),
        ("", "file"),
        (None, "file"),
        ("a" * 150 + ".png", "a" * 100),
    ])
    def test_sanitize_filename(self, filename, expected):
        assert sanitize_filename(filename) == expected


class TestValidation:
    """Tests for UploadService.validate."""

    def test_extension_follows_content(self, uploads):
        assert uploads.validate("photo.jpeg", JPEG, IMAGE) == "jpg"

    def test_content_must_match_kind(self, uploads):
        with pytest.raises(InvalidFileTypeError) as exc:
            uploads.validate("brochure.pdf", PDF, IMAGE)
        assert exc.value.status_code == 400
        assert "png" in exc.value.details["allowed_types"]

    def test_renamed_script_is_rejected(self, uploads):
        with pytest.raises(InvalidFileTypeError):
            uploads.validate("shell.png", b"<?php system($_GET['c']); ?>", IMAGE)

    def test_claimed_extension_must_be_allowed(self, uploads):
        with pytest.raises(InvalidFileTypeError):
            uploads.validate("image.php", PNG, IMAGE)

    def test_embedded_script_is_rejected(self, uploads):
        with pytest.raises(UnsafeFileError):
            uploads.validate("photo.png", PNG + b"<?php eval($_POST['x']); ?>", IMAGE)

    @pytest.mark.parametrize("payload", [b"<script src=x>", b"SHELL_EXEC (", b"base64_decode("])
    def test_dangerous_patterns(self, uploads, payload):
        with pytest.raises(UnsafeFileError):
            uploads.validate("photo.png", PNG + payload, IMAGE)

    def test_size_limit_per_kind(self, uploads):
        too_big = PNG + b"\x00" * (10 * MB)
        with pytest.raises(FileTooLargeError) as exc:
            uploads.validate("big.png", too_big, IMAGE)
        assert exc.value.status_code == 413
        assert exc.value.details["max_mb"] == 10

    def test_configured_limit_caps_every_kind(self, tmp_path):
        small = UploadService(tmp_path, max_bytes=1 * MB)
        assert small.limit_bytes(VIDEO) == MB
        with pytest.raises(FileTooLargeError):
            small.validate("clip.mp4", MP4 + b"\x00" * MB, VIDEO)

    def test_document_kind(self, uploads):
        assert uploads.validate("certificate.pdf", PDF, DOCUMENT) == "pdf"


class TestStorage:
    """Tests for store and delete."""

    def test_store_writes_under_subdirectory(self, uploads, tmp_path):
        url = uploads.store("Alba Sticks.jpeg", JPEG, IMAGE, "products")

        assert re.fullmatch(r"/uploads/products/alba_sticks_\d{8}_\d{6}_[0-9a-f]{6}\.jpg", url)
        stored = tmp_path / "uploads" / url[len("/uploads/"):]
        assert stored.read_bytes() == JPEG

    def test_names_are_unique(self, uploads):
        assert uploads.store("a.png", PNG, IMAGE, "gallery") != uploads.store("a.png", PNG, IMAGE, "gallery")

    def test_rejected_file_is_not_written(self, uploads, tmp_path):
        with pytest.raises(InvalidFileTypeError):
            uploads.store("notes.png", b"plain text", IMAGE, "products")
        assert not (tmp_path / "uploads" / "products").exists()

    @pytest.mark.parametrize("subdirectory", ["../outside", "/abs", "Products", ""])
    def test_subdirectory_is_checked(self, uploads, subdirectory):
        with pytest.raises(ValueError):
            uploads.store("a.png", PNG, IMAGE, subdirectory)

    def test_delete(self, uploads, tmp_path):
        url = uploads.store("a.png", PNG, IMAGE, "certificates")

        assert uploads.delete(url) is True
        assert not (tmp_path / "uploads" / url[len("/uploads/"):]).exists()
        assert uploads.delete(url) is False

    @pytest.mark.parametrize("url", [None, "", "https://cdn.example/a.png", "/static/img/a.png", "/uploads/../../conftest.py"])
    def test_delete_ignores_foreign_urls(self, uploads, url):
        assert uploads.delete(url) is False

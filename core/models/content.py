# =============================================================================
# core/models/content.py - Content Schemas
# =============================================================================
# - BlogPostForm / BlogCategoryForm: blog administration
# - CertificateForm / GalleryItemForm: media referenced by URL
# - ContactForm: public contact page
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from lib.utils import blank_to_none, checkbox_value, is_valid_email


class PostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


def _required_text(value, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


class BlogPostForm(BaseModel):
    title: str = Field(default="", max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    excerpt: str | None = None
    content: str = ""
    featured_image: str | None = Field(default=None, max_length=500)
    category_id: int | None = None
    tags: str | None = Field(default=None, max_length=500)
    meta_title: str | None = Field(default=None, max_length=255)
    meta_description: str | None = Field(default=None, max_length=500)
    status: PostStatus = PostStatus.DRAFT

    @field_validator("slug", "excerpt", "featured_image", "category_id", "tags",
                     "meta_title", "meta_description", mode="before")
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("title", mode="before")
    @classmethod
    def require_title(cls, v):
        return _required_text(v, "Title")

    @field_validator("content", mode="before")
    @classmethod
    def require_content(cls, v):
        return _required_text(v, "Content")

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        return blank_to_none(v) or PostStatus.DRAFT


class BlogCategoryForm(BaseModel):
    name: str = Field(default="", max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    is_active: bool = True
    sort_order: int = 0

    @field_validator("slug", "description", mode="before")
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("name", mode="before")
    @classmethod
    def require_name(cls, v):
        return _required_text(v, "Category name")

    @field_validator("is_active", mode="before")
    @classmethod
    def flags(cls, v):
        return checkbox_value(v)

    @field_validator("sort_order", mode="before")
    @classmethod
    def default_order(cls, v):
        return 0 if blank_to_none(v) is None else v


class MediaForm(BaseModel):
    """Shared fields for certificates and gallery items."""

    title: str = Field(default="", max_length=255)
    description: str | None = None
    file_url: str = Field(default="", max_length=500)
    file_type: str = "image"
    thumbnail_url: str | None = Field(default=None, max_length=500)
    is_active: bool = True
    sort_order: int = 0

    @field_validator("description", "thumbnail_url", mode="before")
    @classmethod
    def blank(cls, v):
        return blank_to_none(v)

    @field_validator("title", mode="before")
    @classmethod
    def require_title(cls, v):
        return _required_text(v, "Title")

    @field_validator("file_url", mode="before")
    @classmethod
    def require_url(cls, v):
        v = _required_text(v, "File URL")
        if not (v.startswith("/") or v.startswith("http://") or v.startswith("https://")):
            raise ValueError("File URL must be an absolute path or an http(s) URL")
        return v

    @field_validator("is_active", mode="before")
    @classmethod
    def flags(cls, v):
        return checkbox_value(v)

    @field_validator("sort_order", mode="before")
    @classmethod
    def default_order(cls, v):
        return 0 if blank_to_none(v) is None else v


class CertificateForm(MediaForm):
    @field_validator("file_type", mode="before")
    @classmethod
    def check_type(cls, v):
        v = (v or "image").strip().lower()
        if v not in ("image", "pdf"):
            raise ValueError("File type must be image or pdf")
        return v


class GalleryItemForm(MediaForm):
    @field_validator("file_type", mode="before")
    @classmethod
    def check_type(cls, v):
        v = (v or "image").strip().lower()
        if v not in ("image", "video"):
            raise ValueError("File type must be image or video")
        return v


class ContactForm(BaseModel):
    """Public contact form."""

    name: str = ""
    email: str = ""
    subject: str | None = Field(default=None, max_length=200)
    message: str = ""

    @field_validator("name", "message", mode="before")
    @classmethod
    def required(cls, v, info: ValidationInfo):
        v = (v or "").strip()
        if not v:
            raise ValueError(f"{info.field_name.capitalize()} is required.")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        v = (v or "").strip()
        if not is_valid_email(v):
            raise ValueError("Please enter a valid email address.")
        return v.lower()

    @field_validator("subject", mode="before")
    @classmethod
    def blank(cls, v):
        return blank_to_none((v or "").strip())

    @field_validator("message")
    @classmethod
    def check_length(cls, v: str) -> str:
        if len(v) > 5000:
            raise ValueError("Message must not exceed 5000 characters.")
        return v

# =============================================================================
# core/models/user.py - User Schemas
# =============================================================================
# - Role: Enum of account roles, ordered by privilege
# - RegisterForm / LoginForm / ProfileForm / PasswordForm: submitted forms
# - UserForm: admin-side user edits
#
# Validation messages are the ones shown to shoppers, so they are written as
# full sentences.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from lib.utils import is_valid_email


class Role(str, Enum):
    """
    Account roles.

    Privilege hierarchy: admin > content_manager > customer. A route that
    accepts a role also accepts every role above it.
    """
    CUSTOMER = "customer"
    CONTENT_MANAGER = "content_manager"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def satisfies(self, required: "Role") -> bool:
        return self.rank >= required.rank


_ROLE_RANK = {
    Role.CUSTOMER: 1,
    Role.CONTENT_MANAGER: 2,
    Role.ADMIN: 3,
}


def _email(value: str | None) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("Email address is required.")
    if not is_valid_email(value):
        raise ValueError("Please enter a valid email address.")
    return value.lower()


class LoginForm(BaseModel):
    """Login form: email and password."""

    email: str = ""
    password: str = ""
    redirect: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required.")
        return v


class RegisterForm(BaseModel):
    """
    Customer registration.

    Example:
        {
            "email": "amara@example.com",
            "password": "cinnamon123",
            "password_confirmation": "cinnamon123",
            "first_name": "Amara",
            "last_name": "Perera"
        }
    """

    email: str = ""
    password: str = ""
    password_confirmation: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required.")
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters.")
        if len(v) > 72:
            raise ValueError("Password must not exceed 72 characters.")
        return v

    @field_validator("password_confirmation")
    @classmethod
    def check_confirmation(cls, v: str, info: ValidationInfo) -> str:
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Passwords do not match.")
        return v

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def check_name(cls, v, info: ValidationInfo):
        label = "First name" if info.field_name == "first_name" else "Last name"
        v = (v or "").strip()
        if not v:
            raise ValueError(f"{label} is required.")
        if len(v) > 100:
            raise ValueError(f"{label} must not exceed 100 characters.")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, v):
        v = (v or "").strip()
        if len(v) > 20:
            raise ValueError("Phone number must not exceed 20 characters.")
        return v or None


class ProfileForm(BaseModel):
    """Dashboard profile edit."""

    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def require_name(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("This field is required.")
        return v


class PasswordForm(BaseModel):
    """Dashboard password change."""

    current_password: str = ""
    new_password: str = ""
    new_password_confirmation: str = ""

    @field_validator("current_password")
    @classmethod
    def require_current(cls, v: str) -> str:
        if not v:
            raise ValueError("Current password is required.")
        return v

    @field_validator("new_password")
    @classmethod
    def check_new(cls, v: str) -> str:
        if len(v) < 8 or len(v) > 72:
            raise ValueError("Password must be between 8 and 72 characters.")
        return v

    @field_validator("new_password_confirmation")
    @classmethod
    def check_confirmation(cls, v: str, info: ValidationInfo) -> str:
        if "new_password" in info.data and v != info.data["new_password"]:
            raise ValueError("Passwords do not match.")
        return v

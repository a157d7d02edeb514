# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common helpers used across services and controllers.
# =============================================================================

import math
import re
import unicodedata
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from app.exceptions import FormValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

TRUTHY = frozenset({"1", "true", "on", "yes"})

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


# =============================================================================
# Strings
# =============================================================================

def slugify(value: str) -> str:
    """
    Convert text to a URL slug.

    Example:
        slugify("Ceylon Cinnamon Sticks (Alba)")  # "ceylon-cinnamon-sticks-alba"
    """
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower())
    return slug.strip("-") or "item"


def is_valid_email(value: str | None) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def blank_to_none(value: Any) -> Any:
    """Empty or whitespace-only form strings become None."""
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def checkbox_value(value: Any) -> bool:
    """Interpret an HTML checkbox / CSV flag ("1", "on", "true", "yes")."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY


def now() -> str:
    """Current local time as a DATETIME-compatible string."""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


# =============================================================================
# Numbers & Pagination
# =============================================================================

# Widest value an INTEGER column holds (signed 64-bit)
MAX_DB_INT = 2**63 - 1


def to_int(value: Any, default: int | None = None) -> int | None:
    """Parse an integer from user input; out-of-range numbers count as invalid."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if not -MAX_DB_INT <= number <= MAX_DB_INT:
        return default
    return number


def to_float(value: Any, default: float | None = None) -> float | None:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def page_count(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page > 0 else 0


def page_offset(page: Any, per_page: int) -> tuple[int, int]:
    """Normalize a ?page= value. Returns (page, offset)."""
    current = max(to_int(page, 1) or 1, 1)
    return current, (current - 1) * per_page


# =============================================================================
# Form Validation
# =============================================================================

def validate_form(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    """
    Validate submitted form data against a pydantic model.

    Collects every failure into a {field: [messages]} mapping so the form can
    be redisplayed with all problems at once.

    Args:
        model: Pydantic model describing the form
        data: Submitted values

    Returns:
        The validated model instance

    Raises:
        FormValidationError: With the collected field errors and the
            submitted values (passwords removed)
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors: dict[str, list[str]] = {}
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "__all__"
            errors.setdefault(field, []).append(_clean_message(error["msg"]))
        old_input = {
            key: value for key, value in data.items()
            if "password" not in key and key != "csrf_token"
        }
        raise FormValidationError(errors, old_input) from e


def _clean_message(message: str) -> str:
    # pydantic prefixes custom ValueError messages with "Value error, "
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    return message

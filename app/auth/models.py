# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for the logged-in user carried in the session cookie.
# =============================================================================

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from core.models.user import Role


class SessionUser(BaseModel):
    """
    Authenticated user stored in the session.

    This is the minimal user info needed to render pages and check roles,
    without querying the database on every request.
    """
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    role: Role = Role.CUSTOMER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_staff(self) -> bool:
        """Admins and content managers can enter the back-office."""
        return self.role.satisfies(Role.CONTENT_MANAGER)

    def has_role(self, required: Role) -> bool:
        return self.role.satisfies(required)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SessionUser":
        return cls(
            id=row["id"],
            email=row["email"],
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            role=Role(row.get("role") or Role.CUSTOMER.value),
        )


class SessionPayload(BaseModel):
    """Decoded session token."""
    data: dict[str, Any]
    exp: int
    iat: Optional[int] = None

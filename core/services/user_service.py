# =============================================================================
# core/services/user_service.py - User Accounts
# =============================================================================
# Registration, authentication and profile maintenance. Password hashes are
# never returned to callers.
# =============================================================================

import logging
from typing import Any

from app.exceptions import FormValidationError, NotFoundError
from core.models.user import ProfileForm, RegisterForm, Role
from lib.database import Connection
from lib.security import hash_password, verify_password
from lib.utils import now

logger = logging.getLogger(__name__)

PUBLIC_COLUMNS = (
    "id, email, first_name, last_name, phone, role, is_active, "
    "last_login_at, created_at, updated_at"
)


class UserService:
    """
    Service for user accounts.

    Example:
        users = UserService(conn)
        user_id = users.create_user(form)
        user = users.authenticate("amara@example.com", "cinnamon123")
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    def find(self, user_id: int | str) -> dict[str, Any] | None:
        return self.conn.fetch_one(f"SELECT {PUBLIC_COLUMNS} FROM users WHERE id = :id", {"id": user_id})

    def get(self, user_id: int | str) -> dict[str, Any]:
        user = self.find(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def find_by_email(self, email: str) -> dict[str, Any] | None:
        """Full row including password_hash. Internal use only."""
        return self.conn.fetch_one(
            "SELECT * FROM users WHERE email = :email", {"email": (email or "").strip().lower()}
        )

    def email_exists(self, email: str, exclude_user_id: int | None = None) -> bool:
        sql = "SELECT COUNT(*) FROM users WHERE email = :email"
        params: dict[str, Any] = {"email": (email or "").strip().lower()}
        if exclude_user_id is not None:
            sql += " AND id != :exclude_id"
            params["exclude_id"] = exclude_user_id
        return bool(self.conn.fetch_value(sql, params))

    def create_user(self, form: RegisterForm, role: Role = Role.CUSTOMER) -> int:
        """
        Create an account.

        Raises:
            FormValidationError: If the email is already registered
        """
        if self.email_exists(form.email):
            raise FormValidationError(
                {"email": ["Email address is already registered."]},
                old_input={"email": form.email, "first_name": form.first_name,
                           "last_name": form.last_name, "phone": form.phone},
            )
        self.conn.query(
            "INSERT INTO users (email, password_hash, first_name, last_name, phone, role, is_active, created_at) "
            "VALUES (:email, :password_hash, :first_name, :last_name, :phone, :role, 1, :created_at)",
            {
                "email": form.email,
                "password_hash": hash_password(form.password),
                "first_name": form.first_name,
                "last_name": form.last_name,
                "phone": form.phone,
                "role": role.value,
                "created_at": now(),
            },
        )
        user_id = self.conn.last_insert_id()
        logger.info(f"Registered user {user_id} ({role.value})")
        return user_id

    def authenticate(self, email: str, password: str) -> dict[str, Any] | None:
        """
        Check credentials.

        Returns:
            The user row without password_hash, or None when the email is
            unknown, the password is wrong or the account is inactive
        """
        user = self.find_by_email(email)
        if user is None or not user["is_active"]:
            return None
        if not verify_password(password, user["password_hash"]):
            logger.info(f"Failed login for user {user['id']}")
            return None

        self.conn.query(
            "UPDATE users SET last_login_at = :at WHERE id = :id", {"at": now(), "id": user["id"]}
        )
        user.pop("password_hash", None)
        return user

    def update_profile(self, user_id: int, form: ProfileForm) -> None:
        self.get(user_id)
        self.conn.query(
            "UPDATE users SET first_name = :first_name, last_name = :last_name, phone = :phone, "
            "updated_at = :updated_at WHERE id = :id",
            {**form.model_dump(), "updated_at": now(), "id": user_id},
        )

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        """
        Raises:
            FormValidationError: If the current password is wrong
        """
        row = self.conn.fetch_one("SELECT password_hash FROM users WHERE id = :id", {"id": user_id})
        if row is None:
            raise NotFoundError("User", user_id)
        if not verify_password(current_password, row["password_hash"]):
            raise FormValidationError({"current_password": ["Current password is incorrect."]})
        self.conn.query(
            "UPDATE users SET password_hash = :hash, updated_at = :updated_at WHERE id = :id",
            {"hash": hash_password(new_password), "updated_at": now(), "id": user_id},
        )
        logger.info(f"Password changed for user {user_id}")

    def set_active(self, user_id: int, active: bool) -> None:
        self.conn.query(
            "UPDATE users SET is_active = :active, updated_at = :updated_at WHERE id = :id",
            {"active": active, "updated_at": now(), "id": user_id},
        )

    def get_all(self, filters: dict[str, Any] | None = None, limit: int = 50, offset: int = 0) -> list[dict[str, Any]]:
        """Admin listing, filterable by role and a name/email search."""
        filters = filters or {}
        where, params = [], {"limit": limit, "offset": offset}
        if filters.get("role"):
            where.append("role = :role")
            params["role"] = filters["role"]
        if filters.get("search"):
            where.append("(email LIKE :search OR first_name LIKE :search OR last_name LIKE :search)")
            params["search"] = f"%{filters['search']}%"
        sql = f"SELECT {PUBLIC_COLUMNS} FROM users"
        if where:
            sql += " WHERE " + " AND ".join(where)
        return self.conn.fetch_all(sql + " ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset", params)

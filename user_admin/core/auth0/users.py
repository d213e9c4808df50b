"""Auth0 user management operations."""
from __future__ import annotations
import logging
import secrets
import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING
from urllib.parse import quote

from .client import Auth0Client
from .exceptions import Auth0APIError, UserAlreadyExistsError, UserNotFoundError
from .roles import RoleAssignment, RoleService

if TYPE_CHECKING:
    from user_admin.core.validators import InputRecord

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION = "Username-Password-Authentication"
DEFAULT_ROLE = "student"

PASSWORD_LENGTH = 12
PASSWORD_SYMBOLS = "!@#$%^&*"
PASSWORD_ALPHABET = string.ascii_letters + string.digits + PASSWORD_SYMBOLS


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """Generate a password for users imported without one.

    Contains at least one uppercase letter, one lowercase letter, one digit
    and one symbol; the rest is drawn from the combined alphabet and the
    whole string is shuffled.
    """
    rng = secrets.SystemRandom()
    chars = [
        rng.choice(string.ascii_uppercase),
        rng.choice(string.ascii_lowercase),
        rng.choice(string.digits),
        rng.choice(PASSWORD_SYMBOLS),
    ]
    chars.extend(rng.choice(PASSWORD_ALPHABET) for _ in range(max(length - len(chars), 0)))
    rng.shuffle(chars)
    return "".join(chars)


@dataclass
class DirectoryUser:
    """User as stored in the Auth0 tenant."""
    user_id: str
    email: str
    role: str = DEFAULT_ROLE
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    email_verified: bool = False

    @classmethod
    def from_auth0(cls, raw: Dict[str, Any], role: Optional[str] = None) -> "DirectoryUser":
        app_metadata = raw.get("app_metadata") or {}
        return cls(
            user_id=raw.get("user_id", ""),
            email=raw.get("email", ""),
            role=role or app_metadata.get("role") or DEFAULT_ROLE,
            name=raw.get("name"),
            given_name=raw.get("given_name"),
            family_name=raw.get("family_name"),
            created_at=raw.get("created_at"),
            updated_at=raw.get("updated_at"),
            email_verified=bool(raw.get("email_verified", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "name": self.name,
            "given_name": self.given_name,
            "family_name": self.family_name,
            "role": self.role,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "email_verified": self.email_verified,
        }


@dataclass
class UserPage:
    """One page of the tenant user listing."""
    users: List[DirectoryUser] = field(default_factory=list)
    total: int = 0


class UserService:
    """Service for managing Auth0 users."""

    def __init__(self, client: Auth0Client, roles: RoleService, connection: str = DEFAULT_CONNECTION):
        """Initialize user service.

        Args:
            client: Authenticated Auth0 client
            roles: Role service used for best-effort role assignment
            connection: Database connection new users are created on
        """
        self.client = client
        self.roles = roles
        self.connection = connection

    def create_user(self, record: "InputRecord") -> DirectoryUser:
        """Create a user and assign its role.

        A missing password is replaced by generate_password(). Role
        assignment failures are logged and do not fail the creation.

        Raises:
            UserAlreadyExistsError: Email already registered (409)
            Auth0APIError: Any other rejection by the Management API
        """
        payload: Dict[str, Any] = {
            "email": record.email,
            "password": record.password or generate_password(),
            "connection": self.connection,
            "email_verified": False,
            "app_metadata": {"role": record.role},
        }
        if record.given_name:
            payload["given_name"] = record.given_name
        if record.family_name:
            payload["family_name"] = record.family_name
        display_name = record.name or f"{record.given_name or ''} {record.family_name or ''}".strip()
        if display_name:
            payload["name"] = display_name

        try:
            resp = self.client.post("/api/v2/users", json=payload)
        except Auth0APIError as exc:
            if exc.status_code == 409:
                raise UserAlreadyExistsError(exc.message or "The user already exists.") from exc
            raise

        user = DirectoryUser.from_auth0(resp.json(), record.role)
        self.assign_role(user.user_id, record.role)
        logger.info(f"[auth0] User created successfully: {record.email}")
        return user

    def assign_role(self, user_id: str, role: str) -> RoleAssignment:
        return self.roles.assign_role(user_id, role)

    def get_user_by_email(self, email: str) -> Optional[DirectoryUser]:
        """Return the first user registered with this email, or None."""
        resp = self.client.get("/api/v2/users-by-email", params={"email": email})
        users = resp.json() or []
        if not users:
            return None
        return DirectoryUser.from_auth0(users[0])

    def get_user_by_id(self, user_id: str) -> Optional[DirectoryUser]:
        """Return the user with this id, or None when Auth0 answers 404."""
        try:
            resp = self.client.get(f"/api/v2/users/{quote(user_id, safe='')}")
        except Auth0APIError as exc:
            if exc.status_code == 404:
                return None
            raise
        return DirectoryUser.from_auth0(resp.json())

    def list_users(self, page: int = 0, per_page: int = 50) -> UserPage:
        """Fetch one page of users with the tenant-wide total."""
        resp = self.client.get(
            "/api/v2/users",
            params={"page": page, "per_page": per_page, "include_totals": "true"},
        )
        body = resp.json() or {}
        return UserPage(
            users=[DirectoryUser.from_auth0(raw) for raw in body.get("users", [])],
            total=int(body.get("total") or 0),
        )

    def update_user(self, email: str, changes: Dict[str, Any]) -> DirectoryUser:
        """Update profile fields, password and/or role of the user with this email.

        Raises:
            UserNotFoundError: No user with this email
        """
        existing = self.get_user_by_email(email)
        if not existing:
            raise UserNotFoundError("User not found")

        payload: Dict[str, Any] = {}
        for key in ("given_name", "family_name", "name", "password"):
            if changes.get(key) is not None:
                payload[key] = changes[key]

        role = changes.get("role")
        if role is not None:
            payload["app_metadata"] = {"role": role}
            self.assign_role(existing.user_id, role)

        resp = self.client.patch(f"/api/v2/users/{quote(existing.user_id, safe='')}", json=payload)
        logger.info(f"[auth0] User updated successfully: {email}")
        return DirectoryUser.from_auth0(resp.json(), role or existing.role)

    def delete_user_by_id(self, user_id: str) -> None:
        """Delete a user by id.

        Raises:
            UserNotFoundError: The user is already gone (404)
        """
        try:
            self.client.delete(f"/api/v2/users/{quote(user_id, safe='')}")
        except Auth0APIError as exc:
            if exc.status_code == 404:
                raise UserNotFoundError("User not found") from exc
            raise

    def delete_user(self, email: str) -> None:
        """Delete the user registered with this email.

        Raises:
            UserNotFoundError: No user with this email
        """
        user = self.get_user_by_email(email)
        if not user:
            raise UserNotFoundError("User not found")
        self.delete_user_by_id(user.user_id)
        logger.info(f"[auth0] User deleted successfully: {email}")

"""Auth0 role assignment operations."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import quote

from .client import Auth0Client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleAssignment:
    """Outcome of a best-effort role assignment.

    A failed assignment is reported here instead of raised: the user record
    already exists and can be reconciled later.
    """
    user_id: str
    role: str
    assigned: bool
    error: Optional[str] = None


class RoleService:
    """Service for assigning tenant roles to users."""

    def __init__(self, client: Auth0Client, role_ids: Mapping[str, str]):
        """Initialize role service.

        Args:
            client: Authenticated Auth0 client
            role_ids: Mapping of application role name -> Auth0 role id
        """
        self.client = client
        self.role_ids = dict(role_ids)

    def get_role_id(self, role: str) -> Optional[str]:
        return self.role_ids.get(role) or None

    def assign_role(self, user_id: str, role: str) -> RoleAssignment:
        """Assign the configured Auth0 role to a user.

        Never raises. Failures are logged and returned as an unassigned result.
        """
        role_id = self.get_role_id(role)
        if not role_id:
            logger.warning(f"[role] Role ID not configured for role: {role}")
            return RoleAssignment(user_id, role, False, f"Role ID not configured for role: {role}")

        try:
            self.client.post(
                f"/api/v2/users/{quote(user_id, safe='')}/roles",
                json={"roles": [role_id]},
            )
        except Exception as exc:
            logger.error(f"[role] Error assigning role '{role}' to user {user_id}: {exc}")
            return RoleAssignment(user_id, role, False, str(exc))

        logger.debug(f"[role] Role '{role}' assigned to user {user_id}")
        return RoleAssignment(user_id, role, True)

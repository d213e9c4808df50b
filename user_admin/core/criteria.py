"""Deletion/import criteria and their resolution against the directory.

A criterion is either "all" or "role" (with a role). For deletion, "all"
additionally requires an explicit confirm flag; parse_deletion_criterion is
the gate that enforces it before anything touches the directory.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from user_admin.core.auth0.users import DirectoryUser
from user_admin.core.directory import Directory
from user_admin.core.validators import VALID_ROLES, is_valid_role

logger = logging.getLogger(__name__)

CRITERIA_ALL = "all"
CRITERIA_ROLE = "role"
DEFAULT_PAGE_SIZE = 100


class CriteriaError(ValueError):
    """Criterion payload rejected before resolution."""

    def __init__(self, message: str, error: str = "Validation failed"):
        self.message = message
        self.error = error
        super().__init__(message)


class ConfirmationRequiredError(CriteriaError):
    """Deleting every user was requested without confirm: true."""

    def __init__(self):
        super().__init__(
            'Deleting all users requires explicit confirmation. Set "confirm: true" in request body.',
            error="Confirmation Required",
        )


@dataclass(frozen=True)
class Criterion:
    kind: str
    role: Optional[str] = None

    @classmethod
    def all(cls) -> "Criterion":
        return cls(CRITERIA_ALL)

    @classmethod
    def by_role(cls, role: str) -> "Criterion":
        return cls(CRITERIA_ROLE, role)

    def matches_role(self, role: Optional[str]) -> bool:
        if self.kind == CRITERIA_ALL:
            return True
        return (role or "").strip() == self.role

    def to_dict(self) -> dict:
        data = {"criteria": self.kind}
        if self.role:
            data["role"] = self.role
        return data


def _parse(payload: Mapping[str, Any]) -> Criterion:
    kind = str(payload.get("criteria") or "").strip()
    if kind not in (CRITERIA_ALL, CRITERIA_ROLE):
        raise CriteriaError('Criteria must be either "all" or "role"')

    role = payload.get("role")
    role = str(role).strip() if role is not None else ""
    if role and not is_valid_role(role):
        raise CriteriaError(f"Role must be one of: {', '.join(VALID_ROLES)}")

    if kind == CRITERIA_ROLE:
        if not role:
            raise CriteriaError('Role is required when criteria is "role"')
        return Criterion.by_role(role)
    return Criterion.all()


def parse_import_criterion(payload: Mapping[str, Any]) -> Criterion:
    """Parse the optional row filter of a bulk import (defaults to "all")."""
    if not payload.get("criteria"):
        return Criterion.all()
    return _parse(payload)


def parse_deletion_criterion(payload: Any) -> Criterion:
    """Parse and gate a bulk deletion request.

    Raises:
        CriteriaError: Unknown criteria or missing/unknown role
        ConfirmationRequiredError: criteria "all" without confirm is True
    """
    if not isinstance(payload, Mapping):
        raise CriteriaError("Request body must be a JSON object")

    confirm = payload.get("confirm")
    if confirm is not None and not isinstance(confirm, bool):
        raise CriteriaError("Confirm must be a boolean value")

    criterion = _parse(payload)
    if criterion.kind == CRITERIA_ALL and confirm is not True:
        raise ConfirmationRequiredError()
    return criterion


def resolve_users(
    directory: Directory,
    criterion: Criterion,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> List[DirectoryUser]:
    """Expand a criterion into the concrete users it selects.

    Reads the whole directory page by page (the list endpoint has no role
    filter), then filters locally for role criteria.
    """
    users: List[DirectoryUser] = []
    page = 0
    while True:
        result = directory.list_users(page=page, per_page=page_size)
        users.extend(result.users)
        logger.debug(f"[criteria] Page {page}: {len(result.users)} users ({len(users)}/{result.total})")
        if not result.users or len(users) >= result.total:
            break
        page += 1

    selected = [user for user in users if criterion.matches_role(user.role)]
    logger.info(
        f"[criteria] {criterion.kind}{'=' + criterion.role if criterion.role else ''}: "
        f"{len(selected)} of {len(users)} users selected"
    )
    return selected

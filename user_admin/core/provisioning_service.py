"""
Provisioning Service Layer

Business logic shared by the REST API and the bulk CLI. Routes stay thin:
they parse the request, call one function here and render the result.

Architecture:
    REST API (/api/users/*) ──┐
                              ├──> provisioning_service.py ──> core.batch / core.criteria ──> core.auth0 ──> Auth0
    scripts/bulk.py ──────────┘

Features:
    - Single-record create/fetch/list/update/delete by email
    - CSV bulk import with optional role filter
    - Bulk deletion by criterion (all / role)
    - Audit trail for every mutation
    - Standardized error handling via ServiceError
"""

from __future__ import annotations
import logging
from typing import Any, Optional

import requests

from user_admin.config import AppConfig, load_settings
from user_admin.core import audit
from user_admin.core.auth0 import (
    Auth0APIError,
    Auth0Client,
    Auth0Error,
    RoleService,
    TokenRequestError,
    UserAlreadyExistsError,
    UserNotFoundError,
    UserService,
    get_access_token,
)
from user_admin.core.batch import (
    BatchExecutor,
    BulkSetupError,
    PacingPolicy,
    consumed_upload,
    process_bulk_registration,
)
from user_admin.core.criteria import Criterion, resolve_users
from user_admin.core.validators import (
    PayloadValidationError,
    validate_create_payload,
    validate_update_payload,
)

logger = logging.getLogger(__name__)

_config: Optional[AppConfig] = None
_user_service: Optional[UserService] = None


# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions
# ─────────────────────────────────────────────────────────────────────────────

class ServiceError(Exception):
    """API-level error with HTTP status, short error label and message."""

    def __init__(self, status: int, error: str, message: str, errors: Optional[list] = None):
        self.status = status
        self.error = error
        self.message = message
        self.errors = errors
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to the JSON error envelope."""
        body = {"success": False, "error": self.error, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


def _not_found() -> ServiceError:
    return ServiceError(404, "Not Found", "User not found")


def _directory_error(exc: Exception) -> ServiceError:
    """Map an Auth0 failure on a single-record operation to a ServiceError."""
    if isinstance(exc, UserNotFoundError):
        return _not_found()
    if isinstance(exc, UserAlreadyExistsError):
        return ServiceError(409, "Conflict", exc.message)
    if isinstance(exc, Auth0APIError) and 400 <= exc.status_code < 500 and exc.status_code not in (401, 403, 429):
        return ServiceError(exc.status_code, "Bad Request", exc.message)
    return ServiceError(502, "Bad Gateway", f"Identity provider error: {exc}")


# ─────────────────────────────────────────────────────────────────────────────
# Configuration & Directory access
# ─────────────────────────────────────────────────────────────────────────────

def configure(cfg: AppConfig) -> None:
    """Bind the service layer to a configuration (called by create_app)."""
    global _config, _user_service
    _config = cfg
    _user_service = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = load_settings()
    return _config


def get_user_service() -> UserService:
    """Return the process-wide UserService (token cached inside its client)."""
    global _user_service
    if _user_service is None:
        cfg = get_config()
        client = Auth0Client(
            cfg.auth0_domain,
            cfg.management_client_id,
            cfg.management_client_secret,
            cfg.management_audience,
        )
        _user_service = UserService(client, RoleService(client, cfg.role_ids))
    return _user_service


def build_executor(directory=None) -> BatchExecutor:
    cfg = get_config()
    return BatchExecutor(
        directory or get_user_service(),
        PacingPolicy(every=cfg.bulk_pause_every, pause_seconds=cfg.bulk_pause_seconds),
    )


def _ensure_directory_reachable(service: UserService) -> None:
    """Fail the batch up front when no management token can be obtained."""
    try:
        service.client.ensure_authenticated()
    except (Auth0Error, requests.RequestException) as exc:
        raise BulkSetupError(f"Identity provider unreachable: {exc}", status=502) from exc


# ─────────────────────────────────────────────────────────────────────────────
# Token passthrough
# ─────────────────────────────────────────────────────────────────────────────

def issue_access_token() -> dict:
    """Client-credentials token for API callers."""
    cfg = get_config()
    try:
        return get_access_token(
            cfg.auth0_domain, cfg.auth0_client_id, cfg.auth0_client_secret, cfg.auth0_audience
        )
    except TokenRequestError as exc:
        raise ServiceError(502, "Bad Gateway", exc.message)


# ─────────────────────────────────────────────────────────────────────────────
# Single-record operations
# ─────────────────────────────────────────────────────────────────────────────

def create_user(payload: Any, operator: str = "api") -> dict:
    """Create one user from a JSON payload.

    Raises:
        ServiceError: 400 on validation failure, 409 on duplicate email
    """
    try:
        record = validate_create_payload(payload)
    except PayloadValidationError as exc:
        raise ServiceError(400, "Validation failed", "Validation failed", exc.errors)

    try:
        user = get_user_service().create_user(record)
    except Auth0Error as exc:
        audit.safe_log_event(
            "user_create", record.email, operator=operator,
            details={"role": record.role, "error": exc.message}, success=False,
        )
        raise _directory_error(exc)

    audit.safe_log_event(
        "user_create", record.email, operator=operator,
        details={"user_id": user.user_id, "role": record.role},
    )
    return user.to_dict()


def list_users(page: int = 0, per_page: int = 50) -> dict:
    try:
        result = get_user_service().list_users(page=page, per_page=per_page)
    except Auth0Error as exc:
        raise _directory_error(exc)
    return {
        "users": [user.to_dict() for user in result.users],
        "total": result.total,
        "page": page,
        "per_page": per_page,
    }


def get_user(email: str) -> dict:
    try:
        user = get_user_service().get_user_by_email(email)
    except Auth0Error as exc:
        raise _directory_error(exc)
    if user is None:
        raise _not_found()
    return user.to_dict()


def update_user(email: str, payload: Any, operator: str = "api") -> dict:
    try:
        changes = validate_update_payload(payload)
    except PayloadValidationError as exc:
        raise ServiceError(400, "Validation failed", "Validation failed", exc.errors)

    try:
        user = get_user_service().update_user(email, changes)
    except Auth0Error as exc:
        raise _directory_error(exc)

    audit.safe_log_event(
        "user_update", email, operator=operator,
        details={"fields": sorted(key for key in changes if key != "password")},
    )
    return user.to_dict()


def delete_user(email: str, operator: str = "api") -> None:
    try:
        get_user_service().delete_user(email)
    except Auth0Error as exc:
        raise _directory_error(exc)
    audit.safe_log_event("user_delete", email, operator=operator)


# ─────────────────────────────────────────────────────────────────────────────
# Bulk operations
# ─────────────────────────────────────────────────────────────────────────────

def bulk_create_users(
    path: str,
    criterion: Optional[Criterion] = None,
    operator: str = "api",
    delete_file: bool = True,
) -> dict:
    """Import users from a CSV file and return the BatchResult as a dict.

    The file is removed afterwards (unless delete_file is False), including
    when the batch cannot start.

    Raises:
        BulkSetupError: CSV unreadable (400) or Auth0 unreachable (502)
    """
    with consumed_upload(path, delete_file=delete_file):
        service = get_user_service()
        _ensure_directory_reachable(service)
        result = process_bulk_registration(path, build_executor(service), criterion, delete_file=False)

    audit.safe_log_event(
        "bulk_create",
        (criterion or Criterion.all()).kind,
        operator=operator,
        details={
            **(criterion or Criterion.all()).to_dict(),
            "total": result.total_records,
            "succeeded": result.success_count,
            "failed": result.failure_count,
            "skipped": result.skipped_count,
        },
        success=result.failure_count == 0,
    )
    return result.to_dict()


def bulk_delete_users(criterion: Criterion, operator: str = "api") -> dict:
    """Delete every user selected by an already-gated criterion.

    Raises:
        BulkSetupError: The directory listing could not be read (502)
    """
    service = get_user_service()
    try:
        users = resolve_users(service, criterion, page_size=get_config().bulk_page_size)
    except (Auth0Error, requests.RequestException) as exc:
        raise BulkSetupError(f"Failed to resolve users: {exc}", status=502) from exc

    result = build_executor(service).run_delete(users)

    audit.safe_log_event(
        "bulk_delete",
        criterion.kind,
        operator=operator,
        details={
            **criterion.to_dict(),
            "total": result.total_users,
            "deleted": result.deleted_count,
            "failed": result.failed_count,
        },
        success=result.failed_count == 0,
    )
    return result.to_dict()

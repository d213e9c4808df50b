"""User management REST endpoints.

Thin HTTP layer over provisioning_service: each route parses the request,
calls one service function and renders the {success, data, message}
envelope.

Architecture:
    /api/users/* -> user_admin/core/provisioning_service.py -> core.auth0 -> Auth0

Security:
    - Every route requires an Auth0 Bearer token (blueprint before_request)
    - Bulk uploads limited by MAX_CONTENT_LENGTH and an allowed MIME list
"""

from __future__ import annotations
import logging
import os
import uuid

from flask import Blueprint, request, jsonify, current_app
from werkzeug.utils import secure_filename

from user_admin.api.decorators import authenticate_request, get_oauth_subject
from user_admin.core import provisioning_service
from user_admin.core.provisioning_service import ServiceError
from user_admin.core.criteria import parse_deletion_criterion, parse_import_criterion

bp = Blueprint("users", __name__, url_prefix="/api/users")

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


@bp.before_request
def require_token():
    return authenticate_request()


def _ok(data=None, message: str = "", status: int = 200):
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return jsonify(body), status


def _json_body():
    payload = request.get_json(silent=True)
    if payload is None:
        raise ServiceError(400, "Bad Request", "Request body must be valid JSON")
    return payload


# ─────────────────────────────────────────────────────────────────────────────
# Single-record endpoints
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/single/create", methods=["POST"])
def create_single_user():
    user = provisioning_service.create_user(_json_body(), operator=get_oauth_subject())
    return _ok(user, "User created successfully", 201)


@bp.route("/all/fetch", methods=["GET"])
def fetch_all_users():
    page = request.args.get("page", default=0, type=int)
    per_page = request.args.get("per_page", default=50, type=int)
    if page < 0 or not 1 <= per_page <= MAX_PER_PAGE:
        raise ServiceError(400, "Bad Request", f"page must be >= 0 and per_page between 1 and {MAX_PER_PAGE}")

    result = provisioning_service.list_users(page=page, per_page=per_page)
    return _ok(result, "Users retrieved successfully")


@bp.route("/<email>/fetch", methods=["GET"])
def fetch_user(email: str):
    user = provisioning_service.get_user(email)
    return _ok(user, "User retrieved successfully")


@bp.route("/<email>/update", methods=["PUT", "PATCH"])
def update_user(email: str):
    user = provisioning_service.update_user(email, _json_body(), operator=get_oauth_subject())
    return _ok(user, "User updated successfully")


@bp.route("/<email>/delete", methods=["DELETE"])
def delete_user(email: str):
    provisioning_service.delete_user(email, operator=get_oauth_subject())
    return _ok(message="User deleted successfully")


# ─────────────────────────────────────────────────────────────────────────────
# Bulk endpoints
# ─────────────────────────────────────────────────────────────────────────────

def _is_allowed_upload(upload) -> bool:
    cfg = current_app.config["APP_CONFIG"]
    mimetype = (upload.mimetype or "").lower()
    if mimetype in cfg.allowed_file_types:
        return True
    return (upload.filename or "").lower().endswith(".csv")


def _save_upload(upload) -> str:
    """Store an upload under UPLOAD_DIR with a collision-free name."""
    cfg = current_app.config["APP_CONFIG"]
    os.makedirs(cfg.upload_dir, exist_ok=True)
    name = secure_filename(upload.filename or "") or "upload.csv"
    path = os.path.join(cfg.upload_dir, f"{uuid.uuid4().hex}-{name}")
    upload.save(path)
    return path


@bp.route("/bulk/create", methods=["POST"])
def bulk_create_users():
    """Import users from a multipart CSV upload (field: file)."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ServiceError(400, "Bad Request", "No file uploaded")
    if not _is_allowed_upload(upload):
        raise ServiceError(400, "Bad Request", "Only CSV files are allowed")

    # Criterion is validated before the file touches disk.
    criterion = parse_import_criterion(request.form)
    path = _save_upload(upload)
    logger.info(f"[bulk-create] Upload stored at {path} ({criterion.kind})")

    result = provisioning_service.bulk_create_users(path, criterion, operator=get_oauth_subject())
    return _ok(
        result,
        f"Bulk upload completed: {result['successCount']} succeeded, {result['failureCount']} failed",
    )


@bp.route("/bulk/delete", methods=["POST", "DELETE"])
def bulk_delete_users():
    """Delete users by criterion; "all" requires confirm: true."""
    criterion = parse_deletion_criterion(request.get_json(silent=True))
    result = provisioning_service.bulk_delete_users(criterion, operator=get_oauth_subject())
    return _ok(
        result,
        f"Bulk delete completed: {result['deletedCount']} users deleted, {result['failedCount']} failed",
    )

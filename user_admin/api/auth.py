"""Token passthrough endpoint."""
import logging

from flask import Blueprint, jsonify

from user_admin.core import provisioning_service

bp = Blueprint("auth", __name__, url_prefix="/api/auth")

logger = logging.getLogger(__name__)


@bp.route("/token", methods=["POST"])
def get_token():
    """Request an access token from Auth0 using the client credentials grant."""
    token_data = provisioning_service.issue_access_token()
    logger.info("Access token obtained successfully")
    return jsonify({
        "success": True,
        "data": token_data,
        "message": "Access token retrieved successfully",
    })

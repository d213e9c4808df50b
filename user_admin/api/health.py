"""Health check endpoints."""
from datetime import datetime, timezone

from flask import Blueprint, jsonify

bp = Blueprint("health", __name__)


@bp.route("/api/health")
def health_check():
    """Basic health check endpoint (no auth required)."""
    return jsonify({
        "success": True,
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@bp.route("/")
def index():
    """Service metadata."""
    return jsonify({
        "message": "Auth0 User Management API",
        "version": "1.0.0",
        "health": "/api/health",
    })

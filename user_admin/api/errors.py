"""Error handlers for the application."""
import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from user_admin.core.batch import BulkSetupError
from user_admin.core.criteria import CriteriaError
from user_admin.core.provisioning_service import ServiceError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register JSON error handlers with the Flask app."""

    @app.errorhandler(ServiceError)
    def handle_service_error(error: ServiceError):
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(CriteriaError)
    def handle_criteria_error(error: CriteriaError):
        return jsonify({"success": False, "error": error.error, "message": error.message}), 400

    @app.errorhandler(BulkSetupError)
    def handle_bulk_setup_error(error: BulkSetupError):
        logger.error(f"Bulk operation aborted: {error.message}")
        return jsonify({"success": False, "error": error.message, "statusCode": error.status}), error.status

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({"success": False, "error": "Bad Request", "message": _description(error)}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            "success": False,
            "error": "Not Found",
            "message": f"Route {request.method} {request.path} not found",
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            "success": False,
            "error": "Method Not Allowed",
            "message": f"Route {request.method} {request.path} not found",
        }), 405

    @app.errorhandler(413)
    def request_too_large(error):
        max_size = app.config.get("MAX_CONTENT_LENGTH")
        return jsonify({
            "success": False,
            "error": "Payload Too Large",
            "message": f"File exceeds maximum allowed size ({max_size} bytes)",
        }), 413

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            return jsonify({
                "success": False,
                "error": error.name,
                "message": _description(error),
            }), error.code

        logger.error(f"Unhandled exception on {request.method} {request.path}: {error}", exc_info=True)
        return jsonify({"success": False, "error": "Internal Server Error", "statusCode": 500}), 500


def _description(error) -> str:
    return getattr(error, "description", None) or str(error)

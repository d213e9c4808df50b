"""Auth0 User Administration Package.

To use the Flask app:
    from user_admin.flask_app import app

To use the Auth0 services:
    from user_admin.core.auth0 import UserService, Auth0Client

To run batches from code:
    from user_admin.core.provisioning_service import bulk_create_users, bulk_delete_users
"""
# Note: We don't import flask_app by default to avoid Flask dependency
# for CLI scripts that only use user_admin.core

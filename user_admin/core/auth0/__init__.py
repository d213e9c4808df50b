"""Auth0 Management API client library.

This package provides a small, testable interface to the Auth0 Management API v2.

Architecture:
- client.py: HTTP client with client-credentials authentication and token reuse
- users.py: User lifecycle operations (create, fetch, list, update, delete)
- roles.py: Best-effort role assignment
- exceptions.py: Typed exceptions for error handling

Usage:
    from user_admin.core.auth0 import Auth0Client, RoleService, UserService

    client = Auth0Client("tenant.eu.auth0.com", "client-id", "client-secret")
    users = UserService(client, RoleService(client, {"teacher": "rol_123"}))
    page = users.list_users(page=0, per_page=100)
"""
from .client import (
    Auth0Client,
    get_access_token,
    request_client_credentials_token,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    Auth0Error,
    Auth0APIError,
    TokenRequestError,
    UserNotFoundError,
    UserAlreadyExistsError,
)
from .roles import RoleAssignment, RoleService
from .users import (
    DirectoryUser,
    UserPage,
    UserService,
    generate_password,
)

__all__ = [
    "Auth0Client",
    "get_access_token",
    "request_client_credentials_token",
    "REQUEST_TIMEOUT",
    "Auth0Error",
    "Auth0APIError",
    "TokenRequestError",
    "UserNotFoundError",
    "UserAlreadyExistsError",
    "RoleAssignment",
    "RoleService",
    "DirectoryUser",
    "UserPage",
    "UserService",
    "generate_password",
]

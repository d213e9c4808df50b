"""Auth0-specific exceptions for error handling."""


class Auth0Error(Exception):
    """Base exception for all Auth0 Management API operations."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Auth0APIError(Auth0Error):
    """HTTP error from the Auth0 Management API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.endpoint}: {self.message}"


class UserNotFoundError(Auth0Error):
    """User lookup failed - no user with this email or id."""
    pass


class UserAlreadyExistsError(Auth0Error):
    """User creation failed - email already registered on the connection."""
    pass


class TokenRequestError(Auth0Error):
    """Client credentials grant was rejected or the tenant is unreachable."""
    pass

"""Low-level HTTP client for the Auth0 Management API.

Handles client-credentials authentication, token caching and HTTP operations.
"""
from __future__ import annotations
from typing import Optional, Dict, Any
from datetime import datetime, timedelta

import requests

from .exceptions import Auth0APIError, TokenRequestError

REQUEST_TIMEOUT = 10
TOKEN_REFRESH_LEEWAY = 30


class Auth0Client:
    """HTTP client for the Auth0 Management API with automatic token management.

    Features:
    - Client credentials grant against https://{domain}/oauth/token
    - Token reuse until shortly before expires_in
    - Centralized error handling (HTTP >= 400 -> Auth0APIError)

    Usage:
        client = Auth0Client("tenant.eu.auth0.com", "id", "secret")
        response = client.get("/api/v2/users", params={"page": 0})
    """

    def __init__(
        self,
        domain: str,
        client_id: str,
        client_secret: str,
        audience: Optional[str] = None,
    ):
        """Initialize Auth0 client.

        Args:
            domain: Tenant domain (e.g. "tenant.eu.auth0.com")
            client_id: Machine-to-machine application client ID
            client_secret: Machine-to-machine application client secret
            audience: Management API audience (defaults to https://{domain}/api/v2/)
        """
        self.domain = domain.replace("https://", "").rstrip("/")
        self.base_url = f"https://{self.domain}"
        self.client_id = client_id
        self.client_secret = client_secret
        self.audience = audience or f"{self.base_url}/api/v2/"
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    def authenticate(self) -> str:
        """Fetch a fresh management token and cache it.

        Returns:
            Access token

        Raises:
            TokenRequestError: If the tenant rejects the credentials or is unreachable
        """
        payload = request_client_credentials_token(
            self.domain, self.client_id, self.client_secret, self.audience
        )
        self._token = payload["access_token"]
        expires_in = int(payload.get("expires_in") or 86400)
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
        return self._token

    def ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._token or not self._token_expires_at:
            self.authenticate()
            return

        if datetime.now() >= self._token_expires_at - timedelta(seconds=TOKEN_REFRESH_LEEWAY):
            self.authenticate()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        self.ensure_authenticated()
        headers = dict(extra or {})
        headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Args:
            path: API endpoint path (e.g., "/api/v2/users")
            params: Query parameters

        Returns:
            Response object

        Raises:
            Auth0APIError: On HTTP error
        """
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.get(
            f"{self.base_url}{path}", params=params, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs
        )
        self._handle_error(resp, path)
        return resp

    def post(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication."""
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.post(
            f"{self.base_url}{path}", json=json, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs
        )
        self._handle_error(resp, path)
        return resp

    def patch(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute PATCH request with automatic authentication."""
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.patch(
            f"{self.base_url}{path}", json=json, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs
        )
        self._handle_error(resp, path)
        return resp

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication."""
        headers = self._headers(kwargs.pop("headers", None))
        resp = requests.delete(
            f"{self.base_url}{path}", headers=headers, timeout=REQUEST_TIMEOUT, **kwargs
        )
        self._handle_error(resp, path)
        return resp

    def _handle_error(self, resp: requests.Response, path: str) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            Auth0APIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise Auth0APIError(resp.status_code, _error_message(resp), path)


def _error_message(resp: requests.Response) -> str:
    """Extract the human-readable message from an Auth0 error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        return body.get("message") or body.get("error_description") or body.get("error") or resp.text
    return resp.text


# ─────────────────────────────────────────────────────────────────────────────
# Standalone functions
# ─────────────────────────────────────────────────────────────────────────────
def request_client_credentials_token(
    domain: str,
    client_id: str,
    client_secret: str,
    audience: str,
) -> Dict[str, Any]:
    """Run the client credentials grant and return the raw token payload.

    Used both by Auth0Client and by the /api/auth/token passthrough endpoint.

    Raises:
        TokenRequestError: On non-200 response or network failure
    """
    url = f"https://{domain.replace('https://', '').rstrip('/')}/oauth/token"
    data = {
        "client_id": client_id,
        "client_secret": client_secret,
        "audience": audience,
        "grant_type": "client_credentials",
    }
    try:
        resp = requests.post(url, json=data, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        raise TokenRequestError(f"Failed to reach Auth0 token endpoint: {exc}") from exc

    if resp.status_code != 200:
        raise TokenRequestError(_error_message(resp) or "Failed to get access token")
    return resp.json()


def get_access_token(domain: str, client_id: str, client_secret: str, audience: str) -> Dict[str, Any]:
    """Return an access token triple for API callers.

    Returns:
        dict with access_token, token_type and expires_in
    """
    payload = request_client_credentials_token(domain, client_id, client_secret, audience)
    return {
        "access_token": payload["access_token"],
        "token_type": payload.get("token_type") or "Bearer",
        "expires_in": payload.get("expires_in"),
    }

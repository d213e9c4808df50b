"""
Flask decorators for authentication.

This module provides OAuth 2.0 Bearer Token validation for the user
management endpoints. Tokens are Auth0 access tokens (RS256 JWT).

Security:
- RSA-SHA256 signature verification via the tenant JWKS (RFC 7517)
- Expiration, issuer, audience validation (RFC 7519)
- JWKS caching (1-hour refresh)
"""

import logging
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidAudienceError,
    InvalidSignatureError,
    DecodeError,
)
from flask import request, jsonify, current_app, g

logger = logging.getLogger(__name__)

# Global JWKS client (cached singleton)
_jwks_client: Optional[PyJWKClient] = None


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def get_jwks_client() -> PyJWKClient:
    """
    Get cached JWKS client (singleton pattern).

    Fetches the Auth0 tenant's public keys from
    {AUTH0_ISSUER_BASE_URL}/.well-known/jwks.json and caches them.
    """
    global _jwks_client

    if _jwks_client is None:
        cfg = current_app.config["APP_CONFIG"]
        logger.info(f"Initializing JWKS client for: {cfg.jwks_url}")
        _jwks_client = PyJWKClient(
            cfg.jwks_url,
            cache_keys=True,
            max_cached_keys=16,
            lifespan=3600,
            headers={"User-Agent": "user-admin-api/1.0"},
        )

    return _jwks_client


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validate an Auth0 access token.

    Validations performed:
    1. Signature (RS256 via JWKS)
    2. Expiration and not-before
    3. Issuer (AUTH0_ISSUER_BASE_URL with trailing slash)
    4. Audience (AUTH0_AUDIENCE)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    if current_app.config.get("TESTING") and current_app.config.get("SKIP_OAUTH_FOR_TESTS", False):
        logger.warning("JWT validation SKIPPED (TESTING + SKIP_OAUTH_FOR_TESTS)")
        return {"sub": "test-user", "permissions": [], "iss": "test-issuer", "aud": "test-audience"}

    cfg = current_app.config["APP_CONFIG"]

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=cfg.auth0_audience,
            issuer=cfg.issuer,
            options={"require": ["exp", "iat"]},
            leeway=5,
        )
        logger.debug(f"JWT validated for subject: {claims.get('sub')}")
        return claims

    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer: {e}")
    except InvalidAudienceError as e:
        raise TokenValidationError(f"Invalid audience (token not for this API): {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except Exception as e:
        logger.error(f"JWT validation failed: {e}")
        raise TokenValidationError(f"Token validation failed: {e}")


def _unauthorized(message: str):
    return jsonify({"success": False, "error": "Unauthorized", "message": message}), 401


def authenticate_request():
    """Validate the Bearer token of the current request.

    Returns None on success (claims stored on g), or a 401 response.
    Usable directly as a blueprint before_request hook.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        logger.warning(f"Unauthorized access attempt: missing Bearer token on {request.path}")
        return _unauthorized("Invalid or missing authentication token")

    token = auth_header[7:].strip()
    if not token:
        return _unauthorized("Invalid or missing authentication token")

    try:
        claims = validate_jwt_token(token)
    except TokenValidationError as e:
        logger.warning(f"Unauthorized access attempt: {e}")
        return _unauthorized("Invalid or missing authentication token")

    g.oauth_claims = claims
    g.oauth_subject = claims.get("sub") or claims.get("azp") or "unknown"
    return None


def get_oauth_subject() -> str:
    """Subject of the validated token, used as audit operator."""
    return getattr(g, "oauth_subject", None) or "api"

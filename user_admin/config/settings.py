"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

REQUIRED_ENV_VARS = [
    "AUTH0_DOMAIN",
    "AUTH0_CLIENT_ID",
    "AUTH0_CLIENT_SECRET",
    "AUTH0_AUDIENCE",
    "AUTH0_ISSUER_BASE_URL",
    "AUTH0_MANAGEMENT_API_CLIENT_ID",
    "AUTH0_MANAGEMENT_API_CLIENT_SECRET",
]

DEMO_DEFAULTS = {
    "AUTH0_DOMAIN": "demo-tenant.us.auth0.com",
    "AUTH0_CLIENT_ID": "demo-client-id",
    "AUTH0_CLIENT_SECRET": "demo-client-secret",
    "AUTH0_AUDIENCE": "https://user-admin.local/api",
    "AUTH0_ISSUER_BASE_URL": "https://demo-tenant.us.auth0.com",
    "AUTH0_MANAGEMENT_API_CLIENT_ID": "demo-management-client-id",
    "AUTH0_MANAGEMENT_API_CLIENT_SECRET": "demo-management-client-secret",
}

DEFAULT_ALLOWED_FILE_TYPES = ["text/csv", "application/vnd.ms-excel"]


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool
    port: int = 3000
    log_level: str = "INFO"

    # Auth0 tenant (API token validation + token passthrough)
    auth0_domain: str = ""
    auth0_client_id: str = ""
    auth0_client_secret: str = ""
    auth0_audience: str = ""
    auth0_issuer_base_url: str = ""

    # Auth0 Management API (machine-to-machine app)
    management_client_id: str = ""
    management_client_secret: str = ""
    management_audience: str = ""

    # Application role -> Auth0 role id
    role_ids: dict[str, str] = field(default_factory=dict)

    # Uploads
    upload_max_file_size: int = 5 * 1024 * 1024
    allowed_file_types: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_FILE_TYPES))
    upload_dir: str = "uploads"

    # Bulk engine
    bulk_pause_every: int = 10
    bulk_pause_seconds: float = 1.0
    bulk_page_size: int = 100

    @property
    def issuer(self) -> str:
        """Token issuer as Auth0 writes it in the iss claim (trailing slash)."""
        return self.auth0_issuer_base_url.rstrip("/") + "/"

    @property
    def jwks_url(self) -> str:
        return f"{self.auth0_issuer_base_url.rstrip('/')}/.well-known/jwks.json"


def _get_or_default(var_name: str, demo_mode: bool, secret_name: Optional[str] = None) -> str:
    """Get a required value from secrets/env, or its demo placeholder."""
    value = _load_secret_from_file(secret_name, var_name) if secret_name else os.environ.get(var_name)
    if value:
        return value
    if demo_mode:
        print(f"[demo-mode] Using default for {var_name}")
        return DEMO_DEFAULTS[var_name]
    return ""


def _int_env(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer (got {raw!r}).")


def _float_env(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be a number (got {raw!r}).")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    auth0_domain = _get_or_default("AUTH0_DOMAIN", demo_mode)
    auth0_client_id = _get_or_default("AUTH0_CLIENT_ID", demo_mode)
    auth0_client_secret = _get_or_default("AUTH0_CLIENT_SECRET", demo_mode, "auth0_client_secret")
    auth0_audience = _get_or_default("AUTH0_AUDIENCE", demo_mode)
    auth0_issuer_base_url = _get_or_default("AUTH0_ISSUER_BASE_URL", demo_mode)
    management_client_id = _get_or_default("AUTH0_MANAGEMENT_API_CLIENT_ID", demo_mode)
    management_client_secret = _get_or_default(
        "AUTH0_MANAGEMENT_API_CLIENT_SECRET", demo_mode, "auth0_management_api_client_secret"
    )

    if not demo_mode:
        values = {
            "AUTH0_DOMAIN": auth0_domain,
            "AUTH0_CLIENT_ID": auth0_client_id,
            "AUTH0_CLIENT_SECRET": auth0_client_secret,
            "AUTH0_AUDIENCE": auth0_audience,
            "AUTH0_ISSUER_BASE_URL": auth0_issuer_base_url,
            "AUTH0_MANAGEMENT_API_CLIENT_ID": management_client_id,
            "AUTH0_MANAGEMENT_API_CLIENT_SECRET": management_client_secret,
        }
        missing = [name for name in REQUIRED_ENV_VARS if not values[name]]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Set DEMO_MODE=true for local development."
            )

    management_audience = os.environ.get(
        "AUTH0_MANAGEMENT_API_AUDIENCE",
        f"https://{auth0_domain.replace('https://', '').rstrip('/')}/api/v2/",
    )

    # Roles
    role_ids = {
        role: os.environ.get(f"ROLE_ID_{role.upper()}", "").strip()
        for role in ("staff", "teacher", "student")
    }
    unconfigured = [role for role, role_id in role_ids.items() if not role_id]
    if unconfigured:
        print(f"[settings] WARNING: No Auth0 role id for {', '.join(unconfigured)}; role assignment will be skipped")

    # Uploads
    allowed_file_types = [
        mime.strip()
        for mime in os.environ.get("ALLOWED_FILE_TYPES", ",".join(DEFAULT_ALLOWED_FILE_TYPES)).split(",")
        if mime.strip()
    ] or list(DEFAULT_ALLOWED_FILE_TYPES)

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; domain={auth0_domain}; audience={auth0_audience}")

    if demo_mode:
        print("[settings] WARNING: Demo placeholders in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        port=_int_env("PORT", 3000),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        auth0_domain=auth0_domain,
        auth0_client_id=auth0_client_id,
        auth0_client_secret=auth0_client_secret,
        auth0_audience=auth0_audience,
        auth0_issuer_base_url=auth0_issuer_base_url,
        management_client_id=management_client_id,
        management_client_secret=management_client_secret,
        management_audience=management_audience,
        role_ids=role_ids,
        upload_max_file_size=_int_env("MAX_FILE_SIZE", 5 * 1024 * 1024),
        allowed_file_types=allowed_file_types,
        upload_dir=os.environ.get("UPLOAD_DIR", "uploads"),
        bulk_pause_every=_int_env("BULK_PAUSE_EVERY", 10),
        bulk_pause_seconds=_float_env("BULK_PAUSE_SECONDS", 1.0),
        bulk_page_size=_int_env("BULK_PAGE_SIZE", 100),
    )

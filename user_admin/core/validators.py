"""Input validation helpers for user records and request payloads."""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

VALID_ROLES = ("staff", "teacher", "student")
PASSWORD_MIN_LENGTH = 8
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

INVALID_ROLE_MESSAGE = f"Invalid role. Must be one of: {', '.join(VALID_ROLES)}"


@dataclass(frozen=True)
class InputRecord:
    """Normalized user record ready to be sent to the directory."""
    email: str
    role: str
    password: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ValidationOutcome:
    """Either a normalized record or the reason the raw record was rejected."""
    record: Optional[InputRecord] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


class PayloadValidationError(ValueError):
    """Request payload failed field validation.

    Attributes:
        errors: List of {"field": ..., "message": ...} entries
    """

    def __init__(self, errors: list[dict[str, str]]):
        self.errors = errors
        super().__init__("Validation failed")


def _clean(value: Any) -> Optional[str]:
    """Trim a raw cell value; blanks become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def validate_record(row: Mapping[str, Any]) -> ValidationOutcome:
    """Validate one raw record (a CSV row or a JSON object).

    Rules short-circuit on the first failure: email present, email format,
    role present, role recognized, password length when a password is given.
    """
    email = _clean(row.get("email"))
    if not email:
        return ValidationOutcome(error="Email is required")
    if not EMAIL_PATTERN.match(email):
        return ValidationOutcome(error="Invalid email format")

    role = _clean(row.get("role"))
    if not role:
        return ValidationOutcome(error="Role is required")
    if role not in VALID_ROLES:
        return ValidationOutcome(error=INVALID_ROLE_MESSAGE)

    raw_password = row.get("password")
    if raw_password and len(str(raw_password)) < PASSWORD_MIN_LENGTH:
        return ValidationOutcome(error=f"Password must be at least {PASSWORD_MIN_LENGTH} characters")

    return ValidationOutcome(
        record=InputRecord(
            email=email,
            role=role,
            password=_clean(raw_password),
            given_name=_clean(row.get("given_name")),
            family_name=_clean(row.get("family_name")),
            name=_clean(row.get("name")),
        )
    )


def is_valid_role(role: Any) -> bool:
    return isinstance(role, str) and role.strip() in VALID_ROLES


# ─────────────────────────────────────────────────────────────────────────────
# Single-record payloads
# ─────────────────────────────────────────────────────────────────────────────

def validate_create_payload(payload: Any) -> InputRecord:
    """Validate the body of a single user creation request.

    Raises:
        PayloadValidationError: With every failing field
    """
    if not isinstance(payload, dict):
        raise PayloadValidationError([{"field": "body", "message": "Request body must be a JSON object"}])

    errors = []
    email = _clean(payload.get("email"))
    if not email or not EMAIL_PATTERN.match(email):
        errors.append({"field": "email", "message": "Must be a valid email address"})

    password = _clean(payload.get("password"))
    if not password or len(password) < PASSWORD_MIN_LENGTH:
        errors.append({"field": "password", "message": "Password must be at least 8 characters long"})

    role = _clean(payload.get("role"))
    if role not in VALID_ROLES:
        errors.append({"field": "role", "message": f"Role must be one of: {', '.join(VALID_ROLES)}"})

    if errors:
        raise PayloadValidationError(errors)

    return InputRecord(
        email=email.lower(),
        role=role,
        password=password,
        given_name=_clean(payload.get("given_name")),
        family_name=_clean(payload.get("family_name")),
        name=_clean(payload.get("name")),
    )


def validate_update_payload(payload: Any) -> dict[str, str]:
    """Validate the body of a user update request and return the changes.

    Only given_name, family_name, name, role and password are accepted.

    Raises:
        PayloadValidationError: With every failing field
    """
    if not isinstance(payload, dict):
        raise PayloadValidationError([{"field": "body", "message": "Request body must be a JSON object"}])

    errors = []
    changes: dict[str, str] = {}
    for key in ("given_name", "family_name", "name"):
        if payload.get(key) is not None:
            changes[key] = str(payload[key]).strip()

    if payload.get("role") is not None:
        role = str(payload["role"]).strip()
        if role not in VALID_ROLES:
            errors.append({"field": "role", "message": f"Role must be one of: {', '.join(VALID_ROLES)}"})
        else:
            changes["role"] = role

    if payload.get("password") is not None:
        password = str(payload["password"]).strip()
        if len(password) < PASSWORD_MIN_LENGTH:
            errors.append({"field": "password", "message": "Password must be at least 8 characters long"})
        else:
            changes["password"] = password

    if errors:
        raise PayloadValidationError(errors)
    return changes

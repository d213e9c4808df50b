"""Signed audit trail for user administration operations.

One JSON object per line in AUDIT_LOG_DIR/user-events.jsonl. When
AUDIT_LOG_SIGNING_KEY is set, each line carries an HMAC-SHA256 over its
canonical JSON form (sorted keys, no whitespace, signature excluded).
"""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator, Literal, Optional

logger = logging.getLogger(__name__)

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "user-events.jsonl"

EventType = Literal[
    "user_create", "user_update", "user_delete",
    "bulk_create", "bulk_delete",
]


def _signing_key() -> bytes:
    # Read per call: the key may be injected after import (Docker secrets, tests).
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


def _signature(event: dict[str, Any]) -> str:
    key = _signing_key()
    if not key:
        return ""
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def _build_event(
    event_type: EventType,
    target: str,
    operator: str,
    details: Optional[dict[str, Any]],
    success: bool,
) -> dict[str, Any]:
    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "target": target,
        "operator": operator,
        "success": success,
        "details": details or {},
    }
    signature = _signature(event)
    if signature:
        event["signature"] = signature
    return event


def log_event(
    event_type: EventType,
    target: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append one event to the audit trail.

    Args:
        event_type: Operation performed
        target: Affected email, or the criterion kind for bulk runs
        operator: Token subject, or the CLI operator name
        details: Counts, ids, error messages
        success: False when the operation failed (or a batch had failures)
    """
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)

    line = json.dumps(_build_event(event_type, target, operator, details, success), ensure_ascii=False)
    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(line + "\n")
    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_event(
    event_type: EventType,
    target: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """log_event() for request paths: a failed write is logged, never raised.

    Returns:
        True if the event was written
    """
    try:
        log_event(event_type, target, operator=operator, details=details, success=success)
    except Exception as e:
        logger.warning(f"[audit] Failed to log {event_type} event for {target}: {e}")
        return False
    return True


def read_events(event_type: Optional[str] = None) -> Iterator[dict[str, Any]]:
    """Yield parsed events in file order, optionally of one type.

    Lines that are not valid JSON are skipped with a warning.
    """
    if not AUDIT_LOG_FILE.exists():
        return
    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                logger.warning(f"[audit] Unreadable line {number} in {AUDIT_LOG_FILE}")
                continue
            if event_type is None or event.get("event_type") == event_type:
                yield event


def verify_audit_log() -> tuple[int, int]:
    """Re-check every signature with the current key.

    Returns:
        (events read, events whose signature matches)
    """
    total = valid = 0
    for event in read_events():
        total += 1
        stored = event.pop("signature", "")
        if stored and hmac.compare_digest(stored, _signature(event)):
            valid += 1
    return total, valid

"""Bulk batch engine: CSV import and criteria-based deletion.

Records are processed strictly one after another. A failing record is
recorded in the result and the loop moves on; only setup failures (input
unreadable, directory unreachable) abort a batch, and they do so before the
first record is touched.

Architecture:
    CSV upload ──> read_csv_records ──┐
                                      ├──> BatchExecutor ──> Directory (Auth0 UserService)
    criterion  ──> resolve_users ─────┘          │
                                                 └──> format_elapsed
"""
from __future__ import annotations
import csv
import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from user_admin.core.auth0.exceptions import Auth0Error
from user_admin.core.auth0.users import DirectoryUser
from user_admin.core.criteria import Criterion
from user_admin.core.directory import Directory
from user_admin.core.reporting import format_elapsed
from user_admin.core.validators import validate_record

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("email", "password", "role", "given_name", "family_name", "name")


class BulkSetupError(Exception):
    """A batch could not start; no record was processed."""

    def __init__(self, message: str, status: int = 500):
        self.message = message
        self.status = status
        super().__init__(message)


@dataclass(frozen=True)
class PacingPolicy:
    """Fixed pause after every `every`-th processed record.

    The pause keeps outbound calls under the directory's request quota.
    """
    every: int = 10
    pause_seconds: float = 1.0

    def should_pause(self, index: int) -> bool:
        return self.every > 0 and index > 0 and index % self.every == 0


# ─────────────────────────────────────────────────────────────────────────────
# Result types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BatchError:
    position: int
    identifier: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"position": self.position, "identifier": self.identifier, "reason": self.reason}


@dataclass
class BatchResult:
    total_records: int = 0
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    errors: List[BatchError] = field(default_factory=list)
    elapsed_ms: int = 0
    elapsed_formatted: str = ""

    def record_failure(self, position: int, identifier: str, reason: str) -> None:
        self.failure_count += 1
        self.errors.append(BatchError(position, identifier, reason))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRecords": self.total_records,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "skippedCount": self.skipped_count,
            "errors": [error.to_dict() for error in self.errors],
            "elapsedMillis": self.elapsed_ms,
            "elapsedFormatted": self.elapsed_formatted,
        }


@dataclass(frozen=True)
class DeletionFailure:
    email: str
    user_id: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "userId": self.user_id, "reason": self.reason}


@dataclass
class DeletionResult:
    total_users: int = 0
    deleted_count: int = 0
    failed_count: int = 0
    failures: List[DeletionFailure] = field(default_factory=list)
    elapsed_ms: int = 0
    elapsed_formatted: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalUsers": self.total_users,
            "deletedCount": self.deleted_count,
            "failedCount": self.failed_count,
            "failures": [failure.to_dict() for failure in self.failures],
            "elapsedMillis": self.elapsed_ms,
            "elapsedFormatted": self.elapsed_formatted,
        }


def _reason(exc: Exception, default: str) -> str:
    if isinstance(exc, Auth0Error):
        return exc.message or default
    return str(exc) or default


# ─────────────────────────────────────────────────────────────────────────────
# Executor
# ─────────────────────────────────────────────────────────────────────────────

class BatchExecutor:
    """Runs per-record directory operations with pacing and outcome tracking."""

    def __init__(
        self,
        directory: Directory,
        pacing: Optional[PacingPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.directory = directory
        self.pacing = pacing or PacingPolicy()
        self._sleep = sleep
        self._clock = clock

    def _pace(self, index: int) -> None:
        if self.pacing.should_pause(index):
            logger.debug(f"[bulk] Pausing {self.pacing.pause_seconds}s after record index {index}")
            self._sleep(self.pacing.pause_seconds)

    def _elapsed_ms(self, started: float) -> int:
        return int(round((self._clock() - started) * 1000))

    def run_create(self, records: Sequence[Tuple[int, Dict[str, Any]]]) -> BatchResult:
        """Create one user per raw record.

        Args:
            records: (position, raw_row) pairs in input order; position is the
                0-based data row index (header excluded)

        Returns:
            BatchResult with success_count + failure_count == len(records)
        """
        started = self._clock()
        result = BatchResult(total_records=len(records))
        logger.info(f"[bulk-create] Processing {len(records)} users")

        for index, (position, row) in enumerate(records):
            outcome = validate_record(row)
            if not outcome.is_valid:
                email = str(row.get("email") or "").strip() or "N/A"
                result.record_failure(position, email, outcome.error)
                logger.debug(f"[bulk-create] Row {position}: rejected ({outcome.error})")
                continue

            record = outcome.record
            try:
                self.directory.create_user(record)
            except Exception as exc:
                result.record_failure(position, record.email, _reason(exc, "Failed to create user"))
                logger.error(f"[bulk-create] Row {position}: Failed to create user - {record.email}: {exc}")
            else:
                result.success_count += 1
                logger.debug(f"[bulk-create] Row {position}: User created successfully - {record.email}")

            self._pace(index)

        result.elapsed_ms = self._elapsed_ms(started)
        result.elapsed_formatted = format_elapsed(result.elapsed_ms)
        logger.info(
            f"[bulk-create] Completed: {result.success_count} succeeded, "
            f"{result.failure_count} failed in {result.elapsed_formatted}"
        )
        return result

    def run_delete(self, users: Sequence[DirectoryUser]) -> DeletionResult:
        """Delete every given user by id, recording failures per user."""
        started = self._clock()
        result = DeletionResult(total_users=len(users))
        logger.info(f"[bulk-delete] Deleting {len(users)} users")

        for index, user in enumerate(users):
            try:
                self.directory.delete_user_by_id(user.user_id)
            except Exception as exc:
                result.failed_count += 1
                result.failures.append(
                    DeletionFailure(user.email, user.user_id, _reason(exc, "Failed to delete user"))
                )
                logger.error(f"[bulk-delete] Failed to delete user {user.email} ({user.user_id}): {exc}")
            else:
                result.deleted_count += 1
                logger.debug(f"[bulk-delete] Deleted {user.email}")

            self._pace(index)

        result.elapsed_ms = self._elapsed_ms(started)
        result.elapsed_formatted = format_elapsed(result.elapsed_ms)
        logger.info(
            f"[bulk-delete] Completed: {result.deleted_count} deleted, "
            f"{result.failed_count} failed in {result.elapsed_formatted}"
        )
        return result


# ─────────────────────────────────────────────────────────────────────────────
# CSV input
# ─────────────────────────────────────────────────────────────────────────────

def read_csv_records(path: str) -> List[Tuple[int, Dict[str, Any]]]:
    """Read an uploaded CSV into (position, row) pairs.

    Header names are trimmed and lower-cased; a UTF-8 BOM is tolerated.

    Raises:
        BulkSetupError: File missing, not decodable or not parseable (400)
    """
    try:
        with open(path, "r", newline="", encoding="utf-8-sig") as handle:
            reader = csv.DictReader(handle)
            if reader.fieldnames is None:
                return []
            reader.fieldnames = [(name or "").strip().lower() for name in reader.fieldnames]
            return [(position, dict(row)) for position, row in enumerate(reader)]
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise BulkSetupError(f"Failed to process CSV file: {exc}", status=400) from exc


@contextmanager
def consumed_upload(path: str, delete_file: bool = True) -> Iterator[str]:
    """Yield an uploaded file path and remove the file on every exit path."""
    try:
        yield path
    finally:
        if delete_file:
            try:
                if os.path.exists(path):
                    os.remove(path)
                    logger.debug(f"[bulk-create] Deleted temporary file: {path}")
            except OSError as exc:
                logger.error(f"[bulk-create] Failed to delete temporary file {path}: {exc}")


def process_bulk_registration(
    path: str,
    executor: BatchExecutor,
    criterion: Optional[Criterion] = None,
    delete_file: bool = True,
) -> BatchResult:
    """Import users from a CSV file.

    Rows not selected by a role criterion are counted in skipped_count and
    are not part of total_records. The file is deleted afterwards unless
    delete_file is False.

    Raises:
        BulkSetupError: The file cannot be read
    """
    with consumed_upload(path, delete_file=delete_file):
        rows = read_csv_records(path)
        selected = rows
        if criterion is not None:
            selected = [(pos, row) for pos, row in rows if criterion.matches_role(row.get("role"))]

        result = executor.run_create(selected)
        result.skipped_count = len(rows) - len(selected)
        return result

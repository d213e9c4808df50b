"""Tests for the bulk batch engine."""
import os

import pytest

from user_admin.core.auth0.exceptions import Auth0APIError
from user_admin.core.auth0.users import DirectoryUser
from user_admin.core.batch import (
    BatchExecutor,
    BulkSetupError,
    PacingPolicy,
    consumed_upload,
    process_bulk_registration,
    read_csv_records,
)
from user_admin.core.criteria import Criterion


class CountingDirectory:
    """Directory double failing on chosen call numbers (1-based)."""

    def __init__(self, fail_calls=()):
        self.fail_calls = set(fail_calls)
        self.calls = []

    def create_user(self, record):
        self.calls.append(record.email)
        if len(self.calls) in self.fail_calls:
            raise Auth0APIError(400, "Password is too weak", "/api/v2/users")
        return DirectoryUser(user_id=f"auth0|{len(self.calls)}", email=record.email, role=record.role)

    def delete_user_by_id(self, user_id):
        self.calls.append(user_id)
        if len(self.calls) in self.fail_calls:
            raise RuntimeError("boom")


def _rows(count, role="student"):
    return [(i, {"email": f"user{i}@school.edu", "role": role}) for i in range(count)]


def _executor(directory, sleeps=None):
    recorded = sleeps if sleeps is not None else []
    return BatchExecutor(directory, PacingPolicy(), sleep=recorded.append)


def test_counts_always_add_up():
    directory = CountingDirectory(fail_calls={2})
    rows = _rows(3) + [(3, {"email": "", "role": "student"}), (4, {"email": "x@y.z", "role": "admin"})]

    result = _executor(directory).run_create(rows)

    assert result.total_records == 5
    assert result.success_count + result.failure_count == result.total_records
    assert result.failure_count == len(result.errors) == 3


def test_third_of_five_failing():
    directory = CountingDirectory(fail_calls={3})

    result = _executor(directory).run_create(_rows(5))

    assert result.success_count == 4
    assert result.failure_count == 1
    assert len(directory.calls) == 5
    error = result.errors[0]
    assert error.position == 2
    assert error.identifier == "user2@school.edu"
    assert error.reason == "Password is too weak"


def test_invalid_records_never_reach_directory():
    directory = CountingDirectory()
    rows = [(0, {"role": "student"}), (1, {"email": "a@b.co", "role": "admin"}), (2, {"email": "c@d.co", "role": "student", "password": "short1"})]

    result = _executor(directory).run_create(rows)

    assert directory.calls == []
    assert [e.to_dict() for e in result.errors] == [
        {"position": 0, "identifier": "N/A", "reason": "Email is required"},
        {"position": 1, "identifier": "a@b.co", "reason": "Invalid role. Must be one of: staff, teacher, student"},
        {"position": 2, "identifier": "c@d.co", "reason": "Password must be at least 8 characters"},
    ]


def test_twenty_five_records_pause_twice():
    directory = CountingDirectory()
    calls_at_pause = []

    def sleep(seconds):
        calls_at_pause.append((seconds, len(directory.calls)))

    executor = BatchExecutor(directory, PacingPolicy(every=10, pause_seconds=1.0), sleep=sleep)
    result = executor.run_create(_rows(25))

    assert result.success_count == 25
    assert calls_at_pause == [(1.0, 11), (1.0, 21)]


def test_pacing_policy_disabled():
    policy = PacingPolicy(every=0)
    assert not any(policy.should_pause(i) for i in range(50))


def test_elapsed_is_measured_with_clock():
    ticks = iter([100.0, 102.5])
    executor = BatchExecutor(CountingDirectory(), sleep=lambda s: None, clock=lambda: next(ticks))

    result = executor.run_create(_rows(1))

    assert result.elapsed_ms == 2500
    assert result.elapsed_formatted == "2.5 seconds"


def test_run_delete_records_failures():
    directory = CountingDirectory(fail_calls={2})
    users = [DirectoryUser(user_id=f"auth0|{i}", email=f"u{i}@x.io") for i in range(3)]

    result = _executor(directory).run_delete(users)

    assert result.total_users == 3
    assert result.deleted_count == 2
    assert result.failed_count == 1
    assert result.failures[0].to_dict() == {"email": "u1@x.io", "userId": "auth0|1", "reason": "boom"}
    assert result.to_dict()["deletedCount"] == 2


def test_run_delete_pauses_like_create():
    directory = CountingDirectory(fail_calls=set(range(1, 26)))
    calls_at_pause = []

    def sleep(seconds):
        calls_at_pause.append((seconds, len(directory.calls)))

    users = [DirectoryUser(user_id=f"auth0|{i}", email=f"u{i}@x.io") for i in range(25)]
    executor = BatchExecutor(directory, PacingPolicy(every=10, pause_seconds=1.0), sleep=sleep)

    result = executor.run_delete(users)

    assert result.failed_count == 25
    assert calls_at_pause == [(1.0, 11), (1.0, 21)]
    assert sorted(result.to_dict()["failures"][0]) == ["email", "reason", "userId"]


def test_non_string_identifier_on_invalid_record():
    result = _executor(CountingDirectory()).run_create([(0, {"email": 12345, "role": "student"})])

    assert result.errors[0].to_dict() == {"position": 0, "identifier": "12345", "reason": "Invalid email format"}


def test_result_serialization_keys():
    result = _executor(CountingDirectory()).run_create(_rows(1))
    assert set(result.to_dict()) == {
        "totalRecords", "successCount", "failureCount", "skippedCount",
        "errors", "elapsedMillis", "elapsedFormatted",
    }


# ─────────────────────────────────────────────────────────────────────────────
# CSV input
# ─────────────────────────────────────────────────────────────────────────────

def _write_csv(tmp_path, text, name="users.csv"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_read_csv_records_normalizes_headers_and_bom(tmp_path):
    path = _write_csv(tmp_path, "\ufeffEmail , Role,password\na@b.co,teacher,\nc@d.co,student,Secret123\n")

    rows = read_csv_records(path)

    assert rows == [
        (0, {"email": "a@b.co", "role": "teacher", "password": ""}),
        (1, {"email": "c@d.co", "role": "student", "password": "Secret123"}),
    ]


def test_read_csv_records_empty_file(tmp_path):
    assert read_csv_records(_write_csv(tmp_path, "")) == []


def test_read_csv_records_missing_file(tmp_path):
    with pytest.raises(BulkSetupError) as exc:
        read_csv_records(str(tmp_path / "missing.csv"))
    assert exc.value.status == 400
    assert exc.value.message.startswith("Failed to process CSV file")


def test_read_csv_records_undecodable_file(tmp_path):
    path = tmp_path / "binary.csv"
    path.write_bytes(b"email,role\n\xff\xfe\xfa,student\n")
    with pytest.raises(BulkSetupError):
        read_csv_records(str(path))


def test_consumed_upload_removes_file_on_error(tmp_path):
    path = _write_csv(tmp_path, "email,role\n")
    with pytest.raises(RuntimeError):
        with consumed_upload(path):
            raise RuntimeError("interrupted")
    assert not os.path.exists(path)


def test_process_bulk_registration_deletes_upload(tmp_path):
    path = _write_csv(tmp_path, "email,role\na@b.co,student\n")

    result = process_bulk_registration(path, _executor(CountingDirectory()))

    assert result.success_count == 1
    assert not os.path.exists(path)


def test_process_bulk_registration_keeps_file_when_asked(tmp_path):
    path = _write_csv(tmp_path, "email,role\na@b.co,student\n")
    process_bulk_registration(path, _executor(CountingDirectory()), delete_file=False)
    assert os.path.exists(path)


def test_process_bulk_registration_role_filter_counts_skipped(tmp_path):
    path = _write_csv(tmp_path, "email,role\na@b.co,teacher\nc@d.co,student\ne@f.co,teacher\n")
    directory = CountingDirectory()

    result = process_bulk_registration(path, _executor(directory), Criterion.by_role("teacher"))

    assert directory.calls == ["a@b.co", "e@f.co"]
    assert result.total_records == 2
    assert result.skipped_count == 1
    assert [e.position for e in result.errors] == []

"""Pytest shared fixtures."""
import os
import pathlib
import sys
import tempfile
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="user-admin-uploads-"))
os.environ.setdefault("ROLE_ID_STAFF", "rol_staff")
os.environ.setdefault("ROLE_ID_TEACHER", "rol_teacher")
os.environ.setdefault("ROLE_ID_STUDENT", "rol_student")

import pytest
import requests

from user_admin.core import audit, provisioning_service
from user_admin.core.auth0.exceptions import UserAlreadyExistsError, UserNotFoundError
from user_admin.core.auth0.users import DirectoryUser, UserPage
from user_admin.flask_app import create_app


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting a live Auth0 tenant.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _blocked(method):
        def _call(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _call

    for method in ("get", "post", "patch", "delete"):
        monkeypatch.setattr(requests, method, _blocked(method.upper()))


@pytest.fixture(autouse=True)
def _isolated_audit_log(monkeypatch, tmp_path):
    """Write audit events under the test's tmp_path."""
    audit_dir = tmp_path / "audit"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_dir / "user-events.jsonl")
    return audit_dir


# ─────────────────────────────────────────────────────────────────────────────
# In-memory directory
# ─────────────────────────────────────────────────────────────────────────────
class FakeClient:
    """Stands in for Auth0Client in preflight checks."""

    def __init__(self):
        self.reachable = True

    def ensure_authenticated(self):
        if not self.reachable:
            raise requests.ConnectionError("tenant unreachable")


class FakeDirectory:
    """In-memory UserService double.

    fail_on: emails whose create/delete raises RuntimeError.
    """

    def __init__(self, users: Optional[list] = None, fail_on: Optional[set] = None):
        self.client = FakeClient()
        self.users = {user.email: user for user in (users or [])}
        self.fail_on = set(fail_on or ())
        self.created = []
        self.deleted = []
        self.list_calls = []
        self._next_id = 1

    def add(self, email: str, role: str = "student") -> DirectoryUser:
        user = DirectoryUser(user_id=f"auth0|{self._next_id}", email=email, role=role)
        self._next_id += 1
        self.users[email] = user
        return user

    def create_user(self, record):
        if record.email in self.fail_on:
            raise RuntimeError(f"Auth0 rejected {record.email}")
        if record.email in self.users:
            raise UserAlreadyExistsError("The user already exists.")
        self.created.append(record)
        return self.add(record.email, record.role)

    def assign_role(self, user_id, role):
        return None

    def get_user_by_email(self, email):
        return self.users.get(email)

    def get_user_by_id(self, user_id):
        return next((u for u in self.users.values() if u.user_id == user_id), None)

    def list_users(self, page=0, per_page=50):
        self.list_calls.append((page, per_page))
        ordered = list(self.users.values())
        start = page * per_page
        return UserPage(users=ordered[start:start + per_page], total=len(ordered))

    def update_user(self, email, changes):
        user = self.users.get(email)
        if user is None:
            raise UserNotFoundError("User not found")
        for key, value in changes.items():
            if key != "password":
                setattr(user, key, value)
        return user

    def delete_user_by_id(self, user_id):
        user = self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError("User not found")
        if user.email in self.fail_on:
            raise RuntimeError(f"Auth0 refused to delete {user.email}")
        del self.users[user.email]
        self.deleted.append(user_id)

    def delete_user(self, email):
        user = self.users.get(email)
        if user is None:
            raise UserNotFoundError("User not found")
        self.delete_user_by_id(user.user_id)


@pytest.fixture()
def make_directory():
    return FakeDirectory


@pytest.fixture()
def directory():
    return FakeDirectory()


# ─────────────────────────────────────────────────────────────────────────────
# Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app(monkeypatch, directory):
    """Flask app bound to the in-memory directory, Bearer check bypassed."""
    flask_app = create_app()
    flask_app.config.update(TESTING=True, SKIP_OAUTH_FOR_TESTS=True)
    flask_app.config["APP_CONFIG"].bulk_pause_seconds = 0
    monkeypatch.setattr(provisioning_service, "get_user_service", lambda: directory)
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        with app.app_context():
            yield client


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a live Auth0 tenant)"
    )

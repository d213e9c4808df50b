from __future__ import annotations

from typing import Optional, Protocol

from user_admin.core.auth0.roles import RoleAssignment
from user_admin.core.auth0.users import DirectoryUser, UserPage
from user_admin.core.validators import InputRecord


class Directory(Protocol):
    """Contract the bulk engine needs from a user directory backend.

    UserService satisfies it for Auth0; tests use an in-memory fake.
    """

    def create_user(self, record: InputRecord) -> DirectoryUser:
        ...

    def assign_role(self, user_id: str, role: str) -> RoleAssignment:
        ...

    def get_user_by_email(self, email: str) -> Optional[DirectoryUser]:
        ...

    def delete_user_by_id(self, user_id: str) -> None:
        ...

    def list_users(self, page: int = 0, per_page: int = 50) -> UserPage:
        ...

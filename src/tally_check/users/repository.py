from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for the `users` table.

    Note: services depend on this interface, never on the Supabase client directly.
    """

    def get_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def list_by_role(self, role: Optional[Role] = None) -> Sequence[User]:
        raise NotImplementedError

    def list_by_ids(self, user_ids: Sequence[str]) -> Sequence[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        full_name: str,
        email: str,
        role: Role,
        department: Optional[str] = None,
        phone: Optional[str] = None,
        office_location: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> User:
        raise NotImplementedError

    def update_user(self, user_id: str, changes: dict) -> Optional[User]:
        raise NotImplementedError

    def delete_by_id(self, user_id: str) -> bool:
        raise NotImplementedError

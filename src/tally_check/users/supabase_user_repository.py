from __future__ import annotations

from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_timestamp
from ..core.enums import Role
from ..database.connection import SupabaseConnection
from ..database.supabase_base import execute, first_or_none
from .model import User
from .repository import UserRepository

TABLE = "users"


def row_to_user(row: dict[str, Any]) -> User:
    return User(
        user_id=str(row["id"]),
        full_name=row.get("full_name") or "",
        email=row.get("email") or "",
        role=Role(row.get("role") or Role.STUDENT.value),
        department=row.get("department"),
        phone=row.get("phone"),
        office_location=row.get("office_location"),
        device_id=row.get("device_id"),
        created_at=parse_timestamp(row.get("created_at")),
    )


class SupabaseUserRepository(UserRepository):
    def __init__(self, conn: SupabaseConnection):
        self._conn = conn

    def _table(self):
        return self._conn.client().table(TABLE)

    def get_by_id(self, user_id: str) -> Optional[User]:
        row = first_or_none(execute(self._table().select("*").eq("id", user_id).limit(1)))
        return row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        row = first_or_none(execute(self._table().select("*").eq("email", email).limit(1)))
        return row_to_user(row) if row else None

    def list_by_role(self, role: Optional[Role] = None) -> Sequence[User]:
        query = self._table().select("*")
        if role is not None:
            query = query.eq("role", role.value)
        return [row_to_user(r) for r in execute(query.order("full_name"))]

    def list_by_ids(self, user_ids: Sequence[str]) -> Sequence[User]:
        if not user_ids:
            return []
        rows = execute(self._table().select("*").in_("id", list(user_ids)).order("full_name"))
        return [row_to_user(r) for r in rows]

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
        payload: dict[str, Any] = {
            "full_name": full_name,
            "email": email,
            "role": role.value,
            "department": department,
            "phone": phone,
            "office_location": office_location,
        }
        if user_id:
            payload["id"] = user_id
        rows = execute(self._table().insert(payload))
        return row_to_user(rows[0])

    def update_user(self, user_id: str, changes: dict) -> Optional[User]:
        row = first_or_none(execute(self._table().update(changes).eq("id", user_id)))
        return row_to_user(row) if row else None

    def delete_by_id(self, user_id: str) -> bool:
        return bool(execute(self._table().delete().eq("id", user_id)))

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..cache import QueryCache
from ..common.filters import matches_search
from ..common.validators import require_choice, require_email, require_min_length, require_non_empty
from ..core.constants import PASSWORD_MIN_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from ..courses.repository import CourseRepository
from .auth_gateway import AuthGateway
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "phone", "department", "office_location")


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: str
    full_name: str
    email: str
    role: Role
    department: Optional[str]


class AuthService:
    """Use case: authenticate user (login) and bootstrap the first admin."""

    def __init__(self, users: UserRepository, gateway: AuthGateway):
        self._users = users
        self._gateway = gateway

    def authenticate(self, email: str, password: str) -> SessionUser:
        email = require_email(email)
        require_min_length(password, "Password", PASSWORD_MIN_LENGTH)

        self._gateway.sign_in(email, password)

        user = self._users.get_by_email(email)
        if not user:
            # Auth account exists but no profile row: nothing to route to.
            raise AuthenticationError("User profile not found. Contact your administrator.")

        logger.info("User %s signed in as %s", user.email, user.role.value)
        return SessionUser(
            user_id=user.user_id,
            full_name=user.full_name,
            email=user.email,
            role=user.role,
            department=user.department,
        )

    def sign_out(self) -> None:
        self._gateway.sign_out()

    def has_admin(self) -> bool:
        return bool(self._users.list_by_role(Role.ADMIN))

    def bootstrap_admin(self, *, full_name: str, email: str, password: str) -> User:
        """Create the first admin account. Refused once any admin exists."""

        full_name = require_non_empty(full_name, "Full name")
        email = require_email(email)
        require_min_length(password, "Password", PASSWORD_MIN_LENGTH)

        if self.has_admin():
            raise ValidationError("An admin account already exists")

        auth_id = self._gateway.sign_up(email, password)
        user = self._users.create_user(full_name=full_name, email=email, role=Role.ADMIN, user_id=auth_id)
        logger.info("Bootstrapped admin account %s", email)
        return user


class UserService:
    """Use case: manage users (admin) and own profile."""

    def __init__(self, users: UserRepository, courses: CourseRepository, cache: Optional[QueryCache] = None):
        self._users = users
        self._courses = courses
        self._cache = cache or QueryCache()

    def list_students(self) -> Sequence[User]:
        return self._cache.fetch(("students",), lambda: self._users.list_by_role(Role.STUDENT))

    def list_lecturers(self) -> Sequence[User]:
        return self._cache.fetch(("lecturers",), lambda: self._users.list_by_role(Role.LECTURER))

    def list_users(self, *, role: Optional[str] = None, search: str = "") -> list[User]:
        """All users narrowed by role tab ('all', 'student', 'lecturer', 'admin') and search box."""

        users = self._cache.fetch(("users", "all"), lambda: self._users.list_by_role(None))
        if role and role != "all":
            wanted = require_choice(role, Role, "role")
            users = [u for u in users if u.role == wanted]
        return [u for u in users if matches_search(search, u.full_name, u.email, u.department)]

    def get_user(self, user_id: str) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def create_user(
        self,
        *,
        current_role: Role,
        full_name: str,
        email: str,
        role: str,
        department: str = "",
        phone: str = "",
        office_location: str = "",
    ) -> User:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission to do this")

        full_name = require_non_empty(full_name, "Full name")
        email = require_email(email)
        role_enum = require_choice(role, Role, "role")

        if self._users.get_by_email(email):
            raise ValidationError("A user with this email already exists")

        user = self._users.create_user(
            full_name=full_name,
            email=email,
            role=role_enum,
            department=department.strip() or None,
            phone=phone.strip() or None,
            office_location=office_location.strip() or None,
        )
        self._invalidate()
        return user

    def update_user(self, *, current_role: Role, user_id: str, changes: dict) -> User:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission to do this")

        clean: dict = {}
        if "full_name" in changes:
            clean["full_name"] = require_non_empty(changes["full_name"], "Full name")
        if "email" in changes:
            clean["email"] = require_email(changes["email"])
        if "role" in changes:
            clean["role"] = require_choice(changes["role"], Role, "role").value
        for key in ("department", "phone", "office_location"):
            if key in changes:
                clean[key] = (changes[key] or "").strip() or None

        user = self._users.update_user(user_id, clean)
        if not user:
            raise NotFoundError("User not found")
        self._invalidate()
        return user

    def delete_user(self, *, current_role: Role, current_user_id: str, user_id: str) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission to do this")
        if user_id == current_user_id:
            raise ValidationError("You cannot delete your own account")

        user = self.get_user(user_id)
        if user.role == Role.LECTURER:
            self._courses.clear_instructor(user_id)

        if not self._users.delete_by_id(user_id):
            raise ValidationError("Failed to delete user")
        logger.info("Deleted user %s (%s)", user.email, user.role.value)
        self._invalidate()

    def update_profile(self, *, user_id: str, changes: dict) -> User:
        """Users may edit their own contact fields, never their role or email."""

        clean = {k: (changes.get(k) or "").strip() or None for k in PROFILE_FIELDS if k in changes}
        if "full_name" in clean:
            clean["full_name"] = require_non_empty(clean["full_name"] or "", "Full name")
        user = self._users.update_user(user_id, clean)
        if not user:
            raise NotFoundError("User not found")
        self._invalidate()
        return user

    def set_device_id(self, user_id: str, device_id: str) -> None:
        self._users.update_user(user_id, {"device_id": device_id})
        self._invalidate()

    def _invalidate(self) -> None:
        for prefix in (("users",), ("students",), ("lecturers",)):
            self._cache.invalidate(prefix)

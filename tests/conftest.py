from __future__ import annotations

import itertools
from collections import defaultdict
from datetime import date, datetime, time
from typing import Optional, Sequence

import pytest

from tally_check.attendance.supabase_attendance_repository import row_to_record
from tally_check.beacons.supabase_beacon_repository import row_to_assignment, row_to_beacon
from tally_check.cache import QueryCache
from tally_check.container import Repositories, build_services
from tally_check.core.enums import Role
from tally_check.core.exceptions import AuthenticationError
from tally_check.courses.model import Enrollment
from tally_check.courses.supabase_course_repository import row_to_course
from tally_check.qr.supabase_qr_repository import row_to_prompt
from tally_check.sessions.supabase_session_repository import row_to_session
from tally_check.users.supabase_user_repository import row_to_user

FIXED_NOW = datetime(2026, 3, 2, 10, 0, 0)


class FakeDB:
    """Tables as dicts of rows keyed by id, shaped like PostgREST responses."""

    def __init__(self):
        self.tables: dict[str, dict[str, dict]] = defaultdict(dict)
        self._ids = itertools.count(1)

    def insert(self, table: str, values: dict, prefix: str) -> dict:
        row = dict(values)
        row["id"] = row.get("id") or f"{prefix}-{next(self._ids)}"
        self.tables[table][row["id"]] = row
        return row

    def update(self, table: str, row_id: str, changes: dict) -> Optional[dict]:
        row = self.tables[table].get(row_id)
        if row is None:
            return None
        row.update(changes)
        return row

    def rows(self, table: str) -> list[dict]:
        return list(self.tables[table].values())


class InMemoryUserRepository:
    def __init__(self, db: FakeDB):
        self._db = db

    def get_by_id(self, user_id: str):
        row = self._db.tables["users"].get(user_id)
        return row_to_user(row) if row else None

    def get_by_email(self, email: str):
        for row in self._db.rows("users"):
            if row["email"] == email:
                return row_to_user(row)
        return None

    def list_by_role(self, role: Optional[Role] = None):
        return [row_to_user(r) for r in self._db.rows("users") if role is None or r["role"] == role.value]

    def list_by_ids(self, user_ids: Sequence[str]):
        return [row_to_user(r) for r in self._db.rows("users") if r["id"] in set(user_ids)]

    def create_user(self, *, full_name, email, role, department=None, phone=None, office_location=None, user_id=None):
        row = self._db.insert(
            "users",
            {
                "id": user_id,
                "full_name": full_name,
                "email": email,
                "role": role.value,
                "department": department,
                "phone": phone,
                "office_location": office_location,
            },
            "user",
        )
        return row_to_user(row)

    def update_user(self, user_id: str, changes: dict):
        row = self._db.update("users", user_id, changes)
        return row_to_user(row) if row else None

    def delete_by_id(self, user_id: str) -> bool:
        return self._db.tables["users"].pop(user_id, None) is not None


class FakeAuthGateway:
    def __init__(self):
        self.passwords: dict[str, str] = {}
        self.signed_out = False

    def sign_in(self, email: str, password: str) -> str:
        if self.passwords.get(email) != password:
            raise AuthenticationError("Invalid email or password")
        return email

    def sign_up(self, email: str, password: str) -> Optional[str]:
        self.passwords[email] = password
        return f"auth-{email}"

    def sign_out(self) -> None:
        self.signed_out = True


class InMemoryCourseRepository:
    def __init__(self, db: FakeDB):
        self._db = db

    def _course(self, row: dict):
        return row_to_course({**row, "users": self._db.tables["users"].get(row.get("instructor_id") or "")})

    def list_all(self):
        return [self._course(r) for r in self._db.rows("courses")]

    def get_by_id(self, course_id: str):
        row = self._db.tables["courses"].get(course_id)
        return self._course(row) if row else None

    def list_by_instructor(self, instructor_id: str):
        return [self._course(r) for r in self._db.rows("courses") if r.get("instructor_id") == instructor_id]

    def list_by_ids(self, course_ids: Sequence[str]):
        return [self._course(r) for r in self._db.rows("courses") if r["id"] in set(course_ids)]

    def create_course(self, *, name: str, code: str, instructor_id: Optional[str] = None):
        return self._course(self._db.insert("courses", {"name": name, "code": code, "instructor_id": instructor_id}, "course"))

    def update_course(self, course_id: str, changes: dict):
        row = self._db.update("courses", course_id, changes)
        return self._course(row) if row else None

    def delete_by_id(self, course_id: str) -> bool:
        return self._db.tables["courses"].pop(course_id, None) is not None

    def clear_instructor(self, instructor_id: str) -> int:
        n = 0
        for row in self._db.rows("courses"):
            if row.get("instructor_id") == instructor_id:
                row["instructor_id"] = None
                n += 1
        return n


class InMemoryEnrollmentRepository:
    def __init__(self, db: FakeDB):
        self._db = db

    def _all(self):
        return [Enrollment(student_id=r["student_id"], course_id=r["course_id"]) for r in self._db.rows("course_enrollments")]

    def list_for_course(self, course_id: str):
        return [e for e in self._all() if e.course_id == course_id]

    def list_for_courses(self, course_ids: Sequence[str]):
        return [e for e in self._all() if e.course_id in set(course_ids)]

    def list_for_student(self, student_id: str):
        return [e for e in self._all() if e.student_id == student_id]

    def enroll(self, *, student_id: str, course_id: str):
        self._db.insert("course_enrollments", {"student_id": student_id, "course_id": course_id}, "enr")
        return Enrollment(student_id=student_id, course_id=course_id)

    def unenroll(self, *, student_id: str, course_id: str) -> bool:
        table = self._db.tables["course_enrollments"]
        for key, row in list(table.items()):
            if row["student_id"] == student_id and row["course_id"] == course_id:
                del table[key]
                return True
        return False


class InMemorySessionRepository:
    def __init__(self, db: FakeDB):
        self._db = db

    def _session(self, row: dict):
        return row_to_session({**row, "courses": self._db.tables["courses"].get(row["course_id"])})

    def _sorted(self, rows):
        return [self._session(r) for r in sorted(rows, key=lambda r: (r["session_date"], r.get("start_time") or ""))]

    def get_by_id(self, session_id: str):
        row = self._db.tables["class_sessions"].get(session_id)
        return self._session(row) if row else None

    def list_by_course(self, course_id: str):
        return self._sorted(r for r in self._db.rows("class_sessions") if r["course_id"] == course_id)

    def list_for_date(self, session_date: date, course_ids: Optional[Sequence[str]] = None):
        return self._sorted(
            r
            for r in self._db.rows("class_sessions")
            if r["session_date"] == session_date.isoformat() and (course_ids is None or r["course_id"] in course_ids)
        )

    def list_for_beacon_on_date(self, beacon_id: str, session_date: date):
        return self._sorted(
            r
            for r in self._db.rows("class_sessions")
            if r.get("beacon_id") == beacon_id and r["session_date"] == session_date.isoformat()
        )

    def create_session(self, values: dict):
        return self._session(self._db.insert("class_sessions", values, "session"))

    def update_session(self, session_id: str, changes: dict):
        row = self._db.update("class_sessions", session_id, changes)
        return self._session(row) if row else None

    def delete_by_id(self, session_id: str) -> bool:
        return self._db.tables["class_sessions"].pop(session_id, None) is not None

    def clear_beacon(self, beacon_id: str) -> int:
        n = 0
        for row in self._db.rows("class_sessions"):
            if row.get("beacon_id") == beacon_id:
                row["beacon_id"] = None
                n += 1
        return n

    def delete_all(self) -> int:
        n = len(self._db.tables["class_sessions"])
        self._db.tables["class_sessions"].clear()
        return n


class InMemoryAttendanceRepository:
    def __init__(self, db: FakeDB):
        self._db = db

    def _record(self, row: dict):
        session = self._db.tables["class_sessions"].get(row.get("session_id") or "")
        if session:
            session = {**session, "courses": self._db.tables["courses"].get(session["course_id"])}
        return row_to_record({**row, "users": self._db.tables["users"].get(row["student_id"]), "class_sessions": session})

    def _select(self, predicate):
        rows = [r for r in self._db.rows("attendance_records") if predicate(r)]
        rows.sort(key=lambda r: str(r.get("check_in_time") or ""), reverse=True)
        return [self._record(r) for r in rows]

    def get_by_id(self, record_id: str):
        row = self._db.tables["attendance_records"].get(record_id)
        return self._record(row) if row else None

    def list_by_date(self, day: date):
        return self._select(lambda r: r["date"] == day.isoformat())

    def list_between(self, start: date, end: date, course_id: Optional[str] = None):
        return self._select(
            lambda r: start.isoformat() <= r["date"] <= end.isoformat() and (not course_id or r.get("course_id") == course_id)
        )

    def list_since(self, since: date, course_ids: Optional[Sequence[str]] = None):
        if course_ids is not None and not course_ids:
            return []
        return self._select(
            lambda r: r["date"] >= since.isoformat() and (course_ids is None or r.get("course_id") in course_ids)
        )

    def list_verified_by(self, verifier_id: str):
        return self._select(lambda r: r.get("verified_by") == verifier_id)

    def list_for_student(self, student_id: str):
        return self._select(lambda r: r["student_id"] == student_id)

    def find_existing(self, *, student_id, session_id=None, course_id=None, day=None):
        found = self._select(
            lambda r: r["student_id"] == student_id
            and (not session_id or r.get("session_id") == session_id)
            and (not course_id or r.get("course_id") == course_id)
            and (not day or r["date"] == day.isoformat())
        )
        return found[0] if found else None

    def create_record(self, values: dict):
        return self._record(self._db.insert("attendance_records", values, "rec"))

    def update_record(self, record_id: str, changes: dict):
        row = self._db.update("attendance_records", record_id, changes)
        return self._record(row) if row else None

    def delete_all(self) -> int:
        n = len(self._db.tables["attendance_records"])
        self._db.tables["attendance_records"].clear()
        return n


class InMemoryBeaconRepository:
    def __init__(self, db: FakeDB):
        self._db = db

    def list_all(self):
        return [row_to_beacon(r) for r in self._db.rows("ble_beacons")]

    def get_by_id(self, beacon_id: str):
        row = self._db.tables["ble_beacons"].get(beacon_id)
        return row_to_beacon(row) if row else None

    def get_active_by_mac(self, mac_address: str):
        for row in self._db.rows("ble_beacons"):
            if row["mac_address"] == mac_address and row.get("is_active", True):
                return row_to_beacon(row)
        return None

    def create_beacon(self, values: dict):
        return row_to_beacon(self._db.insert("ble_beacons", values, "beacon"))

    def update_beacon(self, beacon_id: str, changes: dict):
        row = self._db.update("ble_beacons", beacon_id, changes)
        return row_to_beacon(row) if row else None

    def delete_by_id(self, beacon_id: str) -> bool:
        return self._db.tables["ble_beacons"].pop(beacon_id, None) is not None


class InMemoryBeaconAssignmentRepository:
    def __init__(self, db: FakeDB):
        self._db = db

    def _assignment(self, row: dict):
        return row_to_assignment(
            {
                **row,
                "ble_beacons": self._db.tables["ble_beacons"].get(row["beacon_id"]),
                "courses": self._db.tables["courses"].get(row["course_id"]),
            }
        )

    def list_all(self):
        return [self._assignment(r) for r in self._db.rows("beacon_assignments")]

    def list_for_beacon(self, beacon_id: str):
        return [self._assignment(r) for r in self._db.rows("beacon_assignments") if r["beacon_id"] == beacon_id]

    def create_assignment(self, *, beacon_id: str, course_id: str, session_id: Optional[str] = None):
        row = self._db.insert(
            "beacon_assignments", {"beacon_id": beacon_id, "course_id": course_id, "session_id": session_id}, "assign"
        )
        return self._assignment(row)

    def delete_by_id(self, assignment_id: str) -> bool:
        return self._db.tables["beacon_assignments"].pop(assignment_id, None) is not None

    def _delete_where(self, predicate) -> int:
        table = self._db.tables["beacon_assignments"]
        doomed = [k for k, r in table.items() if predicate(r)]
        for k in doomed:
            del table[k]
        return len(doomed)

    def delete_for_beacon(self, beacon_id: str) -> int:
        return self._delete_where(lambda r: r["beacon_id"] == beacon_id)

    def delete_session_bound(self) -> int:
        return self._delete_where(lambda r: r.get("session_id") is not None)


class InMemoryCheckInPromptRepository:
    def __init__(self, db: FakeDB):
        self._db = db

    def _prompt(self, row: dict):
        return row_to_prompt({**row, "courses": self._db.tables["courses"].get(row["course_id"])})

    def create_prompt(self, *, course_id: str, course_name: str, created_timestamp: int, expires_at: int):
        row = self._db.insert(
            "check_in_prompts",
            {
                "course_id": course_id,
                "course_name": course_name,
                "created_timestamp": created_timestamp,
                "expires_at": expires_at,
            },
            "qr",
        )
        return self._prompt(row)

    def get_by_id(self, prompt_id: str):
        row = self._db.tables["check_in_prompts"].get(prompt_id)
        return self._prompt(row) if row else None

    def latest_unexpired(self, course_id: str, now_ms: int):
        rows = [r for r in self._db.rows("check_in_prompts") if r["course_id"] == course_id and r["expires_at"] > now_ms]
        if not rows:
            return None
        return self._prompt(max(rows, key=lambda r: r["created_timestamp"]))

    def list_history(self, course_id: Optional[str] = None):
        rows = [r for r in self._db.rows("check_in_prompts") if not course_id or r["course_id"] == course_id]
        return [self._prompt(r) for r in sorted(rows, key=lambda r: r["created_timestamp"], reverse=True)]


# ---- fixtures ----


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def db() -> FakeDB:
    return FakeDB()


@pytest.fixture()
def repos(db) -> Repositories:
    return Repositories(
        users=InMemoryUserRepository(db),
        auth_gateway=FakeAuthGateway(),
        courses=InMemoryCourseRepository(db),
        enrollments=InMemoryEnrollmentRepository(db),
        sessions=InMemorySessionRepository(db),
        attendance=InMemoryAttendanceRepository(db),
        beacons=InMemoryBeaconRepository(db),
        beacon_assignments=InMemoryBeaconAssignmentRepository(db),
        check_in_prompts=InMemoryCheckInPromptRepository(db),
    )


@pytest.fixture()
def container(repos):
    return build_services(repos, cache=QueryCache(default_ttl=0), expected_timezone="Africa/Accra")


@pytest.fixture()
def seeded(db, fixed_now):
    """Admin, lecturer, two students, one course taught today 09:00-11:00 in a beaconed room."""

    db.insert("users", {"id": "admin-1", "full_name": "Ama Admin", "email": "admin@uni.edu", "role": "admin"}, "user")
    db.insert(
        "users",
        {"id": "lec-1", "full_name": "Kofi Mensah", "email": "kofi@uni.edu", "role": "lecturer", "department": "CS"},
        "user",
    )
    db.insert("users", {"id": "stu-1", "full_name": "Esi Owusu", "email": "esi@uni.edu", "role": "student"}, "user")
    db.insert("users", {"id": "stu-2", "full_name": "Yaw Boateng", "email": "yaw@uni.edu", "role": "student"}, "user")
    db.insert("courses", {"id": "course-1", "name": "Algorithms", "code": "CS101", "instructor_id": "lec-1"}, "course")
    db.insert("course_enrollments", {"student_id": "stu-1", "course_id": "course-1"}, "enr")
    db.insert(
        "ble_beacons",
        {"id": "beacon-1", "mac_address": "AA:BB:CC:DD:EE:FF", "name": "Room 1", "is_active": True},
        "beacon",
    )
    db.insert(
        "class_sessions",
        {
            "id": "session-1",
            "course_id": "course-1",
            "session_date": fixed_now.date().isoformat(),
            "start_time": time(9, 0).isoformat(),
            "end_time": time(11, 0).isoformat(),
            "location": "Room 1",
            "beacon_id": "beacon-1",
        },
        "session",
    )
    return db


def add_record(db: FakeDB, *, student_id: str, day: date, status: str = "verified", method: str = "QR",
               course_id: str = "course-1", verified_by: Optional[str] = "lec-1", **extra) -> dict:
    values = {
        "student_id": student_id,
        "course_id": course_id,
        "course_code": "CS101",
        "course_name": "Algorithms",
        "date": day.isoformat(),
        "method": method,
        "status": status,
        "check_in_time": datetime.combine(day, time(9, 5)).isoformat(),
        "verified_by": verified_by,
    }
    values.update(extra)
    return db.insert("attendance_records", values, "rec")


@pytest.fixture()
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    from tally_check.main import create_app

    return create_app(container)


@pytest.fixture()
def client(app):
    return app.test_client()


def login_as(client, user_id: str, role: Role, name: str = "Test User") -> None:
    with client.session_transaction() as s:
        s["user_id"] = user_id
        s["name"] = name
        s["email"] = f"{user_id}@uni.edu"
        s["role"] = role.value

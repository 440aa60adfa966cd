from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.supabase_attendance_repository import SupabaseAttendanceRepository
from .beacons.repository import BeaconAssignmentRepository, BeaconRepository
from .beacons.service import BeaconService
from .beacons.supabase_beacon_repository import SupabaseBeaconAssignmentRepository, SupabaseBeaconRepository
from .cache import QueryCache
from .core.constants import DEFAULT_QR_DURATION_MINUTES
from .courses.repository import CourseRepository, EnrollmentRepository
from .courses.service import CourseService
from .courses.supabase_course_repository import SupabaseCourseRepository, SupabaseEnrollmentRepository
from .dashboard.service import AnalyticsService, DashboardService
from .database.connection import SupabaseConfig, SupabaseConnection
from .devices.service import DeviceVerificationService
from .notifications.feed import NotificationFeed
from .notifications.realtime import ChangeHandler, RealtimeListener
from .qr.repository import CheckInPromptRepository
from .qr.service import QRCodeService
from .qr.supabase_qr_repository import SupabaseCheckInPromptRepository
from .reports.service import ReportService
from .sessions.repository import SessionRepository
from .sessions.service import SessionService
from .sessions.supabase_session_repository import SupabaseSessionRepository
from .users.auth_gateway import AuthGateway, SupabaseAuthGateway
from .users.repository import UserRepository
from .users.service import AuthService, UserService
from .users.supabase_user_repository import SupabaseUserRepository


@dataclass(frozen=True)
class Repositories:
    users: UserRepository
    auth_gateway: AuthGateway
    courses: CourseRepository
    enrollments: EnrollmentRepository
    sessions: SessionRepository
    attendance: AttendanceRepository
    beacons: BeaconRepository
    beacon_assignments: BeaconAssignmentRepository
    check_in_prompts: CheckInPromptRepository


@dataclass(frozen=True)
class Container:
    repos: Repositories
    cache: QueryCache
    notification_feed: NotificationFeed

    auth_service: AuthService
    user_service: UserService
    course_service: CourseService
    session_service: SessionService
    attendance_service: AttendanceService
    beacon_service: BeaconService
    qr_service: QRCodeService
    device_service: DeviceVerificationService
    dashboard_service: DashboardService
    analytics_service: AnalyticsService
    report_service: ReportService

    change_handler: ChangeHandler
    realtime_listener: Optional[RealtimeListener] = None


def build_services(
    repos: Repositories,
    *,
    cache: Optional[QueryCache] = None,
    qr_duration_minutes: int = DEFAULT_QR_DURATION_MINUTES,
    expected_timezone: str = "UTC",
    realtime_config: Optional[SupabaseConfig] = None,
) -> Container:
    """Wire services on top of a set of repositories (Supabase-backed or in-memory)."""

    cache = cache or QueryCache()
    feed = NotificationFeed()

    user_service = UserService(repos.users, repos.courses, cache)
    qr_service = QRCodeService(repos.check_in_prompts, repos.courses, default_duration_minutes=qr_duration_minutes)
    beacon_service = BeaconService(repos.beacons, repos.beacon_assignments, repos.sessions, repos.courses, cache)
    change_handler = ChangeHandler(feed, cache)

    return Container(
        repos=repos,
        cache=cache,
        notification_feed=feed,
        auth_service=AuthService(repos.users, repos.auth_gateway),
        user_service=user_service,
        course_service=CourseService(repos.courses, repos.enrollments, repos.users, cache),
        session_service=SessionService(repos.sessions, repos.courses, cache),
        attendance_service=AttendanceService(
            repos.attendance,
            repos.sessions,
            repos.courses,
            repos.enrollments,
            qr_service,
            beacon_service,
            cache,
        ),
        beacon_service=beacon_service,
        qr_service=qr_service,
        device_service=DeviceVerificationService(user_service, expected_timezone=expected_timezone),
        dashboard_service=DashboardService(
            repos.users, repos.courses, repos.enrollments, repos.sessions, repos.attendance, cache
        ),
        analytics_service=AnalyticsService(
            repos.users, repos.courses, repos.enrollments, repos.sessions, repos.attendance, repos.beacons
        ),
        report_service=ReportService(repos.attendance, repos.courses),
        change_handler=change_handler,
        realtime_listener=RealtimeListener(realtime_config, change_handler) if realtime_config else None,
    )


def build_container(
    *,
    supabase_config: dict,
    qr_duration_minutes: int = DEFAULT_QR_DURATION_MINUTES,
    expected_timezone: str = "UTC",
    cache_ttl_seconds: float = 30.0,
    realtime_enabled: bool = False,
) -> Container:
    config = SupabaseConfig(url=str(supabase_config["url"]), anon_key=str(supabase_config["anon_key"]))
    conn = SupabaseConnection.get_instance(config)

    repos = Repositories(
        users=SupabaseUserRepository(conn),
        auth_gateway=SupabaseAuthGateway(config),
        courses=SupabaseCourseRepository(conn),
        enrollments=SupabaseEnrollmentRepository(conn),
        sessions=SupabaseSessionRepository(conn),
        attendance=SupabaseAttendanceRepository(conn),
        beacons=SupabaseBeaconRepository(conn),
        beacon_assignments=SupabaseBeaconAssignmentRepository(conn),
        check_in_prompts=SupabaseCheckInPromptRepository(conn),
    )
    return build_services(
        repos,
        cache=QueryCache(default_ttl=cache_ttl_seconds),
        qr_duration_minutes=qr_duration_minutes,
        expected_timezone=expected_timezone,
        realtime_config=config if realtime_enabled else None,
    )

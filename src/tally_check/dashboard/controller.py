from __future__ import annotations

import logging

from flask import Flask, flash, render_template, request

from ..common.datetime_utils import now_local
from ..common.decorators import current_role, current_user, current_user_id, login_required, roles_required
from ..common.responses import json_error, json_ok
from ..core.constants import DEFAULT_REPORT_PERIOD, REPORT_PERIOD_DAYS
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..container import Container
from ..sessions.status import session_status

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/dashboard", endpoint="dashboard")
    @login_required
    def dashboard():
        role = current_role()
        user_id = current_user_id()
        now = now_local()

        if role == Role.STUDENT:
            return render_template(
                "student/dashboard.html",
                summary=container.dashboard_service.student_summary(user_id),
                courses=container.course_service.list_student_courses(user_id),
                records=container.attendance_service.list_for_student(user_id)[:10],
                current_user=current_user(),
                active_page="dashboard",
            )

        stats = container.dashboard_service.get_stats(role, user_id, today=now.date())
        if role == Role.LECTURER:
            courses = container.course_service.list_by_instructor(user_id)
            sessions = container.session_service.list_today([c.course_id for c in courses], today=now.date())
            return render_template(
                "lecturer/dashboard.html",
                stats=stats,
                courses=courses,
                sessions=[(s, session_status(s, now)) for s in sessions],
                current_user=current_user(),
                active_page="dashboard",
            )

        return render_template(
            "admin/dashboard.html",
            stats=stats,
            current_user=current_user(),
            active_page="dashboard",
        )

    @app.route("/api/dashboard/stats", endpoint="api_dashboard_stats")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def api_dashboard_stats():
        try:
            stats = container.dashboard_service.get_stats(current_role(), current_user_id())
            return json_ok(stats=stats.to_dict())
        except Exception as e:
            return json_error(e)

    @app.route("/admin/analytics", endpoint="admin_analytics")
    @roles_required(Role.ADMIN)
    def admin_analytics():
        period = request.args.get("period", DEFAULT_REPORT_PERIOD)
        if period not in REPORT_PERIOD_DAYS:
            flash(f"Unknown period {period!r}; showing {DEFAULT_REPORT_PERIOD}.", "warning")
            period = DEFAULT_REPORT_PERIOD
        try:
            overview = container.analytics_service.system_overview(period=period)
            course_stats = container.analytics_service.course_stats(period=period)
            lecturer_stats = container.analytics_service.lecturer_stats(period=period)
        except DomainError as e:
            flash(str(e), "danger")
            overview, course_stats, lecturer_stats = None, [], []
        return render_template(
            "admin/analytics.html",
            period=period,
            periods=list(REPORT_PERIOD_DAYS),
            overview=overview,
            course_stats=course_stats,
            lecturer_stats=lecturer_stats,
            current_user=current_user(),
            active_page="admin_analytics",
        )

    @app.route("/lecturer/alerts", endpoint="lecturer_alerts")
    @roles_required(Role.LECTURER)
    def lecturer_alerts():
        try:
            alerts = container.analytics_service.lecturer_alerts(current_user_id())
        except DomainError as e:
            flash(str(e), "danger")
            alerts = []
        return render_template(
            "lecturer/alerts.html",
            alerts=alerts,
            current_user=current_user(),
            active_page="lecturer_alerts",
        )

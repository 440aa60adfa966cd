from __future__ import annotations

import io
import logging
from datetime import timedelta

from flask import Flask, flash, redirect, render_template, request, send_file, url_for

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.decorators import current_role, current_user, current_user_id, roles_required
from ..core.constants import DEFAULT_REPORT_DAYS, DEFAULT_REPORT_PERIOD, REPORT_PERIOD_DAYS
from ..core.enums import AttendanceMethod, Role
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from . import exporters

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _download(data: bytes, filename: str, mimetype: str):
    return send_file(io.BytesIO(data), download_name=filename, as_attachment=True, mimetype=mimetype)


def register(app: Flask, container: Container) -> None:
    def _range():
        today = now_local().date()
        try:
            start = parse_iso_date(request.args["start"]) if request.args.get("start") else today - timedelta(days=DEFAULT_REPORT_DAYS)
            end = parse_iso_date(request.args["end"]) if request.args.get("end") else today
        except ValueError:
            raise ValidationError("Invalid date (expected YYYY-MM-DD)")
        return start, end

    def _build():
        start, end = _range()
        return container.report_service.build_attendance_report(
            start=start,
            end=end,
            course_id=request.args.get("course_id") or None,
            search=request.args.get("q", ""),
            method=request.args.get("method", "all"),
            current_role=current_role(),
            current_user_id=current_user_id(),
        )

    def _courses():
        if current_role() == Role.ADMIN:
            return container.course_service.list_all()
        return container.course_service.list_by_instructor(current_user_id())

    @app.route("/reports", endpoint="reports")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def reports():
        report = None
        try:
            report = _build()
        except DomainError as e:
            flash(str(e), "warning")
        start, end = (report.start, report.end) if report else (None, None)
        return render_template(
            "reports.html",
            report=report,
            start=start,
            end=end,
            course_id=request.args.get("course_id", ""),
            search=request.args.get("q", ""),
            method=request.args.get("method", "all"),
            methods=[m.value for m in AttendanceMethod],
            courses=_courses(),
            current_user=current_user(),
            active_page="reports",
        )

    @app.route("/reports/attendance.<fmt>", endpoint="export_attendance")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def export_attendance(fmt: str):
        try:
            report = _build()
            stem = f"attendance_report_{report.start.isoformat()}_{report.end.isoformat()}"
            if fmt == "csv":
                return _download(exporters.to_csv_bytes(exporters.attendance_rows(report.records)), f"{stem}.csv", "text/csv")
            if fmt == "xlsx":
                return _download(exporters.to_excel_bytes(exporters.attendance_rows(report.records)), f"{stem}.xlsx", XLSX_MIMETYPE)
            if fmt == "pdf":
                pdf = exporters.attendance_pdf("Attendance Report", report.records, report.summary)
                return _download(pdf, f"{stem}.pdf", "application/pdf")
            flash(f"Unsupported export format: {fmt}", "warning")
        except DomainError as e:
            flash(str(e), "warning")
        except Exception:
            logger.exception("Attendance export failed")
            flash("Failed to export report", "danger")
        return redirect(url_for("reports", **request.args))

    @app.route("/admin/analytics.<fmt>", endpoint="export_analytics")
    @roles_required(Role.ADMIN)
    def export_analytics(fmt: str):
        period = request.args.get("period", DEFAULT_REPORT_PERIOD)
        if period not in REPORT_PERIOD_DAYS:
            period = DEFAULT_REPORT_PERIOD
        try:
            overview = container.analytics_service.system_overview(period=period)
            stats = container.analytics_service.lecturer_stats(period=period)
            stem = f"analytics_report_{period}_{now_local().date().isoformat()}"
            if fmt == "csv":
                return _download(exporters.analytics_csv(overview, stats), f"{stem}.csv", "text/csv")
            if fmt == "pdf":
                return _download(exporters.analytics_pdf("System Analytics Report", overview, stats), f"{stem}.pdf", "application/pdf")
            flash(f"Unsupported export format: {fmt}", "warning")
        except DomainError as e:
            flash(str(e), "warning")
        except Exception:
            logger.exception("Analytics export failed")
            flash("Failed to export report", "danger")
        return redirect(url_for("admin_analytics", period=period))

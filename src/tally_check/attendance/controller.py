from __future__ import annotations

import logging
from datetime import date

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.datetime_utils import format_time, now_local, parse_iso_date
from ..common.decorators import current_role, current_user, current_user_id, roles_required
from ..common.filters import paginate
from ..common.responses import json_error, json_ok
from ..core.constants import DEFAULT_PAGE_SIZE, PAGE_SIZE_OPTIONS
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from ..qr.images import decode_image
from .model import AttendanceRecord

logger = logging.getLogger(__name__)


def record_to_dict(r: AttendanceRecord) -> dict:
    return {
        "id": r.record_id,
        "studentId": r.student_id,
        "studentName": r.student_name or "Unknown",
        "studentEmail": r.student_email or "",
        "courseCode": r.course_code,
        "courseName": r.course_name,
        "method": r.method.value,
        "status": r.status.value,
        "checkInTime": format_time(r.check_in_time, "%H:%M:%S"),
        "date": r.record_date.isoformat(),
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/lecturer/live", endpoint="lecturer_live")
    @roles_required(Role.LECTURER)
    def lecturer_live():
        return render_template(
            "lecturer/live.html",
            page_sizes=PAGE_SIZE_OPTIONS,
            current_user=current_user(),
            active_page="lecturer_live",
        )

    @app.route("/api/attendance/live", endpoint="api_attendance_live")
    @roles_required(Role.LECTURER)
    def api_attendance_live():
        try:
            rows = container.attendance_service.live_for_lecturer(
                current_user_id(),
                search=request.args.get("q", ""),
                method=request.args.get("method", "all"),
            )
            page = paginate(
                rows,
                page=request.args.get("page", 1, type=int),
                page_size=request.args.get("size", DEFAULT_PAGE_SIZE, type=int),
            )
            return json_ok(
                records=[record_to_dict(r) for r in page.items],
                total=page.total_items,
                page=page.page,
                totalPages=page.total_pages,
            )
        except Exception as e:
            return json_error(e)

    @app.route("/attendance", endpoint="attendance_list")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def attendance_list():
        try:
            day = parse_iso_date(request.args["date"]) if request.args.get("date") else now_local().date()
        except ValueError:
            flash("Invalid date (expected YYYY-MM-DD)", "warning")
            day = date.today()

        records = list(container.attendance_service.list_by_date(day))
        if current_role() == Role.LECTURER:
            own = {c.course_id for c in container.course_service.list_by_instructor(current_user_id())}
            records = [r for r in records if r.course_id in own]
        return render_template(
            "attendance.html",
            day=day,
            records=records,
            statuses=list(AttendanceStatus),
            current_user=current_user(),
            active_page="attendance",
        )

    @app.route("/attendance/<record_id>/status", methods=["POST"], endpoint="update_attendance_status")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def update_attendance_status(record_id: str):
        try:
            container.attendance_service.update_status(
                record_id,
                request.form.get("status", ""),
                current_role=current_role(),
                current_user_id=current_user_id(),
            )
            flash("Attendance updated.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Attendance status update failed for %s", record_id)
            flash("System error while updating attendance", "danger")
        return redirect(url_for("attendance_list", date=request.form.get("date", "")))

    @app.route("/attendance/manual", methods=["POST"], endpoint="mark_attendance")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def mark_attendance():
        try:
            container.attendance_service.mark_manual(
                current_role=current_role(),
                current_user_id=current_user_id(),
                student_id=request.form.get("student_id", ""),
                session_id=request.form.get("session_id", ""),
                status=request.form.get("status", AttendanceStatus.VERIFIED.value),
            )
            flash("Attendance recorded.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Manual attendance failed")
            flash("System error while recording attendance", "danger")
        return redirect(request.referrer or url_for("attendance_list"))

    # ===== STUDENT CHECK-IN =====

    @app.route("/checkin", endpoint="checkin_page")
    @roles_required(Role.STUDENT)
    def checkin_page():
        return render_template("student/checkin.html", current_user=current_user(), active_page="checkin")

    @app.route("/api/checkin/qr", methods=["POST"], endpoint="api_checkin_qr")
    @roles_required(Role.STUDENT)
    def api_checkin_qr():
        try:
            data = request.get_json(silent=True) or {}
            record = container.attendance_service.check_in_qr(current_user_id(), str(data.get("code", "")))
            return json_ok(message=f"Checked in to {record.course_label}", record=record_to_dict(record))
        except Exception as e:
            return json_error(e)

    @app.route("/api/checkin/qr/image", methods=["POST"], endpoint="api_checkin_qr_image")
    @roles_required(Role.STUDENT)
    def api_checkin_qr_image():
        try:
            if "image" not in request.files:
                raise ValidationError("Image file is required")
            code = decode_image(request.files["image"].stream)
            if not code:
                raise ValidationError("No QR code found in the image")
            record = container.attendance_service.check_in_qr(current_user_id(), code)
            return json_ok(message=f"Checked in to {record.course_label}", record=record_to_dict(record))
        except Exception as e:
            return json_error(e)

    @app.route("/api/checkin/ble", methods=["POST"], endpoint="api_checkin_ble")
    @roles_required(Role.STUDENT)
    def api_checkin_ble():
        try:
            data = request.get_json(silent=True) or {}
            record = container.attendance_service.check_in_ble(current_user_id(), str(data.get("mac_address", "")))
            return json_ok(message=f"Checked in to {record.course_label}", record=record_to_dict(record))
        except Exception as e:
            return json_error(e)

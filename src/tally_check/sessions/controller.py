from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.datetime_utils import now_local
from ..common.decorators import current_role, current_user, current_user_id, roles_required
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..container import Container
from .status import session_status

logger = logging.getLogger(__name__)

SESSION_FORM_FIELDS = ("session_date", "start_time", "end_time", "location", "window_start", "window_end", "beacon_id")


def register(app: Flask, container: Container) -> None:
    def _courses_for_user():
        if current_role() == Role.ADMIN:
            return container.course_service.list_all()
        return container.course_service.list_by_instructor(current_user_id())

    @app.route("/sessions", endpoint="sessions")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def sessions_page():
        courses = _courses_for_user()
        course_id = request.args.get("course_id") or (courses[0].course_id if courses else "")
        now = now_local()
        sessions = container.session_service.list_by_course(course_id, now=now) if course_id else []
        return render_template(
            "sessions.html",
            courses=courses,
            course_id=course_id,
            sessions=[(s, session_status(s, now)) for s in sessions],
            beacons=container.beacon_service.list_all(),
            current_user=current_user(),
            active_page="sessions",
        )

    @app.route("/sessions/add", methods=["POST"], endpoint="add_session")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def add_session():
        course_id = request.form.get("course_id", "")
        try:
            container.session_service.create_session(
                current_role=current_role(),
                current_user_id=current_user_id(),
                course_id=course_id,
                **{k: request.form.get(k, "") for k in SESSION_FORM_FIELDS},
            )
            flash("Class session created.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Create session failed")
            flash("System error while creating session", "danger")
        return redirect(url_for("sessions", course_id=course_id))

    @app.route("/sessions/<session_id>/edit", methods=["POST"], endpoint="edit_session")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def edit_session(session_id: str):
        try:
            s = container.session_service.update_session(
                current_role=current_role(),
                current_user_id=current_user_id(),
                session_id=session_id,
                **{k: request.form.get(k, "") for k in SESSION_FORM_FIELDS},
            )
            flash("Class session updated.", "success")
            return redirect(url_for("sessions", course_id=s.course_id))
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Update session failed")
            flash("System error while updating session", "danger")
        return redirect(url_for("sessions", course_id=request.form.get("course_id", "")))

    @app.route("/sessions/<session_id>/delete", methods=["POST"], endpoint="delete_session")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def delete_session(session_id: str):
        try:
            container.session_service.delete_session(
                current_role=current_role(), current_user_id=current_user_id(), session_id=session_id
            )
            flash("Class session deleted.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Delete session failed")
            flash("System error while deleting session", "danger")
        return redirect(url_for("sessions", course_id=request.form.get("course_id", "")))

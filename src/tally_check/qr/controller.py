from __future__ import annotations

import logging

from flask import Flask, flash, jsonify, redirect, render_template, request, send_file, url_for

from ..common.datetime_utils import now_epoch_ms
from ..common.decorators import current_role, current_user, current_user_id, roles_required
from ..common.responses import json_error, json_ok
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..container import Container
from .images import render_png

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def _courses():
        if current_role() == Role.ADMIN:
            return container.course_service.list_all()
        return container.course_service.list_by_instructor(current_user_id())

    @app.route("/qr", endpoint="qr_generator")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def qr_generator():
        courses = _courses()
        course_id = request.args.get("course_id") or (courses[0].course_id if courses else "")
        active = container.qr_service.get_active(course_id) if course_id else None
        return render_template(
            "qr/generator.html",
            courses=courses,
            course_id=course_id,
            active=active,
            remaining=container.qr_service.remaining_seconds(active) if active else 0,
            current_user=current_user(),
            active_page="qr_generator",
        )

    @app.route("/qr/create", methods=["POST"], endpoint="create_qr")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def create_qr():
        course_id = request.form.get("course_id", "")
        try:
            container.qr_service.create_qr_code(
                current_role=current_role(),
                current_user_id=current_user_id(),
                course_id=course_id,
                duration_minutes=request.form.get("duration_minutes", type=int),
            )
            flash("QR code generated.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("QR generation failed")
            flash("System error while generating QR code", "danger")
        return redirect(url_for("qr_generator", course_id=course_id))

    @app.route("/api/qr/active", endpoint="api_qr_active")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def api_qr_active():
        try:
            prompt = container.qr_service.get_active(request.args.get("course_id", ""))
            if not prompt:
                return json_ok(active=False)
            now = now_epoch_ms()
            return json_ok(
                active=True,
                id=prompt.prompt_id,
                expiresAt=prompt.expires_at,
                remainingSeconds=container.qr_service.remaining_seconds(prompt, now),
                status=container.qr_service.status_of(prompt, now).value,
            )
        except Exception as e:
            return json_error(e)

    @app.route("/qr/<prompt_id>/image", endpoint="qr_image")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def qr_image(prompt_id: str):
        try:
            return send_file(render_png(prompt_id), mimetype="image/png")
        except Exception as e:
            logger.exception("QR render failed")
            return jsonify({"success": False, "message": str(e)}), 500

    @app.route("/qr/history", endpoint="qr_history")
    @roles_required(Role.LECTURER, Role.ADMIN)
    def qr_history():
        courses = _courses()
        course_id = request.args.get("course_id", "")
        prompts = container.qr_service.history(course_id or None)
        if current_role() == Role.LECTURER:
            own = {c.course_id for c in courses}
            prompts = [p for p in prompts if p.course_id in own]
        now = now_epoch_ms()
        return render_template(
            "qr/history.html",
            courses=courses,
            course_id=course_id,
            prompts=[(p, container.qr_service.status_of(p, now)) for p in prompts],
            current_user=current_user(),
            active_page="qr_history",
        )

from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.decorators import current_role, current_user, current_user_id, login_required, roles_required
from ..common.responses import json_error, json_ok
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)

BEACON_FORM_FIELDS = ("mac_address", "name", "uuid", "major", "minor", "location", "description")


def register(app: Flask, container: Container) -> None:
    def _run(action, success: str):
        try:
            action()
            flash(success, "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Beacon action failed")
            flash("System error, please try again", "danger")
        return redirect(url_for("admin_beacons"))

    def _form() -> dict:
        return {k: request.form.get(k, "") for k in BEACON_FORM_FIELDS}

    @app.route("/admin/beacons", endpoint="admin_beacons")
    @roles_required(Role.ADMIN)
    def admin_beacons():
        return render_template(
            "admin/beacons.html",
            beacons=container.beacon_service.list_all(),
            assignments=container.beacon_service.list_assignments(),
            courses=container.course_service.list_all(),
            current_user=current_user(),
            active_page="admin_beacons",
        )

    @app.route("/admin/beacons/add", methods=["POST"], endpoint="add_beacon")
    @roles_required(Role.ADMIN)
    def add_beacon():
        return _run(lambda: container.beacon_service.create_beacon(current_role=current_role(), form=_form()), "Beacon added.")

    @app.route("/admin/beacons/<beacon_id>/edit", methods=["POST"], endpoint="edit_beacon")
    @roles_required(Role.ADMIN)
    def edit_beacon(beacon_id: str):
        return _run(
            lambda: container.beacon_service.update_beacon(current_role=current_role(), beacon_id=beacon_id, form=_form()),
            "Beacon updated.",
        )

    @app.route("/admin/beacons/<beacon_id>/toggle", methods=["POST"], endpoint="toggle_beacon")
    @roles_required(Role.ADMIN)
    def toggle_beacon(beacon_id: str):
        active = request.form.get("is_active") == "1"
        return _run(
            lambda: container.beacon_service.set_active(current_role=current_role(), beacon_id=beacon_id, is_active=active),
            "Beacon activated." if active else "Beacon deactivated.",
        )

    @app.route("/admin/beacons/<beacon_id>/delete", methods=["POST"], endpoint="delete_beacon")
    @roles_required(Role.ADMIN)
    def delete_beacon(beacon_id: str):
        return _run(
            lambda: container.beacon_service.delete_beacon(current_role=current_role(), beacon_id=beacon_id),
            "Beacon deleted.",
        )

    @app.route("/admin/beacons/assign", methods=["POST"], endpoint="assign_beacon")
    @roles_required(Role.ADMIN)
    def assign_beacon():
        return _run(
            lambda: container.beacon_service.assign(
                current_role=current_role(),
                beacon_id=request.form.get("beacon_id", ""),
                course_id=request.form.get("course_id", ""),
                session_id=request.form.get("session_id", ""),
            ),
            "Beacon assigned.",
        )

    @app.route("/admin/beacons/assignments/<assignment_id>/delete", methods=["POST"], endpoint="unassign_beacon")
    @roles_required(Role.ADMIN)
    def unassign_beacon(assignment_id: str):
        return _run(
            lambda: container.beacon_service.unassign(current_role=current_role(), assignment_id=assignment_id),
            "Assignment removed.",
        )

    @app.route("/api/beacons/validate", methods=["POST"], endpoint="api_validate_beacon")
    @login_required
    def api_validate_beacon():
        """Mobile app asks which session (if any) a scanned beacon belongs to."""

        try:
            data = request.get_json(silent=True) or {}
            match = container.beacon_service.validate_for_user(str(data.get("mac_address", "")), current_user_id())
            return json_ok(session=match.to_dict() if match else None)
        except Exception as e:
            return json_error(e)

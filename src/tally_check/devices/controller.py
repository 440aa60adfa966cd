from __future__ import annotations

from flask import Flask, render_template, request

from ..common.decorators import current_user, current_user_id, login_required
from ..common.responses import json_error, json_ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/devices/verify", endpoint="device_verification")
    @login_required
    def device_verification():
        user = container.user_service.get_user(current_user_id())
        return render_template(
            "devices/verify.html",
            device_id=user.device_id,
            current_user=current_user(),
            active_page="device_verification",
        )

    @app.route("/api/devices/verify", methods=["POST"], endpoint="api_device_verify")
    @login_required
    def api_device_verify():
        try:
            result = container.device_service.verify(current_user_id(), request.get_json(silent=True))
            return json_ok(result=result.to_dict())
        except Exception as e:
            return json_error(e)

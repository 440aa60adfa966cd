from __future__ import annotations

from flask import Flask

from ..common.decorators import login_required
from ..common.responses import json_ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    feed = container.notification_feed

    @app.route("/api/notifications", endpoint="api_notifications")
    @login_required
    def api_notifications():
        return json_ok(notifications=[n.to_dict() for n in feed.items()])

    @app.route("/api/notifications/<notification_id>/clear", methods=["POST"], endpoint="clear_notification")
    @login_required
    def clear_notification(notification_id: str):
        return json_ok(removed=feed.clear(notification_id))

    @app.route("/api/notifications/clear", methods=["POST"], endpoint="clear_notifications")
    @login_required
    def clear_notifications():
        feed.clear_all()
        return json_ok()

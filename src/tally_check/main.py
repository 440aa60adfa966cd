from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .attendance.controller import register as register_attendance
from .beacons.controller import register as register_beacons
from .config import get_settings_module
from .container import Container, build_container
from .core.constants import APP_NAME, DASHBOARD_POLL_SECONDS, LIVE_ATTENDANCE_POLL_SECONDS, NOTIFICATIONS_POLL_SECONDS
from .courses.controller import register as register_courses
from .dashboard.controller import register as register_dashboard
from .devices.controller import register as register_devices
from .notifications.controller import register as register_notifications
from .qr.controller import register as register_qr
from .reports.controller import register as register_reports
from .sessions.controller import register as register_sessions
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory.

    A prebuilt `container` (e.g. wired with in-memory repositories) skips the
    Supabase client setup.
    """

    load_dotenv(override=False)
    app = Flask(__name__, template_folder="templates", static_folder="static")

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("Starting %s with settings=%s", APP_NAME, settings_module)

    if container is None:
        container = build_container(
            supabase_config=getattr(settings, "SUPABASE_CONFIG"),
            qr_duration_minutes=int(getattr(settings, "QR_DEFAULT_DURATION_MINUTES", 15)),
            expected_timezone=getattr(settings, "EXPECTED_TIMEZONE", "UTC"),
            cache_ttl_seconds=float(getattr(settings, "CACHE_TTL_SECONDS", 30.0)),
            realtime_enabled=bool(getattr(settings, "REALTIME_ENABLED", False)),
        )
    app.extensions["tally_check"] = container

    app.jinja_env.globals.update(
        app_name=APP_NAME,
        poll_live_ms=LIVE_ATTENDANCE_POLL_SECONDS * 1000,
        poll_notifications_ms=NOTIFICATIONS_POLL_SECONDS * 1000,
        poll_dashboard_ms=DASHBOARD_POLL_SECONDS * 1000,
    )

    register_users(app, container)
    register_dashboard(app, container)
    register_courses(app, container)
    register_sessions(app, container)
    register_attendance(app, container)
    register_beacons(app, container)
    register_qr(app, container)
    register_devices(app, container)
    register_reports(app, container)
    register_notifications(app, container)

    if container.realtime_listener is not None:
        container.realtime_listener.start()

    return app

"""JSON responses for the polling and mobile endpoints."""

from __future__ import annotations

import logging

from flask import jsonify

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BackendError,
    DomainError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (BackendError, 502),
)


def json_ok(**payload):
    return jsonify({"success": True, **payload}), 200


def json_error(exc: Exception):
    """Map an exception to {"success": False, "message": ...} and a status code."""

    if isinstance(exc, DomainError):
        for cls, status in _STATUS:
            if isinstance(exc, cls):
                return jsonify({"success": False, "message": str(exc)}), status
    logger.exception("Unhandled error in JSON endpoint")
    return jsonify({"success": False, "message": "Internal server error"}), 500

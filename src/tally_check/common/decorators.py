from __future__ import annotations

from functools import wraps

from flask import flash, redirect, render_template, session, url_for

from ..core.enums import Role


def current_user() -> dict:
    return {
        "id": session.get("user_id"),
        "full_name": session.get("name"),
        "email": session.get("email"),
        "role": session.get("role"),
    }


def render_forbidden():
    return render_template("403.html", current_user=current_user()), 403


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            flash("Please sign in to continue.", "warning")
            return redirect(url_for("login"))
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    """Allow only the given roles; anyone else gets the 403 page."""

    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return redirect(url_for("login"))
            if session.get("role") not in allowed:
                return render_forbidden()
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_role() -> Role:
    return Role(session.get("role"))


def current_user_id() -> str:
    return str(session.get("user_id"))

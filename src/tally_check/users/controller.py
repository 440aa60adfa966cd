from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, flash, redirect, render_template, request, session, url_for

from ..common.decorators import current_role, current_user, current_user_id, login_required, roles_required
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, DomainError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)

USER_FORM_FIELDS = ("full_name", "email", "role", "department", "phone", "office_location")


def register(app: Flask, container: Container) -> None:
    @app.route("/", methods=["GET", "POST"], endpoint="login")
    def login():
        if "user_id" in session:
            return redirect(url_for("dashboard"))

        if request.method == "POST":
            email = request.form.get("email", "")
            password = request.form.get("password", "")
            remember = request.form.get("remember_me")

            try:
                s_user = container.auth_service.authenticate(email, password)

                session.permanent = bool(remember)
                app.permanent_session_lifetime = timedelta(days=7)

                session["user_id"] = s_user.user_id
                session["name"] = s_user.full_name
                session["email"] = s_user.email
                session["role"] = s_user.role.value

                flash(f"Welcome back, {s_user.full_name}!", "success")
                return redirect(url_for("dashboard"))
            except (AuthenticationError, ValidationError) as e:
                flash(str(e), "danger")
            except Exception as e:
                logger.exception("Login failed")
                if bool(app.config.get("DEBUG", False)):
                    flash(f"System error during sign in: {e}", "danger")
                else:
                    flash("System error during sign in", "danger")

        return render_template("login.html", show_setup=_needs_setup())

    def _needs_setup() -> bool:
        try:
            return not container.auth_service.has_admin()
        except DomainError:
            return False

    @app.route("/setup-admin", methods=["GET", "POST"], endpoint="setup_admin")
    def setup_admin():
        if not _needs_setup():
            flash("An admin account already exists. Please sign in.", "info")
            return redirect(url_for("login"))

        if request.method == "POST":
            try:
                container.auth_service.bootstrap_admin(
                    full_name=request.form.get("full_name", ""),
                    email=request.form.get("email", ""),
                    password=request.form.get("password", ""),
                )
                flash("Admin account created. Please sign in.", "success")
                return redirect(url_for("login"))
            except DomainError as e:
                flash(str(e), "danger")

        return render_template("setup_admin.html")

    @app.route("/logout", endpoint="logout")
    def logout():
        try:
            container.auth_service.sign_out()
        except DomainError:
            logger.warning("Backend sign-out failed; clearing local session anyway")
        session.clear()
        flash("You have been signed out.", "info")
        return redirect(url_for("login"))

    @app.route("/admin/users", endpoint="admin_users")
    @roles_required(Role.ADMIN)
    def admin_users():
        role = request.args.get("role", "all")
        search = request.args.get("q", "")
        try:
            users = container.user_service.list_users(role=role, search=search)
        except ValidationError as e:
            flash(str(e), "warning")
            users = container.user_service.list_users()
        return render_template(
            "admin/users.html",
            users=users,
            role=role,
            search=search,
            roles=list(Role),
            current_user=current_user(),
            active_page="admin_users",
        )

    @app.route("/admin/users/add", methods=["POST"], endpoint="add_user")
    @roles_required(Role.ADMIN)
    def add_user():
        form = {k: request.form.get(k, "") for k in USER_FORM_FIELDS}
        try:
            user = container.user_service.create_user(current_role=current_role(), **form)
            flash(f"User {user.full_name} created.", "success")
        except (ValidationError, AuthorizationError) as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Create user failed")
            flash("System error while creating user", "danger")
        return redirect(url_for("admin_users"))

    @app.route("/admin/users/<user_id>/edit", methods=["POST"], endpoint="edit_user")
    @roles_required(Role.ADMIN)
    def edit_user(user_id: str):
        changes = {k: request.form[k] for k in USER_FORM_FIELDS if k in request.form}
        try:
            container.user_service.update_user(current_role=current_role(), user_id=user_id, changes=changes)
            flash("User updated.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Update user failed")
            flash("System error while updating user", "danger")
        return redirect(url_for("admin_users"))

    @app.route("/admin/users/<user_id>/delete", methods=["POST"], endpoint="delete_user")
    @roles_required(Role.ADMIN)
    def delete_user(user_id: str):
        try:
            container.user_service.delete_user(
                current_role=current_role(), current_user_id=current_user_id(), user_id=user_id
            )
            flash("User deleted.", "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Delete user failed")
            flash("System error while deleting user", "danger")
        return redirect(url_for("admin_users"))

    @app.route("/profile", methods=["GET", "POST"], endpoint="profile")
    @login_required
    def profile():
        if request.method == "POST":
            try:
                user = container.user_service.update_profile(
                    user_id=current_user_id(),
                    changes={k: request.form.get(k, "") for k in ("full_name", "phone", "department", "office_location")},
                )
                session["name"] = user.full_name
                flash("Profile updated.", "success")
                return redirect(url_for("profile"))
            except DomainError as e:
                flash(str(e), "danger")

        user = container.user_service.get_user(current_user_id())
        return render_template("profile.html", user=user, current_user=current_user(), active_page="profile")

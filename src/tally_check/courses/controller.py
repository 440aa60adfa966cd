from __future__ import annotations

import logging

from flask import Flask, flash, redirect, render_template, request, url_for

from ..common.decorators import current_role, current_user, current_user_id, roles_required
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def _run(action, success: str, endpoint: str, **values):
        try:
            action()
            flash(success, "success")
        except DomainError as e:
            flash(str(e), "danger")
        except Exception:
            logger.exception("Course action failed")
            flash("System error, please try again", "danger")
        return redirect(url_for(endpoint, **values))

    @app.route("/admin/courses", endpoint="admin_courses")
    @roles_required(Role.ADMIN)
    def admin_courses():
        search = request.args.get("q", "")
        return render_template(
            "admin/courses.html",
            courses=container.course_service.list_all(search=search),
            lecturers=container.user_service.list_lecturers(),
            search=search,
            current_user=current_user(),
            active_page="admin_courses",
        )

    @app.route("/admin/courses/add", methods=["POST"], endpoint="add_course")
    @roles_required(Role.ADMIN)
    def add_course():
        return _run(
            lambda: container.course_service.create_course(
                current_role=current_role(),
                name=request.form.get("name", ""),
                code=request.form.get("code", ""),
                instructor_id=request.form.get("instructor_id", ""),
            ),
            "Course created.",
            "admin_courses",
        )

    @app.route("/admin/courses/<course_id>/edit", methods=["POST"], endpoint="edit_course")
    @roles_required(Role.ADMIN)
    def edit_course(course_id: str):
        return _run(
            lambda: container.course_service.update_course(
                current_role=current_role(),
                course_id=course_id,
                name=request.form.get("name", ""),
                code=request.form.get("code", ""),
            ),
            "Course updated.",
            "admin_courses",
        )

    @app.route("/admin/courses/<course_id>/delete", methods=["POST"], endpoint="delete_course")
    @roles_required(Role.ADMIN)
    def delete_course(course_id: str):
        return _run(
            lambda: container.course_service.delete_course(current_role=current_role(), course_id=course_id),
            "Course deleted.",
            "admin_courses",
        )

    @app.route("/admin/courses/<course_id>/assign", methods=["POST"], endpoint="assign_lecturer")
    @roles_required(Role.ADMIN)
    def assign_lecturer(course_id: str):
        instructor_id = request.form.get("instructor_id", "")
        if not instructor_id:
            return _run(
                lambda: container.course_service.unassign_instructor(current_role=current_role(), course_id=course_id),
                "Lecturer removed from course.",
                "admin_courses",
            )
        return _run(
            lambda: container.course_service.assign_instructor(
                current_role=current_role(), course_id=course_id, instructor_id=instructor_id
            ),
            "Lecturer assigned.",
            "admin_courses",
        )

    @app.route("/admin/enrollments", endpoint="admin_enrollments")
    @roles_required(Role.ADMIN)
    def admin_enrollments():
        courses = container.course_service.list_all()
        course_id = request.args.get("course_id") or (courses[0].course_id if courses else "")
        enrolled = container.course_service.list_enrolled_students(course_id) if course_id else []
        enrolled_ids = {s.user_id for s in enrolled}
        return render_template(
            "admin/enrollments.html",
            courses=courses,
            course_id=course_id,
            enrolled=enrolled,
            available=[s for s in container.user_service.list_students() if s.user_id not in enrolled_ids],
            current_user=current_user(),
            active_page="admin_enrollments",
        )

    @app.route("/admin/enrollments/add", methods=["POST"], endpoint="enroll_student")
    @roles_required(Role.ADMIN)
    def enroll_student():
        course_id = request.form.get("course_id", "")
        return _run(
            lambda: container.course_service.enroll_student(
                current_role=current_role(), student_id=request.form.get("student_id", ""), course_id=course_id
            ),
            "Student enrolled.",
            "admin_enrollments",
            course_id=course_id,
        )

    @app.route("/admin/enrollments/remove", methods=["POST"], endpoint="unenroll_student")
    @roles_required(Role.ADMIN)
    def unenroll_student():
        course_id = request.form.get("course_id", "")
        return _run(
            lambda: container.course_service.unenroll_student(
                current_role=current_role(), student_id=request.form.get("student_id", ""), course_id=course_id
            ),
            "Student removed from course.",
            "admin_enrollments",
            course_id=course_id,
        )

    @app.route("/lecturer/courses", endpoint="lecturer_courses")
    @roles_required(Role.LECTURER)
    def lecturer_courses():
        courses = container.course_service.list_by_instructor(current_user_id())
        students = {c.course_id: container.course_service.list_enrolled_students(c.course_id) for c in courses}
        return render_template(
            "lecturer/courses.html",
            courses=courses,
            students=students,
            current_user=current_user(),
            active_page="lecturer_courses",
        )

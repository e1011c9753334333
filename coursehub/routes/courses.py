from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required, current_user, get_current_user

from ..services import catalog
from ..utils.authz import instructor_required
from ..utils.validation import json_body, parse_int_arg

bp = Blueprint("courses", __name__)


@bp.get("")
def list_courses():
    """Published courses, filterable by category/difficulty/search, paginated."""
    return catalog.list_courses(
        category=request.args.get("category"),
        difficulty=request.args.get("difficulty"),
        search=request.args.get("search", "").strip(),
        page=parse_int_arg("page", 1, 1),
        limit=parse_int_arg("limit", 10, 1, current_app.config["COURSES_PAGE_LIMIT_MAX"]),
    )


@bp.get("/<int:course_id>")
@jwt_required(optional=True)
def get_course(course_id: int):
    return catalog.get_course(course_id, viewer=get_current_user()).to_dict()


@bp.post("")
@instructor_required
def create_course():
    course = catalog.create_course(current_user, json_body())
    return {"message": "Course created successfully", "course": course.to_dict()}, 201


@bp.get("/instructor/my-courses")
@instructor_required
def my_courses():
    return {"items": catalog.instructor_courses(current_user)}


@bp.put("/<int:course_id>")
@instructor_required
def update_course(course_id: int):
    course = catalog.update_course(current_user, course_id, json_body())
    return {"message": "Course updated successfully", "course": course.to_dict()}


@bp.delete("/<int:course_id>")
@instructor_required
def delete_course(course_id: int):
    catalog.delete_course(current_user, course_id)
    return {"message": "Course deleted successfully"}


@bp.patch("/<int:course_id>/toggle-publish")
@instructor_required
def toggle_publish(course_id: int):
    course = catalog.toggle_publish(current_user, course_id)
    state = "published" if course.is_published else "unpublished"
    return {"message": f"Course {state} successfully", "course": course.to_dict()}

from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user

from ..errors import ValidationError
from ..services import progress as tracker
from ..utils.authz import instructor_required
from ..utils.validation import json_body, optional_bool, optional_number, require_int

bp = Blueprint("progress", __name__)


@bp.put("/lesson")
@jwt_required()
def update_lesson_progress():
    data = json_body()
    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("'notes' must be a string")
    result = tracker.record_lesson_progress(
        current_user,
        course_id=require_int(data, "courseId"),
        lesson_id=require_int(data, "lessonId"),
        completed=optional_bool(data, "completed"),
        time_spent=optional_number(data, "timeSpent", default=0, min_value=0),
        notes=notes,
    )
    result["message"] = "Progress updated successfully"
    return result


@bp.get("/course/<int:course_id>")
@jwt_required()
def course_progress(course_id: int):
    return tracker.course_progress(current_user, course_id)


@bp.get("/my-progress")
@jwt_required()
def my_progress():
    return tracker.user_progress(current_user)


@bp.get("/analytics/<int:course_id>")
@instructor_required
def analytics(course_id: int):
    return tracker.analytics(course_id, current_user)

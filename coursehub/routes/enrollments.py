from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user

from ..services import enrollment as ledger
from ..utils.validation import json_body, require_int

bp = Blueprint("enrollments", __name__)


@bp.post("/enroll")
@jwt_required()
def enroll():
    course_id = require_int(json_body(), "courseId")
    enrollment = ledger.enroll(current_user, course_id)
    return {"message": "Successfully enrolled in course",
            "enrollment": enrollment.to_dict(with_course=True)}, 201


@bp.delete("/unenroll/<int:course_id>")
@jwt_required()
def unenroll(course_id: int):
    ledger.unenroll(current_user, course_id)
    return {"message": "Successfully unenrolled from course"}


@bp.get("/my-courses")
@jwt_required()
def my_courses():
    return {"items": ledger.my_courses(current_user)}


@bp.get("/status/<int:course_id>")
@jwt_required()
def status(course_id: int):
    return ledger.status(current_user, course_id)


@bp.put("/progress/<int:course_id>")
@jwt_required()
def update_progress(course_id: int):
    enrollment = ledger.set_progress(current_user, course_id, json_body().get("progress"))
    return {"message": "Progress updated successfully", "enrollment": enrollment.to_dict()}

from flask import Blueprint
from flask_jwt_extended import jwt_required, current_user

from ..services import quiz as engine
from ..utils.authz import instructor_required
from ..utils.validation import json_body

bp = Blueprint("quizzes", __name__)


@bp.post("")
@instructor_required
def create_quiz():
    quiz = engine.create(current_user, json_body())
    return {"message": "Quiz created successfully", "quiz": quiz.to_dict()}, 201


@bp.get("/course/<int:course_id>")
def course_quizzes(course_id: int):
    return {"items": engine.course_quizzes(course_id)}


@bp.get("/<int:quiz_id>")
def get_quiz(quiz_id: int):
    return engine.fetch_for_taking(quiz_id)


@bp.post("/<int:quiz_id>/submit")
@jwt_required()
def submit_quiz(quiz_id: int):
    data = json_body()
    result = engine.submit(current_user, quiz_id, data.get("answers"), data.get("timeSpent", 0))
    return {"message": "Quiz submitted successfully", "result": result}


@bp.get("/<int:quiz_id>/results")
@jwt_required()
def quiz_results(quiz_id: int):
    return engine.results(quiz_id, current_user)


@bp.put("/<int:quiz_id>")
@instructor_required
def update_quiz(quiz_id: int):
    quiz = engine.update(current_user, quiz_id, json_body())
    return {"message": "Quiz updated successfully", "quiz": quiz.to_dict()}


@bp.delete("/<int:quiz_id>")
@instructor_required
def delete_quiz(quiz_id: int):
    engine.delete(current_user, quiz_id)
    return {"message": "Quiz deleted successfully"}

"""
Quiz engine: authoring, taking, scoring and attempt bookkeeping.

Results are append-only. Nothing returned to a quiz taker carries the
answer key: the taking payload drops ``correctAnswer`` and ``explanation``,
and a submission only reports the score.
"""
import logging

from .. import db
from ..errors import Forbidden, LimitExceeded, NotFound, ValidationError
from ..models import Course, Question, Quiz, QuizResult
from ..utils.authz import ensure_owner
from ..utils.validation import is_int, is_number, optional_bool, require_int, required_text
from .enrollment import percentage

logger = logging.getLogger(__name__)


def _is_index(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def score_answers(answer_key, answers) -> int:
    """
    Count positions where the submitted option index matches the key.

    Missing, extra or malformed answers are simply wrong.
    """
    correct = 0
    for index, expected in enumerate(answer_key):
        if index >= len(answers):
            break
        given = answers[index]
        if _is_index(given) and given == expected:
            correct += 1
    return correct


def get_quiz(quiz_id):
    quiz = db.session.get(Quiz, quiz_id)
    if quiz is None:
        raise NotFound("Quiz not found")
    return quiz


def _int_field(data, name, default, min_value=None, max_value=None):
    raw = data.get(name, default)
    if not is_int(raw):
        raise ValidationError(f"'{name}' must be an integer")
    if min_value is not None and raw < min_value:
        raise ValidationError(f"'{name}' must be >= {min_value}")
    if max_value is not None and raw > max_value:
        raise ValidationError(f"'{name}' must be <= {max_value}")
    return raw


def _build_questions(raw):
    if not isinstance(raw, list):
        raise ValidationError("'questions' must be a list")
    questions = []
    for position, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"question {position + 1} must be an object")
        prompt = required_text(item, "question")
        options = item.get("options")
        if (not isinstance(options, list) or len(options) < 2
                or not all(isinstance(o, str) and o.strip() for o in options)):
            raise ValidationError(f"question {position + 1} needs at least two text options")
        correct = item.get("correctAnswer")
        if not _is_index(correct) or not 0 <= correct < len(options):
            raise ValidationError(f"question {position + 1} has an invalid correctAnswer")
        explanation = item.get("explanation")
        if explanation is not None and not isinstance(explanation, str):
            raise ValidationError(f"question {position + 1} explanation must be a string")
        questions.append(Question(
            position=position,
            prompt=prompt,
            options=[o.strip() for o in options],
            correct_answer=correct,
            points=_int_field(item, "points", 1, min_value=1),
            explanation=explanation,
        ))
    return questions


def _apply_settings(quiz, data, defaults):
    if "title" in data or defaults:
        quiz.title = required_text(data, "title")
    if "description" in data or defaults:
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise ValidationError("'description' must be a string")
        quiz.description = description
    if "timeLimit" in data or defaults:
        quiz.time_limit = _int_field(data, "timeLimit", 30, min_value=1)
    if "maxAttempts" in data or defaults:
        quiz.max_attempts = _int_field(data, "maxAttempts", 3, min_value=1)
    if "passingScore" in data or defaults:
        quiz.passing_score = _int_field(data, "passingScore", 70, min_value=0, max_value=100)
    if "isPublished" in data or defaults:
        quiz.is_published = bool(optional_bool(data, "isPublished", False))
    if "questions" in data or defaults:
        quiz.questions = _build_questions(data.get("questions", []))


def create(requester, data):
    course = db.session.get(Course, require_int(data, "courseId"))
    if course is None:
        raise NotFound("Course not found")
    ensure_owner(requester, course, "Not authorized to create quiz for this course")

    quiz = Quiz(course_id=course.id)
    _apply_settings(quiz, data, defaults=True)
    db.session.add(quiz)
    db.session.commit()
    logger.info("quiz %s created for course %s by user %s", quiz.id, course.id, requester.id)
    return quiz


def update(requester, quiz_id, data):
    quiz = get_quiz(quiz_id)
    ensure_owner(requester, quiz.course, "Not authorized to update this quiz")
    _apply_settings(quiz, data, defaults=False)
    db.session.commit()
    return quiz


def delete(requester, quiz_id):
    quiz = get_quiz(quiz_id)
    ensure_owner(requester, quiz.course, "Not authorized to delete this quiz")
    db.session.delete(quiz)
    db.session.commit()
    logger.info("quiz %s deleted by user %s", quiz_id, requester.id)


def fetch_for_taking(quiz_id):
    quiz = get_quiz(quiz_id)
    if not quiz.is_published:
        raise Forbidden("Quiz is not published")
    data = quiz.header()
    data["questions"] = [q.public_dict() for q in quiz.questions]
    return data


def course_quizzes(course_id):
    quizzes = (Quiz.query.filter_by(course_id=course_id, is_published=True)
               .order_by(Quiz.created_at.desc(), Quiz.id.desc())
               .all())
    items = []
    for quiz in quizzes:
        data = quiz.header()
        data["questionCount"] = len(quiz.questions)
        items.append(data)
    return items


def submit(user, quiz_id, answers, time_spent=0):
    quiz = get_quiz(quiz_id)
    if not isinstance(answers, list):
        raise ValidationError("'answers' must be a list")
    if time_spent is None:
        time_spent = 0
    if not is_number(time_spent) or time_spent < 0:
        raise ValidationError("'timeSpent' must be a non-negative number")

    attempts = QuizResult.query.filter_by(quiz_id=quiz.id, user_id=user.id).count()
    if attempts >= quiz.max_attempts:
        logger.warning("attempt limit reached: user=%s quiz=%s", user.id, quiz.id)
        raise LimitExceeded("Maximum attempts exceeded")

    answer_key = [q.correct_answer for q in quiz.questions]
    score = score_answers(answer_key, answers)
    pct = percentage(score, len(answer_key))
    result = QuizResult(
        quiz_id=quiz.id,
        user_id=user.id,
        score=score,
        total_questions=len(answer_key),
        percentage=pct,
        time_spent=int(time_spent),
        answers=[a if _is_index(a) else None for a in answers],
    )
    db.session.add(result)
    db.session.commit()
    logger.info("user %s submitted quiz %s: %s/%s", user.id, quiz.id, score, len(answer_key))

    return {
        "score": score,
        "totalQuestions": len(answer_key),
        "percentage": pct,
        "passed": pct >= quiz.passing_score,
        "timeSpent": int(time_spent),
    }


def results(quiz_id, user):
    quiz = get_quiz(quiz_id)
    own = (QuizResult.query.filter_by(quiz_id=quiz.id, user_id=user.id)
           .order_by(QuizResult.id.asc())
           .all())
    return {
        "quiz": {
            "id": quiz.id,
            "title": quiz.title,
            "passingScore": quiz.passing_score,
            "maxAttempts": quiz.max_attempts,
        },
        "results": [r.to_dict() for r in own],
    }

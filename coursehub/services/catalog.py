"""
Course catalog: authoring, publishing and the public listing.
"""
import logging
import math

from sqlalchemy import or_

from .. import db
from ..errors import Forbidden, NotFound, ValidationError
from ..models import Course, Difficulty, Enrollment, Lesson, Progress
from ..utils.authz import ensure_owner, owns_or_admin
from ..utils.validation import is_int, is_number, optional_bool, required_text
from .progress import refresh_enrollments

logger = logging.getLogger(__name__)


def _difficulty(value):
    try:
        return Difficulty(value)
    except ValueError:
        raise ValidationError("'difficulty' must be one of beginner, intermediate, advanced")


def _tags(value):
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise ValidationError("'tags' must be a list of strings")
    return [t.strip() for t in value if t.strip()]


def _apply_lesson_fields(lesson, item, default_order):
    lesson.title = required_text(item, "title")
    lesson.content = required_text(item, "content")
    minutes = item.get("durationMinutes", 0)
    if not is_int(minutes) or minutes < 0:
        raise ValidationError("'durationMinutes' must be a non-negative integer")
    lesson.duration_minutes = minutes
    order = item.get("order", default_order)
    if not is_int(order):
        raise ValidationError("'order' must be an integer")
    lesson.position = order
    lesson.is_published = bool(optional_bool(item, "isPublished", False))


def _merge_lessons(course, raw):
    """
    Replace the lesson list: items carrying an existing ``id`` are updated,
    the rest are created, and lessons left out are removed with their
    progress records.
    """
    if not isinstance(raw, list):
        raise ValidationError("'lessons' must be a list")
    existing = {lesson.id: lesson for lesson in course.lessons}
    kept = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError("each lesson must be an object")
        lesson_id = item.get("id")
        if lesson_id is not None:
            lesson = existing.get(lesson_id)
            if lesson is None:
                raise ValidationError(f"lesson {lesson_id} does not belong to this course")
        else:
            lesson = Lesson()
        _apply_lesson_fields(lesson, item, index + 1)
        kept.append(lesson)

    removed = [lid for lid in existing if lid not in {lesson.id for lesson in kept}]
    if removed:
        Progress.query.filter(Progress.lesson_id.in_(removed)).delete(synchronize_session=False)
    course.lessons = sorted(kept, key=lambda lesson: lesson.position)


def _apply_course_fields(course, data, creating):
    if "title" in data or creating:
        course.title = required_text(data, "title", min_length=3)
    if "description" in data or creating:
        course.description = required_text(data, "description")
    if "category" in data:
        course.category = required_text(data, "category")
    if "difficulty" in data:
        course.difficulty = _difficulty(data["difficulty"])
    if "price" in data:
        if not is_number(data["price"]) or data["price"] < 0:
            raise ValidationError("'price' must be a non-negative number")
        course.price = data["price"]
    if "rating" in data:
        if not is_number(data["rating"]) or not 0 <= data["rating"] <= 5:
            raise ValidationError("'rating' must be between 0 and 5")
        course.rating = data["rating"]
    if "thumbnail" in data:
        course.thumbnail = data["thumbnail"]
    if "tags" in data:
        course.tags = _tags(data["tags"])
    if "isPublished" in data:
        course.is_published = bool(optional_bool(data, "isPublished", False))


def get_course_or_404(course_id):
    course = db.session.get(Course, course_id)
    if course is None:
        raise NotFound("Course not found")
    return course


def list_courses(category=None, difficulty=None, search=None, page=1, limit=10):
    query = Course.query.filter(Course.is_published.is_(True))
    if category:
        query = query.filter(Course.category == category)
    if difficulty:
        query = query.filter(Course.difficulty == _difficulty(difficulty))
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Course.title.ilike(like), Course.description.ilike(like)))

    total = query.count()
    courses = (query.order_by(Course.created_at.desc(), Course.id.desc())
               .offset((page - 1) * limit)
               .limit(limit)
               .all())
    return {
        "courses": [c.to_dict(with_lessons=False) for c in courses],
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
        "total": total,
    }


def get_course(course_id, viewer=None):
    course = get_course_or_404(course_id)
    if not course.is_published and (viewer is None or not owns_or_admin(viewer, course)):
        raise Forbidden("Course is not published")
    return course


def create_course(user, data):
    course = Course(instructor_id=user.id, category="General", tags=[])
    _apply_course_fields(course, data, creating=True)
    if "lessons" in data:
        _merge_lessons(course, data["lessons"])
    db.session.add(course)
    db.session.commit()
    logger.info("course %s created by user %s", course.id, user.id)
    return course


def update_course(user, course_id, data):
    course = get_course_or_404(course_id)
    ensure_owner(user, course, "Not authorized to update this course")
    _apply_course_fields(course, data, creating=False)
    if "lessons" in data:
        _merge_lessons(course, data["lessons"])
        db.session.flush()
        refresh_enrollments(course.id)
    db.session.commit()
    return course


def delete_course(user, course_id):
    course = get_course_or_404(course_id)
    ensure_owner(user, course, "Not authorized to delete this course")
    Progress.query.filter_by(course_id=course.id).delete(synchronize_session=False)
    Enrollment.query.filter_by(course_id=course.id).delete(synchronize_session=False)
    db.session.delete(course)
    db.session.commit()
    logger.info("course %s deleted by user %s", course_id, user.id)


def instructor_courses(user):
    courses = (Course.query.filter_by(instructor_id=user.id)
               .order_by(Course.created_at.desc(), Course.id.desc())
               .all())
    return [c.to_dict(with_lessons=False) for c in courses]


def toggle_publish(user, course_id):
    course = get_course_or_404(course_id)
    ensure_owner(user, course, "Not authorized to modify this course")
    course.is_published = not course.is_published
    db.session.commit()
    logger.info("course %s %s", course.id, "published" if course.is_published else "unpublished")
    return course

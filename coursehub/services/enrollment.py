"""
Enrollment ledger.

``apply_progress`` is the only writer of ``Enrollment.progress`` and
``Enrollment.completed_at``; the manual progress endpoint and the lesson
tracker both go through it.

Enroll and unenroll touch three things (the enrollment row, the course's
``enrolled_count`` and the user's enrolled list) and commit them as one
transaction. The unique (user, course) constraint stays the final word on
duplicates: a concurrent insert that slips past the existence check is
reported as ``Conflict``, never retried.
"""
import logging
import math

from sqlalchemy.exc import IntegrityError

from .. import db
from ..errors import Conflict, NotFound, ValidationError
from ..models import Course, Enrollment, utcnow
from ..utils.validation import is_number

logger = logging.getLogger(__name__)


def percentage(part, whole) -> int:
    """Round ``100 * part / whole`` half-up; 0 when there is nothing to divide by."""
    if not whole:
        return 0
    return int(math.floor(100 * part / whole + 0.5))


def clamp_progress(value) -> int:
    return int(math.floor(min(100, max(0, value)) + 0.5))


def apply_progress(enrollment, value, now=None, touch=True):
    """
    Store the clamped progress and stamp ``completed_at`` the first time it
    reaches 100. ``touch=False`` leaves ``last_accessed`` alone for
    recomputations the student did not cause.
    """
    now = now or utcnow()
    enrollment.progress = clamp_progress(value)
    if touch:
        enrollment.last_accessed = now
    if enrollment.progress >= 100 and enrollment.completed_at is None:
        enrollment.completed_at = now
        logger.info("user %s completed course %s", enrollment.user_id, enrollment.course_id)
    return enrollment


def find_enrollment(user_id, course_id):
    return Enrollment.query.filter_by(user_id=user_id, course_id=course_id).first()


def _adjust_enrolled_count(course_id, delta):
    query = Course.query.filter(Course.id == course_id)
    if delta < 0:
        query = query.filter(Course.enrolled_count > 0)
    query.update({Course.enrolled_count: Course.enrolled_count + delta},
                 synchronize_session="fetch")


def enroll(user, course_id):
    course = db.session.get(Course, course_id)
    if course is None:
        raise NotFound("Course not found")
    if find_enrollment(user.id, course.id) is not None:
        logger.warning("duplicate enrollment rejected: user=%s course=%s", user.id, course.id)
        raise Conflict("Already enrolled in this course")

    enrollment = Enrollment(user_id=user.id, course_id=course.id, progress=0)
    try:
        db.session.add(enrollment)
        if course not in user.enrolled_courses:
            user.enrolled_courses.append(course)
        _adjust_enrolled_count(course.id, 1)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("enrollment unique constraint hit: user=%s course=%s", user.id, course_id)
        raise Conflict("Already enrolled in this course")

    logger.info("user %s enrolled in course %s", user.id, course.id)
    return enrollment


def unenroll(user, course_id):
    enrollment = find_enrollment(user.id, course_id)
    if enrollment is None:
        raise NotFound("Enrollment not found")

    db.session.delete(enrollment)
    course = db.session.get(Course, course_id)
    if course is not None and course in user.enrolled_courses:
        user.enrolled_courses.remove(course)
    _adjust_enrolled_count(course_id, -1)
    db.session.commit()
    logger.info("user %s unenrolled from course %s", user.id, course_id)


def set_progress(user, course_id, value):
    if not is_number(value):
        raise ValidationError("'progress' must be a number")
    enrollment = find_enrollment(user.id, course_id)
    if enrollment is None:
        raise NotFound("Not enrolled in this course")
    apply_progress(enrollment, value)
    db.session.commit()
    return enrollment


def status(user, course_id):
    enrollment = find_enrollment(user.id, course_id)
    if enrollment is None:
        return {"enrolled": False, "enrollment": None}
    return {"enrolled": True, "enrollment": enrollment.to_dict()}


def my_courses(user):
    enrollments = (Enrollment.query.filter_by(user_id=user.id)
                   .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
                   .all())
    return [e.to_dict(with_course=True) for e in enrollments]

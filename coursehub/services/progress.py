"""
Lesson progress tracker: per-lesson records rolled up into the enrollment.
"""
import logging

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from .. import db
from ..errors import Conflict, Forbidden, NotFound
from ..models import Course, Enrollment, Lesson, Progress, utcnow
from ..utils.authz import owns_or_admin
from .enrollment import apply_progress, clamp_progress, find_enrollment, percentage

logger = logging.getLogger(__name__)


def lesson_completion_percentage(user_id, course_id) -> int:
    """Share of the course's current lessons the user has completed."""
    total = Lesson.query.filter_by(course_id=course_id).count()
    done = (Progress.query
            .join(Lesson, Lesson.id == Progress.lesson_id)
            .filter(Progress.user_id == user_id,
                    Progress.course_id == course_id,
                    Lesson.course_id == course_id,
                    Progress.completed.is_(True))
            .count())
    return percentage(done, total)


def refresh_enrollments(course_id):
    """Re-derive progress for every enrollment of a course (lesson set changed)."""
    now = utcnow()
    for enrollment in Enrollment.query.filter_by(course_id=course_id).all():
        apply_progress(enrollment, lesson_completion_percentage(enrollment.user_id, course_id), now,
                       touch=False)


def record_lesson_progress(user, course_id, lesson_id, completed=None, time_spent=0, notes=None):
    enrollment = find_enrollment(user.id, course_id)
    if enrollment is None:
        raise Forbidden("Not enrolled in this course")
    lesson = db.session.get(Lesson, lesson_id)
    if lesson is None or lesson.course_id != course_id:
        raise NotFound("Lesson not found in this course")

    now = utcnow()
    record = Progress.query.filter_by(user_id=user.id, course_id=course_id, lesson_id=lesson_id).first()
    try:
        if record is None:
            record = Progress(user_id=user.id, course_id=course_id, lesson_id=lesson_id,
                              completed=False, time_spent=0)
            db.session.add(record)
        if completed is not None:
            record.completed = completed
        record.time_spent = (record.time_spent or 0) + int(time_spent or 0)
        if notes is not None:
            record.notes = notes
        record.last_accessed = now
        db.session.flush()

        apply_progress(enrollment, lesson_completion_percentage(user.id, course_id), now)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("concurrent progress write: user=%s course=%s lesson=%s",
                       user.id, course_id, lesson_id)
        raise Conflict("Progress was updated concurrently, please retry")

    return {"progress": record.to_dict(), "courseProgress": enrollment.progress}


def course_progress(user, course_id):
    enrollment = find_enrollment(user.id, course_id)
    if enrollment is None:
        raise Forbidden("Not enrolled in this course")
    records = (Progress.query.filter_by(user_id=user.id, course_id=course_id)
               .order_by(Progress.last_accessed.desc(), Progress.id.desc())
               .all())
    course = db.session.get(Course, course_id)
    return {
        "enrollment": enrollment.to_dict(),
        "lessonProgress": [r.to_dict() for r in records],
        "course": {
            "id": course.id,
            "title": course.title,
            "lessons": [lesson.to_dict() for lesson in course.lessons],
        },
    }


def user_progress(user):
    enrollments = (Enrollment.query.filter_by(user_id=user.id)
                   .order_by(Enrollment.last_accessed.desc(), Enrollment.id.desc())
                   .all())
    total_time = (db.session.query(func.coalesce(func.sum(Progress.time_spent), 0))
                  .filter(Progress.user_id == user.id)
                  .scalar())
    return {
        "enrollments": [e.to_dict(with_course=True) for e in enrollments],
        "statistics": {
            "totalCourses": len(enrollments),
            "completedCourses": sum(1 for e in enrollments if e.progress == 100),
            "inProgressCourses": sum(1 for e in enrollments if 0 < e.progress < 100),
            "notStartedCourses": sum(1 for e in enrollments if e.progress == 0),
            "totalTimeSpent": int(total_time or 0),
        },
    }


def analytics(course_id, requester):
    course = db.session.get(Course, course_id)
    if course is None:
        raise NotFound("Course not found")
    if not owns_or_admin(requester, course):
        raise Forbidden("Not authorized to view analytics for this course")

    total = Enrollment.query.filter_by(course_id=course_id).count()
    completed = Enrollment.query.filter_by(course_id=course_id, progress=100).count()
    average = (db.session.query(func.avg(Enrollment.progress))
               .filter(Enrollment.course_id == course_id)
               .scalar())

    rows = (db.session.query(Progress.lesson_id,
                             func.sum(case((Progress.completed.is_(True), 1), else_=0)),
                             func.count(Progress.id))
            .filter(Progress.course_id == course_id)
            .group_by(Progress.lesson_id)
            .all())
    by_lesson = {lesson_id: (int(done or 0), int(seen)) for lesson_id, done, seen in rows}

    lesson_stats = []
    for lesson in course.lessons:
        done, seen = by_lesson.get(lesson.id, (0, 0))
        lesson_stats.append({
            "lessonId": lesson.id,
            "title": lesson.title,
            "completed": done,
            "total": seen,
            "completionRate": percentage(done, seen),
        })

    return {
        "course": {"id": course.id, "title": course.title, "totalLessons": len(course.lessons)},
        "statistics": {
            "totalEnrollments": total,
            "completedEnrollments": completed,
            "completionRate": percentage(completed, total),
            "averageProgress": clamp_progress(float(average or 0)),
        },
        "lessonStats": lesson_stats,
    }

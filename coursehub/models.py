from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import event
from sqlalchemy.orm import Session

from . import db


def utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    if not value:
        return None
    # SQLite hands timestamps back naive; they were stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


user_courses = db.Table(
    "enrolled_courses",
    db.Column("user_id", db.Integer, db.ForeignKey("user.id"), primary_key=True),
    db.Column("course_id", db.Integer, db.ForeignKey("course.id"), primary_key=True),
)


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(Role), nullable=False, default=Role.STUDENT)
    avatar_url = db.Column(db.String(255))
    bio = db.Column(db.String(500))
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    enrolled_courses = db.relationship("Course", secondary=user_courses,
                                       backref="enrolled_users")

    def to_dict(self):
        # password hash is never exposed
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "avatarUrl": self.avatar_url,
            "bio": self.bio,
            "isActive": self.is_active,
            "enrolledCourses": [c.id for c in self.enrolled_courses],
            "createdAt": _iso(self.created_at),
        }

    def summary(self):
        return {"id": self.id, "name": self.name, "email": self.email, "avatarUrl": self.avatar_url}


class Course(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    instructor_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    thumbnail = db.Column(db.String(255))
    category = db.Column(db.String(80), nullable=False, default="General")
    difficulty = db.Column(db.Enum(Difficulty), nullable=False, default=Difficulty.BEGINNER)
    duration = db.Column(db.Integer, nullable=False, default=0)  # minutes
    price = db.Column(db.Float, nullable=False, default=0)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    enrolled_count = db.Column(db.Integer, nullable=False, default=0)
    rating = db.Column(db.Float, nullable=False, default=0)
    tags = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    instructor = db.relationship("User", foreign_keys=[instructor_id])
    lessons = db.relationship("Lesson", back_populates="course", order_by="Lesson.position",
                              cascade="all, delete-orphan")
    quizzes = db.relationship("Quiz", back_populates="course", cascade="all, delete-orphan")

    def to_dict(self, with_lessons=True):
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "instructor": self.instructor.summary() if self.instructor else None,
            "thumbnail": self.thumbnail,
            "category": self.category,
            "difficulty": self.difficulty.value,
            "duration": self.duration,
            "price": self.price,
            "isPublished": self.is_published,
            "enrolledCount": self.enrolled_count,
            "rating": self.rating,
            "tags": list(self.tags or []),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
        if with_lessons:
            data["lessons"] = [lesson.to_dict() for lesson in self.lessons]
        return data

    def summary(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "thumbnail": self.thumbnail,
            "category": self.category,
            "difficulty": self.difficulty.value,
            "duration": self.duration,
            "instructorId": self.instructor_id,
        }


class Lesson(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("course.id"), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=0)
    position = db.Column(db.Integer, nullable=False, default=1)
    is_published = db.Column(db.Boolean, nullable=False, default=False)

    course = db.relationship("Course", back_populates="lessons")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "durationMinutes": self.duration_minutes,
            "order": self.position,
            "isPublished": self.is_published,
        }


def course_duration(lessons):
    return sum(lesson.duration_minutes or 0 for lesson in lessons)


@event.listens_for(Session, "before_flush")
def _sync_course_duration(session, flush_context, instances):
    """Keep Course.duration equal to the sum of its lesson durations."""
    touched = set()
    for obj in list(session.new) + list(session.dirty) + list(session.deleted):
        if isinstance(obj, Course):
            touched.add(obj)
        elif isinstance(obj, Lesson) and obj.course is not None:
            touched.add(obj.course)
    for course in touched:
        if course in session.deleted:
            continue
        course.duration = course_duration(
            lesson for lesson in course.lessons if lesson not in session.deleted
        )


class Enrollment(db.Model):
    __table_args__ = (db.UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey("course.id"), nullable=False, index=True)
    progress = db.Column(db.Integer, nullable=False, default=0)
    enrolled_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    last_accessed = db.Column(db.DateTime(timezone=True), default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True))
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    course = db.relationship("Course")

    def to_dict(self, with_course=False):
        data = {
            "id": self.id,
            "userId": self.user_id,
            "courseId": self.course_id,
            "progress": self.progress,
            "enrolledAt": _iso(self.enrolled_at),
            "lastAccessed": _iso(self.last_accessed),
            "completedAt": _iso(self.completed_at),
            "isActive": self.is_active,
        }
        if with_course and self.course is not None:
            data["course"] = self.course.summary()
        return data


class Progress(db.Model):
    __table_args__ = (
        db.UniqueConstraint("user_id", "course_id", "lesson_id", name="uq_progress_user_course_lesson"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey("course.id"), nullable=False, index=True)
    lesson_id = db.Column(db.Integer, db.ForeignKey("lesson.id"), nullable=False)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    time_spent = db.Column(db.Integer, nullable=False, default=0)  # seconds
    last_accessed = db.Column(db.DateTime(timezone=True), default=utcnow)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "courseId": self.course_id,
            "lessonId": self.lesson_id,
            "completed": self.completed,
            "timeSpent": self.time_spent,
            "lastAccessed": _iso(self.last_accessed),
            "notes": self.notes,
        }


class Quiz(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("course.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    time_limit = db.Column(db.Integer, nullable=False, default=30)  # minutes
    max_attempts = db.Column(db.Integer, nullable=False, default=3)
    passing_score = db.Column(db.Integer, nullable=False, default=70)  # percentage
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    course = db.relationship("Course", back_populates="quizzes")
    questions = db.relationship("Question", back_populates="quiz", order_by="Question.position",
                                cascade="all, delete-orphan")
    results = db.relationship("QuizResult", back_populates="quiz", order_by="QuizResult.id",
                              cascade="all, delete-orphan")

    def header(self):
        return {
            "id": self.id,
            "courseId": self.course_id,
            "title": self.title,
            "description": self.description,
            "timeLimit": self.time_limit,
            "maxAttempts": self.max_attempts,
            "passingScore": self.passing_score,
            "isPublished": self.is_published,
            "createdAt": _iso(self.created_at),
        }

    def to_dict(self):
        """Full authoring view, answer key included."""
        data = self.header()
        data["questions"] = [q.to_dict() for q in self.questions]
        return data


class Question(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quiz.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    prompt = db.Column(db.Text, nullable=False)
    options = db.Column(db.JSON, nullable=False, default=list)
    correct_answer = db.Column(db.Integer, nullable=False)
    points = db.Column(db.Integer, nullable=False, default=1)
    explanation = db.Column(db.Text)

    quiz = db.relationship("Quiz", back_populates="questions")

    def public_dict(self):
        return {"question": self.prompt, "options": list(self.options or []), "points": self.points}

    def to_dict(self):
        data = self.public_dict()
        data["correctAnswer"] = self.correct_answer
        data["explanation"] = self.explanation
        return data


class QuizResult(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quiz.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    total_questions = db.Column(db.Integer, nullable=False)
    percentage = db.Column(db.Integer, nullable=False)
    time_spent = db.Column(db.Integer, nullable=False, default=0)  # seconds
    answers = db.Column(db.JSON, nullable=False, default=list)
    completed_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    quiz = db.relationship("Quiz", back_populates="results")

    def to_dict(self):
        return {
            "userId": self.user_id,
            "score": self.score,
            "totalQuestions": self.total_questions,
            "percentage": self.percentage,
            "timeSpent": self.time_spent,
            "answers": list(self.answers or []),
            "completedAt": _iso(self.completed_at),
        }

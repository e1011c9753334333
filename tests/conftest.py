import pytest

from coursehub import create_app, db
from coursehub.models import Role, User
from coursehub.utils.security import hash_password

PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app(testing=True)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, name, role="student"):
    resp = client.post("/api/auth/register", json={
        "name": name,
        "email": f"{name.lower()}@example.com",
        "password": PASSWORD,
        "role": role,
    })
    assert resp.status_code == 201, resp.get_json()
    body = resp.get_json()
    return {"id": body["user"]["id"], "headers": bearer(body["token"])}


@pytest.fixture
def student(client):
    return register(client, "Sam")


@pytest.fixture
def other_student(client):
    return register(client, "Alex")


@pytest.fixture
def teacher(client):
    return register(client, "Tara", role="teacher")


@pytest.fixture
def other_teacher(client):
    return register(client, "Omar", role="teacher")


@pytest.fixture
def admin(app, client):
    with app.app_context():
        user = User(name="Root", email="root@example.com",
                    password_hash=hash_password(PASSWORD), role=Role.ADMIN)
        db.session.add(user)
        db.session.commit()
        user_id = user.id
    resp = client.post("/api/auth/login", json={"email": "root@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    return {"id": user_id, "headers": bearer(resp.get_json()["token"])}


def lesson_payload(count, minutes=10):
    return [
        {"title": f"Lesson {i}", "content": f"Body {i}", "durationMinutes": minutes, "order": i}
        for i in range(1, count + 1)
    ]


@pytest.fixture
def make_course(client, teacher):
    def _make(lessons=3, published=True, owner=None, **extra):
        owner = owner or teacher
        payload = {
            "title": extra.pop("title", "Intro to Python"),
            "description": extra.pop("description", "Learn the basics"),
            "lessons": lesson_payload(lessons),
            "isPublished": published,
        }
        payload.update(extra)
        resp = client.post("/api/courses", json=payload, headers=owner["headers"])
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["course"]
    return _make


@pytest.fixture
def make_quiz(client, teacher):
    def _make(course, correct=(0, 1, 2, 3, 0), published=True, owner=None, **extra):
        owner = owner or teacher
        payload = {
            "courseId": course["id"],
            "title": extra.pop("title", "Checkpoint"),
            "isPublished": published,
            "questions": [
                {"question": f"Q{i}", "options": ["a", "b", "c", "d"], "correctAnswer": answer,
                 "explanation": f"because {answer}"}
                for i, answer in enumerate(correct)
            ],
        }
        payload.update(extra)
        resp = client.post("/api/quizzes", json=payload, headers=owner["headers"])
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["quiz"]
    return _make

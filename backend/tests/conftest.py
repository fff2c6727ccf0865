import pytest
from fastapi.testclient import TestClient

from examprep.config import Settings
from examprep.main import create_app

ADMIN_USERNAME = "console-admin"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings pointing at a fresh SQLite file per test."""
    monkeypatch.setenv("ENV", "dev")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("JWT_USER_SECRET", "user-secret-for-tests")
    monkeypatch.setenv("JWT_ADMIN_SECRET", "admin-secret-for-tests")
    monkeypatch.setenv("ADMIN_USERNAME", ADMIN_USERNAME)
    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)
    monkeypatch.setenv("ADMIN_DISPLAY_NAME", "Super Admin")
    monkeypatch.setenv("ADMIN_EMAIL", "root@example.com")
    monkeypatch.setenv("ADMIN_ROLE", "SUPER_ADMIN")
    monkeypatch.setenv("ADMIN_LOGIN_RATE_LIMIT_PER_MIN", "5")
    return Settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_headers(client):
    r = client.post("/auth/admin/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['accessToken']}"}


@pytest.fixture
def login_learner(client):
    """Return a helper that signs a learner in and gives (headers, user json)."""
    def _login(telegram_id="tg-1", name="Asha Rao", exam="NEET_PG"):
        r = client.post("/auth/telegram", json={"telegramId": telegram_id, "displayName": name, "exam": exam})
        assert r.status_code == 200
        body = r.json()
        return {"Authorization": f"Bearer {body['accessToken']}"}, body["user"]
    return _login


@pytest.fixture
def user_headers(login_learner):
    headers, _ = login_learner()
    return headers


@pytest.fixture
def seed_questions(client, admin_headers):
    """Return a helper creating a subject, a topic and `count` questions answered by option 2."""
    def _seed(count=3, exam="NEET_PG"):
        subject = client.post("/admin/subjects", json={"exam": exam, "name": "Anatomy"}, headers=admin_headers).json()
        topic = client.post("/admin/topics", json={"subjectId": subject["id"], "name": "Neuro"}, headers=admin_headers).json()
        questions = []
        for i in range(count):
            r = client.post("/admin/questions", headers=admin_headers, json={
                "exam": exam,
                "subjectId": subject["id"],
                "topicId": topic["id"],
                "questionText": f"Question {i}?",
                "optionA": "a", "optionB": "b", "optionC": "c", "optionD": "d",
                "correctOption": 2,
                "difficultyLevel": 2,
            })
            assert r.status_code == 201
            questions.append(r.json())
        return subject, topic, questions
    return _seed

import json
import os
import tempfile
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest

# Settings and the engine are created at import time, so configure the environment first
_DB_DIR = tempfile.mkdtemp(prefix="learnkiu-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret"
for _key in ("GEMINI_API_KEY", "OPENROUTER_API_KEY", "SEARCHAPI_API_KEY"):
    os.environ.pop(_key, None)

from fastapi.testclient import TestClient  # noqa: E402

from learnkiu.db import Base, SessionLocal, engine, init_db  # noqa: E402
from learnkiu.main import app  # noqa: E402
from learnkiu.models import AuthUser  # noqa: E402
from learnkiu.routers.auth import create_verification_token  # noqa: E402


def sample_questions(count: int = 5) -> List[Dict[str, Any]]:
    return [
        {
            "question": f"Question {i + 1}?",
            "options": ["A", "B", "C", "D"],
            "correctAnswer": i % 4,
            "explanation": f"Because {i + 1}.",
        }
        for i in range(count)
    ]


class FakeGenerator:
    """Stands in for the generation service; answers by the kind of system prompt."""

    def __init__(
        self,
        *,
        learning_unit: Optional[str] = None,
        questions: Optional[str] = None,
        accuracy: str = "The text is broadly accurate.",
        error: Optional[Exception] = None,
    ) -> None:
        self.learning_unit = learning_unit or json.dumps(
            {
                "title": "Photosynthesis Basics",
                "summary": "How plants turn light into energy.",
                "level": "whatever",
                "readingTime": 999,
                "kiu": 999,
                "cpdPoints": 999,
            }
        )
        self.questions = questions or json.dumps({"questions": sample_questions()})
        self.accuracy = accuracy
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, prompt, *, system=None, json_mode=False, temperature=None):
        self.calls.append({"prompt": prompt, "system": system or "", "json_mode": json_mode})
        if self.error is not None:
            raise self.error
        if "fact-checker" in (system or ""):
            return self.accuracy
        if "educational content analysis" in (system or ""):
            return self.learning_unit
        return self.questions


@pytest.fixture()
def make_generator() -> Callable[..., FakeGenerator]:
    return FakeGenerator


@pytest.fixture()
def questions_payload() -> Callable[..., List[Dict[str, Any]]]:
    return sample_questions


@pytest.fixture()
def client() -> Iterator[TestClient]:
    Base.metadata.drop_all(bind=engine)
    init_db()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def register_user(client: TestClient) -> Callable[..., Dict[str, str]]:
    """Register, optionally verify, and sign in a user; returns auth headers."""

    def _register(
        email: str = "Ada@Example.com ",
        password: str = "secret123",
        first_name: str = "Ada",
        last_name: str = "Lovelace",
        verified: bool = True,
    ) -> Dict[str, str]:
        r = client.post(
            "/auth/register",
            json={"email": email, "password": password, "first_name": first_name, "last_name": last_name},
        )
        assert r.status_code == 201, r.text
        if verified:
            with SessionLocal() as db:
                row = db.get(AuthUser, r.json()["id"])
                token = create_verification_token(row)
            assert client.post("/auth/verify", json={"token": token}).status_code == 200
        r = client.post("/auth/token", data={"username": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['access_token']}"}

    return _register

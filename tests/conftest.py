import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edutest import models
from edutest.database import Base, get_db
from edutest.main import app
from edutest.utils.auth import create_access_token, get_password_hash
from edutest.utils.question_generator import get_question_generator
from edutest.utils.test_bank import assign_to_candidate, create_test


QUESTIONS = [
    {"text": "2 + 2 = ?", "options": ["3", "4", "5", "6"], "correct_option_index": 1},
    {"text": "Capital of France?", "options": ["Berlin", "Madrid", "Paris", "Rome"], "correct_option_index": 2},
    {"text": "Red planet?", "options": ["Earth", "Mars", "Jupiter", "Venus"], "correct_option_index": 1},
    {"text": "H2O is?", "options": ["Water", "Salt", "Air", "Gold"], "correct_option_index": 0},
]


class FakeGenerator:
    """Stands in for the external generation service."""

    def __init__(self, questions=None, error=None):
        self.questions = questions if questions is not None else QUESTIONS
        self.error = error
        self.calls = []

    def generate(self, source_text, desired_count):
        self.calls.append((source_text, desired_count))
        if self.error:
            raise self.error
        return [dict(q) for q in self.questions[:desired_count]]


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def client(db_session, generator):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_question_generator] = lambda: generator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_user(db, role, name=None, email=None, password="secret123"):
    user = models.User(
        id=str(uuid4()),
        name=name or f"{role.value} user",
        email=email or f"{uuid4().hex[:8]}@example.com",
        password_hash=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db_session):
    return make_user(db_session, models.Role.ADMIN, name="Admin", email="admin@example.com")


@pytest.fixture
def other_admin(db_session):
    return make_user(db_session, models.Role.ADMIN, name="Second Admin", email="admin2@example.com")


@pytest.fixture
def candidate(db_session):
    return make_user(db_session, models.Role.CANDIDATE, name="Asha", email="asha@example.com")


@pytest.fixture
def other_candidate(db_session):
    return make_user(db_session, models.Role.CANDIDATE, name="Ravi", email="ravi@example.com")


def headers_for(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)


@pytest.fixture
def candidate_headers(candidate):
    return headers_for(candidate)


@pytest.fixture
def sample_test(db_session, admin):
    """Four questions, -0.25 per wrong answer, cutoff 2, 10 minutes."""
    return create_test(
        db_session,
        creator=admin,
        name="General knowledge",
        description="Warm-up",
        time_limit=10,
        negative_marking_ratio=0.25,
        cutoff_mark=2,
        questions=QUESTIONS,
        notes_content="Some source notes",
    )


@pytest.fixture
def assigned_test(db_session, sample_test, candidate):
    return assign_to_candidate(db_session, sample_test, candidate.id)

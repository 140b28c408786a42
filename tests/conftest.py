"""
Fixtures compartidas: base de datos SQLite en memoria, cliente HTTP con
dependencias reemplazadas y dobles del LLM y de SteinHQ.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_SERVER", "localhost")
os.environ.setdefault("POSTGRES_DB", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import security
from app.core.cache import TTLCache, get_question_cache
from app.core.deps import get_progress_buffer
from app.core.errors import UpstreamError
from app.crud import crud_user
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.article import ArticleCategory
from app.models.question import Question
from app.services.llm_client import get_llm_client
from app.services.progress_buffer import ProgressWriteBuffer, database_sink
from app.services.steinhq_service import get_steinhq_service
from app.db import models_registry  # noqa: F401

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeLLMClient:
    """
    Devuelve las respuestas en orden. Una respuesta que es una excepción se lanza.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def complete(self, prompt, *, model, max_output_tokens, web_search=False,
                       timeout=30.0, operation="completion"):
        self.calls.append({"operation": operation, "prompt": prompt, "web_search": web_search})
        if not self.responses:
            raise UpstreamError("No fake response left")
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeSteinHQ:
    def __init__(self):
        self.posts = []

    async def post_article_safely(self, title, slug, subreddit=None, image_url=None):
        self.posts.append({"title": title, "slug": slug, "subreddit": subreddit, "image_url": image_url})
        return True


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def fake_llm():
    return FakeLLMClient()


@pytest.fixture()
def fake_steinhq():
    return FakeSteinHQ()


@pytest.fixture()
def question_cache():
    return TTLCache(ttl_seconds=300)


@pytest.fixture()
def progress_buffer():
    return ProgressWriteBuffer(database_sink(TestingSessionLocal), idle_delay=2.0)


@pytest.fixture()
def client(db, fake_llm, fake_steinhq, question_cache, progress_buffer):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    app.dependency_overrides[get_steinhq_service] = lambda: fake_steinhq
    app.dependency_overrides[get_question_cache] = lambda: question_cache
    app.dependency_overrides[get_progress_buffer] = lambda: progress_buffer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def student(db):
    return crud_user.create_user(db, email="student@example.com", password="student-pass", full_name="Student")


@pytest.fixture()
def admin(db):
    return crud_user.create_admin_user(db, email="admin@example.com", password="admin-pass")


def auth_headers(user):
    return {"Authorization": f"Bearer {security.create_access_token(user.id)}"}


@pytest.fixture()
def student_headers(student):
    return auth_headers(student)


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)


def make_question(db, question_id, **fields):
    values = {
        "topic": "ll1-parsing",
        "subject": "Compiler Design",
        "chapter": "Parsing",
        "category": "GATE-CSE",
        "difficulty": "easy",
        "year": "gate-2020",
        "question": f"Question {question_id}",
        "option_a": "A", "option_b": "B", "option_c": "C", "option_d": "D",
        "correct_option": "A",
        "solution": "",
        "solution_text": "",
    }
    values.update(fields)
    question = Question(id=question_id, **values)
    db.add(question)
    db.commit()
    return question


@pytest.fixture()
def category(db):
    db_category = ArticleCategory(name="Exam News", slug="exam-news")
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category

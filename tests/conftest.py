"""Shared fixtures: an in-memory SQLite database, a session on it, and an API client bound to it."""

import os

# Must be set before forum.config is imported anywhere.
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from forum.db import get_db
from forum.main import app
from forum.models import Base, Category, ContentType, Post, Question, Role, School, SchoolCategory, Sex, User
from forum.security import create_access_token, hash_password

PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    TestSession = sessionmaker(bind=engine, autoflush=False)

    def override_get_db():
        session = TestSession()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class Factory:
    """Creates rows directly, bypassing the service layer."""

    def __init__(self, db):
        self.db = db
        self._n = 0

    def _next(self) -> int:
        self._n += 1
        return self._n

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        return row

    def school(self, name=None, **kw):
        n = self._next()
        return self._save(School(name=name or f"School {n}", number=kw.pop("number", 1000 + n), **kw))

    def user(self, username=None, role=Role.normal, **kw):
        n = self._next()
        username = username or f"user{n}"
        return self._save(User(
            email=kw.pop("email", f"{username}@example.com"),
            username=username,
            password=PASSWORD_HASH,
            nickname=kw.pop("nickname", f"Nick {n}"),
            sex=kw.pop("sex", Sex.unspecified),
            role=role,
            **kw,
        ))

    def category(self, name, parent=None, schools=()):
        category = self._save(Category(name=name, parent_id=parent.id if parent else None))
        for school in schools:
            self._save(SchoolCategory(category_id=category.id, school_id=school.id))
        return category

    def post(self, user, title=None, parent=None, **kw):
        n = self._next()
        return self._save(Post(
            title=title or f"Post {n}",
            content=kw.pop("content", f"Body of post {n}"),
            user_id=user.id,
            parent_id=parent.id if parent else None,
            type=kw.pop("type", ContentType.experience),
            **kw,
        ))

    def question(self, user, title=None, parent=None, **kw):
        n = self._next()
        return self._save(Question(
            title=title or f"Question {n}",
            content=kw.pop("content", f"Body of question {n}"),
            user_id=user.id,
            parent_id=parent.id if parent else None,
            type=kw.pop("type", ContentType.help_request),
            **kw,
        ))


@pytest.fixture
def make(db):
    return Factory(db)


@pytest.fixture
def auth():
    """Build request headers carrying a user's token."""
    def headers(user) -> dict:
        return {"token": create_access_token(user.id)}
    return headers

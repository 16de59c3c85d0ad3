import os
os.environ["TESTING"] = "1"
os.environ.setdefault("SECRET_KEY", "test-secret")
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import sys
from pathlib import Path

import uuid

sys.path.append(str(Path(__file__).resolve().parents[2]))

from contentflow.main import app
from contentflow.database import Base, build_engine, get_db
from contentflow.auth import create_access_token
from contentflow import models

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base.metadata.drop_all(bind=engine)
Base.metadata.create_all(bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def clean_database():
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def testing_session_factory():
    return TestingSessionLocal


@pytest.fixture
def make_user(db_session):
    """
    contentflow: purpose: create committed team members with a given role
    contentflow: outputs: factory returning models.User
    contentflow: status: active
    """

    def _make(role: models.TeamRole = models.TeamRole.SCRIPT_WRITER, *, email: str | None = None, active: bool = True):
        user = models.User(
            email=email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
            full_name=role.value.replace("_", " ").title(),
            role=role,
            is_active=active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def headers_for():
    def _headers(user: models.User) -> dict[str, str]:
        token = create_access_token({"sub": user.email})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_profile(db_session):
    def _make(code: str, name: str | None = None):
        profile = models.ContentProfile(code=code, name=name or code.title())
        db_session.add(profile)
        db_session.commit()
        return profile

    return _make


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file-backed database shared by worker threads."""

    thread_engine = build_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(bind=thread_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=thread_engine)
    yield factory
    thread_engine.dispose()

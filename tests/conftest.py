# tests/conftest.py
from __future__ import annotations

import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="weddingplanner-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from weddingplanner.accounts import create_user
from weddingplanner.auth import Principal, create_token
from weddingplanner.config import settings
from weddingplanner.db import Base, get_db, make_engine
from weddingplanner.main import app
from weddingplanner.models import Package
from weddingplanner.seed import seed_packages
from weddingplanner.statuses import Role


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    d = tmp_path / "uploads"
    monkeypatch.setattr(settings, "upload_dir", d)
    return d


@pytest.fixture
def client(session_factory, upload_dir):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def package(db) -> Package:
    seed_packages(db)
    return db.query(Package).order_by(Package.id).first()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role: Role = Role.CLIENT, name: str | None = None, password: str = "secret123"):
        counter["n"] += 1
        n = counter["n"]
        return create_user(db, name or f"{role.value.title()} {n}", f"{role.value}{n}@example.com", password, role)

    return _make


@pytest.fixture
def client_user(make_user):
    return make_user(Role.CLIENT)


@pytest.fixture
def admin_user(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        token = create_token(Principal(id=user.id, name=user.name, role=user.role))
        return {"Authorization": f"Bearer {token}"}

    return _headers

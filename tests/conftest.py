"""Shared fixtures: in-memory SQLite, app with get_db overridden, user factory."""
from __future__ import annotations

import os
import itertools

# settings are read at import time, so they go in before any shiftboard import
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-0123456789-abcdefghijklmnopqrstuvwxyz"
os.environ["LINE_CHANNEL_ID"] = "1234567890"
os.environ["LINE_CHANNEL_SECRET"] = "0123456789abcdef0123456789abcdef"
os.environ["APP_BASE_URL"] = "http://localhost:3000"
os.environ["COOKIE_SECURE"] = "0"
os.environ["INVITE_CLEANUP_ENABLED"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shiftboard.db import Base, get_db
from shiftboard.main import app
from shiftboard.models.user import User, UserRole
from shiftboard.utils.session_token import issue_session_token

_line_ids = itertools.count(1)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory):
    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    def _make(role=UserRole.MEMBER, display_name=None, is_active=True, line_user_id=None):
        n = next(_line_ids)
        user = User(
            line_user_id=line_user_id or f"U{n:032x}",
            display_name=display_name or f"{role.value.title()} {n}",
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, display_name="Admin Sato")


@pytest.fixture
def manager(make_user):
    return make_user(UserRole.MANAGER, display_name="Manager Suzuki")


@pytest.fixture
def member(make_user):
    return make_user(UserRole.MEMBER, display_name="Member Tanaka")


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_session_token(user)}"}

    return _headers

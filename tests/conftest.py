"""
Pytest fixtures for the iVisitor backend.

Each test gets a fresh in-memory SQLite database and a recording mailer in
place of SMTP.
"""

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SMTP_HOST"] = ""
os.environ["GUARD_USERNAME"] = "guard"
os.environ["GUARD_PASSWORD"] = "gate-pass"
os.environ["GUARD_AUTH_REQUIRED"] = "false"
os.environ["STRICT_LIFECYCLE"] = "false"
os.environ["EXPOSE_VERIFICATION_CODE"] = "true"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import NotificationError
from app.db.base import Base
from app.db.models import Resident, Visitor  # noqa: F401
from app.db.session import build_engine, get_db
from app.schemas.visitor import VisitorRequestCreate
from app.services.notification_service import NotificationDispatcher

FRONTEND_BASE_URL = "http://frontend.test"


class RecordingMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        if self.fail:
            raise NotificationError("smtp unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def dispatcher(mailer) -> NotificationDispatcher:
    return NotificationDispatcher(mailer=mailer, frontend_base_url=FRONTEND_BASE_URL)


@pytest.fixture
def visitor_payload() -> dict:
    return {
        "visitorName": "Alice",
        "visitorEmail": "a@x.com",
        "residentName": "Bob",
        "residentEmail": "b@x.com",
        "visitReason": "delivery",
    }


@pytest.fixture
def make_request(visitor_payload):
    def _make(**overrides) -> VisitorRequestCreate:
        return VisitorRequestCreate(**{**visitor_payload, **overrides})

    return _make


def _build_client(session_factory, mailer, monkeypatch, raise_server_exceptions=True):
    from app.api import deps
    from app.main import fastapi_app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(deps, "get_mailer", lambda: mailer)
    monkeypatch.setattr(deps.settings, "FRONTEND_BASE_URL", FRONTEND_BASE_URL)
    fastapi_app.dependency_overrides[get_db] = override_get_db
    return TestClient(fastapi_app, raise_server_exceptions=raise_server_exceptions)


@pytest.fixture
def client(session_factory, mailer, monkeypatch):
    from app.main import fastapi_app

    yield _build_client(session_factory, mailer, monkeypatch)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def lenient_client(session_factory, mailer, monkeypatch):
    """Client that returns 500 responses instead of re-raising server errors."""
    from app.main import fastapi_app

    yield _build_client(session_factory, mailer, monkeypatch, raise_server_exceptions=False)
    fastapi_app.dependency_overrides.clear()

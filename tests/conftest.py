"""
Test fixtures and shared setup.

Most tests run against InMemoryDocumentStore. The SQL adapter tests use an
in-memory SQLite engine, so no Postgres or Redis is needed to run the suite.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# ── Override settings BEFORE importing audit_trail modules ────────────────────
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("AUDIT_DISPATCH", "inline")
os.environ.setdefault("ADMIN_EMAILS", "boss@corp.com,Ops.Lead@Corp.com")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from audit_trail.dependencies import get_store
from audit_trail.main import app
from audit_trail.models.base import Base
from audit_trail.routers.auth import create_access_token
from audit_trail.services.audit.logger import AuditWriter
from audit_trail.services.audit.query import AuditQuery
from audit_trail.services.authz.admin import AdminAuthorizer
from audit_trail.services.errors import StoreError
from audit_trail.services.store.base import DocumentStore, InMemoryDocumentStore
from audit_trail.services.store.sql import SqlDocumentStore

ADMIN_EMAILS = ["boss@corp.com", "Ops.Lead@Corp.com"]
T0 = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


class FailingDocumentStore(DocumentStore):
    """Simulates a permanently unreachable store."""

    def __init__(self):
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise StoreError("store unreachable")

    def get_document(self, collection, key):
        self._fail()

    def put_document(self, collection, key, value):
        self._fail()

    def append_document(self, collection, value):
        self._fail()

    def query_documents(self, collection, predicates, order_by=None, limit=None, after=None):
        self._fail()


# ── Stores ────────────────────────────────────────────────────────────────────


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def failing_store() -> FailingDocumentStore:
    return FailingDocumentStore()


@pytest.fixture
def sql_session_factory():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def sql_store(sql_session_factory) -> SqlDocumentStore:
    return SqlDocumentStore(sql_session_factory)


# ── Services ──────────────────────────────────────────────────────────────────


@pytest.fixture
def authorizer(store) -> AdminAuthorizer:
    return AdminAuthorizer(store, ADMIN_EMAILS)


@pytest.fixture
def writer(store) -> AuditWriter:
    return AuditWriter(store)


@pytest.fixture
def audit_query(store) -> AuditQuery:
    return AuditQuery(store, default_limit=50, max_limit=500)


# ── HTTP ──────────────────────────────────────────────────────────────────────


@pytest.fixture
def client(store) -> TestClient:
    """FastAPI test client with the document store overridden to the test store."""
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_header(uid: str, email: str = "", role: str | None = None) -> dict:
    """Build Authorization header with a fresh JWT for the given principal."""
    token = create_access_token({"sub": uid, "email": email, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    return auth_header("u-admin", "boss@corp.com", role="admin")


@pytest.fixture
def viewer_headers() -> dict:
    return auth_header("u-viewer", "viewer@corp.com", role="viewer")


def at(minutes: int) -> datetime:
    """T0 + minutes — stable timestamps for fixtures."""
    return T0 + timedelta(minutes=minutes)

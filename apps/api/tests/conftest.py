"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
# Inject sys.path for reliable pytest imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # => .../apps/api

import json
import os
import uuid
from types import SimpleNamespace
from typing import Any, Optional

os.environ.setdefault("FORMLOOM_ENV", "test")
os.environ.setdefault("FORMLOOM_JSON_LOGS", "false")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from formloom_api.ai.client import ChatCompletionClient, get_ai_client
from formloom_api.auth import session_auth
from formloom_api.db.models import Base, OrganizationMember, User
from formloom_api.db.session import get_db
from formloom_api.main import app
from formloom_api.organizations.bootstrap import create_organization

TEST_DATABASE_URL = "sqlite:///:memory:"

VALID_SCHEMA = {
    "title": "Customer Survey",
    "description": "Tell us about your experience",
    "fields": [
        {"id": "name", "type": "text", "label": "Name", "required": True},
        {"id": "rating", "type": "select", "label": "Rating", "options": ["1", "2", "3"]},
    ],
}


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()

    try:
        yield session
        session.rollback()
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


# ============================================================================
# Identity (Supabase JWT verification stand-in)
# ============================================================================


@pytest.fixture
def identities(monkeypatch) -> dict[str, Any]:
    """Bearer token -> Supabase user object.

    Replaces only the Supabase round trip; the auth dependencies and the
    local user upsert run unchanged.
    """
    registry: dict[str, Any] = {}

    def fake_verify(jwt_token: str):
        identity = registry.get(jwt_token)
        if identity is None:
            raise session_auth._unauthorized("Invalid or expired session token. Please log in again.")
        return identity

    monkeypatch.setattr(session_auth, "verify_supabase_jwt", fake_verify)
    return registry


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer tok-{user.id}"}


@pytest.fixture
def make_user(db_session: Session, identities: dict[str, Any]):
    """Create a local user and register a session token for it."""

    def _make(
        email: Optional[str] = None,
        plan: str = "free",
        subscription_status: Optional[str] = None,
        credits: int = 0,
        username: Optional[str] = None,
    ) -> User:
        user_id = str(uuid.uuid4())
        email = email or f"user-{user_id[:8]}@example.com"
        user = User(
            id=user_id,
            email=email,
            username=username,
            subscription_plan=plan,
            subscription_status=subscription_status,
            credits=credits,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)

        identities[f"tok-{user_id}"] = SimpleNamespace(
            id=user_id, email=email, user_metadata={"username": username} if username else {}
        )
        return user

    return _make


@pytest.fixture
def make_org(db_session: Session):
    """Create an organization owned by ``owner``; returns (organization, default workspace)."""

    def _make(owner: User, name: str = "Acme Inc"):
        organization = create_organization(db_session, owner, name)
        db_session.commit()
        db_session.refresh(organization)
        return organization, organization.workspaces[0]

    return _make


@pytest.fixture
def add_member(db_session: Session):
    def _add(user: User, organization, role: str) -> OrganizationMember:
        member = OrganizationMember(user_id=user.id, organization_id=organization.id, role=role)
        db_session.add(member)
        db_session.commit()
        return member

    return _add


# ============================================================================
# AI provider stand-in
# ============================================================================


class FakeProvider:
    """Scripted chat-completions endpoint served through httpx.MockTransport.

    Classifier calls are recognised by max_tokens == 10.
    """

    def __init__(self):
        self.classifier_verdict = "YES"
        self.classifier_status = 200
        self.completion_status = 200
        self.completion_content = json.dumps(VALID_SCHEMA)
        # Raw 2xx body served instead of a chat-completions payload
        self.completion_raw_body: Optional[str] = None
        self.usage = {"prompt_tokens": 1000, "completion_tokens": 1000}
        self.requests: list[dict[str, Any]] = []

    @property
    def completion_requests(self) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["max_tokens"] != 10]

    @property
    def classifier_requests(self) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["max_tokens"] == 10]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)

        if body["max_tokens"] == 10:
            if self.classifier_status >= 400:
                return httpx.Response(self.classifier_status, json={"error": {"message": "classifier down"}})
            return httpx.Response(
                200, json={"choices": [{"message": {"content": self.classifier_verdict}}]}
            )

        if self.completion_status >= 400:
            return httpx.Response(
                self.completion_status, json={"error": {"message": "Rate limit reached for requests"}}
            )
        if self.completion_raw_body is not None:
            return httpx.Response(200, text=self.completion_raw_body)
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"content": self.completion_content}}],
                "usage": self.usage,
            },
        )

    def client(self, api_key: Optional[str] = "sk-test-key-123456") -> ChatCompletionClient:
        return ChatCompletionClient(
            api_key=api_key,
            base_url="https://ai.test/v1",
            model="gpt-4o-mini",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def test_client(db_session: Session, identities, fake_provider: FakeProvider):
    """TestClient sharing db_session with the test and a scripted AI provider."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close - db_session fixture handles it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: fake_provider.client()
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def assert_problem(response, expected_status: int) -> dict[str, Any]:
    """Assert an RFC 9457 problem+json body and return it."""
    assert response.status_code == expected_status
    assert response.headers["content-type"].startswith("application/problem+json")
    data = response.json()
    for field in ("type", "title", "status", "instance"):
        assert field in data, f"Missing required field: {field}"
    assert data["status"] == expected_status
    assert data["instance"].startswith("urn:formloom:trace:")
    return data

"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import random
import uuid
from datetime import datetime, timezone, timedelta
from typing import Any, Optional

import jwt  # PyJWT
import pytest
from fastapi.testclient import TestClient

from api import app
from api.dependencies import reset_container
from modules.challenges.memory import InMemoryChallengeRepository
from modules.challenges.obfuscation import PlainObfuscator
from modules.challenges.service import ChallengeService
from modules.debates.memory import InMemoryDebateRepository
from modules.debates.models import (
    ArenaPolicy,
    Debate,
    DebateStatus,
    Participant,
    Side,
    Stage,
    StageRequest,
    StageStatus,
)
from shared.config import get_settings
from shared.models import Actor, ActorRole


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

VALID_CONTENT = "Lobsters are a keystone species and deserve protection. " * 2


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = NOW):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: Any) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
    email_verified: bool = True,
    app_metadata: Optional[dict[str, Any]] = None,
) -> str:
    """
    Create a test JWT token for authentication.

    Args:
        user_id: User ID to include in the token
        email: Email to include in the token
        expired: If True, creates an expired token
        email_verified: Whether the email should be marked as verified
        app_metadata: Server-side claims (user_type, is_claimed, ...)

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload = {
        "sub": user_id,
        "email": email,
        "email_confirmed_at": now.isoformat() if email_verified else None,
        "aud": "authenticated",
        "role": "authenticated",
        "app_metadata": app_metadata or {},
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def make_debate(
    repo: InMemoryDebateRepository,
    status: DebateStatus = DebateStatus.ACTIVE,
    **overrides: Any,
) -> Debate:
    """Seed a debate directly into the repository."""
    fields = {
        "id": str(uuid.uuid4()),
        "title": "Should lobsters have rights?",
        "description": "A debate about crustacean welfare and legal standing.",
        "status": status,
        "max_arguments_per_side": 5,
    }
    fields.update(overrides)
    return repo.add_debate(Debate(**fields))


def make_stage(
    repo: InMemoryDebateRepository,
    debate: Debate,
    status: StageStatus = StageStatus.ACTIVE,
    stage_order: int = 1,
    name: str = "Opening",
) -> Stage:
    return repo.create_stage(
        debate.id, StageRequest(name=name, stage_order=stage_order, status=status)
    )


# Lets fixtures seed rows whatever the debate status
ANY_STATUS = frozenset(DebateStatus)


def join(repo: InMemoryDebateRepository, debate: Debate, actor: Actor, side: Side) -> Participant:
    return repo.add_participant(debate.id, actor.id, side)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the settings cache and service container around each test."""
    get_settings.cache_clear()
    reset_container()
    yield
    reset_container()
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def policy() -> ArenaPolicy:
    """Short minimum length so test content stays readable."""
    return ArenaPolicy(argument_min_length=20, argument_max_length=3000)


@pytest.fixture
def debate_repo() -> InMemoryDebateRepository:
    return InMemoryDebateRepository()


@pytest.fixture
def challenge_repo() -> InMemoryChallengeRepository:
    return InMemoryChallengeRepository()


@pytest.fixture
def challenge_service(challenge_repo, clock) -> ChallengeService:
    """Challenges only for unclaimed agents; readable problem text."""
    return ChallengeService(
        repository=challenge_repo,
        clock=clock,
        rng=random.Random(7),
        obfuscator=PlainObfuscator(),
        challenge_rate=0.0,
    )


@pytest.fixture
def agent_for() -> Actor:
    return Actor(id="agent-for", role=ActorRole.AGENT)


@pytest.fixture
def agent_against() -> Actor:
    return Actor(id="agent-against", role=ActorRole.AGENT)


@pytest.fixture
def unclaimed_agent() -> Actor:
    return Actor(id="agent-unclaimed", role=ActorRole.AGENT, is_claimed=False)


@pytest.fixture
def human() -> Actor:
    return Actor(id="human-1", role=ActorRole.HUMAN)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role=ActorRole.ADMIN)


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return "test-user-123"


@pytest.fixture
def auth_token(test_user_id: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}


def headers_for(user_id: str, user_type: str = "human", **claims: Any) -> dict[str, str]:
    """Authorization headers for a user with the given arena claims."""
    token = create_test_token(user_id=user_id, app_metadata={"user_type": user_type, **claims})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(monkeypatch):
    """
    TestClient backed by in-memory storage.

    Settings come from the environment, so the container built on the
    first request picks up these values.
    """
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("ARGUMENT_MIN_LENGTH", "20")
    monkeypatch.setenv("CHALLENGE_RATE", "0")
    get_settings.cache_clear()
    reset_container()

    return TestClient(app)

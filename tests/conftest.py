"""Test fixtures — in-memory stores, fast bcrypt, and an ASGI client.

Learn: The API tests run the real app (middleware, error handlers, auth
dependencies, services, hasher, token service, limiter) and only swap
the two SQLAlchemy stores for in-memory fakes through
app.dependency_overrides. No database or network is needed.

bcrypt cost 4 (the minimum) keeps each hash around a millisecond.
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from devnorth.api.competencies import get_competency_store
from devnorth.auth.dependencies import get_user_store
from devnorth.auth.password import PasswordHasher
from devnorth.auth.tokens import SigningKeyRing, TokenService
from devnorth.config import Settings
from devnorth.domain.competency import Competency
from devnorth.domain.user import User, UserRole
from devnorth.errors import (
    CompetencyAlreadyExistsError,
    CompetencyNotFoundError,
    EmailAlreadyExistsError,
    UserNotFoundError,
)
from devnorth.main import create_app

KEY1 = "k1-" + "a" * 40
KEY2 = "k2-" + "b" * 40


# ─── Fakes ──────────────────────────────────────────────


class InMemoryUserStore:
    """UserStore fake with case-insensitive emails (like the CITEXT column)."""

    def __init__(self):
        self.users: dict[str, User] = {}
        self._ids = itertools.count(1)

    async def get_by_email(self, email: str) -> User:
        try:
            return self.users[email.lower()]
        except KeyError:
            raise UserNotFoundError()

    async def create(self, email: str, hashed_password: str, role: UserRole) -> User:
        if email.lower() in self.users:
            raise EmailAlreadyExistsError()
        now = datetime.now(timezone.utc)
        user = User(
            id=next(self._ids),
            email=email,
            hashed_password=hashed_password,
            role=role,
            created_at=now,
            updated_at=now,
        )
        self.users[email.lower()] = user
        return user


class InMemoryCompetencyStore:
    def __init__(self):
        self.items: dict[int, Competency] = {}
        self._ids = itertools.count(1)

    async def create(self, name: str, description: str) -> Competency:
        if any(c.name.lower() == name.lower() for c in self.items.values()):
            raise CompetencyAlreadyExistsError()
        now = datetime.now(timezone.utc)
        competency = Competency(
            id=next(self._ids), name=name, description=description,
            created_at=now, updated_at=now,
        )
        self.items[competency.id] = competency
        return competency

    async def get_by_id(self, competency_id: int) -> Competency:
        try:
            return self.items[competency_id]
        except KeyError:
            raise CompetencyNotFoundError()

    async def get_by_name(self, name: str) -> Competency:
        for competency in self.items.values():
            if competency.name.lower() == name.lower():
                return competency
        raise CompetencyNotFoundError()

    async def list_all(self) -> list[Competency]:
        return sorted(self.items.values(), key=lambda c: c.name.lower())

    async def update_description(self, competency_id: int, description: str) -> Competency:
        competency = await self.get_by_id(competency_id)
        competency.description = description
        competency.updated_at = datetime.now(timezone.utc)
        return competency


class FakeClock:
    """Manually advanced clock returning aware datetimes."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Manually advanced float clock for the rate limiter."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ─── Core components ────────────────────────────────────


@pytest.fixture(scope="session")
def hasher():
    return PasswordHasher(cost=4)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def key_ring():
    return SigningKeyRing({"key1": KEY1}, current_key_id="key1")


@pytest.fixture()
def token_service(key_ring, clock):
    return TokenService(key_ring, timedelta(minutes=15), clock=clock)


@pytest.fixture()
def user_store():
    return InMemoryUserStore()


@pytest.fixture()
def competency_store():
    return InMemoryCompetencyStore()


# ─── App + HTTP client ──────────────────────────────────


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "jwt_keys": {"key1": KEY1, "key2": KEY2},
        "jwt_current_key_id": "key1",
        "bcrypt_cost": 4,
        "auth_rate_limit_requests": 10,
        "auth_rate_limit_window_seconds": 60,
    }
    values.update(overrides)
    return Settings(**values)


def make_app(user_store, competency_store, **overrides):
    app = create_app(make_settings(**overrides))
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_competency_store] = lambda: competency_store
    return app


@pytest.fixture()
def app(user_store, competency_store):
    return make_app(user_store, competency_store)


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register_and_login(client, email="dev@example.com", password="correct-horse-1"):
    """Register a user and return its bearer token."""
    r = await client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert r.status_code == 201, r.text
    return r.json()["token"]

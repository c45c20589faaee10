"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory AuthRepository / ProfileRepository pair
- A scripted availability checker whose answers the test releases
- Domain services wired against those fakes
- A migrated PostgreSQL pool for integration and adversarial tests
"""

import asyncio
from collections.abc import Generator
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from src.domain.auth import AuthService
from src.domain.availability import UsernameAvailabilityService
from src.domain.cancellation import CancellationToken
from src.domain.exceptions import AuthBackendError
from src.domain.ports import (
    AuthCodePurpose,
    AvailabilityResult,
    Profile,
    ProfileUpdate,
    Session,
    StoredCredentials,
    User,
)


class InMemoryAuthRepository:
    """Dict-backed AuthRepository + ProfileRepository + UsernameRepository."""

    def __init__(self, reserved: tuple[str, ...] = ("admin",)) -> None:
        self.reserved = set(reserved)
        self.users: dict[str, User] = {}
        self.hashes: dict[str, str] = {}
        self.profiles: dict[str, Profile] = {}
        self.sessions: dict[str, Session] = {}
        self.codes: dict[str, tuple[str, AuthCodePurpose]] = {}

    def is_username_available(self, username: str) -> bool:
        taken = {p.username for p in self.profiles.values()}
        return username not in self.reserved and username not in taken

    def create_user(self, email, password_hash, username, display_name, email_confirmed) -> User:
        if any(u.email == email for u in self.users.values()):
            raise AuthBackendError("User already registered", code="email_taken")
        if not self.is_username_available(username):
            raise AuthBackendError("Username already taken", code="username_taken")
        user = User(
            id=f"user-{len(self.users) + 1}",
            email=email,
            username=username,
            display_name=display_name,
            email_confirmed=email_confirmed,
        )
        self.users[user.id] = user
        self.hashes[user.id] = password_hash
        self.profiles[user.id] = Profile(id=user.id, username=username, display_name=display_name)
        return user

    def get_credentials(self, email: str) -> StoredCredentials | None:
        for user in self.users.values():
            if user.email == email:
                return StoredCredentials(user=user, password_hash=self.hashes[user.id])
        return None

    def confirm_email(self, user_id: str) -> User:
        self.users[user_id] = replace(self.users[user_id], email_confirmed=True)
        return self.users[user_id]

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        self.hashes[user_id] = password_hash

    def create_session(self, user_id: str, access_token: str, ttl_seconds: int) -> Session:
        session = Session(
            access_token=access_token,
            user=self.users[user_id],
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
        )
        self.sessions[access_token] = session
        return session

    def get_session(self, access_token: str) -> Session | None:
        return self.sessions.get(access_token)

    def delete_session(self, access_token: str) -> None:
        self.sessions.pop(access_token, None)

    def create_auth_code(self, user_id: str, code: str, purpose: AuthCodePurpose) -> None:
        self.codes[code] = (user_id, purpose)

    def consume_auth_code(self, code: str, purpose: AuthCodePurpose) -> User | None:
        entry = self.codes.get(code)
        if entry is None or entry[1] is not purpose:
            return None
        del self.codes[code]
        return self.users[entry[0]]

    # ProfileRepository
    def get_by_id(self, user_id: str) -> Profile | None:
        return self.profiles.get(user_id)

    def get_by_username(self, username: str) -> Profile | None:
        return next((p for p in self.profiles.values() if p.username == username), None)

    def update(self, user_id: str, updates: ProfileUpdate) -> Profile:
        self.profiles[user_id] = replace(self.profiles[user_id], **updates.changes())
        return self.profiles[user_id]


class ScriptedChecker:
    """
    AvailabilityChecker whose answers are released by the test.

    Each call parks on a future; release() resolves the oldest pending call
    for a username. Calls are shielded so a late release after cancellation
    behaves like a server response arriving for a superseded request.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.tokens: list[CancellationToken] = []
        self._pending: dict[str, list[asyncio.Future]] = {}

    async def check_availability(
        self, username: str, token: CancellationToken
    ) -> AvailabilityResult:
        self.calls.append(username)
        self.tokens.append(token)
        future = asyncio.get_running_loop().create_future()
        self._pending.setdefault(username, []).append(future)
        return await asyncio.shield(future)

    def release(self, username: str, result: AvailabilityResult | Exception) -> None:
        future = self._pending[username].pop(0)
        if isinstance(result, Exception):
            future.set_exception(result)
        else:
            future.set_result(result)


@pytest.fixture
def memory_repository() -> InMemoryAuthRepository:
    """Fresh in-memory repository per test."""
    return InMemoryAuthRepository()


@pytest.fixture
def email_sender() -> Mock:
    """Mock EmailSender recording every link."""
    return Mock()


@pytest.fixture
def auth_service(memory_repository: InMemoryAuthRepository, email_sender: Mock) -> AuthService:
    """AuthService over the in-memory repository, no email confirmation."""
    return AuthService(
        repository=memory_repository,
        usernames=UsernameAvailabilityService(repository=memory_repository),
        email_sender=email_sender,
        site_url="http://testserver",
        require_email_confirmation=False,
        bcrypt_cost=4,
    )


@pytest.fixture
def scripted_checker() -> ScriptedChecker:
    """Availability checker driven by the test."""
    return ScriptedChecker()


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against the configured database, migrated once.

    Tests that request it are skipped when PostgreSQL is unreachable.
    """
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    try:
        pool.wait(timeout=5)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty every account table before the test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM auth_codes")
        conn.execute("DELETE FROM sessions")
        conn.execute("DELETE FROM profiles")
        conn.execute("DELETE FROM users")
        conn.commit()
    yield

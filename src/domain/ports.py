"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the plain value types that cross them.
Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

from .cancellation import CancellationToken


@dataclass(frozen=True)
class AvailabilityResult:
    """Answer to a username availability check."""

    available: bool
    message: str | None = None
    failed: bool = False  # transport or server failure, not a real answer


@dataclass(frozen=True)
class User:
    """Authenticated account, as exposed to callers (never the hash)."""

    id: str
    email: str
    username: str | None = None
    display_name: str | None = None
    email_confirmed: bool = False


@dataclass(frozen=True)
class Session:
    """Opaque bearer session for a signed-in user."""

    access_token: str
    user: User
    expires_at: datetime


@dataclass(frozen=True)
class Profile:
    """Public profile row backing a claimed username."""

    id: str
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class AuthResult:
    """Outcome of sign up / sign in. session is None until email is confirmed."""

    user: User
    session: Session | None = None


@dataclass(frozen=True)
class StoredCredentials:
    """User plus password hash, only ever handled inside the domain."""

    user: User
    password_hash: str


class AuthEvent(str, Enum):
    """
    Auth state change events.

    Emitted by AuthService to subscribers registered through
    on_auth_state_change().
    """

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
    USER_UPDATED = "USER_UPDATED"


class AuthCodePurpose(str, Enum):
    """What a one-time emailed code grants."""

    CONFIRM_EMAIL = "confirm_email"
    RECOVERY = "recovery"


@dataclass(frozen=True)
class ProfileUpdate:
    """Partial profile update; None fields are left untouched."""

    username: str | None = None
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None

    def changes(self) -> dict[str, str]:
        return {k: v for k, v in vars(self).items() if v is not None}


class AvailabilityChecker(Protocol):
    """Port interface for client-side availability checks."""

    async def check_availability(
        self, username: str, token: CancellationToken
    ) -> AvailabilityResult:
        """
        Ask the backend whether a username is free.

        Args:
            username: Format-validated, non-normalized username
            token: Cancellation token owned by the caller

        Returns:
            AvailabilityResult; transport failures come back as
            available=False with a message instead of raising

        Raises:
            CheckCancelled: If the token was cancelled before or during the call
        """
        ...


class UsernameRepository(Protocol):
    """Port interface for server-side username lookups."""

    def is_username_available(self, username: str) -> bool:
        """
        Check a normalized username against reserved and claimed names.

        Raises:
            AvailabilityBackendError: If the store cannot answer
        """
        ...


class AuthRepository(Protocol):
    """Port interface for account, session and one-time code persistence."""

    def create_user(
        self,
        email: str,
        password_hash: str,
        username: str,
        display_name: str,
        email_confirmed: bool,
    ) -> User:
        """
        Create the account and its profile atomically.

        Raises:
            AuthBackendError: "User already registered" on duplicate email,
                "Username already taken" on duplicate username
        """
        ...

    def get_credentials(self, email: str) -> StoredCredentials | None:
        """Fetch user and password hash by normalized email."""
        ...

    def confirm_email(self, user_id: str) -> User:
        """Mark the user's email as confirmed."""
        ...

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        """Replace the stored bcrypt hash."""
        ...

    def create_session(self, user_id: str, access_token: str, ttl_seconds: int) -> Session:
        """Persist a new session for the user."""
        ...

    def get_session(self, access_token: str) -> Session | None:
        """Return the live (unexpired) session for a token, if any."""
        ...

    def delete_session(self, access_token: str) -> None:
        """Remove a session; unknown tokens are ignored."""
        ...

    def create_auth_code(self, user_id: str, code: str, purpose: AuthCodePurpose) -> None:
        """Store a one-time code for the user."""
        ...

    def consume_auth_code(self, code: str, purpose: AuthCodePurpose) -> User | None:
        """Atomically delete a code and return its user, or None if unknown."""
        ...


class ProfileRepository(Protocol):
    """Port interface for profile reads and updates."""

    def get_by_id(self, user_id: str) -> Profile | None:
        """Profile for a user id, None when no row exists."""
        ...

    def get_by_username(self, username: str) -> Profile | None:
        """Profile for a normalized username, None when no row exists."""
        ...

    def update(self, user_id: str, updates: ProfileUpdate) -> Profile:
        """Apply a partial update and return the new row."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_confirmation_link(self, email: str, link: str) -> None:
        """Send the sign-up confirmation link."""
        ...

    def send_password_reset_link(self, email: str, link: str) -> None:
        """Send the password recovery link."""
        ...


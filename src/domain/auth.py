"""
Auth domain service - email/password accounts bound to a claimed username.

Flows:
- sign_up: validate, re-check username availability, hash, create account
  and profile. With email confirmation on, a one-time code is emailed and
  no session is issued until exchange_code_for_session().
- sign_in / sign_out: bearer sessions stored by the repository.
- reset_password_for_email: emails a recovery code; exchanging it yields a
  session from which update_password() can be called.

Backend failures arrive as AuthBackendError carrying the raw backend
message; map_auth_error() turns them into stable user-facing AuthErrors.

Every session transition is broadcast to on_auth_state_change()
subscribers as (AuthEvent, Session | None).
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import urlencode, urlsplit

import bcrypt

from .availability import UsernameAvailabilityService
from .exceptions import AuthBackendError, AuthError
from .ports import (
    AuthCodePurpose,
    AuthEvent,
    AuthRepository,
    AuthResult,
    EmailSender,
    Session,
    User,
)
from .validation import normalize_username, validate_email, validate_password, validate_username

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthEvent, Session | None], None]

# Compared against when the email is unknown so sign-in always pays the bcrypt cost.
# Must match the work factor of stored hashes, so one is cached per cost.
_DUMMY_PASSWORD = b"dummy_password_for_timing_safety"
_dummy_hashes: dict[int, bytes] = {}


def dummy_hash(cost: int) -> bytes:
    """bcrypt hash of a throwaway password at the given work factor, cached."""
    if cost not in _dummy_hashes:
        _dummy_hashes[cost] = bcrypt.hashpw(_DUMMY_PASSWORD, bcrypt.gensalt(rounds=cost))
    return _dummy_hashes[cost]


def map_auth_error(error: AuthBackendError) -> AuthError:
    """
    Map a raw backend failure to a user-facing AuthError.

    Username conflicts are recognised by their structured code. Everything
    else goes through the substring rules in order; the first match wins.
    """
    if error.code == "username_taken":
        return AuthError("username_taken", "Username is already taken")

    message = error.message.lower()

    if "invalid login credentials" in message or "invalid_credentials" in message:
        return AuthError("invalid_credentials", "Invalid email or password")

    if "email not confirmed" in message:
        return AuthError("email_not_confirmed", "Please verify your email before logging in")

    if "user not found" in message:
        return AuthError("user_not_found", "No account found with this email")

    if "weak password" in message or "password" in message:
        return AuthError("weak_password", "Password does not meet requirements")

    if "already registered" in message or "email" in message:
        return AuthError("email_taken", "An account with this email already exists")

    if "rate limit" in message or "too many" in message:
        return AuthError("rate_limit_exceeded", "Too many attempts. Please try again later.")

    return AuthError("unknown", error.message or "An unexpected error occurred")


@dataclass
class AuthService:
    """
    Domain service for account and session management.

    Stateless apart from the listener registry; persistence is delegated
    to the AuthRepository port.
    """

    repository: AuthRepository
    usernames: UsernameAvailabilityService
    email_sender: EmailSender
    site_url: str = "http://localhost:8000"
    require_email_confirmation: bool = True
    session_ttl_seconds: int = 60 * 60 * 24 * 7
    bcrypt_cost: int = 10
    _listeners: list[AuthListener] = field(default_factory=list, init=False, repr=False)

    def sign_up(
        self,
        email: str,
        password: str,
        username: str,
        display_name: str | None = None,
    ) -> AuthResult:
        """
        Create an account for a claimed username.

        Returns:
            AuthResult; session is None when email confirmation is required

        Raises:
            AuthError: validation_failed, username_taken, email_taken, ...
        """
        for validation in (
            validate_username(username),
            validate_email(email),
            validate_password(password),
        ):
            if not validation.is_valid:
                raise AuthError("validation_failed", validation.error or "Invalid input")

        if not self.usernames.is_available(username):
            raise AuthError("username_taken", "Username is already taken")

        normalized_email = self._normalize_email(email)
        normalized_username = normalize_username(username)
        try:
            user = self.repository.create_user(
                email=normalized_email,
                password_hash=self._hash_password(password),
                username=normalized_username,
                display_name=display_name or username,
                email_confirmed=not self.require_email_confirmation,
            )
        except AuthBackendError as e:
            raise map_auth_error(e) from None

        logger.info("Created account for username %s", normalized_username)

        if self.require_email_confirmation:
            code = self._generate_code()
            self.repository.create_auth_code(user.id, code, AuthCodePurpose.CONFIRM_EMAIL)
            link = f"{self.site_url}/v1/auth/callback?{urlencode({'code': code})}"
            self.email_sender.send_confirmation_link(normalized_email, link)
            return AuthResult(user=user, session=None)

        return AuthResult(user=user, session=self._start_session(user))

    def sign_in(self, email: str, password: str) -> AuthResult:
        """
        Sign in with email and password.

        Raises:
            AuthError: invalid_credentials or email_not_confirmed
        """
        credentials = self.repository.get_credentials(self._normalize_email(email))

        stored_hash = (
            credentials.password_hash.encode()
            if credentials is not None
            else dummy_hash(self.bcrypt_cost)
        )
        password_valid = bcrypt.checkpw(password.encode(), stored_hash)

        if credentials is None or not password_valid:
            raise map_auth_error(AuthBackendError("Invalid login credentials"))

        if not credentials.user.email_confirmed:
            raise map_auth_error(AuthBackendError("Email not confirmed"))

        return AuthResult(user=credentials.user, session=self._start_session(credentials.user))

    def sign_out(self, access_token: str) -> None:
        """End a session. Unknown tokens are a no-op."""
        session = self.repository.get_session(access_token)
        self.repository.delete_session(access_token)
        if session is not None:
            self._emit(AuthEvent.SIGNED_OUT, session)

    def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        """
        Email a recovery link pointing at redirect_to.

        redirect_to is a path, or an absolute URL on site_url's origin; the
        recovery code is appended to it. Unknown emails are accepted silently
        so the endpoint cannot be used to enumerate accounts.

        Raises:
            AuthError: validation_failed if redirect_to leaves the site
        """
        target = self._same_site_url(redirect_to)
        normalized_email = self._normalize_email(email)
        credentials = self.repository.get_credentials(normalized_email)
        if credentials is None:
            logger.info("Password reset requested for unknown email")
            return

        code = self._generate_code()
        self.repository.create_auth_code(credentials.user.id, code, AuthCodePurpose.RECOVERY)
        separator = "&" if "?" in target else "?"
        link = f"{target}{separator}{urlencode({'code': code})}"
        self.email_sender.send_password_reset_link(normalized_email, link)

    def exchange_code_for_session(self, code: str) -> AuthResult:
        """
        Trade an emailed one-time code for a session.

        Confirmation codes confirm the email and emit SIGNED_IN; recovery
        codes emit PASSWORD_RECOVERY.

        Raises:
            AuthError: invalid_code if the code is unknown or already used
        """
        user = self.repository.consume_auth_code(code, AuthCodePurpose.CONFIRM_EMAIL)
        if user is not None:
            user = self.repository.confirm_email(user.id)
            return AuthResult(user=user, session=self._start_session(user))

        user = self.repository.consume_auth_code(code, AuthCodePurpose.RECOVERY)
        if user is not None:
            session = self._start_session(user, event=AuthEvent.PASSWORD_RECOVERY)
            return AuthResult(user=user, session=session)

        raise AuthError("invalid_code", "This link is invalid or has expired")

    def update_password(self, access_token: str, new_password: str) -> User:
        """
        Replace the password of the session's user.

        Raises:
            AuthError: invalid_session or validation_failed
        """
        session = self.require_session(access_token)

        validation = validate_password(new_password)
        if not validation.is_valid:
            raise AuthError("validation_failed", validation.error or "Invalid password")

        self.repository.update_password_hash(session.user.id, self._hash_password(new_password))
        self._emit(AuthEvent.USER_UPDATED, session)
        return session.user

    def get_session(self, access_token: str | None) -> Session | None:
        """Return the live session for a token, or None."""
        if not access_token:
            return None
        return self.repository.get_session(access_token)

    def require_session(self, access_token: str | None) -> Session:
        """
        Like get_session() but raise when there is no live session.

        Raises:
            AuthError: invalid_session
        """
        session = self.get_session(access_token)
        if session is None:
            raise AuthError("invalid_session", "Your session has expired. Please sign in again.")
        return session

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Subscribe to auth events. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _start_session(self, user: User, event: AuthEvent = AuthEvent.SIGNED_IN) -> Session:
        session = self.repository.create_session(
            user.id, secrets.token_urlsafe(32), self.session_ttl_seconds
        )
        self._emit(event, session)
        return session

    def _emit(self, event: AuthEvent, session: Session | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception("Auth state listener failed on %s", event.value)

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()

    def _same_site_url(self, redirect_to: str) -> str:
        """Resolve redirect_to against site_url, refusing any other origin."""
        site = urlsplit(self.site_url)
        target = urlsplit(redirect_to.strip())

        if not target.scheme and not target.netloc:
            path = redirect_to.strip()
            if path.startswith("/") and not path.startswith("//") and "\\" not in path:
                return f"{self.site_url.rstrip('/')}{path}"
        elif (target.scheme, target.netloc.lower()) == (site.scheme, site.netloc.lower()):
            return redirect_to.strip()

        logger.warning("Rejected recovery redirect outside %s", self.site_url)
        raise AuthError("validation_failed", "Redirect URL is not allowed")

    def _generate_code(self) -> str:
        """Unguessable single-use code for emailed links."""
        return secrets.token_urlsafe(24)

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()

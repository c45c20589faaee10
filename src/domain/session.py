"""
Auth state sync - client-side view of "who is signed in".

Holds the current access token, caches its session and the signed-in
user's profile, and keeps both in step with AuthService events:

- SIGNED_IN: adopt the new session and navigate to the user's profile page
- SIGNED_OUT: drop everything and navigate home
- PASSWORD_RECOVERY: adopt the session without navigating
- USER_UPDATED: refetch on next load

Cached values never expire by time; they are only dropped when an event
invalidates them. Events for a different user than the one being tracked
are ignored, except session-starting events while nobody is signed in.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .auth import AuthService
from .navigation import HOME_PATH, post_auth_redirect, resolve_redirect
from .ports import AuthEvent, Profile, ProfileRepository, Session, User

logger = logging.getLogger(__name__)

Navigate = Callable[[str], None]


@dataclass(frozen=True)
class AuthState:
    """Snapshot exposed to the presentation layer."""

    user: User | None = None
    profile: Profile | None = None
    is_loading: bool = True
    is_authenticated: bool = False


_UNSET = object()
_SESSION_STARTING_EVENTS = (AuthEvent.SIGNED_IN, AuthEvent.PASSWORD_RECOVERY)


class AuthStateSync:
    """Session and profile cache driven by auth state change events."""

    def __init__(
        self,
        auth: AuthService,
        profiles: ProfileRepository,
        navigate: Navigate | None = None,
        access_token: str | None = None,
    ) -> None:
        self._auth = auth
        self._profiles = profiles
        self._navigate = navigate
        self._access_token = access_token

        self._session: Session | None | object = _UNSET
        self._profile: Profile | None | object = _UNSET
        self._state = AuthState()

        self._unsubscribe = auth.on_auth_state_change(self._on_auth_event)

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def access_token(self) -> str | None:
        return self._access_token

    def load(self) -> AuthState:
        """Resolve session then profile, using the caches when still valid."""
        session = self._current_session()
        user = session.user if session is not None else None

        profile = None
        if user is not None:
            if self._profile is _UNSET:
                self._profile = self._profiles.get_by_id(user.id)
            profile = self._profile

        self._state = AuthState(
            user=user,
            profile=profile,
            is_loading=False,
            is_authenticated=user is not None,
        )
        return self._state

    def refresh_profile(self) -> AuthState:
        """Refetch the profile of the signed-in user."""
        self._profile = _UNSET
        return self.load()

    def guard(self, pathname: str) -> str | None:
        """Redirect target for pathname given the current user, if any."""
        return resolve_redirect(pathname, self.load().user)

    def sign_out(self) -> None:
        """Sign out through the auth service; the event clears local state."""
        if self._access_token is None:
            return
        self._auth.sign_out(self._access_token)

    def close(self) -> None:
        """Stop listening for auth events."""
        self._unsubscribe()

    def _current_session(self) -> Session | None:
        if self._session is _UNSET:
            self._session = self._auth.get_session(self._access_token)
        return self._session

    def _invalidate(self) -> None:
        self._session = _UNSET
        self._profile = _UNSET

    def _current_user(self) -> User | None:
        session = self._current_session()
        return session.user if session is not None else None

    def _tracks(self, session: Session | None) -> bool:
        if session is None:
            return False
        current = self._current_user()
        if current is not None:
            return session.user.id == current.id
        return session.access_token == self._access_token

    def _on_auth_event(self, event: AuthEvent, session: Session | None) -> None:
        if event in _SESSION_STARTING_EVENTS and session is not None:
            current = self._current_user()
            if current is not None and session.user.id != current.id:
                return
            self._access_token = session.access_token
            self._invalidate()
            self.load()
            if event is AuthEvent.SIGNED_IN:
                self._go(post_auth_redirect(session.user))
            return

        if not self._tracks(session):
            return

        if event is AuthEvent.SIGNED_OUT:
            self._access_token = None
            self._session = None
            self._profile = None
            self._state = AuthState(is_loading=False)
            self._go(HOME_PATH)
            return

        self._access_token = session.access_token
        self._invalidate()

    def _go(self, path: str) -> None:
        if self._navigate is None:
            return
        logger.debug("Auth state change navigation to %s", path)
        self._navigate(path)

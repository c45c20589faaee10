"""
Username check controller - debounced availability state machine.

This module drives the username field of the claim and sign-up forms:
synchronous format validation on every keystroke, then a debounced,
cancellable availability check against the backend.

State Machine
=============

    IDLE -> (INVALID | DEBOUNCING -> CHECKING -> (AVAILABLE | UNAVAILABLE | CHECK_FAILED))

Any keystroke interrupts DEBOUNCING or CHECKING and restarts validation.

Ordering guarantees:
- Every keystroke cancels the pending debounce timer and the in-flight check.
- A check always gets a fresh CancellationToken; the previous one is
  cancelled before the new request is issued.
- A cancelled check applies nothing, so only the most recently scheduled
  check can ever write is_available.

The controller owns exactly one timer handle and one request slot. Both are
released on reset() or close(), after which no late completion can reach
the state.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from .cancellation import CancellationToken
from .exceptions import CheckCancelled
from .ports import AvailabilityChecker, AvailabilityResult
from .validation import validate_username

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5
TAKEN_MESSAGE = "Username is taken"
CHECK_FAILED_MESSAGE = "Unable to check availability. Please try again."


@dataclass(frozen=True)
class UsernameCheckState:
    """Snapshot rendered by the username field."""

    value: str = ""
    is_valid: bool = False
    is_checking: bool = False
    is_available: bool | None = None
    error: str | None = None


class CheckPhase(str, Enum):
    """Where the controller currently sits in the state machine."""

    IDLE = "idle"
    INVALID = "invalid"
    DEBOUNCING = "debouncing"
    CHECKING = "checking"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    CHECK_FAILED = "check_failed"


StateListener = Callable[[UsernameCheckState], None]


class UsernameCheckController:
    """
    Debounce controller for a single username input.

    Must be driven from inside a running event loop: on_change() schedules
    its timer on the current loop.
    """

    def __init__(
        self,
        checker: AvailabilityChecker,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        owns_checker: bool = False,
    ) -> None:
        self._checker = checker
        self._owns_checker = owns_checker
        self._debounce_seconds = debounce_seconds
        self._state = UsernameCheckState()
        self._phase = CheckPhase.IDLE
        self._listeners: list[StateListener] = []

        self._debounce_handle: asyncio.TimerHandle | None = None
        self._check_token: CancellationToken | None = None
        self._check_task: asyncio.Task | None = None

    @property
    def state(self) -> UsernameCheckState:
        return self._state

    @property
    def phase(self) -> CheckPhase:
        return self._phase

    @property
    def check_task(self) -> asyncio.Task | None:
        """The in-flight availability check, if any."""
        return self._check_task

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_change(self, value: str) -> None:
        """
        Handle a keystroke.

        Validation runs synchronously; a valid value schedules an
        availability check once input has been quiet for the debounce period.
        """
        self._cancel_debounce()
        self._cancel_check()

        validation = validate_username(value)
        if not validation.is_valid:
            self._set(
                CheckPhase.INVALID,
                value=value,
                is_valid=False,
                is_checking=False,
                is_available=None,
                error=validation.error,
            )
            return

        self._set(
            CheckPhase.DEBOUNCING,
            value=value,
            is_valid=True,
            is_checking=False,
            is_available=None,
            error=None,
        )
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self._debounce_seconds, self._start_check, value)

    def reset(self) -> None:
        """Cancel pending work and restore defaults."""
        self._cancel_debounce()
        self._cancel_check()
        self._state = UsernameCheckState()
        self._phase = CheckPhase.IDLE
        self._notify()

    def close(self) -> None:
        """Release timer and request and drop listeners. Idempotent."""
        self._cancel_debounce()
        self._cancel_check()
        self._listeners.clear()

    async def aclose(self) -> None:
        """close(), then release the checker's connections if this controller owns it."""
        self.close()
        if not self._owns_checker:
            return
        self._owns_checker = False
        checker_aclose = getattr(self._checker, "aclose", None)
        if checker_aclose is not None:
            await checker_aclose()

    async def __aenter__(self) -> "UsernameCheckController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _start_check(self, value: str) -> None:
        self._debounce_handle = None
        self._cancel_check()

        token = CancellationToken()
        self._check_token = token
        self._set(CheckPhase.CHECKING, is_checking=True, is_available=None, error=None)

        loop = asyncio.get_running_loop()
        self._check_task = loop.create_task(self._run_check(value, token))

    async def _run_check(self, value: str, token: CancellationToken) -> None:
        try:
            result = await self._checker.check_availability(value, token)
        except CheckCancelled:
            return
        except Exception:
            if token.cancelled:
                return
            logger.warning("Availability check failed for %r", value, exc_info=True)
            self._apply_failure(CHECK_FAILED_MESSAGE)
            return

        # Superseded while the result was in transit
        if token.cancelled or token is not self._check_token:
            return

        self._apply_result(result)

    def _apply_result(self, result: AvailabilityResult) -> None:
        self._check_token = None
        self._check_task = None

        if result.failed:
            self._apply_failure(result.message or CHECK_FAILED_MESSAGE)
        elif result.available:
            self._set(CheckPhase.AVAILABLE, is_checking=False, is_available=True, error=None)
        else:
            self._set(
                CheckPhase.UNAVAILABLE,
                is_checking=False,
                is_available=False,
                error=result.message or TAKEN_MESSAGE,
            )

    def _apply_failure(self, message: str) -> None:
        self._check_token = None
        self._check_task = None
        self._set(CheckPhase.CHECK_FAILED, is_checking=False, is_available=False, error=message)

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _cancel_check(self) -> None:
        if self._check_token is not None:
            self._check_token.cancel()
            self._check_token = None
        if self._check_task is not None:
            if not self._check_task.done():
                self._check_task.cancel()
            self._check_task = None

    def _set(self, phase: CheckPhase, **changes) -> None:
        self._state = replace(self._state, **changes)
        self._phase = phase
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

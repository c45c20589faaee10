"""
Mock availability client - Implements AvailabilityChecker protocol in memory.

Answers from a static list of taken usernames after a simulated network
delay. Used for local demos and for exercising the debounce controller
without a running backend.
"""

import asyncio
import logging
from collections.abc import Iterable

from src.domain.cancellation import CancellationToken
from src.domain.ports import AvailabilityResult
from src.domain.validation import normalize_username

logger = logging.getLogger(__name__)


class MockAvailabilityClient:
    """
    Implements AvailabilityChecker protocol against a fixed taken list.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, taken: Iterable[str], latency_seconds: float = 0.3) -> None:
        self._taken = frozenset(normalize_username(name) for name in taken)
        self._latency_seconds = latency_seconds

    async def check_availability(
        self, username: str, token: CancellationToken
    ) -> AvailabilityResult:
        """
        Check username against the taken list after the simulated latency.

        Raises:
            CheckCancelled: If the token fires while "in flight"
        """
        await token.guard(asyncio.sleep(self._latency_seconds))

        if normalize_username(username) in self._taken:
            logger.debug("Mock availability: %r is taken", username)
            return AvailabilityResult(available=False, message="Username is already taken")

        return AvailabilityResult(available=True, message="Username is available")

"""
HTTP availability client - Implements AvailabilityChecker protocol.

Calls GET <check_username_url>?username=<raw> with httpx and maps every
outcome onto an AvailabilityResult. Only cancellation escapes as an
exception; transport errors, bad bodies and non-2xx statuses all come back
as available=False so the form can show an inline message.
"""

import logging

import httpx

from src.domain.cancellation import CancellationToken
from src.domain.ports import AvailabilityResult
from src.domain.username_check import CHECK_FAILED_MESSAGE

logger = logging.getLogger(__name__)

SERVER_ERROR_FALLBACK = "Unable to check availability"


class HttpAvailabilityClient:
    """
    Implements AvailabilityChecker protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The username is sent as typed; the server normalizes it for lookup.
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize client.

        Args:
            url: Absolute URL of the check-username endpoint
            client: Optional shared AsyncClient (owned by the caller)
            timeout: Request timeout in seconds when creating our own client
        """
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def check_availability(
        self, username: str, token: CancellationToken
    ) -> AvailabilityResult:
        """
        Check username availability against the backend.

        Raises:
            CheckCancelled: If the token fires before or during the request
        """
        try:
            response = await token.guard(
                self._client.get(self._url, params={"username": username})
            )
        except httpx.HTTPError as e:
            logger.warning("Availability request failed for %r: %s", username, e)
            return AvailabilityResult(available=False, message=CHECK_FAILED_MESSAGE, failed=True)

        try:
            data = response.json()
        except ValueError:
            logger.warning("Availability response for %r is not JSON", username)
            return AvailabilityResult(available=False, message=CHECK_FAILED_MESSAGE, failed=True)

        if not isinstance(data, dict):
            return AvailabilityResult(available=False, message=CHECK_FAILED_MESSAGE, failed=True)

        if not response.is_success:
            return AvailabilityResult(
                available=False,
                message=data.get("message") or SERVER_ERROR_FALLBACK,
                failed=True,
            )

        available = data.get("available")
        if not isinstance(available, bool):
            return AvailabilityResult(available=False, message=CHECK_FAILED_MESSAGE, failed=True)

        return AvailabilityResult(available=available, message=data.get("message"))

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

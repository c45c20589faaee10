"""
Unit tests for the availability checker adapters.

HttpAvailabilityClient runs against httpx.MockTransport; the mock client
runs against its static taken list.
"""

import asyncio

import httpx
import pytest

from src.adapters.availability.http import HttpAvailabilityClient
from src.adapters.availability.mock import MockAvailabilityClient
from src.domain.cancellation import CancellationToken
from src.domain.exceptions import CheckCancelled
from src.domain.ports import AvailabilityChecker, AvailabilityResult

URL = "http://testserver/v1/check-username"


def run_check(handler, username: str = "Alice_1", token: CancellationToken | None = None):
    """Run one HTTP check against a MockTransport handler."""

    async def scenario() -> AvailabilityResult:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            checker = HttpAvailabilityClient(URL, client=client)
            return await checker.check_availability(username, token or CancellationToken())

    return asyncio.run(scenario())


class TestHttpAvailabilityClient:
    """Tests for HttpAvailabilityClient response mapping."""

    def test_sends_raw_username_as_query_param(self) -> None:
        """The username goes out exactly as typed; the server normalizes."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"available": True})

        run_check(handler, username="Alice_1")

        assert seen[0].method == "GET"
        assert seen[0].url.path == "/v1/check-username"
        assert seen[0].url.params["username"] == "Alice_1"

    def test_available(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"available": True, "message": "Username is available"})

        assert run_check(handler) == AvailabilityResult(True, "Username is available")

    def test_taken(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"available": False, "message": "Username is already taken"}
            )

        result = run_check(handler)

        assert result == AvailabilityResult(False, "Username is already taken", failed=False)

    def test_error_status_surfaces_body_message(self) -> None:
        """A 400 body message is passed through verbatim as a failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"available": False, "message": "Username is required"}
            )

        result = run_check(handler)

        assert result.available is False
        assert result.failed is True
        assert result.message == "Username is required"

    def test_error_status_without_message_uses_fallback(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={})

        result = run_check(handler)

        assert result == AvailabilityResult(False, "Unable to check availability", failed=True)

    def test_transport_error_does_not_raise(self) -> None:
        """Connection failures come back as a failed result."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = run_check(handler)

        assert result == AvailabilityResult(
            False, "Unable to check availability. Please try again.", failed=True
        )

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>oops</html>"),
            httpx.Response(200, json=["not", "an", "object"]),
            httpx.Response(200, json={"available": "yes"}),
        ],
    )
    def test_malformed_body_is_a_failure(self, response: httpx.Response) -> None:
        result = run_check(lambda request: response)

        assert result.available is False
        assert result.failed is True
        assert result.message == "Unable to check availability. Please try again."

    def test_pre_cancelled_token_skips_request(self) -> None:
        """A cancelled token raises before anything is sent."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"available": True})

        token = CancellationToken()
        token.cancel()

        with pytest.raises(CheckCancelled):
            run_check(handler, token=token)
        assert seen == []

    def test_cancel_during_request(self) -> None:
        """Cancelling mid-flight raises CheckCancelled instead of a result."""

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200, json={"available": True})

        async def scenario() -> None:
            token = CancellationToken()
            asyncio.get_running_loop().call_later(0.01, token.cancel)
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                checker = HttpAvailabilityClient(URL, client=client)
                await checker.check_availability("alice", token)

        with pytest.raises(CheckCancelled):
            asyncio.run(scenario())

    def test_owned_client_is_closed(self) -> None:
        """aclose() closes a client the checker created itself."""

        async def scenario() -> HttpAvailabilityClient:
            checker = HttpAvailabilityClient(URL)
            await checker.aclose()
            return checker

        checker = asyncio.run(scenario())

        assert checker._client.is_closed is True

    def test_shared_client_is_left_open(self) -> None:
        async def scenario() -> httpx.AsyncClient:
            client = httpx.AsyncClient()
            await HttpAvailabilityClient(URL, client=client).aclose()
            assert client.is_closed is False
            await client.aclose()
            return client

        asyncio.run(scenario())

    def test_satisfies_protocol(self) -> None:
        def accepts_checker(c: AvailabilityChecker) -> None:
            pass

        accepts_checker(HttpAvailabilityClient(URL, client=httpx.AsyncClient()))


class TestMockAvailabilityClient:
    """Tests for the in-memory mock checker."""

    def test_taken_names_are_case_insensitive(self) -> None:
        checker = MockAvailabilityClient(taken=["Admin", "john"], latency_seconds=0)

        async def scenario() -> list[AvailabilityResult]:
            return [
                await checker.check_availability(name, CancellationToken())
                for name in ("ADMIN", "John", "someone")
            ]

        admin, john, someone = asyncio.run(scenario())

        assert admin == AvailabilityResult(False, "Username is already taken")
        assert john.available is False
        assert someone == AvailabilityResult(True, "Username is available")

    def test_cancel_during_latency(self) -> None:
        checker = MockAvailabilityClient(taken=[], latency_seconds=10)

        async def scenario() -> None:
            token = CancellationToken()
            asyncio.get_running_loop().call_later(0.01, token.cancel)
            await checker.check_availability("alice", token)

        with pytest.raises(CheckCancelled):
            asyncio.run(scenario())

"""
Client wiring - builds the username check pipeline from settings.

Forms embed a UsernameCheckController; this module picks the availability
checker behind it (the HTTP endpoint, or the in-memory mock for demos)
and applies the configured debounce period.
"""

import logging

from src.adapters.availability import HttpAvailabilityClient, MockAvailabilityClient
from src.config.settings import Settings, get_settings
from src.domain.ports import AvailabilityChecker
from src.domain.username_check import UsernameCheckController

logger = logging.getLogger(__name__)


def create_availability_checker(
    settings: Settings | None = None, use_mock: bool = False
) -> AvailabilityChecker:
    """Availability checker for the configured backend."""
    settings = settings or get_settings()
    if use_mock:
        logger.info("Using mock availability checker")
        return MockAvailabilityClient(
            taken=settings.mock_taken_usernames,
            latency_seconds=settings.mock_latency_ms / 1000,
        )
    return HttpAvailabilityClient(
        settings.check_username_url,
        timeout=settings.availability_timeout_seconds,
    )


def create_username_check_controller(
    settings: Settings | None = None,
    checker: AvailabilityChecker | None = None,
) -> UsernameCheckController:
    """
    Controller for one username field.

    A checker passed in stays the caller's to close; one built here is
    closed by the controller's aclose().
    """
    settings = settings or get_settings()
    return UsernameCheckController(
        checker or create_availability_checker(settings),
        debounce_seconds=settings.username_debounce_ms / 1000,
        owns_checker=checker is None,
    )

"""
Username availability service - server side of the check-username endpoint.

Validates the raw username with the same rules the form uses, normalizes
it, and asks the repository whether it is reserved or already claimed.
"""

import logging
from dataclasses import dataclass

from .exceptions import InvalidUsername
from .ports import AvailabilityResult, UsernameRepository
from .validation import normalize_username, validate_username

logger = logging.getLogger(__name__)

AVAILABLE_MESSAGE = "Username is available"
TAKEN_MESSAGE = "Username is already taken"


@dataclass
class UsernameAvailabilityService:
    """Domain service answering availability lookups."""

    repository: UsernameRepository

    def check(self, username: str | None) -> AvailabilityResult:
        """
        Check whether a username can be claimed.

        Args:
            username: Raw username from the query string

        Returns:
            AvailabilityResult with a user-facing message

        Raises:
            InvalidUsername: If the username is missing or malformed
            AvailabilityBackendError: If the repository cannot answer
        """
        if not username:
            raise InvalidUsername("Username is required")

        validation = validate_username(username)
        if not validation.is_valid:
            raise InvalidUsername(validation.error or "Invalid username format")

        available = self.is_available(username)
        return AvailabilityResult(
            available=available,
            message=AVAILABLE_MESSAGE if available else TAKEN_MESSAGE,
        )

    def is_available(self, username: str) -> bool:
        """Repository lookup on the normalized form, no format checks."""
        return self.repository.is_username_available(normalize_username(username))

"""Availability adapters - Client-side username availability checkers."""

from .http import HttpAvailabilityClient
from .mock import MockAvailabilityClient

__all__ = ["HttpAvailabilityClient", "MockAvailabilityClient"]

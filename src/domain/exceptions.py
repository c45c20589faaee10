"""
Domain exceptions - Semantic error types for username claims and auth.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
"""


class LinkClaimError(Exception):
    """Base class for domain errors."""

    pass


class CheckCancelled(LinkClaimError):
    """Availability check was superseded before it completed.

    Never user-visible: whoever awaited the check must apply nothing.
    """

    pass


class AvailabilityBackendError(LinkClaimError):
    """The username store could not answer an availability lookup."""

    pass


class AuthBackendError(LinkClaimError):
    """Raw failure reported by the auth backend, before mapping."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class AuthError(LinkClaimError):
    """User-facing auth failure with a stable machine-readable code."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"AuthError(code={self.code!r}, message={self.message!r})"


class InvalidUsername(LinkClaimError):
    """Username is missing or fails format validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

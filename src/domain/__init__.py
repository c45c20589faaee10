"""
Domain layer - Pure business logic with zero framework imports.

This package contains the username claim pipeline (validation, debounced
availability checks, cancellation) and the auth services built on top of
it. It defines its own port interfaces for infrastructure abstraction,
ensuring true hexagonal architecture decoupling.
"""

from .auth import AuthService, map_auth_error
from .availability import UsernameAvailabilityService
from .cancellation import CancellationToken
from .exceptions import (
    AuthBackendError,
    AuthError,
    AvailabilityBackendError,
    CheckCancelled,
    InvalidUsername,
    LinkClaimError,
)
from .ports import (
    AuthEvent,
    AuthRepository,
    AuthResult,
    AvailabilityChecker,
    AvailabilityResult,
    EmailSender,
    Profile,
    ProfileRepository,
    Session,
    User,
    UsernameRepository,
)
from .session import AuthState, AuthStateSync
from .username_check import CheckPhase, UsernameCheckController, UsernameCheckState

__all__ = [
    "AuthBackendError",
    "AuthError",
    "AuthEvent",
    "AuthRepository",
    "AuthResult",
    "AuthService",
    "AuthState",
    "AuthStateSync",
    "AvailabilityBackendError",
    "AvailabilityChecker",
    "AvailabilityResult",
    "CancellationToken",
    "CheckCancelled",
    "CheckPhase",
    "EmailSender",
    "InvalidUsername",
    "LinkClaimError",
    "Profile",
    "ProfileRepository",
    "Session",
    "User",
    "UsernameAvailabilityService",
    "UsernameCheckController",
    "UsernameCheckState",
    "UsernameRepository",
    "map_auth_error",
]

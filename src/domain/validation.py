"""
Form validators - pure syntax checks for usernames, emails and passwords.

Every validator runs its rules in order and reports the first failure only.
None of them touch the network: a value that fails here never reaches the
availability check.

Username rules
==============
- 3-30 characters long
- Only letters, digits, hyphens and underscores
- Cannot start or end with a hyphen or underscore
- Case insensitive (compare through normalize_username)
"""

import re
from dataclasses import dataclass

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 8

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*[A-Za-z0-9]$")
SHORT_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9]$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_UPPER = re.compile(r"[A-Z]")
PASSWORD_LOWER = re.compile(r"[a-z]")
PASSWORD_DIGIT = re.compile(r"[0-9]")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single validator run."""

    is_valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True, error=None)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error)


def validate_username(username: str) -> ValidationResult:
    """
    Validate username format.

    Args:
        username: Raw input, exactly as typed

    Returns:
        ValidationResult with the first failing rule's message
    """
    if not username or not username.strip():
        return ValidationResult.fail("Username is required")

    if len(username) < USERNAME_MIN_LENGTH:
        return ValidationResult.fail(
            f"Username must be at least {USERNAME_MIN_LENGTH} characters"
        )

    if len(username) > USERNAME_MAX_LENGTH:
        return ValidationResult.fail(
            f"Username must be less than {USERNAME_MAX_LENGTH} characters"
        )

    # Only reachable if the minimum length drops below 3
    if len(username) <= 2:
        if not SHORT_USERNAME_PATTERN.fullmatch(username):
            return ValidationResult.fail("Username can only contain letters and numbers")
    elif not USERNAME_PATTERN.fullmatch(username):
        return ValidationResult.fail(
            "Username can only contain letters, numbers, hyphens, and underscores"
        )

    return ValidationResult.ok()


def normalize_username(username: str) -> str:
    """
    Normalize username for case-insensitive comparison.

    Applies: strip whitespace + lowercase
    """
    return username.strip().lower()


def validate_email(email: str) -> ValidationResult:
    """Validate email address syntax."""
    if not email or not email.strip():
        return ValidationResult.fail("Email is required")

    if not EMAIL_PATTERN.fullmatch(email.strip()):
        return ValidationResult.fail("Please enter a valid email address")

    return ValidationResult.ok()


def validate_password(password: str) -> ValidationResult:
    """
    Validate password strength.

    Requires at least 8 characters with one ASCII uppercase letter,
    one ASCII lowercase letter and one ASCII digit.
    """
    if not password:
        return ValidationResult.fail("Password is required")

    if len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult.fail(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        )

    if not PASSWORD_UPPER.search(password):
        return ValidationResult.fail("Password must contain at least one uppercase letter")

    if not PASSWORD_LOWER.search(password):
        return ValidationResult.fail("Password must contain at least one lowercase letter")

    if not PASSWORD_DIGIT.search(password):
        return ValidationResult.fail("Password must contain at least one number")

    return ValidationResult.ok()


def validate_confirm_password(password: str, confirm_password: str) -> ValidationResult:
    """Validate that the confirmation field repeats the password."""
    if not confirm_password:
        return ValidationResult.fail("Please confirm your password")

    if password != confirm_password:
        return ValidationResult.fail("Passwords do not match")

    return ValidationResult.ok()

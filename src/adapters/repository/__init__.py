"""Repository adapters - Database implementations."""

from .postgres import (
    PostgresAuthRepository,
    PostgresProfileRepository,
    PostgresUsernameRepository,
    run_migrations,
)

__all__ = [
    "PostgresAuthRepository",
    "PostgresProfileRepository",
    "PostgresUsernameRepository",
    "run_migrations",
]

"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresAuthRepository,
    PostgresProfileRepository,
    PostgresUsernameRepository,
)
from src.adapters.smtp.console import ConsoleEmailSender
from src.config.settings import get_settings
from src.domain.auth import AuthService
from src.domain.availability import UsernameAvailabilityService
from src.domain.exceptions import AuthError
from src.domain.ports import Session

SESSION_COOKIE = "linkclaim_session"

# Module-level singleton - ConsoleEmailSender is stateless
_email_sender = ConsoleEmailSender()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_username_repository(request: Request) -> PostgresUsernameRepository:
    """Create username repository with connection pool from app state."""
    return PostgresUsernameRepository(get_pool(request))


def get_auth_repository(request: Request) -> PostgresAuthRepository:
    """Create auth repository with connection pool from app state."""
    return PostgresAuthRepository(get_pool(request))


def get_profile_repository(request: Request) -> PostgresProfileRepository:
    """Create profile repository with connection pool from app state."""
    return PostgresProfileRepository(get_pool(request))


def get_email_sender() -> ConsoleEmailSender:
    """Get console email sender (singleton)."""
    return _email_sender


def get_availability_service(request: Request) -> UsernameAvailabilityService:
    """Create the username availability service."""
    return UsernameAvailabilityService(repository=get_username_repository(request))


def get_auth_service(request: Request) -> AuthService:
    """
    Create auth service with injected dependencies.

    Wires together the repositories, email sender and settings.
    """
    settings = get_settings()
    return AuthService(
        repository=get_auth_repository(request),
        usernames=get_availability_service(request),
        email_sender=get_email_sender(),
        site_url=settings.site_url,
        require_email_confirmation=settings.require_email_confirmation,
        session_ttl_seconds=settings.session_ttl_seconds,
        bcrypt_cost=settings.bcrypt_cost,
    )


# Bearer security scheme for OpenAPI documentation; the cookie is a fallback
http_bearer = HTTPBearer(auto_error=False)


def get_access_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str | None:
    """
    Extract the access token from the Authorization header or session cookie.

    Returns:
        The raw token, or None when the request is anonymous
    """
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


def get_current_session(
    access_token: str | None = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service),
) -> Session:
    """
    Resolve the live session for the request.

    Raises:
        HTTPException: 401 when there is no live session
    """
    try:
        return service.require_session(access_token)
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": e.code, "message": e.message},
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

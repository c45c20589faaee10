"""
API v1 routes - username availability and profiles.

Defines the endpoints backing the username claim form and profile pages.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from src.api.dependencies import (
    get_availability_service,
    get_current_session,
    get_profile_repository,
)
from src.api.models import CheckUsernameResponse, ErrorResponse, ProfileResponse, ProfileUpdateRequest
from src.domain.auth import map_auth_error
from src.domain.availability import UsernameAvailabilityService
from src.domain.exceptions import AuthBackendError, AvailabilityBackendError, InvalidUsername
from src.domain.ports import ProfileRepository, ProfileUpdate, Session
from src.domain.validation import normalize_username, validate_username

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])


@router.get(
    "/check-username",
    response_model=CheckUsernameResponse,
    responses={
        400: {"model": CheckUsernameResponse, "description": "Missing or invalid username"},
        500: {"model": CheckUsernameResponse, "description": "Backend failure"},
    },
    summary="Check username availability",
    description="Validate a username and report whether it can still be claimed. "
    "Lookup is case-insensitive; reserved names are never available.",
)
async def check_username(
    username: str | None = Query(None, description="Username exactly as typed"),
    service: UsernameAvailabilityService = Depends(get_availability_service),
) -> CheckUsernameResponse:
    """
    Check whether a username is free.

    Failures use the same body shape as successes so the form can surface
    the message verbatim.
    """
    try:
        result = service.check(username)
    except InvalidUsername as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"available": False, "message": e.message},
        )
    except AvailabilityBackendError:
        logger.exception("Error checking username")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"available": False, "message": "Unable to check username availability"},
        )

    return CheckUsernameResponse(available=result.available, message=result.message)


@router.get(
    "/profiles/{username}",
    response_model=ProfileResponse,
    responses={404: {"model": ErrorResponse, "description": "No such profile"}},
    summary="Get a public profile",
)
async def get_profile(
    username: str,
    profiles: ProfileRepository = Depends(get_profile_repository),
) -> ProfileResponse:
    """Public profile by username (case-insensitive)."""
    profile = profiles.get_by_username(normalize_username(username))
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return ProfileResponse.from_domain(profile)


@router.patch(
    "/profiles/me",
    response_model=ProfileResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid username"},
        401: {"description": "No live session"},
        409: {"model": ErrorResponse, "description": "Username already taken"},
    },
    summary="Update the signed-in user's profile",
)
async def update_my_profile(
    request_data: ProfileUpdateRequest,
    session: Session = Depends(get_current_session),
    profiles: ProfileRepository = Depends(get_profile_repository),
    usernames: UsernameAvailabilityService = Depends(get_availability_service),
) -> ProfileResponse:
    """Partial update; a new username goes through the same checks as sign up."""
    username = request_data.username
    if username is not None:
        validation = validate_username(username)
        if not validation.is_valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation.error)
        username = normalize_username(username)
        if username != session.user.username and not usernames.is_available(username):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Username is already taken"
            )

    updates = ProfileUpdate(
        username=username,
        display_name=request_data.display_name,
        bio=request_data.bio,
        avatar_url=request_data.avatar_url,
    )
    try:
        profile = profiles.update(session.user.id, updates)
    except AuthBackendError as e:
        error = map_auth_error(e)
        code = (
            status.HTTP_409_CONFLICT
            if error.code == "username_taken"
            else status.HTTP_404_NOT_FOUND
        )
        raise HTTPException(status_code=code, detail=error.message) from None

    return ProfileResponse.from_domain(profile)

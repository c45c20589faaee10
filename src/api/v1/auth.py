"""
API v1 auth routes.

Email/password accounts with bearer sessions. Every AuthError is returned
as {"detail": {"code": ..., "message": ...}} so forms can show the message
and branch on the code.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import RedirectResponse

from src.api.dependencies import (
    SESSION_COOKIE,
    get_access_token,
    get_auth_service,
    get_current_session,
)
from src.api.models import (
    AuthErrorResponse,
    AuthResponse,
    ResetPasswordRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    UpdatePasswordRequest,
    UserResponse,
)
from src.domain.auth import AuthService
from src.domain.exceptions import AuthError
from src.domain.navigation import CALLBACK_ERROR_PATH, post_auth_redirect, safe_next_path
from src.domain.ports import Session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

AUTH_ERROR_STATUS = {
    "validation_failed": status.HTTP_400_BAD_REQUEST,
    "weak_password": status.HTTP_400_BAD_REQUEST,
    "invalid_code": status.HTTP_400_BAD_REQUEST,
    "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
    "email_not_confirmed": status.HTTP_401_UNAUTHORIZED,
    "invalid_session": status.HTTP_401_UNAUTHORIZED,
    "user_not_found": status.HTTP_404_NOT_FOUND,
    "email_taken": status.HTTP_409_CONFLICT,
    "username_taken": status.HTTP_409_CONFLICT,
    "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
}

_error_responses = {
    400: {"model": AuthErrorResponse, "description": "Validation failed"},
    401: {"model": AuthErrorResponse, "description": "Invalid credentials or session"},
    409: {"model": AuthErrorResponse, "description": "Email or username already taken"},
}


def auth_http_error(error: AuthError) -> HTTPException:
    """Translate a domain AuthError into an HTTPException."""
    return HTTPException(
        status_code=AUTH_ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"code": error.code, "message": error.message},
    )


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_error_responses,
    summary="Sign up with a claimed username",
    description="Create an account for an available username. When email confirmation "
    "is enabled the session is null and a confirmation link is emailed.",
)
async def sign_up(
    request_data: SignUpRequest,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    try:
        result = service.sign_up(
            request_data.email,
            request_data.password,
            request_data.username,
            request_data.display_name,
        )
    except AuthError as e:
        raise auth_http_error(e) from None
    return AuthResponse.from_domain(result)


@router.post(
    "/signin",
    response_model=AuthResponse,
    responses=_error_responses,
    summary="Sign in with email and password",
)
async def sign_in(
    request_data: SignInRequest,
    service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    try:
        result = service.sign_in(request_data.email, request_data.password)
    except AuthError as e:
        raise auth_http_error(e) from None
    return AuthResponse.from_domain(result)


@router.post(
    "/signout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out the current session",
)
async def sign_out(
    access_token: str | None = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service),
) -> Response:
    """End the session. Anonymous requests succeed without doing anything."""
    if access_token:
        service.sign_out(access_token)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.post(
    "/reset-password",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Email a password recovery link",
    responses={400: {"model": AuthErrorResponse, "description": "Redirect URL leaves the site"}},
    description="Answers 202 whether or not the email has an account. redirect_to must be "
    "a path or a URL on the site's own origin.",
)
async def reset_password(
    request_data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> dict[str, str]:
    try:
        service.reset_password_for_email(request_data.email, request_data.redirect_to)
    except AuthError as e:
        raise auth_http_error(e) from None
    return {"message": "If an account exists, a reset link has been sent"}


@router.post(
    "/update-password",
    response_model=UserResponse,
    responses=_error_responses,
    summary="Set a new password for the current session's user",
)
async def update_password(
    request_data: UpdatePasswordRequest,
    access_token: str | None = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    try:
        user = service.update_password(access_token, request_data.password)
    except AuthError as e:
        raise auth_http_error(e) from None
    return UserResponse.from_domain(user)


@router.get(
    "/session",
    response_model=SessionResponse | None,
    summary="Get the current session",
    description="Returns null for anonymous or expired sessions.",
)
async def get_session(
    access_token: str | None = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service),
) -> SessionResponse | None:
    session = service.get_session(access_token)
    if session is None:
        return None
    return SessionResponse.from_domain(session)


@router.get(
    "/user",
    response_model=UserResponse,
    responses={401: {"model": AuthErrorResponse, "description": "No live session"}},
    summary="Get the signed-in user",
)
async def get_user(session: Session = Depends(get_current_session)) -> UserResponse:
    return UserResponse.from_domain(session.user)


@router.get(
    "/callback",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Exchange an emailed code for a session",
    description="Target of confirmation links. Sets the session cookie and "
    "redirects to the user's page, the next path, or home with an error.",
)
async def callback(
    code: str | None = Query(None),
    next_path: str | None = Query(None, alias="next"),
    service: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    if code:
        try:
            result = service.exchange_code_for_session(code)
        except AuthError as e:
            logger.info("Auth callback rejected: %s", e.code)
        else:
            target = post_auth_redirect(result.user, safe_next_path(next_path))
            response = RedirectResponse(target, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
            if result.session is not None:
                response.set_cookie(
                    SESSION_COOKIE,
                    result.session.access_token,
                    expires=result.session.expires_at,
                    httponly=True,
                    samesite="lax",
                )
            return response

    return RedirectResponse(CALLBACK_ERROR_PATH, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

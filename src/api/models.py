"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from src.domain.ports import AuthResult, Profile, Session, User


class CheckUsernameResponse(BaseModel):
    """Response model for the username availability check."""

    available: bool
    message: str | None = None


class SignUpRequest(BaseModel):
    """Request model for sign up with a claimed username."""

    email: EmailStr
    password: str = Field(..., min_length=1, description="Password (strength checked server-side)")
    username: str = Field(..., min_length=1, max_length=64, description="Username to claim")
    display_name: str | None = Field(None, max_length=100)


class SignInRequest(BaseModel):
    """Request model for email/password sign in."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    """Request model for a password recovery email."""

    email: EmailStr
    redirect_to: str = Field(
        ...,
        min_length=1,
        description="Path, or URL on this site, that receives the recovery code",
    )


class UpdatePasswordRequest(BaseModel):
    """Request model for setting a new password."""

    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(BaseModel):
    """Request model for a partial profile update."""

    username: str | None = Field(None, max_length=64)
    display_name: str | None = Field(None, max_length=100)
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = Field(None, max_length=2048)


class UserResponse(BaseModel):
    """Public view of an account."""

    id: str
    email: str
    username: str | None = None
    display_name: str | None = None
    email_confirmed: bool

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            display_name=user.display_name,
            email_confirmed=user.email_confirmed,
        )


class SessionResponse(BaseModel):
    """Bearer session issued after sign in."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse

    @classmethod
    def from_domain(cls, session: Session) -> "SessionResponse":
        return cls(
            access_token=session.access_token,
            expires_at=session.expires_at,
            user=UserResponse.from_domain(session.user),
        )


class AuthResponse(BaseModel):
    """Response model for sign up / sign in. session is null until confirmed."""

    user: UserResponse
    session: SessionResponse | None = None

    @classmethod
    def from_domain(cls, result: AuthResult) -> "AuthResponse":
        return cls(
            user=UserResponse.from_domain(result.user),
            session=SessionResponse.from_domain(result.session) if result.session else None,
        )


class ProfileResponse(BaseModel):
    """Public profile backing a username page."""

    id: str
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            username=profile.username,
            display_name=profile.display_name,
            bio=profile.bio,
            avatar_url=profile.avatar_url,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )


class AuthErrorDetail(BaseModel):
    """Machine-readable code plus user-facing message."""

    code: str
    message: str


class AuthErrorResponse(BaseModel):
    """Error response model for auth endpoints."""

    detail: AuthErrorDetail


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str

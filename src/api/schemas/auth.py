"""Pydantic schemas for authentication endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from src.domain.models import BusinessUnit, Segment, UserRole

# --- Request Schemas ---


class RegisterRequest(BaseModel):
    """Request schema for user registration."""

    name: str = Field(..., min_length=1, max_length=128, description="Display name")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (min 8 characters)",
    )
    role: UserRole = Field(
        default=UserRole.TECHNICIAN,
        description="User role (defaults to technician)",
    )
    segment: Segment | None = Field(None, description="Operating segment")
    business_unit: BusinessUnit | None = Field(
        None, description="Business unit; derived from the segment when omitted"
    )
    avatar_url: str | None = Field(None, description="Avatar image URL")


class LoginRequest(BaseModel):
    """Request schema for user login."""

    # Plain string: demo accounts use short addresses such as ``1@1``.
    email: str = Field(..., min_length=1, description="User email address")
    password: str = Field(..., description="User password")


# --- Response Schemas ---


class TokenResponse(BaseModel):
    """Response schema containing JWT tokens."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str | None = Field(None, description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token TTL in seconds")


class UserResponse(BaseModel):
    """Credential-free view of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="User email")
    role: UserRole = Field(..., description="User role")
    avatar_url: str | None = Field(None, description="Avatar image URL")
    business_unit: BusinessUnit | None = None
    segment: Segment | None = None


class RegisterResponse(BaseModel):
    """Response schema for user registration."""

    message: str = Field(default="Registration successful")
    user: UserResponse
    tokens: TokenResponse


class LoginResponse(BaseModel):
    """Response schema for user login."""

    message: str = Field(default="Login successful")
    user: UserResponse
    tokens: TokenResponse


class SessionResponse(BaseModel):
    """Identity held in the persisted session slot, if any."""

    user: UserResponse | None = None


class MeResponse(BaseModel):
    """Response schema for current user info."""

    user: UserResponse

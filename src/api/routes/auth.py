"""Authentication routes - register, login, logout, session, profile."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from src.api.deps import get_auth_service, get_current_user, get_user_repository
from src.api.schemas.auth import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
    TokenResponse,
    UserResponse,
)
from src.domain import Principal, UserRole
from src.domain.exceptions import EmailAlreadyExistsError, InvalidCredentialsError
from src.domain.services.auth_service import AuthService
from src.infrastructure.repositories import UserRepository

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a technician or supervisor account and log it in.",
)
async def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """Register a new user."""
    if payload.role == UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator accounts cannot be self-registered",
        )

    try:
        user = await service.register(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
            avatar_url=payload.avatar_url,
            business_unit=payload.business_unit,
            segment=payload.segment,
        )
    except EmailAlreadyExistsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc

    return RegisterResponse(
        message="Registration successful",
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**service.issue_tokens(user)),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    description="Authenticate user with email and password, returns JWT tokens.",
)
async def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate user and return tokens."""
    try:
        user = await service.login(email=payload.email, password=payload.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc

    return LoginResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**service.issue_tokens(user)),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear the stored session",
)
async def logout(
    principal: Principal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> None:
    """Clear the stored session when it belongs to the caller."""
    user = await service.current_session()
    if user is not None and user.id == principal.user_id:
        await service.logout()


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Stored session",
    description="Return the caller's identity if it holds the persisted session slot.",
)
async def read_session(
    principal: Principal = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    user = await service.current_session()
    if user is not None and user.id != principal.user_id:
        user = None
    return SessionResponse(user=UserResponse.model_validate(user) if user else None)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user",
    description="Get the currently authenticated user's profile.",
)
async def get_me(
    principal: Principal = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
) -> MeResponse:
    """Get current authenticated user's profile."""
    user = await users.get_by_id(principal.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {principal.user_id} not found",
        )

    return MeResponse(user=UserResponse.model_validate(user.to_session()))

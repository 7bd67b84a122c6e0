"""Authentication service: registration, login and the persisted session slot."""

from __future__ import annotations

from datetime import timedelta

import structlog
from passlib.context import CryptContext
from src.core.auth import create_access_token
from src.core.config import get_settings
from src.domain.exceptions import EmailAlreadyExistsError, InvalidCredentialsError
from src.domain.models import (
    AVATAR_URL_TEMPLATE,
    BusinessUnit,
    Segment,
    SessionUser,
    User,
    UserRole,
    new_id,
)
from src.infrastructure.repositories import SessionStore, UserRepository

logger = structlog.get_logger()

# Password hashing context with bcrypt
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash; users without a secret never match."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def default_avatar_url(name: str) -> str:
    return AVATAR_URL_TEMPLATE.format(seed=name)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, users: UserRepository, sessions: SessionStore) -> None:
        self.users = users
        self.sessions = sessions

    async def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.TECHNICIAN,
        avatar_url: str | None = None,
        business_unit: BusinessUnit | None = None,
        segment: Segment | None = None,
    ) -> SessionUser:
        """
        Register a new user and log them in.

        Raises:
            EmailAlreadyExistsError: the email is taken (case-insensitive);
                nothing is written.
        """
        await logger.ainfo("register_attempt", email=email, role=role.value)

        if business_unit is None and segment is not None:
            business_unit = segment.business_unit

        user = User(
            id=new_id("user"),
            name=name,
            email=email,
            role=role,
            password_hash=hash_password(password),
            avatar_url=avatar_url or default_avatar_url(name),
            business_unit=business_unit,
            segment=segment,
        )

        try:
            await self.users.create_user(user)
        except EmailAlreadyExistsError:
            await logger.awarning("register_duplicate_email", email=email)
            raise

        session_user = await self.sessions.set(user.to_session())
        await logger.ainfo("register_success", user_id=user.id, email=email)
        return session_user

    async def login(self, *, email: str, password: str) -> SessionUser:
        """
        Authenticate with email and password and store the session.

        Raises:
            InvalidCredentialsError: unknown email or wrong password; the
                current session is left untouched.
        """
        await logger.ainfo("login_attempt", email=email)

        user = await self.users.get_by_email(email)
        if user is None:
            await logger.awarning("login_user_not_found", email=email)
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            await logger.awarning("login_invalid_password", email=email)
            raise InvalidCredentialsError()

        session_user = await self.sessions.set(user.to_session())
        await logger.ainfo("login_success", user_id=user.id, email=email)
        return session_user

    async def logout(self) -> None:
        await self.sessions.clear()
        await logger.ainfo("logout")

    async def current_session(self) -> SessionUser | None:
        return await self.sessions.get()

    def issue_tokens(self, user: SessionUser) -> dict:
        """Generate access and refresh tokens for the HTTP layer."""
        settings = get_settings()

        access_token = create_access_token(
            subject=user.id,
            roles=[user.role.value],
            email=user.email,
            expires_delta=timedelta(seconds=settings.access_token_ttl_seconds),
        )

        # Refresh token (longer TTL - 7 days)
        refresh_token = create_access_token(
            subject=user.id,
            roles=[user.role.value],
            email=user.email,
            expires_delta=timedelta(days=7),
        )

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.access_token_ttl_seconds,
        }

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.core.auth import TokenError, decode_access_token
from src.core.config import get_settings
from src.domain import Principal
from src.domain.services.analysis_gateway import AnalysisGateway, OpenAIAnalysisGateway
from src.domain.services.auth_service import AuthService
from src.domain.services.checkin_workflow import CheckInWorkflow, CheckInWorkflowRegistry
from src.domain.services.team_overview import TeamOverviewService
from src.infrastructure.db.session import get_session_factory
from src.infrastructure.repositories import CheckInRepository, SessionStore, UserRepository

bearer_scheme = HTTPBearer(auto_error=False)

SessionFactory = async_sessionmaker[AsyncSession]


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
) -> Principal:
    """Resolve the authenticated user from a bearer token."""
    if credentials is None:
        raise _unauthorized("Missing bearer token")

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenError as exc:
        raise _unauthorized(str(exc)) from exc

    user_id = payload.get("sub")
    roles: Iterable[str] = payload.get("roles", [])

    if not user_id:
        raise _unauthorized("Token missing subject")

    if not roles:
        raise _forbidden("Token missing required roles")

    return Principal(user_id=user_id, email=payload.get("email", ""), roles=list(roles))


def require_roles(required_roles: Sequence[str]) -> Callable[[Principal], Principal]:
    """Dependency factory enforcing that the authenticated user has one of the required roles."""
    settings = get_settings()
    allowed = set(settings.allowed_roles)

    invalid_roles = [role for role in required_roles if role not in allowed]
    if invalid_roles:
        joined_roles = ", ".join(invalid_roles)
        raise ValueError(f"Unsupported role(s) requested: {joined_roles}")

    required = set(required_roles)

    def dependency(user: Principal = Depends(get_current_user)) -> Principal:  # noqa: B008
        if not required.intersection(user.roles):
            raise _forbidden("Insufficient role privileges")
        return user

    return dependency


def get_db_session_factory() -> SessionFactory:
    """Session factory handed to repositories; each repository call is one transaction."""
    return get_session_factory()


def get_user_repository(
    session_factory: SessionFactory = Depends(get_db_session_factory),  # noqa: B008
) -> UserRepository:
    return UserRepository(session_factory)


def get_checkin_repository(
    session_factory: SessionFactory = Depends(get_db_session_factory),  # noqa: B008
) -> CheckInRepository:
    return CheckInRepository(session_factory)


def get_session_store(
    session_factory: SessionFactory = Depends(get_db_session_factory),  # noqa: B008
) -> SessionStore:
    return SessionStore(session_factory)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),  # noqa: B008
    sessions: SessionStore = Depends(get_session_store),  # noqa: B008
) -> AuthService:
    return AuthService(users, sessions)


def get_team_overview_service(
    users: UserRepository = Depends(get_user_repository),  # noqa: B008
    checkins: CheckInRepository = Depends(get_checkin_repository),  # noqa: B008
) -> TeamOverviewService:
    return TeamOverviewService(users, checkins)


@lru_cache
def get_analysis_gateway() -> AnalysisGateway:
    return OpenAIAnalysisGateway()


@lru_cache
def get_workflow_registry() -> CheckInWorkflowRegistry:
    """Process-wide registry; workflows live in memory for the life of the worker."""

    def factory(user_id: str) -> CheckInWorkflow:
        return CheckInWorkflow(
            user_id=user_id,
            gateway=get_analysis_gateway(),
            checkins=CheckInRepository(get_session_factory()),
        )

    return CheckInWorkflowRegistry(factory)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

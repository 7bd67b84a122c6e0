from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.api.deps import get_db_session_factory, get_workflow_registry
from src.api.main import app
from src.domain.services.auth_service import AuthService
from src.domain.services.checkin_workflow import CheckInWorkflow, CheckInWorkflowRegistry
from src.domain.services.risk_engine import RiskEngine, RiskPolicy
from src.infrastructure.db.base import Base
from src.infrastructure.db.session import build_engine
from src.infrastructure.repositories import CheckInRepository, SessionStore, UserRepository

from tests.utils import FakeAnalysisGateway


@pytest.fixture()
async def session_factory(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """File-backed SQLite so every repository call sees the same data."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'checkin.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture()
def users(session_factory: async_sessionmaker[AsyncSession]) -> UserRepository:
    return UserRepository(session_factory)


@pytest.fixture()
def checkins(session_factory: async_sessionmaker[AsyncSession]) -> CheckInRepository:
    return CheckInRepository(session_factory)


@pytest.fixture()
def sessions(session_factory: async_sessionmaker[AsyncSession]) -> SessionStore:
    return SessionStore(session_factory)


@pytest.fixture()
def auth_service(users: UserRepository, sessions: SessionStore) -> AuthService:
    return AuthService(users, sessions)


@pytest.fixture()
def risk_engine() -> RiskEngine:
    return RiskEngine(RiskPolicy())


@pytest.fixture()
def gateway(risk_engine: RiskEngine) -> FakeAnalysisGateway:
    return FakeAnalysisGateway(risk_engine=risk_engine)


@pytest.fixture()
def registry(
    gateway: FakeAnalysisGateway,
    checkins: CheckInRepository,
    risk_engine: RiskEngine,
) -> CheckInWorkflowRegistry:
    def factory(user_id: str) -> CheckInWorkflow:
        return CheckInWorkflow(
            user_id=user_id,
            gateway=gateway,
            checkins=checkins,
            risk_engine=risk_engine,
            timezone="UTC",
            enforce_daily_limit=True,
        )

    return CheckInWorkflowRegistry(factory)


@pytest.fixture()
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    registry: CheckInWorkflowRegistry,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the per-test database and fake gateway."""
    app.dependency_overrides[get_db_session_factory] = lambda: session_factory
    app.dependency_overrides[get_workflow_registry] = lambda: registry

    transport = ASGITransport(app=app)  # type: ignore
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db_session_factory, None)
    app.dependency_overrides.pop(get_workflow_registry, None)

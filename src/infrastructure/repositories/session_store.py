from __future__ import annotations

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.domain.models import SessionUser
from src.infrastructure.db.models import CURRENT_SESSION_SLOT, SessionModel

logger = structlog.get_logger()


class SessionStore:
    """Single persisted slot holding the active authenticated identity."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        slot: str = CURRENT_SESSION_SLOT,
    ) -> None:
        self.session_factory = session_factory
        self.slot = slot

    async def get(self) -> SessionUser | None:
        async with self.session_factory() as session:
            row = await session.scalar(select(SessionModel).where(SessionModel.slot == self.slot))
            if row is None:
                return None
            try:
                return SessionUser.from_dict(row.user)
            except (KeyError, TypeError, ValueError) as exc:
                await logger.awarning("session_row_unreadable", slot=self.slot, error=str(exc))
                return None

    async def set(self, user: SessionUser) -> SessionUser:
        """Replace whatever identity occupies the slot."""
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(SessionModel).where(SessionModel.slot == self.slot))
                session.add(SessionModel(slot=self.slot, user_id=user.id, user=user.to_dict()))
        return user

    async def clear(self) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(SessionModel).where(SessionModel.slot == self.slot))

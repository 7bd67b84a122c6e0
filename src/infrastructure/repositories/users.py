from __future__ import annotations

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.domain.exceptions import EmailAlreadyExistsError
from src.domain.models import User, as_utc
from src.infrastructure.db.models import CheckInModel, SessionModel, UserModel

logger = structlog.get_logger()


def email_key(email: str) -> str:
    return email.strip().lower()


def _to_domain(row: UserModel) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        role=row.role,
        password_hash=row.password_hash,
        avatar_url=row.avatar_url,
        business_unit=row.business_unit,
        segment=row.segment,
        created_at=as_utc(row.created_at),
    )


class UserRepository:
    """Durable collection of user identities.

    Each public method runs in its own transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create_user(self, user: User) -> User:
        """Persist ``user``; raises EmailAlreadyExistsError on a case-insensitive match."""
        key = email_key(user.email)
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    existing = await session.scalar(
                        select(UserModel.id).where(UserModel.email_key == key)
                    )
                    if existing is not None:
                        raise EmailAlreadyExistsError(user.email)

                    session.add(
                        UserModel(
                            id=user.id,
                            name=user.name,
                            email=user.email,
                            email_key=key,
                            password_hash=user.password_hash,
                            role=user.role,
                            business_unit=user.business_unit,
                            segment=user.segment,
                            avatar_url=user.avatar_url,
                            created_at=user.created_at,
                        )
                    )
            except IntegrityError as exc:
                # Lost a race against a concurrent registration for the same email.
                await logger.awarning("user_create_conflict", email=user.email)
                raise EmailAlreadyExistsError(user.email) from exc

        await logger.ainfo("user_created", user_id=user.id, role=user.role.value)
        return user

    async def get_by_email(self, email: str) -> User | None:
        async with self.session_factory() as session:
            stmt = select(UserModel).where(UserModel.email_key == email_key(email))
            row = await session.scalar(stmt)
            return _to_domain(row) if row else None

    async def get_by_id(self, user_id: str) -> User | None:
        async with self.session_factory() as session:
            row = await session.scalar(select(UserModel).where(UserModel.id == user_id))
            return _to_domain(row) if row else None

    async def list_users(self) -> list[User]:
        """All users in registration order."""
        async with self.session_factory() as session:
            rows = (await session.execute(select(UserModel).order_by(UserModel.seq))).scalars()
            return [_to_domain(row) for row in rows]

    async def delete_user(self, user_id: str) -> bool:
        """Remove the user, every check-in they own and their session, atomically."""
        async with self.session_factory() as session:
            async with session.begin():
                exists = await session.scalar(select(UserModel.id).where(UserModel.id == user_id))
                if exists is None:
                    return False

                removed = await session.execute(
                    delete(CheckInModel).where(CheckInModel.user_id == user_id)
                )
                await session.execute(delete(SessionModel).where(SessionModel.user_id == user_id))
                await session.execute(delete(UserModel).where(UserModel.id == user_id))

        await logger.ainfo("user_deleted", user_id=user_id, checkins_removed=removed.rowcount)
        return True

    async def clear(self) -> None:
        """Remove every user together with all check-ins and the session slot."""
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(CheckInModel))
                await session.execute(delete(SessionModel))
                await session.execute(delete(UserModel))
        await logger.ainfo("users_cleared")

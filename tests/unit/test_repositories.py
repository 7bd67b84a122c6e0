"""Unit tests for the SQLAlchemy-backed repositories."""

from __future__ import annotations

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.domain.exceptions import EmailAlreadyExistsError
from src.domain.models import GeoLocation, RiskLevel, UserRole
from src.infrastructure.db.models import CheckInModel, SessionModel
from src.infrastructure.repositories import CheckInRepository, SessionStore, UserRepository

from tests.utils import make_record, make_user


class TestUserRepository:
    @pytest.mark.asyncio
    async def test_create_and_lookup(self, users: UserRepository) -> None:
        user = make_user("u-1", email="Ana@Eco.com", role=UserRole.SUPERVISOR)

        await users.create_user(user)

        found = await users.get_by_email("ana@eco.com")
        assert found is not None
        assert found.id == "u-1"
        assert found.email == "Ana@Eco.com"
        assert found.role == UserRole.SUPERVISOR
        assert (await users.get_by_id("u-1")) == found

    @pytest.mark.asyncio
    async def test_duplicate_email_leaves_collection_unchanged(
        self, users: UserRepository
    ) -> None:
        await users.create_user(make_user("u-1", email="dup@eco.com"))

        with pytest.raises(EmailAlreadyExistsError):
            await users.create_user(make_user("u-2", email="DUP@eco.com"))

        listed = await users.list_users()
        assert [user.id for user in listed] == ["u-1"]

    @pytest.mark.asyncio
    async def test_list_users_in_registration_order(self, users: UserRepository) -> None:
        for user_id in ("c", "a", "b"):
            await users.create_user(make_user(user_id))

        assert [user.id for user in await users.list_users()] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_unknown_lookups_return_none(self, users: UserRepository) -> None:
        assert await users.get_by_email("ghost@eco.com") is None
        assert await users.get_by_id("ghost") is None

    @pytest.mark.asyncio
    async def test_delete_cascades_records_and_session(
        self,
        users: UserRepository,
        checkins: CheckInRepository,
        sessions: SessionStore,
    ) -> None:
        doomed = make_user("u-1")
        keeper = make_user("u-2")
        await users.create_user(doomed)
        await users.create_user(keeper)
        await checkins.append(make_record("u-1"))
        await checkins.append(make_record("u-1"))
        kept = await checkins.append(make_record("u-2"))
        await sessions.set(doomed.to_session())

        assert await users.delete_user("u-1") is True

        assert await users.get_by_id("u-1") is None
        assert await checkins.query_by_user("u-1") == []
        assert await checkins.query_all() == [kept]
        assert await sessions.get() is None

    @pytest.mark.asyncio
    async def test_delete_unknown_user(self, users: UserRepository) -> None:
        assert await users.delete_user("ghost") is False


class TestCheckInRepository:
    @pytest.mark.asyncio
    async def test_most_recent_first(
        self, users: UserRepository, checkins: CheckInRepository
    ) -> None:
        await users.create_user(make_user("u-1"))
        first = await checkins.append(make_record("u-1", record_id="R1"))
        second = await checkins.append(make_record("u-1", record_id="R2"))

        assert [r.id for r in await checkins.query_by_user("u-1")] == ["R2", "R1"]
        assert await checkins.query_all() == [second, first]

    @pytest.mark.asyncio
    async def test_round_trips_location_and_analysis(
        self, users: UserRepository, checkins: CheckInRepository
    ) -> None:
        await users.create_user(make_user("u-1"))
        record = make_record("u-1", risk_level=RiskLevel.HIGH, fatigue_level=81.5)
        record = type(record)(
            id=record.id,
            user_id=record.user_id,
            timestamp=record.timestamp,
            type=record.type,
            survey=record.survey,
            analysis=record.analysis,
            image_url="https://img.test/1.jpg",
            location=GeoLocation(lat=-23.55, lng=-46.63),
        )

        await checkins.append(record)

        assert await checkins.query_by_user("u-1") == [record]

    @pytest.mark.asyncio
    async def test_unreadable_rows_are_skipped(
        self,
        users: UserRepository,
        checkins: CheckInRepository,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await users.create_user(make_user("u-1"))
        good = await checkins.append(make_record("u-1", record_id="good"))
        await checkins.append(make_record("u-1", record_id="bad"))

        async with session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(CheckInModel)
                    .where(CheckInModel.id == "bad")
                    .values(analysis={"risk_level": "SLEEPY"})
                )

        assert await checkins.query_by_user("u-1") == [good]


class TestSessionStore:
    @pytest.mark.asyncio
    async def test_set_replaces_previous_identity(self, sessions: SessionStore) -> None:
        first = make_user("u-1").to_session()
        second = make_user("u-2").to_session()

        await sessions.set(first)
        await sessions.set(second)

        assert await sessions.get() == second

    @pytest.mark.asyncio
    async def test_clear(self, sessions: SessionStore) -> None:
        await sessions.set(make_user("u-1").to_session())

        await sessions.clear()

        assert await sessions.get() is None

    @pytest.mark.asyncio
    async def test_unreadable_session_counts_as_none(
        self,
        sessions: SessionStore,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await sessions.set(make_user("u-1").to_session())
        async with session_factory() as session:
            async with session.begin():
                await session.execute(update(SessionModel).values(user={"id": "u-1"}))

        assert await sessions.get() is None

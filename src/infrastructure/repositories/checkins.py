from __future__ import annotations

from collections.abc import Iterable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.domain.models import (
    AnalysisResult,
    CheckInRecord,
    GeoLocation,
    SurveyAnswers,
    as_utc,
)
from src.infrastructure.db.models import CheckInModel

logger = structlog.get_logger()


def _to_domain(row: CheckInModel) -> CheckInRecord:
    location = None
    if row.latitude is not None and row.longitude is not None:
        location = GeoLocation(lat=row.latitude, lng=row.longitude)
    return CheckInRecord(
        id=row.id,
        user_id=row.user_id,
        timestamp=as_utc(row.timestamp),
        type=row.type,
        image_url=row.image_url,
        survey=SurveyAnswers.from_dict(row.survey),
        analysis=AnalysisResult.from_dict(row.analysis),
        location=location,
    )


def _readable(rows: Iterable[CheckInModel]) -> list[CheckInRecord]:
    """Decode rows, skipping any whose stored payload no longer decodes."""
    records: list[CheckInRecord] = []
    for row in rows:
        try:
            records.append(_to_domain(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("checkin_row_unreadable", checkin_id=row.id, error=str(exc))
    return records


class CheckInRepository:
    """Insertion-ordered log of accepted check-ins, iterated most-recent-first."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def append(self, record: CheckInRecord) -> CheckInRecord:
        async with self.session_factory() as session:
            async with session.begin():
                session.add(
                    CheckInModel(
                        id=record.id,
                        user_id=record.user_id,
                        timestamp=record.timestamp,
                        type=record.type,
                        image_url=record.image_url,
                        survey=record.survey.to_dict(),
                        analysis=record.analysis.to_dict(),
                        latitude=record.location.lat if record.location else None,
                        longitude=record.location.lng if record.location else None,
                    )
                )

        await logger.ainfo(
            "checkin_appended",
            checkin_id=record.id,
            user_id=record.user_id,
            type=record.type.value,
            risk_level=record.analysis.risk_level.value,
        )
        return record

    async def query_by_user(self, user_id: str) -> list[CheckInRecord]:
        async with self.session_factory() as session:
            stmt = (
                select(CheckInModel)
                .where(CheckInModel.user_id == user_id)
                .order_by(CheckInModel.seq.desc())
            )
            return _readable((await session.execute(stmt)).scalars())

    async def query_all(self) -> list[CheckInRecord]:
        async with self.session_factory() as session:
            stmt = select(CheckInModel).order_by(CheckInModel.seq.desc())
            return _readable((await session.execute(stmt)).scalars())

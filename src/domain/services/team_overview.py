"""Supervisor dashboard aggregates over technicians' check-ins."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from zoneinfo import ZoneInfo

import structlog
from src.core.config import get_settings
from src.domain.models import CheckInRecord, RiskLevel, Segment, SessionUser, UserRole
from src.domain.services.checkin_workflow import records_on_day
from src.infrastructure.repositories import CheckInRepository, UserRepository

logger = structlog.get_logger()

RANKING_SIZE = 3


class InvalidMonthError(ValueError):
    """Raised when a month is not formatted as YYYY-MM."""


@dataclass(slots=True)
class SegmentStats:
    segment: Segment
    avg_energy: float
    high_risk_count: int
    record_count: int


@dataclass(slots=True)
class PerformerStats:
    user: SessionUser
    avg_score: float
    record_count: int


@dataclass(slots=True)
class TechnicianAlert:
    user: SessionUser
    latest: CheckInRecord


@dataclass(slots=True)
class TeamOverview:
    month: str
    segments: list[SegmentStats] = field(default_factory=list)
    top_performers: list[PerformerStats] = field(default_factory=list)
    low_performers: list[PerformerStats] = field(default_factory=list)
    alerts: list[TechnicianAlert] = field(default_factory=list)


def parse_month(month: str) -> tuple[int, int]:
    try:
        year_text, month_text = month.split("-")
        year, month_number = int(year_text), int(month_text)
    except ValueError as exc:
        raise InvalidMonthError(f"Month must look like YYYY-MM, got {month!r}") from exc
    if not 1 <= month_number <= 12:
        raise InvalidMonthError(f"Month out of range: {month!r}")
    return year, month_number


class TeamOverviewService:
    def __init__(
        self,
        users: UserRepository,
        checkins: CheckInRepository,
        timezone: str | None = None,
    ) -> None:
        self.users = users
        self.checkins = checkins
        self.tz = ZoneInfo(timezone or get_settings().checkin_timezone)

    async def monthly_overview(self, month: str) -> TeamOverview:
        year, month_number = parse_month(month)

        technicians = [
            user for user in await self.users.list_users() if user.role == UserRole.TECHNICIAN
        ]
        # Most recent first, per user.
        by_user: dict[str, list[CheckInRecord]] = defaultdict(list)
        for record in await self.checkins.query_all():
            by_user[record.user_id].append(record)

        def in_month(record: CheckInRecord) -> bool:
            local = record.timestamp.astimezone(self.tz)
            return local.year == year and local.month == month_number

        monthly = {
            user.id: [record for record in by_user[user.id] if in_month(record)]
            for user in technicians
        }

        segments = []
        for segment in Segment:
            records = [
                record
                for user in technicians
                if user.segment == segment
                for record in monthly[user.id]
            ]
            total_energy = sum(record.survey.energy_level for record in records)
            segments.append(
                SegmentStats(
                    segment=segment,
                    avg_energy=round(total_energy / len(records), 1) if records else 0.0,
                    high_risk_count=sum(
                        1 for record in records if record.analysis.risk_level == RiskLevel.HIGH
                    ),
                    record_count=len(records),
                )
            )

        ranked = []
        for user in technicians:
            records = monthly[user.id]
            if not records:
                continue
            total = sum(
                record.survey.energy_level + record.survey.motivation_level for record in records
            )
            ranked.append(
                PerformerStats(
                    user=user.to_session(),
                    avg_score=total / (2 * len(records)),
                    record_count=len(records),
                )
            )
        ranked.sort(key=lambda item: item.avg_score, reverse=True)

        alerts = [
            TechnicianAlert(user=user.to_session(), latest=by_user[user.id][0])
            for user in technicians
            if by_user[user.id] and by_user[user.id][0].analysis.risk_level == RiskLevel.HIGH
        ]

        await logger.ainfo(
            "team_overview_built",
            month=month,
            technicians=len(technicians),
            ranked=len(ranked),
            alerts=len(alerts),
        )
        return TeamOverview(
            month=month,
            segments=segments,
            top_performers=ranked[:RANKING_SIZE],
            low_performers=list(reversed(ranked[-RANKING_SIZE:])),
            alerts=alerts,
        )

    async def records_for_day(self, user_id: str, day: date) -> list[CheckInRecord]:
        """A technician's records on ``day`` (local calendar), most recent first."""
        records = await self.checkins.query_by_user(user_id)
        return records_on_day(records, day, self.tz)

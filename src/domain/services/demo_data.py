"""Demo dataset: one supervisor plus ten technicians with recent history."""

from __future__ import annotations

import random
from datetime import datetime, timedelta

import structlog
from src.domain.models import (
    AVATAR_URL_TEMPLATE,
    AnalysisResult,
    CheckInRecord,
    CheckInType,
    RiskLevel,
    Segment,
    SurveyAnswers,
    User,
    UserRole,
    utcnow,
)
from src.domain.services.auth_service import hash_password
from src.domain.services.risk_engine import RiskEngine
from src.infrastructure.repositories import CheckInRepository, SessionStore, UserRepository

logger = structlog.get_logger()

DEMO_PASSWORD = "123"
SUPERVISOR_EMAIL = "gestor@eco.com"
TECHNICIAN_COUNT = 10
HISTORY_DAYS = 5
HIGH_FATIGUE_FROM = 8

SEGMENT_CYCLE = (
    [Segment.UPS] * 3
    + [Segment.COOLING] * 2
    + [Segment.ENERGY] * 3
    + [Segment.ASSISTENCIA_TECNICA] * 2
)

HIGH_FATIGUE_SURVEY = SurveyAnswers(
    sleep_quality=2, energy_level=3, focus_level=4, motivation_level=3, feeling_safe=4
)
RESTED_SURVEY = SurveyAnswers(
    sleep_quality=4, energy_level=8, focus_level=8, motivation_level=9, feeling_safe=10
)


class DemoDataService:
    def __init__(
        self,
        users: UserRepository,
        checkins: CheckInRepository,
        sessions: SessionStore,
        risk_engine: RiskEngine | None = None,
    ) -> None:
        self.users = users
        self.checkins = checkins
        self.sessions = sessions
        self.risk_engine = risk_engine or RiskEngine()

    async def clear_all_data(self) -> None:
        """Empty users, check-ins and the session slot."""
        await self.users.clear()
        await logger.ainfo("demo_data_cleared")

    async def reset_to_seed_data(
        self,
        rng: random.Random | None = None,
        now: datetime | None = None,
    ) -> list[User]:
        rng = rng or random.Random()
        now = now or utcnow()
        await self.clear_all_data()

        password_hash = hash_password(DEMO_PASSWORD)
        supervisor = User(
            id="gestor-1",
            name="Gestor Geral",
            email=SUPERVISOR_EMAIL,
            role=UserRole.SUPERVISOR,
            password_hash=password_hash,
            avatar_url=AVATAR_URL_TEMPLATE.format(seed="Gestor"),
        )
        seeded = [await self.users.create_user(supervisor)]

        record_count = 0
        for number in range(1, TECHNICIAN_COUNT + 1):
            segment = SEGMENT_CYCLE[number - 1]
            technician = User(
                id=f"tech-{number}",
                name=f"Tecnico {number}",
                email=f"{number}@{number}",
                role=UserRole.TECHNICIAN,
                password_hash=password_hash,
                avatar_url=AVATAR_URL_TEMPLATE.format(seed=f"Tech{number}"),
                business_unit=segment.business_unit,
                segment=segment,
            )
            seeded.append(await self.users.create_user(technician))

            high_fatigue = number >= HIGH_FATIGUE_FROM
            # Oldest day first so the newest record is the latest appended.
            for days_ago in reversed(range(HISTORY_DAYS)):
                await self.checkins.append(
                    self._history_record(technician, days_ago, high_fatigue, rng, now)
                )
                record_count += 1

        await logger.ainfo("demo_data_seeded", users=len(seeded), checkins=record_count)
        return seeded

    def _history_record(
        self,
        technician: User,
        days_ago: int,
        high_fatigue: bool,
        rng: random.Random,
        now: datetime,
    ) -> CheckInRecord:
        base = 80 if high_fatigue else 20
        fatigue = round(min(100.0, max(0.0, base + rng.uniform(-10, 10))), 1)
        risk_level = self.risk_engine.tier_for(fatigue)
        high = risk_level == RiskLevel.HIGH
        return CheckInRecord(
            id=f"chk-{technician.id}-{days_ago}",
            user_id=technician.id,
            timestamp=now - timedelta(days=days_ago),
            type=CheckInType.START_SHIFT,
            image_url=f"https://picsum.photos/200/200?random={technician.id}{days_ago}",
            survey=HIGH_FATIGUE_SURVEY if high_fatigue else RESTED_SURVEY,
            analysis=AnalysisResult(
                fatigue_level=fatigue,
                risk_level=risk_level,
                explanation="Fadiga Visual Detectada." if high else "Pronto.",
                recommendation="Pausa." if high else "Ok.",
            ),
        )

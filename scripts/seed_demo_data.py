"""
Reset the database to the demo dataset.

Creates ``gestor@eco.com`` (supervisor) and technicians ``1@1`` to ``10@10``,
all with password ``123``, plus five days of start-of-shift history each.

    python scripts/seed_demo_data.py            # reset and seed
    python scripts/seed_demo_data.py --clear    # only wipe
    python scripts/seed_demo_data.py --seed 42  # reproducible history
"""

from __future__ import annotations

import argparse
import asyncio
import random
import sys
from pathlib import Path

# Add parent directory to Python path so the src package imports from anywhere
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.logging import setup_logging
from src.domain.services.demo_data import DemoDataService
from src.infrastructure.db.session import dispose_engine, get_session_factory
from src.infrastructure.repositories import CheckInRepository, SessionStore, UserRepository


async def run(*, clear_only: bool, seed: int | None) -> None:
    session_factory = get_session_factory()
    service = DemoDataService(
        UserRepository(session_factory),
        CheckInRepository(session_factory),
        SessionStore(session_factory),
    )
    try:
        if clear_only:
            await service.clear_all_data()
            print("All users, check-ins and the session were removed.")
            return

        users = await service.reset_to_seed_data(random.Random(seed))
        print(f"Seeded {len(users)} users:")
        for user in users:
            print(f"  {user.role.value:<11} {user.email:<16} {user.name}")
    finally:
        await dispose_engine()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--clear", action="store_true", help="wipe data without seeding")
    parser.add_argument("--seed", type=int, default=None, help="random seed for history")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(run(clear_only=args.clear, seed=args.seed))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Migrate the database and load a demo travel request with competing offers."""

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select
from tripbroker.core.config import settings
from tripbroker.core.database import build_engine, build_session_factory
from tripbroker.core.observability import setup_structured_logging
from tripbroker.models import (
    Agency,
    AgencyMembership,
    MembershipRole,
    Offer,
    TravelRequest,
    TravelRequestStatus,
    User,
)

logger = logging.getLogger(__name__)

DB_DIR = Path(__file__).resolve().parent.parent / "server" / "db"


def migrate_database() -> None:
    """Bring the schema to the latest revision."""
    config = Config(str(DB_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(DB_DIR / "alembic"))
    command.upgrade(config, "head")
    logger.info("Schema at head revision")


async def create_sample_data() -> None:
    """Create one traveler, two agencies and an offer from each."""
    engine = build_engine(settings.database_url)
    session_factory = build_session_factory(engine)

    try:
        async with session_factory() as db:
            await _seed(db)
    finally:
        await engine.dispose()


async def _seed(db) -> None:
    try:
        existing = await db.execute(select(func.count()).select_from(TravelRequest))
        if existing.scalar() > 0:
            logger.info("Travel requests already present; not seeding")
            return

        traveler = User(display_name="Anna Traveler", channel_address="1001", language="EN")
        db.add(traveler)

        request = TravelRequest(
            user=traveler,
            destination="Dubai",
            status=TravelRequestStatus.OFFERS_RECEIVED,
        )
        db.add(request)

        for index, (agency_name, price_amount) in enumerate(
            [("TravelCo", 150000), ("Sunny Tours", 142500)], start=1
        ):
            agent = User(display_name=f"{agency_name} Agent", channel_address=f"200{index}")
            agency = Agency(name=agency_name, group_channel_address=f"-100{index}")
            membership = AgencyMembership(agency=agency, user=agent, role=MembershipRole.AGENT)
            db.add_all([agent, agency, membership])
            db.add(Offer(
                travel_request=request,
                agency=agency,
                membership=membership,
                price_amount=price_amount,
                price_currency="USD",
            ))

        await db.commit()
        logger.info("Seeded demo travel request", extra={"travel_request_id": str(request.id)})
    except Exception as e:
        await db.rollback()
        logger.error(f"Seeding failed: {e!s}")
        raise


def main() -> None:
    setup_structured_logging(settings)
    migrate_database()
    asyncio.run(create_sample_data())

    logger.info("Database ready; start the API with: python -m tripbroker.main")


if __name__ == "__main__":
    main()

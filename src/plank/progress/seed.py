"""Milestone definition rows, upserted from the in-code tables on startup."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from plank.db.models import CompanyMilestone, Milestone
from plank.progress.milestones import COMPANY_MILESTONES, MILESTONES, MilestoneDef

logger = logging.getLogger(__name__)


def milestone_row(milestone: MilestoneDef) -> dict[str, Any]:
    return {
        "name": milestone.name,
        "description": f"Reach {milestone.label} of total plank time",
        "threshold_seconds": milestone.seconds,
        "created_at": datetime.now(timezone.utc),
    }


def company_milestone_row(milestone: MilestoneDef) -> dict[str, Any]:
    return {
        "name": milestone.name,
        "emoji": milestone.emoji,
        "description": f"Company reaches {milestone.label} of combined plank time",
        "threshold_seconds": milestone.seconds,
        "created_at": datetime.now(timezone.utc),
    }


async def _dialect_insert(db: AsyncSession):  # noqa: ANN202
    conn = await db.connection()
    return pg_insert if conn.dialect.name == "postgresql" else sqlite_insert


async def seed_milestones(db: AsyncSession) -> int:
    """Upsert individual and company milestone definitions. Returns rows seeded."""
    insert = await _dialect_insert(db)
    seeded = 0

    for milestone in MILESTONES:
        stmt = insert(Milestone).values(**milestone_row(milestone))
        stmt = stmt.on_conflict_do_update(
            index_elements=["name"],
            set_={
                "description": stmt.excluded.description,
                "threshold_seconds": stmt.excluded.threshold_seconds,
            },
        )
        await db.execute(stmt)
        seeded += 1

    for milestone in COMPANY_MILESTONES:
        stmt = insert(CompanyMilestone).values(**company_milestone_row(milestone))
        stmt = stmt.on_conflict_do_update(
            index_elements=["name"],
            set_={
                "emoji": stmt.excluded.emoji,
                "description": stmt.excluded.description,
                "threshold_seconds": stmt.excluded.threshold_seconds,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d milestone definitions", seeded)
    return seeded

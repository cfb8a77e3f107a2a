"""
One-shot job to rewrite stored catalog names to canonical form.

Legacy rows carry the spellings the identification step happened to return
("Metal Fight Beyblade", "Burst Surge", "Attack"). Display and grouping
normalize on read anyway; this job cleans the stored values so admin
renames and filters see one spelling.

Run with: python -m beydex.jobs.normalize_catalog
"""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beydex.db.database import async_session_factory
from beydex.models.db import CatalogEntryDB
from beydex.services.normalization import (
    normalize_generation,
    normalize_series,
    normalize_type,
)

logger = logging.getLogger(__name__)


async def normalize_entries(session: AsyncSession) -> int:
    """
    Normalize series, generation and type of every catalog entry.

    Returns the number of entries changed. Does not commit.
    """
    result = await session.execute(select(CatalogEntryDB).order_by(CatalogEntryDB.id))
    changed = 0

    for entry in result.scalars():
        series = normalize_series(entry.series) or entry.series
        generation = normalize_generation(entry.generation) or entry.generation
        entry_type = normalize_type(entry.type) or entry.type

        if (series, generation, entry_type) == (entry.series, entry.generation, entry.type):
            continue

        logger.info(
            "Entry %d %r: %s / %s / %s -> %s / %s / %s",
            entry.id,
            entry.name,
            entry.series,
            entry.generation,
            entry.type,
            series,
            generation,
            entry_type,
        )
        entry.series = series
        entry.generation = generation
        entry.type = entry_type
        changed += 1

    await session.flush()
    return changed


async def run_normalization() -> int:
    """Normalize the catalog and commit. Returns the number of entries changed."""
    async with async_session_factory() as session:
        changed = await normalize_entries(session)
        await session.commit()

    logger.info("Catalog normalization complete. Entries changed: %d", changed)
    return changed


def main() -> None:
    """CLI entry point for running catalog normalization."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_normalization())


if __name__ == "__main__":
    main()

"""
Database CRUD operations.

Provides async functions for reading and writing catalog entries and
collection items, plus converters from ORM rows to domain models.
Functions flush but never commit: the caller owns the transaction.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from beydex.models.beyblade import (
    CatalogEntry,
    CollectionItem,
    SpinDirection,
    Specs,
    components_from_mapping,
)
from beydex.models.db import CatalogEntryDB, CollectionItemDB

logger = logging.getLogger(__name__)

# --- Catalog Operations ---


async def get_catalog_entry(session: AsyncSession, entry_id: int) -> CatalogEntryDB | None:
    """Get a catalog entry by id."""
    return await session.get(CatalogEntryDB, entry_id)


async def get_catalog_entry_by_name(session: AsyncSession, name: str) -> CatalogEntryDB | None:
    """Get a catalog entry by exact name."""
    result = await session.execute(select(CatalogEntryDB).where(CatalogEntryDB.name == name))
    return result.scalar_one_or_none()


async def insert_catalog_entry(
    session: AsyncSession, entry: CatalogEntryDB
) -> tuple[CatalogEntryDB, bool]:
    """
    Insert a catalog entry, tolerating a concurrent insert of the same name.

    The insert runs inside a savepoint. If another transaction committed the
    same name first, the savepoint is rolled back and the existing row is
    returned instead.

    Returns:
        Tuple of (entry, created) where created is False if the name
        already existed.
    """
    try:
        async with session.begin_nested():
            session.add(entry)
            await session.flush()
    except IntegrityError:
        logger.info("Catalog entry %r inserted concurrently, reselecting", entry.name)
        existing = await get_catalog_entry_by_name(session, entry.name)
        if existing is None:
            raise
        return existing, False

    return entry, True


async def list_catalog(
    session: AsyncSession,
    search: str | None = None,
    entry_type: str | None = None,
) -> list[CatalogEntryDB]:
    """
    List catalog entries ordered by series, generation, name.

    Series and generation filters are applied by callers on normalized
    values, since stored spellings vary.
    """
    query = select(CatalogEntryDB)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            CatalogEntryDB.name.ilike(pattern)
            | CatalogEntryDB.name_hasbro.ilike(pattern)
            | CatalogEntryDB.series.ilike(pattern)
            | CatalogEntryDB.generation.ilike(pattern)
        )
    if entry_type:
        query = query.where(CatalogEntryDB.type == entry_type)

    result = await session.execute(
        query.order_by(CatalogEntryDB.series, CatalogEntryDB.generation, CatalogEntryDB.name)
    )
    return list(result.scalars().all())


async def count_catalog(session: AsyncSession) -> int:
    """Total number of catalog entries."""
    result = await session.execute(select(func.count()).select_from(CatalogEntryDB))
    return int(result.scalar_one())


async def rename_series(session: AsyncSession, old_name: str, new_name: str) -> int:
    """
    Rename a series on every catalog entry stored under the old name.

    Returns the number of updated entries.
    """
    result = await session.execute(
        update(CatalogEntryDB).where(CatalogEntryDB.series == old_name).values(series=new_name)
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


async def rename_generation(
    session: AsyncSession, series: str, old_name: str, new_name: str
) -> int:
    """
    Rename a generation within one series.

    Returns the number of updated entries.
    """
    result = await session.execute(
        update(CatalogEntryDB)
        .where(CatalogEntryDB.series == series, CatalogEntryDB.generation == old_name)
        .values(generation=new_name)
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


async def reassign_entries(
    session: AsyncSession, entry_ids: Sequence[int], series: str, generation: str
) -> int:
    """
    Move the given entries to a series and generation.

    Returns the number of updated entries.
    """
    if not entry_ids:
        return 0
    result = await session.execute(
        update(CatalogEntryDB)
        .where(CatalogEntryDB.id.in_(entry_ids))
        .values(series=series, generation=generation)
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


async def delete_catalog_entry(session: AsyncSession, entry_id: int) -> bool:
    """
    Delete a catalog entry by id.

    Returns True if deleted, False if not found.
    """
    result = await session.execute(delete(CatalogEntryDB).where(CatalogEntryDB.id == entry_id))
    return int(result.rowcount) > 0  # type: ignore[attr-defined]


# --- Collection Operations ---


async def list_collection(session: AsyncSession, user_id: str) -> list[CollectionItemDB]:
    """
    Get a user's collection with catalog entries loaded.

    Ordered by creation (oldest first) so ties downstream keep insertion order.
    """
    result = await session.execute(
        select(CollectionItemDB)
        .where(CollectionItemDB.user_id == user_id)
        .options(selectinload(CollectionItemDB.beyblade))
        .order_by(CollectionItemDB.created_at, CollectionItemDB.id)
    )
    return list(result.scalars().all())


async def get_collection_item(
    session: AsyncSession, user_id: str, item_id: int
) -> CollectionItemDB | None:
    """Get one of a user's items. Returns None for another user's item."""
    result = await session.execute(
        select(CollectionItemDB)
        .where(CollectionItemDB.id == item_id, CollectionItemDB.user_id == user_id)
        .options(selectinload(CollectionItemDB.beyblade))
    )
    return result.scalar_one_or_none()


async def find_owned(
    session: AsyncSession, user_id: str, beyblade_id: int
) -> CollectionItemDB | None:
    """The user's first item referencing a catalog entry, if any."""
    result = await session.execute(
        select(CollectionItemDB)
        .where(CollectionItemDB.user_id == user_id, CollectionItemDB.beyblade_id == beyblade_id)
        .order_by(CollectionItemDB.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def add_collection_item(
    session: AsyncSession,
    user_id: str,
    beyblade_id: int,
    photo_url: str | None = None,
    spin_direction: SpinDirection | None = None,
) -> CollectionItemDB:
    """Create a collection item linking a user to a catalog entry."""
    item = CollectionItemDB(
        user_id=user_id,
        beyblade_id=beyblade_id,
        photo_url=photo_url,
        spin_direction=spin_direction.value if spin_direction else None,
    )
    session.add(item)
    await session.flush()
    return item


async def delete_collection_item(session: AsyncSession, user_id: str, item_id: int) -> bool:
    """
    Delete one of a user's items.

    Returns True if deleted, False if not found.
    """
    result = await session.execute(
        delete(CollectionItemDB).where(
            CollectionItemDB.id == item_id, CollectionItemDB.user_id == user_id
        )
    )
    return int(result.rowcount) > 0  # type: ignore[attr-defined]


async def repoint_items(session: AsyncSession, source_id: int, target_id: int) -> int:
    """
    Move collection items from one catalog entry to another.

    A user who owned both keeps only the item already on the target.
    Returns the number of items moved.
    """
    owners_of_target = select(CollectionItemDB.user_id).where(
        CollectionItemDB.beyblade_id == target_id
    )
    await session.execute(
        delete(CollectionItemDB).where(
            CollectionItemDB.beyblade_id == source_id,
            CollectionItemDB.user_id.in_(owners_of_target),
        )
    )
    result = await session.execute(
        update(CollectionItemDB)
        .where(CollectionItemDB.beyblade_id == source_id)
        .values(beyblade_id=target_id)
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


async def owner_counts(session: AsyncSession) -> dict[str, int]:
    """Number of items owned per user, for every user with at least one item."""
    result = await session.execute(
        select(CollectionItemDB.user_id, func.count()).group_by(CollectionItemDB.user_id)
    )
    return {user_id: int(count) for user_id, count in result.all()}


# --- Converters ---


def catalog_entry_to_model(entry: CatalogEntryDB) -> CatalogEntry:
    """Convert a database catalog entry to a domain model."""
    specs = None
    if isinstance(entry.specs, dict):
        specs = Specs(
            weight=_str_or_none(entry.specs.get("weight")),
            attack=_str_or_none(entry.specs.get("attack")),
            defense=_str_or_none(entry.specs.get("defense")),
            stamina=_str_or_none(entry.specs.get("stamina")),
        )
        if specs.is_empty():
            specs = None

    return CatalogEntry(
        id=entry.id,
        name=entry.name,
        series=entry.series,
        generation=entry.generation,
        type=entry.type,
        name_hasbro=entry.name_hasbro,
        components=components_from_mapping(entry.components, entry.series),
        specs=specs,
        description=entry.description,
        image_url=entry.image_url,
        wiki_url=entry.wiki_url,
        created_at=entry.created_at,
    )


def collection_item_to_model(
    item: CollectionItemDB, entry: CatalogEntryDB | None = None
) -> CollectionItem:
    """
    Convert a database collection item to a domain model.

    Pass the catalog entry explicitly for items whose relationship was not
    eagerly loaded (freshly inserted rows).
    """
    entry = entry if entry is not None else item.beyblade
    try:
        spin = SpinDirection(item.spin_direction) if item.spin_direction else None
    except ValueError:
        logger.warning("Ignoring unknown spin direction %r on item %s", item.spin_direction, item.id)
        spin = None

    return CollectionItem(
        id=item.id,
        user_id=item.user_id,
        beyblade_id=item.beyblade_id,
        condition=item.condition,
        custom_name=item.custom_name,
        photo_url=item.photo_url,
        notes=item.notes,
        acquired_at=item.acquired_at,
        spin_direction=spin,
        created_at=item.created_at,
        beyblade=catalog_entry_to_model(entry) if entry is not None else None,
    )


def _str_or_none(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)

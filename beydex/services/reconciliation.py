"""
Catalog reconciliation.

Folds a confirmed IdentificationResult into the shared catalog and links it
into the user's collection.

INVARIANTS:
- At most one catalog entry per name (unique constraint plus
  insert-conflict-then-reselect)
- Merging never replaces a populated image; structured details (specs,
  components, descriptions, secondary name) are refinable and always
  replaced when the new result provides them
- A user never gets a second item for an entry they already own
- Catalog and collection writes share the caller's transaction
"""

import base64
import binascii
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from beydex.db import operations as ops
from beydex.models.beyblade import (
    CatalogEntry,
    CollectionItem,
    IdentificationResult,
    SpinDirection,
    components_to_dict,
)
from beydex.models.db import CatalogEntryDB
from beydex.models.failure import FailureKind, KnownError, ObjectStoreError
from beydex.services.object_store import ObjectStore

logger = logging.getLogger(__name__)

# Stored when the identification did not report a value
UNKNOWN = "Unknown"


class ConfirmStatus(str, Enum):
    ADDED = "added"
    ALREADY_OWNED = "already_owned"


@dataclass(frozen=True, slots=True)
class ReconciliationOutcome:
    """
    Result of confirming an identification.

    ALREADY_OWNED is informational, not a failure: the catalog may still have
    been refined, but no collection item was created.
    """

    status: ConfirmStatus
    entry: CatalogEntry
    item: CollectionItem | None
    catalog_created: bool

    @property
    def message(self) -> str:
        if self.status is ConfirmStatus.ALREADY_OWNED:
            return f"{self.entry.name} is already in your collection."
        return f"{self.entry.name} was added to your collection."


def decode_photo(photo: str) -> bytes:
    """
    Decode a base64 photo, accepting a data URL prefix.

    Raises:
        ValueError: If the payload is not valid base64
    """
    data = photo.split(",", 1)[1] if photo.startswith("data:") else photo
    try:
        return base64.b64decode(data, validate=True)
    except binascii.Error as e:
        raise ValueError("photo is not valid base64") from e


async def upload_photo(store: ObjectStore, user_id: str, photo: str) -> str | None:
    """
    Upload a user photo; returns its public URL, or None if it failed.

    A failed upload never blocks the save.
    """
    key = f"{user_id}/{uuid.uuid4().hex}.jpg"
    try:
        await store.upload(key, decode_photo(photo), "image/jpeg")
    except (ValueError, ObjectStoreError):
        logger.exception("Photo upload failed for user %s, saving without photo", user_id)
        return None
    return store.public_url(key)


def merge_identification(
    entry: CatalogEntryDB, result: IdentificationResult, image_url: str | None
) -> None:
    """Merge a new identification into an existing entry without losing data."""
    if image_url and not entry.image_url:
        entry.image_url = image_url
    if result.wiki_url and not entry.wiki_url:
        entry.wiki_url = result.wiki_url

    if result.description:
        entry.description = result.description
    if result.specs is not None and not result.specs.is_empty():
        entry.specs = result.specs.to_dict()
    if result.components is not None:
        entry.components = components_to_dict(result.components)
    if result.name_hasbro:
        entry.name_hasbro = result.name_hasbro


def _new_entry(result: IdentificationResult, name: str, image_url: str | None) -> CatalogEntryDB:
    return CatalogEntryDB(
        name=name,
        name_hasbro=result.name_hasbro,
        series=result.series or UNKNOWN,
        generation=result.generation or UNKNOWN,
        type=result.type or UNKNOWN,
        components=components_to_dict(result.components),
        specs=result.specs.to_dict() if result.specs and not result.specs.is_empty() else None,
        description=result.description,
        image_url=image_url,
        wiki_url=result.wiki_url,
    )


async def confirm_identification(
    session: AsyncSession,
    store: ObjectStore,
    user_id: str,
    result: IdentificationResult,
    photo: str | None = None,
    spin_direction: SpinDirection | None = None,
) -> ReconciliationOutcome:
    """
    Save a confirmed identification to the catalog and the user's collection.

    The user's photo, when given, becomes the item photo and also the catalog
    image if the entry has none.

    Raises:
        KnownError: If the result is not an identification with a name
    """
    name = (result.name or "").strip()
    if not result.identified or not name:
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message="Only identified Beyblades can be added to a collection.",
            detail="identified is false or name is missing",
            status_code=422,
        )

    entry = await ops.get_catalog_entry_by_name(session, name)
    owned = await ops.find_owned(session, user_id, entry.id) if entry is not None else None
    if owned is not None:
        # No item will be created, so the photo is neither stored nor used
        merge_identification(entry, result, result.image_url)
        await session.flush()
        logger.info("Catalog entry %s already owned by user %s", entry.id, user_id)
        return ReconciliationOutcome(
            status=ConfirmStatus.ALREADY_OWNED,
            entry=ops.catalog_entry_to_model(entry),
            item=ops.collection_item_to_model(owned, entry),
            catalog_created=False,
        )

    photo_url = await upload_photo(store, user_id, photo) if photo else None
    image_url = photo_url or result.image_url

    created = False
    if entry is None:
        entry, created = await ops.insert_catalog_entry(
            session, _new_entry(result, name, image_url)
        )
    if not created:
        merge_identification(entry, result, image_url)
        await session.flush()

    logger.info(
        "Catalog entry %s %s for user %s",
        entry.id,
        "created" if created else "resolved",
        user_id,
    )

    item = await ops.add_collection_item(
        session, user_id, entry.id, photo_url=photo_url, spin_direction=spin_direction
    )
    return ReconciliationOutcome(
        status=ConfirmStatus.ADDED,
        entry=ops.catalog_entry_to_model(entry),
        item=ops.collection_item_to_model(item, entry),
        catalog_created=created,
    )


# =============================================================================
# ADMIN OPERATIONS
# =============================================================================


def _required(value: str, field_name: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message=f"{field_name} must not be empty.",
            status_code=422,
        )
    return stripped


async def rename_series(session: AsyncSession, old_name: str, new_name: str) -> int:
    """Rename a series across the catalog. Returns the number of entries changed."""
    count = await ops.rename_series(session, old_name, _required(new_name, "New series name"))
    logger.info("Renamed series %r to %r on %d entries", old_name, new_name, count)
    return count


async def rename_generation(
    session: AsyncSession, series: str, old_name: str, new_name: str
) -> int:
    """Rename a generation within a series. Returns the number of entries changed."""
    count = await ops.rename_generation(
        session, series, old_name, _required(new_name, "New generation name")
    )
    logger.info(
        "Renamed generation %r to %r in %r on %d entries", old_name, new_name, series, count
    )
    return count


async def reassign(
    session: AsyncSession, entry_ids: Sequence[int], series: str, generation: str
) -> int:
    """Move entries to a series and generation. Returns the number of entries changed."""
    count = await ops.reassign_entries(
        session,
        entry_ids,
        _required(series, "Series"),
        _required(generation, "Generation"),
    )
    logger.info("Reassigned %d entries to %r / %r", count, series, generation)
    return count


async def merge_entries(session: AsyncSession, source_id: int, target_id: int) -> CatalogEntry:
    """
    Merge a duplicate catalog entry into a target entry.

    Empty fields of the target are back-filled from the duplicate, collection
    items are repointed to the target, and the duplicate is deleted. A user
    who owned both ends up with a single item.

    Raises:
        KnownError: If the ids are equal or either entry does not exist
    """
    if source_id == target_id:
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message="An entry cannot be merged into itself.",
            status_code=422,
        )

    source = await ops.get_catalog_entry(session, source_id)
    target = await ops.get_catalog_entry(session, target_id)
    if source is None or target is None:
        missing = source_id if source is None else target_id
        raise KnownError(
            kind=FailureKind.NOT_FOUND,
            message="Catalog entry not found.",
            detail=f"No catalog entry with id {missing}",
            status_code=404,
        )

    for attribute in (
        "name_hasbro",
        "components",
        "specs",
        "description",
        "image_url",
        "wiki_url",
    ):
        if not getattr(target, attribute) and getattr(source, attribute):
            setattr(target, attribute, getattr(source, attribute))
    await session.flush()

    moved = await ops.repoint_items(session, source_id, target_id)
    await ops.delete_catalog_entry(session, source_id)

    logger.info("Merged entry %d into %d, moved %d items", source_id, target_id, moved)
    return ops.catalog_entry_to_model(target)

"""
Catalog API endpoints.

Read access to the shared catalog plus the admin surface for cleaning it
up: renames, reassignment and merging duplicates. Renames and reassignment
apply to every collection item through the catalog reference.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from beydex.api.schemas import (
    CatalogEntryResponse,
    SeriesGroupResponse,
    series_groups_response,
)
from beydex.db import catalog_entry_to_model, list_catalog
from beydex.db.database import get_session
from beydex.models.beyblade import BEYBLADE_TYPES, CatalogEntry
from beydex.services import reconciliation
from beydex.services.normalization import (
    normalize_generation,
    normalize_series,
    normalize_type,
)
from beydex.services.ordering import get_generation_order, get_series_order
from beydex.services.stats import group_catalog

router = APIRouter(prefix="/catalog", tags=["catalog"])


class CatalogListResponse(BaseModel):
    entries: list[CatalogEntryResponse]
    count: int


class CatalogFiltersResponse(BaseModel):
    """Distinct canonical values available for filtering."""

    series: list[str]
    generations: list[str]
    types: list[str]


class RenameSeriesRequest(BaseModel):
    old_name: str = Field(..., min_length=1)
    new_name: str = Field(..., min_length=1)


class RenameGenerationRequest(BaseModel):
    series: str = Field(..., min_length=1)
    old_name: str = Field(..., min_length=1)
    new_name: str = Field(..., min_length=1)


class ReassignRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)
    series: str = Field(..., min_length=1)
    generation: str = Field(..., min_length=1)


class MergeRequest(BaseModel):
    source_id: int = Field(..., description="Duplicate entry, deleted after the merge")
    target_id: int = Field(..., description="Entry that survives")


class AdminUpdateResponse(BaseModel):
    updated: int


async def _load_catalog(
    session: AsyncSession,
    q: str | None = None,
    series: str | None = None,
    generation: str | None = None,
    entry_type: str | None = None,
) -> list[CatalogEntry]:
    rows = await list_catalog(session, search=q)
    entries = [catalog_entry_to_model(row) for row in rows]

    # Stored spellings vary, so filters compare canonical values
    if series:
        wanted = normalize_series(series)
        entries = [e for e in entries if normalize_series(e.series) == wanted]
    if generation:
        wanted = normalize_generation(generation)
        entries = [e for e in entries if normalize_generation(e.generation) == wanted]
    if entry_type:
        wanted = normalize_type(entry_type)
        entries = [e for e in entries if normalize_type(e.type) == wanted]
    return entries


@router.get("", response_model=CatalogListResponse)
async def get_catalog(
    session: Annotated[AsyncSession, Depends(get_session)],
    q: Annotated[str | None, Query(max_length=200)] = None,
    series: str | None = None,
    generation: str | None = None,
    type: str | None = None,
) -> CatalogListResponse:
    """List catalog entries, optionally filtered by name, series, generation and type."""
    entries = await _load_catalog(session, q, series, generation, type)
    return CatalogListResponse(
        entries=[CatalogEntryResponse.from_model(e) for e in entries],
        count=len(entries),
    )


@router.get("/filters", response_model=CatalogFiltersResponse)
async def get_filters(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CatalogFiltersResponse:
    """Canonical series, generations and types present in the catalog, in display order."""
    entries = await _load_catalog(session)

    series = {normalize_series(e.series) or e.series: None for e in entries}
    generations = {normalize_generation(e.generation) or e.generation: None for e in entries}
    present_types = {normalize_type(e.type) for e in entries}

    return CatalogFiltersResponse(
        series=sorted(series, key=get_series_order),
        generations=sorted(generations, key=get_generation_order),
        types=[t for t in BEYBLADE_TYPES if t in present_types],
    )


@router.get("/groups", response_model=list[SeriesGroupResponse])
async def get_groups(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> list[SeriesGroupResponse]:
    """The catalog grouped by series and generation."""
    entries = await _load_catalog(session)
    return series_groups_response(group_catalog(entries), CatalogEntryResponse.from_model)


# --- Admin ---


@router.post("/admin/rename-series", response_model=AdminUpdateResponse)
async def rename_series(
    request: RenameSeriesRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AdminUpdateResponse:
    """Rename a stored series name on every entry using it."""
    updated = await reconciliation.rename_series(session, request.old_name, request.new_name)
    return AdminUpdateResponse(updated=updated)


@router.post("/admin/rename-generation", response_model=AdminUpdateResponse)
async def rename_generation(
    request: RenameGenerationRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AdminUpdateResponse:
    """Rename a stored generation name within one series."""
    updated = await reconciliation.rename_generation(
        session, request.series, request.old_name, request.new_name
    )
    return AdminUpdateResponse(updated=updated)


@router.post("/admin/reassign", response_model=AdminUpdateResponse)
async def reassign(
    request: ReassignRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AdminUpdateResponse:
    """Move selected entries to a series and generation."""
    updated = await reconciliation.reassign(
        session, request.ids, request.series, request.generation
    )
    return AdminUpdateResponse(updated=updated)


@router.post("/admin/merge", response_model=CatalogEntryResponse)
async def merge(
    request: MergeRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CatalogEntryResponse:
    """Merge a duplicate entry into a target entry."""
    entry = await reconciliation.merge_entries(session, request.source_id, request.target_id)
    return CatalogEntryResponse.from_model(entry)

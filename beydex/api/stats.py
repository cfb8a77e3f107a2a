"""
Statistics endpoint.

Derived, read-only metrics over one user's collection, compared against the
catalog and every other collector.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from beydex.db import collection_item_to_model, count_catalog, list_collection, owner_counts
from beydex.db.database import get_session
from beydex.services.stats import compute_stats

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/{user_id}")
async def get_stats(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> dict[str, Any]:
    """
    Collection statistics for a user.

    Includes counts by type, series and generation, an acquisition timeline,
    the most owned components, catalog completion and a percentile rank
    among all users.
    """
    items = [collection_item_to_model(row) for row in await list_collection(session, user_id)]
    stats = compute_stats(
        items,
        catalog_size=await count_catalog(session),
        owner_counts=await owner_counts(session),
        user_id=user_id,
    )
    return {"user_id": user_id, **stats.to_dict()}

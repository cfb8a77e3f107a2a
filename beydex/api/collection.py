"""
Collection API endpoints.

A user's items, grouped for display, plus the per-item mutations: delete,
spin direction and photo. Items are addressed by id and always scoped to
the owning user.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from beydex.api.schemas import (
    CollectionItemResponse,
    SeriesGroupResponse,
    series_groups_response,
)
from beydex.db import (
    collection_item_to_model,
    delete_collection_item,
    get_collection_item,
    list_collection,
)
from beydex.db.database import get_session
from beydex.models.beyblade import SpinDirection
from beydex.services.image_resolution import get_beyblade_image_url
from beydex.services.object_store import ObjectStore, get_object_store
from beydex.services.reconciliation import decode_photo
from beydex.services.stats import component_index, group_collection

router = APIRouter(prefix="/collection", tags=["collection"])


class CollectionResponse(BaseModel):
    """A user's collection grouped by series and generation."""

    user_id: str
    total: int
    groups: list[SeriesGroupResponse] = Field(default_factory=list)


class ComponentEntryResponse(BaseModel):
    id: int
    name: str
    image_url: str | None = None


class ComponentPartResponse(BaseModel):
    name: str
    description: str | None = None
    count: int
    beyblades: list[ComponentEntryResponse]


class ComponentSlotResponse(BaseModel):
    key: str
    label: str
    parts: list[ComponentPartResponse]


class ComponentsResponse(BaseModel):
    user_id: str
    slots: list[ComponentSlotResponse]


class SpinDirectionRequest(BaseModel):
    spin_direction: SpinDirection


class PhotoRequest(BaseModel):
    photo: str = Field(..., min_length=1, description="Base64 image, raw or as a data URL")


class DeleteResponse(BaseModel):
    """Response model for delete operations."""

    user_id: str
    item_id: int
    deleted: bool


@router.get("/{user_id}", response_model=CollectionResponse)
async def get_user_collection(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionResponse:
    """
    Get a user's collection.

    Groups use canonical series and generation names, ordered by rank.
    Items inside a generation are newest-acquired first.
    """
    items = [collection_item_to_model(row) for row in await list_collection(session, user_id)]
    return CollectionResponse(
        user_id=user_id,
        total=len(items),
        groups=series_groups_response(group_collection(items), CollectionItemResponse.from_model),
    )


@router.get("/{user_id}/components", response_model=ComponentsResponse)
async def get_components(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ComponentsResponse:
    """Owned parts by component slot, with the Beyblades that use each part."""
    items = [collection_item_to_model(row) for row in await list_collection(session, user_id)]
    slots = component_index(items)
    return ComponentsResponse(
        user_id=user_id,
        slots=[
            ComponentSlotResponse(
                key=slot.key,
                label=slot.label,
                parts=[
                    ComponentPartResponse(
                        name=part.name,
                        description=part.description,
                        count=part.count,
                        beyblades=[
                            ComponentEntryResponse(
                                id=entry.id,
                                name=entry.name,
                                image_url=get_beyblade_image_url(entry.image_url, entry.wiki_url),
                            )
                            for entry in part.entries
                        ],
                    )
                    for part in slot.parts
                ],
            )
            for slot in slots
        ],
    )


@router.delete("/{user_id}/items/{item_id}", response_model=DeleteResponse)
async def delete_item(
    user_id: str,
    item_id: int,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """Remove an item from the collection. The catalog entry is kept."""
    deleted = await delete_collection_item(session, user_id, item_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {item_id} not found",
        )
    return DeleteResponse(user_id=user_id, item_id=item_id, deleted=True)


@router.patch("/{user_id}/items/{item_id}/spin-direction", response_model=CollectionItemResponse)
async def update_spin_direction(
    user_id: str,
    item_id: int,
    request: SpinDirectionRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionItemResponse:
    """Set the spin direction of an item."""
    item = await get_collection_item(session, user_id, item_id)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {item_id} not found",
        )

    item.spin_direction = request.spin_direction.value
    await session.flush()
    return CollectionItemResponse.from_model(collection_item_to_model(item))


@router.put("/{user_id}/items/{item_id}/photo", response_model=CollectionItemResponse)
async def update_photo(
    user_id: str,
    item_id: int,
    request: PhotoRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
) -> CollectionItemResponse:
    """Replace the photo of an item. Upload failures are reported, not ignored."""
    item = await get_collection_item(session, user_id, item_id)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {item_id} not found",
        )

    try:
        data = decode_photo(request.photo)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Photo is not valid base64",
        ) from e

    key = f"{user_id}/{item_id}_{uuid.uuid4().hex}.jpg"
    await store.upload(key, data, "image/jpeg")

    item.photo_url = store.public_url(key)
    await session.flush()
    return CollectionItemResponse.from_model(collection_item_to_model(item))

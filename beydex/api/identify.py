"""
Identification endpoints.

Identify from a photo or from a wiki page, then confirm the result into the
catalog and the user's collection. Identification results are never stored
until confirmed.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from beydex.api.deps import get_identifier
from beydex.api.schemas import CatalogEntryResponse, CollectionItemResponse
from beydex.db.database import get_session
from beydex.models.beyblade import IdentificationResult, SpinDirection
from beydex.services.ai_parsing import parse_identification
from beydex.services.identifier import Identifier
from beydex.services.image_resolution import get_beyblade_image_url
from beydex.services.object_store import ObjectStore, get_object_store
from beydex.services.reconciliation import confirm_identification

router = APIRouter(prefix="/identify", tags=["identify"])


class ImageIdentifyRequest(BaseModel):
    image: str = Field(
        ...,
        min_length=1,
        description="Base64 image, raw or as a data URL",
    )


class LookupRequest(BaseModel):
    slug: str = Field(..., min_length=1, description="Wiki page slug from a search result")


class IdentifyResponse(BaseModel):
    """
    An identification result.

    outcome is "identified", "leads" (not identified, but suggestions or
    partial hints are present) or "unidentified".
    """

    outcome: str
    result: dict[str, Any]


class ConfirmRequest(BaseModel):
    result: dict[str, Any] = Field(
        ...,
        description="Identification result as returned by /identify/image or /identify/lookup",
    )
    photo: str | None = Field(
        default=None,
        description="Optional user photo (base64); becomes the item photo",
    )
    spin_direction: SpinDirection | None = None


class ConfirmResponse(BaseModel):
    status: str
    message: str
    catalog_created: bool
    beyblade: CatalogEntryResponse
    item: CollectionItemResponse | None = None


def _identify_response(result: IdentificationResult) -> IdentifyResponse:
    data = result.to_dict()
    resolved = get_beyblade_image_url(result.image_url, result.wiki_url)
    if resolved:
        data["display_image_url"] = resolved
    return IdentifyResponse(outcome=result.outcome, result=data)


@router.post("/image", response_model=IdentifyResponse)
async def identify_image(
    request: ImageIdentifyRequest,
    identifier: Annotated[Identifier, Depends(get_identifier)],
) -> IdentifyResponse:
    """Identify a Beyblade from a photo. One attempt, no retry."""
    result = await identifier.identify_image(request.image)
    return _identify_response(result)


@router.post("/lookup", response_model=IdentifyResponse)
async def lookup(
    request: LookupRequest,
    identifier: Annotated[Identifier, Depends(get_identifier)],
) -> IdentifyResponse:
    """
    Identify a Beyblade from its wiki page.

    Retried with backoff; a missing page fails immediately with 404.
    """
    result = await identifier.lookup(request.slug)
    return _identify_response(result)


@router.post("/confirm/{user_id}", response_model=ConfirmResponse)
async def confirm(
    user_id: str,
    request: ConfirmRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    store: Annotated[ObjectStore, Depends(get_object_store)],
) -> ConfirmResponse:
    """
    Save a confirmed identification.

    Already owning the Beyblade is reported with status "already_owned",
    not as an error.
    """
    # The posted result came back from the client: coerce it again
    result = parse_identification(request.result)
    outcome = await confirm_identification(
        session,
        store,
        user_id,
        result,
        photo=request.photo,
        spin_direction=request.spin_direction,
    )
    return ConfirmResponse(
        status=outcome.status.value,
        message=outcome.message,
        catalog_created=outcome.catalog_created,
        beyblade=CatalogEntryResponse.from_model(outcome.entry),
        item=CollectionItemResponse.from_model(outcome.item) if outcome.item else None,
    )

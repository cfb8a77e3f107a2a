"""
Response models shared by several routers.

Every image URL leaving the API has gone through image resolution, so
clients can hot-link it directly.
"""

from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from beydex.models.beyblade import CatalogEntry, CollectionItem, components_to_dict
from beydex.services.image_resolution import get_beyblade_image_url
from beydex.services.normalization import normalize_generation, normalize_series
from beydex.services.stats import SeriesGroup


class CatalogEntryResponse(BaseModel):
    """One catalog entry."""

    id: int
    name: str
    name_hasbro: str | None = None
    series: str
    generation: str
    type: str
    components: dict[str, Any] | None = None
    specs: dict[str, str] | None = None
    description: str | None = None
    image_url: str | None = None
    wiki_url: str | None = None

    @classmethod
    def from_model(cls, entry: CatalogEntry) -> "CatalogEntryResponse":
        return cls(
            id=entry.id,
            name=entry.name,
            name_hasbro=entry.name_hasbro,
            series=normalize_series(entry.series) or entry.series,
            generation=normalize_generation(entry.generation) or entry.generation,
            type=entry.type,
            components=components_to_dict(entry.components),
            specs=entry.specs.to_dict() if entry.specs else None,
            description=entry.description,
            image_url=get_beyblade_image_url(entry.image_url, entry.wiki_url),
            wiki_url=entry.wiki_url,
        )


class CollectionItemResponse(BaseModel):
    """One owned item with its catalog entry."""

    id: int
    user_id: str
    beyblade_id: int
    condition: str
    custom_name: str | None = None
    photo_url: str | None = None
    display_image_url: str | None = Field(
        default=None,
        description="User photo if present, else the catalog image",
    )
    notes: str | None = None
    acquired_at: date | None = None
    spin_direction: str | None = None
    created_at: datetime | None = None
    beyblade: CatalogEntryResponse | None = None

    @classmethod
    def from_model(cls, item: CollectionItem) -> "CollectionItemResponse":
        beyblade = CatalogEntryResponse.from_model(item.beyblade) if item.beyblade else None
        photo_url = get_beyblade_image_url(item.photo_url)
        return cls(
            id=item.id,
            user_id=item.user_id,
            beyblade_id=item.beyblade_id,
            condition=item.condition,
            custom_name=item.custom_name,
            photo_url=photo_url,
            display_image_url=photo_url or (beyblade.image_url if beyblade else None),
            notes=item.notes,
            acquired_at=item.acquired_at,
            spin_direction=item.spin_direction.value if item.spin_direction else None,
            created_at=item.created_at,
            beyblade=beyblade,
        )


class GenerationGroupResponse(BaseModel):
    generation: str
    count: int
    items: list[Any]


class SeriesGroupResponse(BaseModel):
    series: str
    count: int
    generations: list[GenerationGroupResponse]


def series_groups_response(
    groups: list[SeriesGroup[Any]], convert: Callable[[Any], BaseModel]
) -> list[SeriesGroupResponse]:
    """Serialize grouped records with a per-record converter."""
    return [
        SeriesGroupResponse(
            series=group.series,
            count=group.count,
            generations=[
                GenerationGroupResponse(
                    generation=generation.generation,
                    count=len(generation.records),
                    items=[convert(record) for record in generation.records],
                )
                for generation in group.generations
            ],
        )
        for group in groups
    ]

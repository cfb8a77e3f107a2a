"""
Beyblade Domain Models.

INVARIANTS:
- Components are a tagged union: exactly one of three part schemas applies
  to an entry, chosen by product generation. The schemas share no keys.
- IdentificationResult is UNTRUSTED output from the AI/wiki step and is never
  persisted directly; reconciliation folds it into a CatalogEntry.
- CatalogEntry.name is the natural dedup key of the catalog.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar


class ComponentSchema(str, Enum):
    """The three mutually exclusive component key-sets."""

    BEYBLADE_X = "BeybladeX"
    BURST = "Burst"
    METAL_FIGHT = "MetalFight"


class SpinDirection(str, Enum):
    """Spin direction of a physical top."""

    LEFT = "L"
    RIGHT = "R"
    BOTH = "R/L"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Canonical (localized) type names, in display order
BEYBLADE_TYPES: tuple[str, ...] = ("Ataque", "Defesa", "Stamina", "Equilíbrio")

# Human-readable label for every component key of every schema
COMPONENT_LABELS: dict[str, str] = {
    "blade": "Blade",
    "ratchet": "Ratchet",
    "bit": "Bit",
    "layer": "Layer",
    "disk": "Disk",
    "driver": "Driver",
    "face_bolt": "Face Bolt",
    "energy_ring": "Energy Ring",
    "fusion_wheel": "Fusion Wheel",
    "spin_track": "Spin Track",
    "performance_tip": "Performance Tip",
}


@dataclass(frozen=True, slots=True)
class BeybladeXParts:
    """Beyblade X: Blade + Ratchet + Bit."""

    kind: ClassVar[ComponentSchema] = ComponentSchema.BEYBLADE_X
    part_keys: ClassVar[tuple[str, ...]] = ("blade", "ratchet", "bit")

    blade: str | None = None
    ratchet: str | None = None
    bit: str | None = None
    descriptions: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BurstParts:
    """Beyblade Burst: Layer + Disk + Driver."""

    kind: ClassVar[ComponentSchema] = ComponentSchema.BURST
    part_keys: ClassVar[tuple[str, ...]] = ("layer", "disk", "driver")

    layer: str | None = None
    disk: str | None = None
    driver: str | None = None
    descriptions: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MetalFightParts:
    """Metal Fight: Face Bolt + Energy Ring + Fusion Wheel + Spin Track + Performance Tip."""

    kind: ClassVar[ComponentSchema] = ComponentSchema.METAL_FIGHT
    part_keys: ClassVar[tuple[str, ...]] = (
        "face_bolt",
        "energy_ring",
        "fusion_wheel",
        "spin_track",
        "performance_tip",
    )

    face_bolt: str | None = None
    energy_ring: str | None = None
    fusion_wheel: str | None = None
    spin_track: str | None = None
    performance_tip: str | None = None
    descriptions: dict[str, str] = field(default_factory=dict)


Components = BeybladeXParts | BurstParts | MetalFightParts

# Series name (canonical) -> schema it uses
SERIES_SCHEMA: dict[str, ComponentSchema] = {
    "Beyblade X": ComponentSchema.BEYBLADE_X,
    "Beyblade Burst": ComponentSchema.BURST,
    "Metal Fight": ComponentSchema.METAL_FIGHT,
}


def present_parts(components: Components | None) -> list[tuple[str, str]]:
    """
    List the (key, part name) pairs actually populated, in schema order.

    Consumers resolve labels through COMPONENT_LABELS on these keys only,
    never by assuming a fixed key set.
    """
    if components is None:
        return []
    return [
        (key, value)
        for key in components.part_keys
        if (value := getattr(components, key))
    ]


def components_from_mapping(
    data: Any, series: str | None = None
) -> Components | None:
    """
    Build the components variant from a loosely-typed mapping.

    The schema is chosen by the canonical series when it maps to one and any
    of its keys are present, otherwise by the first schema whose keys appear
    (Metal Fight first: performance_tip alone is ambiguous). Non-string values
    are dropped. Returns None when no schema key is populated.
    """
    if not isinstance(data, dict):
        return None

    raw_descriptions = data.get("descriptions")
    descriptions = (
        {str(k): v for k, v in raw_descriptions.items() if isinstance(v, str) and v}
        if isinstance(raw_descriptions, dict)
        else {}
    )

    def populated(schema: type[BeybladeXParts] | type[BurstParts] | type[MetalFightParts]) -> dict[str, str]:
        return {
            key: value.strip()
            for key in schema.part_keys
            if isinstance(value := data.get(key), str) and value.strip()
        }

    preferred = SERIES_SCHEMA.get(series or "")
    candidates = sorted(
        (MetalFightParts, BeybladeXParts, BurstParts),
        key=lambda schema: schema.kind != preferred,
    )
    for schema in candidates:
        parts = populated(schema)
        if parts:
            kept = {k: v for k, v in descriptions.items() if k in schema.part_keys}
            return schema(**parts, descriptions=kept)

    return None


def components_to_dict(components: Components | None) -> dict[str, Any] | None:
    """Serialize components to the shared JSON shape (variant keys + descriptions)."""
    if components is None:
        return None
    data: dict[str, Any] = dict(present_parts(components))
    if components.descriptions:
        data["descriptions"] = dict(components.descriptions)
    return data


@dataclass(frozen=True, slots=True)
class Specs:
    """Optional ratings; values are free text as returned by the sources."""

    weight: str | None = None
    attack: str | None = None
    defense: str | None = None
    stamina: str | None = None

    def to_dict(self) -> dict[str, str]:
        return {f.name: v for f in fields(self) if (v := getattr(self, f.name))}

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True, slots=True)
class PartialAnalysis:
    """Hints returned with a degraded (not identified) result."""

    detected_colors: tuple[str, ...] = ()
    detected_series: str | None = None
    detected_features: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.detected_colors:
            data["detected_colors"] = list(self.detected_colors)
        if self.detected_series:
            data["detected_series"] = self.detected_series
        if self.detected_features:
            data["detected_features"] = list(self.detected_features)
        return data


@dataclass(frozen=True, slots=True)
class IdentificationResult:
    """
    Transient output of the identification step.

    This is UNTRUSTED data: produced by coercing model output field by field.
    Consumed once, either discarded or folded into the catalog.
    """

    identified: bool
    confidence: Confidence | None = None
    manufacturer: str | None = None
    name: str | None = None
    name_hasbro: str | None = None
    version_notes: str | None = None
    series: str | None = None
    generation: str | None = None
    type: str | None = None
    components: Components | None = None
    specs: Specs | None = None
    description: str | None = None
    image_url: str | None = None
    wiki_url: str | None = None
    suggestions: tuple[str, ...] = ()
    partial_analysis: PartialAnalysis | None = None
    error_message: str | None = None

    @property
    def outcome(self) -> str:
        """
        Classify the result for display.

        "identified": confirmed fields present
        "leads": not identified, but suggestions or partial hints exist
        "unidentified": nothing usable
        """
        if self.identified:
            return "identified"
        if self.suggestions or (self.partial_analysis and self.partial_analysis.to_dict()):
            return "leads"
        return "unidentified"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the shared JSON shape, omitting empty fields."""
        data: dict[str, Any] = {"identified": self.identified}
        if self.confidence is not None:
            data["confidence"] = self.confidence.value
        for key in (
            "manufacturer",
            "name",
            "name_hasbro",
            "version_notes",
            "series",
            "generation",
            "type",
            "description",
            "image_url",
            "wiki_url",
            "error_message",
        ):
            value = getattr(self, key)
            if value:
                data[key] = value
        if (components := components_to_dict(self.components)) is not None:
            data["components"] = components
        if self.specs is not None and not self.specs.is_empty():
            data["specs"] = self.specs.to_dict()
        if self.suggestions:
            data["suggestions"] = list(self.suggestions)
        if self.partial_analysis is not None and self.partial_analysis.to_dict():
            data["partial_analysis"] = self.partial_analysis.to_dict()
        return data


@dataclass(slots=True)
class CatalogEntry:
    """A canonical record of one distinct product variant."""

    id: int
    name: str
    series: str
    generation: str
    type: str
    name_hasbro: str | None = None
    components: Components | None = None
    specs: Specs | None = None
    description: str | None = None
    image_url: str | None = None
    wiki_url: str | None = None
    created_at: datetime | None = None


@dataclass(slots=True)
class CollectionItem:
    """A user's possession of one catalog entry."""

    id: int
    user_id: str
    beyblade_id: int
    condition: str = "new"
    custom_name: str | None = None
    photo_url: str | None = None
    notes: str | None = None
    acquired_at: date | None = None
    spin_direction: SpinDirection | None = None
    created_at: datetime | None = None
    beyblade: CatalogEntry | None = None

"""
Collection aggregation and statistics.

Read-only views over a user's collection and the catalog. Every grouping
and counting key goes through normalization first: the same generation is
stored under several spellings and must land in one bucket.

Ordering rules:
- Series and generations by canonical rank; ties (including every unknown
  name) keep first-appearance order
- Items within a generation newest-acquired first (acquisition date, else
  creation time)
"""

import math
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Generic, TypeVar

from beydex.config import TOP_COMPONENTS_LIMIT
from beydex.models.beyblade import (
    COMPONENT_LABELS,
    CatalogEntry,
    CollectionItem,
    present_parts,
)
from beydex.services.normalization import (
    normalize_generation,
    normalize_series,
    normalize_type,
)
from beydex.services.ordering import get_generation_order, get_series_order

R = TypeVar("R")

# Bucket used when a stored value is empty
UNKNOWN_KEY = "Unknown"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return math.floor(value + 0.5)


# =============================================================================
# GROUPING
# =============================================================================


@dataclass(slots=True)
class GenerationGroup(Generic[R]):
    generation: str
    records: list[R] = field(default_factory=list)


@dataclass(slots=True)
class SeriesGroup(Generic[R]):
    series: str
    generations: list[GenerationGroup[R]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return sum(len(group.records) for group in self.generations)


def _series_key(entry: CatalogEntry) -> str:
    return normalize_series(entry.series) or UNKNOWN_KEY


def _generation_key(entry: CatalogEntry) -> str:
    return normalize_generation(entry.generation) or UNKNOWN_KEY


def _group(
    records: Iterable[R], entry_of: Callable[[R], CatalogEntry | None]
) -> list[SeriesGroup[R]]:
    tree: dict[str, dict[str, list[R]]] = {}
    for record in records:
        entry = entry_of(record)
        if entry is None:
            continue
        generations = tree.setdefault(_series_key(entry), {})
        generations.setdefault(_generation_key(entry), []).append(record)

    # sorted() is stable, so equal ranks keep first-appearance order
    groups = []
    for series in sorted(tree, key=get_series_order):
        generations = tree[series]
        groups.append(
            SeriesGroup(
                series=series,
                generations=[
                    GenerationGroup(generation=name, records=generations[name])
                    for name in sorted(generations, key=get_generation_order)
                ],
            )
        )
    return groups


def acquisition_time(item: CollectionItem) -> datetime:
    """When the item was acquired: the acquisition date, else the creation time."""
    if item.acquired_at is not None:
        return datetime.combine(item.acquired_at, time.min)
    if item.created_at is not None:
        # Stored timestamps may come back with or without tzinfo
        return item.created_at.replace(tzinfo=None)
    return datetime.min


def group_collection(items: Iterable[CollectionItem]) -> list[SeriesGroup[CollectionItem]]:
    """
    Group a user's items into series -> generation -> items.

    Items whose catalog entry is missing are skipped.
    """
    groups = _group(items, lambda item: item.beyblade)
    for series_group in groups:
        for generation_group in series_group.generations:
            # reverse=True keeps the sort stable for equal acquisition times
            generation_group.records.sort(key=acquisition_time, reverse=True)
    return groups


def group_catalog(entries: Iterable[CatalogEntry]) -> list[SeriesGroup[CatalogEntry]]:
    """Group catalog entries into series -> generation -> entries, preserving input order."""
    return _group(entries, lambda entry: entry)


# =============================================================================
# STATISTICS
# =============================================================================


@dataclass(frozen=True, slots=True)
class TimelinePoint:
    day: date
    count: int
    cumulative: int


@dataclass(frozen=True, slots=True)
class ComponentCount:
    name: str
    count: int
    slot: str


@dataclass(frozen=True, slots=True)
class CollectionGoal:
    owned: int
    catalog_size: int
    percentage: int


@dataclass(frozen=True, slots=True)
class UserComparison:
    user_count: int
    average_count: int
    percentile: int


@dataclass(frozen=True, slots=True)
class CollectionStats:
    total: int
    by_type: list[tuple[str, int]]
    by_series: list[tuple[str, int]]
    by_generation: list[tuple[str, int]]
    timeline: list[TimelinePoint]
    top_components: list[ComponentCount]
    goal: CollectionGoal
    comparison: UserComparison

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_type": [{"name": n, "value": v} for n, v in self.by_type],
            "by_series": [{"name": n, "value": v} for n, v in self.by_series],
            "by_generation": [{"name": n, "value": v} for n, v in self.by_generation],
            "timeline": [
                {"date": p.day.isoformat(), "count": p.count, "cumulative": p.cumulative}
                for p in self.timeline
            ],
            "top_components": [
                {"name": c.name, "count": c.count, "type": c.slot} for c in self.top_components
            ],
            "collection_goal": {
                "user_count": self.goal.owned,
                "total_catalog": self.goal.catalog_size,
                "percentage": self.goal.percentage,
            },
            "user_comparison": {
                "user_count": self.comparison.user_count,
                "average_count": self.comparison.average_count,
                "percentile": self.comparison.percentile,
            },
        }


def _by_count(counter: Counter[str]) -> list[tuple[str, int]]:
    # Counter preserves first-insertion order; the stable sort keeps it for ties
    return sorted(counter.items(), key=lambda pair: pair[1], reverse=True)


def build_timeline(items: Iterable[CollectionItem]) -> list[TimelinePoint]:
    """Per-day acquisition counts with a running total, oldest day first."""
    per_day: Counter[date] = Counter()
    for item in items:
        if item.acquired_at is not None:
            per_day[item.acquired_at] += 1
        elif item.created_at is not None:
            per_day[item.created_at.date()] += 1

    points = []
    cumulative = 0
    for day in sorted(per_day):
        cumulative += per_day[day]
        points.append(TimelinePoint(day=day, count=per_day[day], cumulative=cumulative))
    return points


def top_components(
    items: Iterable[CollectionItem], limit: int = TOP_COMPONENTS_LIMIT
) -> list[ComponentCount]:
    """
    Most owned individual parts across every component schema.

    A part name is counted once per owned item. Ties keep first-encounter
    order; the slot reported is the one the part was first seen in.
    """
    counts: Counter[str] = Counter()
    slots: dict[str, str] = {}
    for item in items:
        if item.beyblade is None:
            continue
        for slot, name in present_parts(item.beyblade.components):
            counts[name] += 1
            slots.setdefault(name, slot)

    return [
        ComponentCount(name=name, count=count, slot=slots[name])
        for name, count in _by_count(counts)[:limit]
    ]


def compare_users(user_id: str, total: int, owner_counts: Mapping[str, int]) -> UserComparison:
    """
    Compare a user's item count with every other owner.

    Percentile is the share of other users with strictly fewer items, or 100
    when there is nobody else to compare against.
    """
    counts = dict(owner_counts)
    if total:
        counts[user_id] = total
    else:
        counts.pop(user_id, None)

    average = round_half_up(sum(counts.values()) / len(counts)) if counts else 0

    others = [count for owner, count in counts.items() if owner != user_id]
    if not others:
        percentile = 100
    else:
        below = sum(1 for count in others if count < total)
        percentile = round_half_up(below / len(others) * 100)

    return UserComparison(user_count=total, average_count=average, percentile=percentile)


def compute_stats(
    items: list[CollectionItem],
    catalog_size: int,
    owner_counts: Mapping[str, int],
    user_id: str,
) -> CollectionStats:
    """Derive every statistic shown for one user's collection."""
    by_type: Counter[str] = Counter()
    by_series: Counter[str] = Counter()
    by_generation: Counter[str] = Counter()
    distinct_entries: set[int] = set()

    for item in items:
        entry = item.beyblade
        if entry is None:
            continue
        by_type[normalize_type(entry.type) or UNKNOWN_KEY] += 1
        by_series[_series_key(entry)] += 1
        by_generation[_generation_key(entry)] += 1
        distinct_entries.add(entry.id)

    total = len(items)
    owned = len(distinct_entries)
    goal = CollectionGoal(
        owned=owned,
        catalog_size=catalog_size,
        percentage=round_half_up(owned / catalog_size * 100) if catalog_size else 0,
    )

    return CollectionStats(
        total=total,
        by_type=_by_count(by_type),
        by_series=_by_count(by_series),
        by_generation=_by_count(by_generation),
        timeline=build_timeline(items),
        top_components=top_components(items),
        goal=goal,
        comparison=compare_users(user_id, total, owner_counts),
    )


# =============================================================================
# COMPONENT INDEX
# =============================================================================


@dataclass(slots=True)
class ComponentUsage:
    """One distinct part and the owned entries that use it."""

    name: str
    description: str | None
    count: int = 0
    entries: list[CatalogEntry] = field(default_factory=list)


@dataclass(slots=True)
class ComponentSlot:
    key: str
    label: str
    parts: list[ComponentUsage] = field(default_factory=list)


def component_index(items: Iterable[CollectionItem]) -> list[ComponentSlot]:
    """
    Index owned parts by component slot.

    Slots appear in label order and only when populated. Within a slot,
    parts keep first-encounter order; each entry is listed once per part.
    """
    usage: dict[str, dict[str, ComponentUsage]] = {key: {} for key in COMPONENT_LABELS}

    for item in items:
        entry = item.beyblade
        if entry is None or entry.components is None:
            continue
        descriptions = entry.components.descriptions
        for key, name in present_parts(entry.components):
            part = usage[key].get(name)
            if part is None:
                part = ComponentUsage(name=name, description=descriptions.get(key))
                usage[key][name] = part
            elif part.description is None:
                part.description = descriptions.get(key)
            part.count += 1
            if all(known.id != entry.id for known in part.entries):
                part.entries.append(entry)

    return [
        ComponentSlot(key=key, label=COMPONENT_LABELS[key], parts=list(parts.values()))
        for key, parts in usage.items()
        if parts
    ]

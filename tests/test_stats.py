"""Tests for collection aggregation and statistics."""

from datetime import UTC, date, datetime

from beydex.models.beyblade import BeybladeXParts, BurstParts
from beydex.services.stats import (
    acquisition_time,
    build_timeline,
    compare_users,
    component_index,
    compute_stats,
    group_catalog,
    group_collection,
    round_half_up,
    top_components,
)


class TestRounding:
    def test_half_up(self) -> None:
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(33.333) == 33
        assert round_half_up(0) == 0


class TestGroupCollection:
    def test_groups_use_canonical_names(self, make_entry, make_item) -> None:
        """Alias spellings of one generation land in a single group."""
        a = make_entry(1, "Valkyrie", series="Burst", generation="Surge")
        b = make_entry(2, "Spriggan", series="Beyblade Burst", generation="SpeedStorm System")
        items = [make_item(1, a), make_item(2, b)]

        groups = group_collection(items)

        assert [g.series for g in groups] == ["Beyblade Burst"]
        assert [g.generation for g in groups[0].generations] == ["SpeedStorm"]
        assert groups[0].count == 2

    def test_series_and_generation_order(self, make_entry, make_item) -> None:
        entries = [
            make_entry(1, "Pegasus", series="Metal Fight", generation="Metal Fusion"),
            make_entry(2, "DranSword", series="Beyblade X", generation="UX System"),
            make_entry(3, "HellsScythe", series="Beyblade X", generation="Basic Line"),
            make_entry(4, "Mystery", series="Homebrew", generation="Prototype"),
        ]
        items = [make_item(i, e) for i, e in enumerate(entries, start=1)]

        groups = group_collection(items)

        assert [g.series for g in groups] == ["Beyblade X", "Metal Fight", "Homebrew"]
        assert [g.generation for g in groups[0].generations] == ["UX System", "Basic Line"]

    def test_unknown_series_keep_first_appearance(self, make_entry, make_item) -> None:
        b = make_entry(1, "B", series="Zeta Custom")
        a = make_entry(2, "A", series="Alpha Custom")

        groups = group_collection([make_item(1, b), make_item(2, a)])

        assert [g.series for g in groups] == ["Zeta Custom", "Alpha Custom"]

    def test_empty_values_grouped_as_unknown(self, make_entry, make_item) -> None:
        entry = make_entry(1, "Mystery", series="", generation="")

        groups = group_collection([make_item(1, entry)])

        assert groups[0].series == "Unknown"
        assert groups[0].generations[0].generation == "Unknown"

    def test_items_newest_acquired_first(self, make_entry, make_item) -> None:
        entry = make_entry(1, "DranSword")
        old = make_item(1, entry, acquired_at=date(2023, 5, 1))
        new = make_item(2, entry, acquired_at=date(2024, 6, 1))
        created_only = make_item(3, entry, created_at=datetime(2024, 1, 10, tzinfo=UTC))

        groups = group_collection([old, new, created_only])

        assert [i.id for i in groups[0].generations[0].records] == [2, 3, 1]

    def test_ties_keep_input_order(self, make_entry, make_item) -> None:
        entry = make_entry(1, "DranSword")
        items = [make_item(i, entry) for i in (5, 3, 9)]

        groups = group_collection(items)

        assert [i.id for i in groups[0].generations[0].records] == [5, 3, 9]

    def test_items_without_entry_skipped(self, make_entry, make_item) -> None:
        item = make_item(1, make_entry(1, "DranSword"))
        item.beyblade = None

        assert group_collection([item]) == []

    def test_acquisition_time_prefers_acquired_date(self, make_entry, make_item) -> None:
        item = make_item(
            1,
            make_entry(1, "DranSword"),
            acquired_at=date(2023, 1, 1),
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        assert acquisition_time(item) == datetime(2023, 1, 1)


class TestGroupCatalog:
    def test_preserves_input_order_in_generation(self, make_entry) -> None:
        entries = [make_entry(2, "WizardRod"), make_entry(1, "DranSword")]

        groups = group_catalog(entries)

        assert [e.name for e in groups[0].generations[0].records] == ["WizardRod", "DranSword"]


class TestTimeline:
    def test_per_day_with_cumulative(self, make_entry, make_item) -> None:
        entry = make_entry(1, "DranSword")
        items = [
            make_item(1, entry, acquired_at=date(2024, 2, 1)),
            make_item(2, entry, created_at=datetime(2024, 1, 15, 9, 0, tzinfo=UTC)),
            make_item(3, entry, acquired_at=date(2024, 2, 1)),
        ]

        timeline = build_timeline(items)

        assert [(p.day, p.count, p.cumulative) for p in timeline] == [
            (date(2024, 1, 15), 1, 1),
            (date(2024, 2, 1), 2, 3),
        ]

    def test_empty(self) -> None:
        assert build_timeline([]) == []


class TestTopComponents:
    def test_counts_across_schemas(self, make_entry, make_item) -> None:
        x1 = make_entry(1, "DranSword", components=BeybladeXParts(blade="Dran Sword", ratchet="3-60", bit="Flat"))
        x2 = make_entry(2, "HellsScythe", components=BeybladeXParts(blade="Hells Scythe", ratchet="3-60", bit="Taper"))
        burst = make_entry(
            3, "Valkyrie", series="Beyblade Burst", components=BurstParts(layer="Valkyrie", driver="Flat")
        )
        items = [make_item(1, x1), make_item(2, x2), make_item(3, burst)]

        top = top_components(items)

        assert (top[0].name, top[0].count, top[0].slot) == ("3-60", 2, "ratchet")
        assert (top[1].name, top[1].count, top[1].slot) == ("Flat", 2, "bit")
        assert [c.name for c in top[2:]] == ["Dran Sword", "Hells Scythe", "Taper", "Valkyrie"]

    def test_limit(self, make_entry, make_item) -> None:
        entries = [
            make_entry(i, f"Bey {i}", components=BeybladeXParts(blade=f"Blade {i}", ratchet=f"R{i}", bit=f"B{i}"))
            for i in range(1, 4)
        ]

        assert len(top_components([make_item(e.id, e) for e in entries])) == 6
        assert len(top_components([make_item(e.id, e) for e in entries], limit=2)) == 2


class TestCompareUsers:
    def test_only_user_is_top(self) -> None:
        comparison = compare_users("user-1", 5, {"user-1": 5})

        assert comparison.percentile == 100
        assert comparison.average_count == 5

    def test_percentile_counts_strictly_fewer(self) -> None:
        comparison = compare_users("me", 5, {"me": 5, "a": 1, "b": 5, "c": 10})

        assert comparison.user_count == 5
        assert comparison.percentile == 33
        assert comparison.average_count == 5

    def test_empty_collection(self) -> None:
        comparison = compare_users("me", 0, {"a": 3, "b": 4})

        assert comparison.percentile == 0
        assert comparison.average_count == 4

    def test_no_owners(self) -> None:
        comparison = compare_users("me", 0, {})

        assert comparison.average_count == 0
        assert comparison.percentile == 100


class TestComputeStats:
    def test_single_user_collection(self, make_entry, make_item) -> None:
        dran = make_entry(
            1,
            "DranSword",
            type="Attack",
            components=BeybladeXParts(blade="Dran Sword", ratchet="3-60", bit="Flat"),
        )
        wizard = make_entry(2, "WizardRod", type="Stamina", generation="Basic")
        items = [
            make_item(1, dran, acquired_at=date(2024, 3, 1)),
            make_item(2, dran, acquired_at=date(2024, 3, 2)),
            make_item(3, wizard, acquired_at=date(2024, 3, 2)),
        ]

        stats = compute_stats(items, catalog_size=8, owner_counts={"user-1": 3}, user_id="user-1")

        assert stats.total == 3
        assert stats.by_type == [("Ataque", 2), ("Stamina", 1)]
        assert stats.by_series == [("Beyblade X", 3)]
        assert stats.goal.owned == 2
        assert stats.goal.percentage == 25
        assert stats.comparison.percentile == 100
        assert [p.cumulative for p in stats.timeline] == [1, 3]

    def test_to_dict_shape(self, make_entry, make_item) -> None:
        entry = make_entry(1, "DranSword")
        stats = compute_stats([make_item(1, entry)], catalog_size=0, owner_counts={}, user_id="u")

        data = stats.to_dict()

        assert data["total"] == 1
        assert data["by_type"] == [{"name": "Ataque", "value": 1}]
        assert data["collection_goal"] == {"user_count": 1, "total_catalog": 0, "percentage": 0}
        assert data["user_comparison"] == {"user_count": 1, "average_count": 1, "percentile": 100}
        assert data["timeline"] == [{"date": "2024-01-01", "count": 1, "cumulative": 1}]
        assert data["top_components"] == []

    def test_empty(self) -> None:
        stats = compute_stats([], catalog_size=10, owner_counts={"a": 2}, user_id="me")

        assert stats.total == 0
        assert stats.goal.percentage == 0
        assert stats.by_type == []


class TestComponentIndex:
    def test_slots_in_label_order(self, make_entry, make_item) -> None:
        burst = make_entry(
            1,
            "Valkyrie",
            series="Beyblade Burst",
            components=BurstParts(layer="Valkyrie", disk="7", descriptions={"layer": "Attack layer"}),
        )
        x = make_entry(2, "DranSword", components=BeybladeXParts(blade="Dran Sword", bit="Flat"))

        slots = component_index([make_item(1, burst), make_item(2, x)])

        assert [s.key for s in slots] == ["blade", "bit", "layer", "disk"]
        layer = slots[2].parts[0]
        assert layer.name == "Valkyrie"
        assert layer.description == "Attack layer"

    def test_entry_listed_once_per_part(self, make_entry, make_item) -> None:
        dran = make_entry(1, "DranSword", components=BeybladeXParts(blade="Dran Sword"))

        slots = component_index([make_item(1, dran), make_item(2, dran)])

        part = slots[0].parts[0]
        assert part.count == 2
        assert [e.id for e in part.entries] == [1]

    def test_no_components(self, make_entry, make_item) -> None:
        assert component_index([make_item(1, make_entry(1, "Mystery"))]) == []

"""Tests for parsing untrusted model output."""

from beydex.models.beyblade import BeybladeXParts, BurstParts, Confidence
from beydex.services.ai_parsing import (
    degraded_from_categories,
    extract_json_object,
    parse_completion,
    parse_identification,
    strip_code_fences,
)


class TestExtractJson:
    def test_plain_object(self) -> None:
        assert extract_json_object('{"identified": true}') == {"identified": True}

    def test_fenced_object(self) -> None:
        text = '```json\n{"identified": true, "name": "DranSword"}\n```'
        assert extract_json_object(text) == {"identified": True, "name": "DranSword"}

    def test_object_surrounded_by_prose(self) -> None:
        text = 'Here is the result:\n{"identified": false}\nHope this helps!'
        assert extract_json_object(text) == {"identified": False}

    def test_no_object(self) -> None:
        assert extract_json_object("I cannot identify this.") is None
        assert extract_json_object("[1, 2, 3]") is None
        assert extract_json_object("{not json}") is None

    def test_strip_code_fences(self) -> None:
        assert strip_code_fences("```\n{}\n```") == "{}"


class TestParseIdentification:
    def test_full_payload(self) -> None:
        result = parse_identification(
            {
                "identified": True,
                "confidence": "HIGH",
                "name": " DranSword ",
                "series": "BX",
                "generation": "Basic Line",
                "type": "Attack",
                "components": {"blade": "Dran Sword", "ratchet": "3-60", "bit": "Flat"},
                "specs": {"weight": 35, "attack": "8"},
            }
        )

        assert result.identified is True
        assert result.confidence == Confidence.HIGH
        assert result.name == "DranSword"
        assert result.series == "Beyblade X"
        assert result.type == "Ataque"
        assert result.components == BeybladeXParts(blade="Dran Sword", ratchet="3-60", bit="Flat")
        assert result.specs is not None
        assert result.specs.weight == "35"

    def test_wrong_types_dropped(self) -> None:
        """Fields of the wrong type are dropped, never raised on."""
        result = parse_identification(
            {
                "identified": "yes",
                "confidence": "certain",
                "name": ["DranSword"],
                "specs": "strong",
                "components": "Dran Sword 3-60F",
                "suggestions": ["A", 3, None, ""],
                "partial_analysis": {"detected_colors": "red"},
            }
        )

        assert result.identified is True
        assert result.confidence is None
        assert result.name is None
        assert result.specs is None
        assert result.components is None
        assert result.suggestions == ("A", "3")
        assert result.partial_analysis is None

    def test_boolean_is_not_text(self) -> None:
        assert parse_identification({"identified": True, "name": True}).name is None

    def test_legacy_component_descriptions_folded(self) -> None:
        result = parse_identification(
            {
                "identified": True,
                "series": "Burst",
                "components": {"layer": "Valkyrie", "disk": "7", "driver": "Volcanic"},
                "component_descriptions": {"layer": "Attack layer"},
            }
        )

        assert isinstance(result.components, BurstParts)
        assert result.components.descriptions == {"layer": "Attack layer"}

    def test_generation_kept_as_reported(self) -> None:
        result = parse_identification({"identified": True, "generation": "Surge"})
        assert result.generation == "Surge"

    def test_missing_identified_is_false(self) -> None:
        assert parse_identification({}).identified is False


class TestParseCompletion:
    def test_unparseable(self) -> None:
        assert parse_completion("Sorry, no JSON here") is None

    def test_parses(self) -> None:
        result = parse_completion('```json\n{"identified": false, "error_message": "No Beyblade"}\n```')

        assert result is not None
        assert result.identified is False
        assert result.error_message == "No Beyblade"


class TestDegradedFromCategories:
    def test_series_and_type_from_categories(self) -> None:
        result = degraded_from_categories(
            "DranSword",
            ("Beyblade X", "Attack Type", "Stamina Type"),
            wiki_url="https://beyblade.fandom.com/wiki/DranSword",
        )

        assert result.identified is True
        assert result.confidence == Confidence.MEDIUM
        assert result.name == "DranSword"
        assert result.series == "Beyblade X"
        assert result.type == "Ataque"
        assert result.wiki_url == "https://beyblade.fandom.com/wiki/DranSword"

    def test_defaults(self) -> None:
        result = degraded_from_categories("Mystery", [])

        assert result.series == "Unknown"
        assert result.type == "Equilíbrio"
        assert result.image_url is None

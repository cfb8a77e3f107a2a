"""
Parsing of untrusted model output.

The model is asked for a bare JSON object but may wrap it in a fenced code
block or surround it with prose. Output is never deserialized straight into
domain objects: it is parsed into a plain dict, then coerced field by field.
Fields with the wrong type are dropped, never raised on.
"""

import json
import logging
import re
from typing import Any

from beydex.models.beyblade import (
    Confidence,
    IdentificationResult,
    PartialAnalysis,
    Specs,
    components_from_mapping,
)
from beydex.services.normalization import normalize_series, normalize_type

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)

# Substrings checked against wiki categories, in priority order
_CATEGORY_TYPES = ("Attack", "Defense", "Stamina", "Balance")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences and surrounding whitespace."""
    return _FENCE.sub("", text).strip()


def extract_json_object(text: str) -> dict[str, Any] | None:
    """
    Parse the JSON object contained in a model completion.

    Tries the fence-stripped text first, then the outermost {...} span.
    Returns None if no JSON object can be parsed.
    """
    cleaned = strip_code_fences(text)
    candidates = [cleaned]

    start, end = cleaned.find("{"), cleaned.rfind("}")
    if 0 <= start < end:
        candidates.append(cleaned[start : end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed

    return None


def _text(value: Any) -> str | None:
    """Coerce to a non-empty stripped string, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        return str(value)
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _text_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(text for item in value if (text := _text(item)))


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return False


def _confidence(value: Any) -> Confidence | None:
    text = _text(value)
    if text is None:
        return None
    try:
        return Confidence(text.lower())
    except ValueError:
        return None


def _specs(value: Any) -> Specs | None:
    if not isinstance(value, dict):
        return None
    specs = Specs(
        weight=_text(value.get("weight")),
        attack=_text(value.get("attack")),
        defense=_text(value.get("defense")),
        stamina=_text(value.get("stamina")),
    )
    return None if specs.is_empty() else specs


def _partial_analysis(value: Any) -> PartialAnalysis | None:
    if not isinstance(value, dict):
        return None
    analysis = PartialAnalysis(
        detected_colors=_text_list(value.get("detected_colors")),
        detected_series=_text(value.get("detected_series")),
        detected_features=_text_list(value.get("detected_features")),
    )
    return analysis if analysis.to_dict() else None


def parse_identification(payload: dict[str, Any]) -> IdentificationResult:
    """
    Coerce an untrusted payload into an IdentificationResult.

    Series and type are normalized. Generation is kept as reported (display
    and grouping normalize it later). Legacy top-level component_descriptions
    are folded into components.descriptions.
    """
    series = normalize_series(_text(payload.get("series")))

    raw_components = payload.get("components")
    if isinstance(raw_components, dict) and "descriptions" not in raw_components:
        legacy = payload.get("component_descriptions")
        if isinstance(legacy, dict):
            raw_components = {**raw_components, "descriptions": legacy}

    return IdentificationResult(
        identified=_bool(payload.get("identified")),
        confidence=_confidence(payload.get("confidence")),
        manufacturer=_text(payload.get("manufacturer")),
        name=_text(payload.get("name")),
        name_hasbro=_text(payload.get("name_hasbro")),
        version_notes=_text(payload.get("version_notes")),
        series=series,
        generation=_text(payload.get("generation")),
        type=normalize_type(_text(payload.get("type"))),
        components=components_from_mapping(raw_components, series),
        specs=_specs(payload.get("specs")),
        description=_text(payload.get("description")),
        image_url=_text(payload.get("image_url")),
        wiki_url=_text(payload.get("wiki_url")),
        suggestions=_text_list(payload.get("suggestions")),
        partial_analysis=_partial_analysis(payload.get("partial_analysis")),
        error_message=_text(payload.get("error_message")),
    )


def parse_completion(text: str) -> IdentificationResult | None:
    """Parse a raw completion; None if it holds no usable JSON object."""
    payload = extract_json_object(text)
    if payload is None:
        logger.error("Failed to parse AI response: %.500s", text)
        return None
    return parse_identification(payload)


def degraded_from_categories(
    title: str,
    categories: tuple[str, ...] | list[str],
    wiki_url: str | None = None,
    image_url: str | None = None,
) -> IdentificationResult:
    """
    Build a best-effort result from wiki metadata alone.

    Used when the model's extraction is unusable. Series comes from the first
    category mentioning "Beyblade"; type from the first category mentioning
    a type name, defaulting to Balance.
    """
    series = next((c for c in categories if "Beyblade" in c), "Unknown")
    type_name = next(
        (t for c in categories for t in _CATEGORY_TYPES if t in c),
        "Balance",
    )

    return IdentificationResult(
        identified=True,
        confidence=Confidence.MEDIUM,
        name=title,
        series=normalize_series(series),
        type=normalize_type(type_name),
        image_url=image_url,
        wiki_url=wiki_url,
    )

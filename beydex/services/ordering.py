"""
Display order of series and generations.

Newest release first: a lower rank sorts earlier. Keys are canonical names,
so normalize before ranking. Unknown names rank last.
"""

from types import MappingProxyType

from beydex.config import UNKNOWN_ORDER

SERIES_ORDER: MappingProxyType[str, int] = MappingProxyType(
    {
        "Beyblade X": 1,
        "Beyblade Burst": 2,
        "Metal Fight": 3,
        "Original": 4,
    }
)

GENERATION_ORDER: MappingProxyType[str, int] = MappingProxyType(
    {
        # Beyblade X
        "Xtreme Gear Sports": 1,
        "UX System": 2,
        "Basic Line": 3,
        # Beyblade Burst (Hasbro)
        "QuadStrike": 1,
        "QuadDrive": 2,
        "SpeedStorm": 3,
        # Beyblade Burst (Takara Tomy)
        "Dynamite Battle": 4,
        "Superking": 5,
        "GT": 6,
        "Cho-Z": 7,
        "Turbo": 8,
        "God": 9,
        "Evolution": 10,
        "Dual Layer": 11,
        "Single Layer": 12,
        # Metal Fight
        "Hybrid Wheel System": 1,
        "Maximum Series": 2,
        "4D System": 3,
        "Metal Fury": 4,
        "Metal Masters": 5,
        "Metal Fusion": 6,
    }
)


def get_series_order(series: str | None) -> int:
    """Rank of a canonical series name; UNKNOWN_ORDER if unmapped."""
    if series is None:
        return UNKNOWN_ORDER
    return SERIES_ORDER.get(series, UNKNOWN_ORDER)


def get_generation_order(generation: str | None) -> int:
    """Rank of a canonical generation name; UNKNOWN_ORDER if unmapped."""
    if generation is None:
        return UNKNOWN_ORDER
    return GENERATION_ORDER.get(generation, UNKNOWN_ORDER)

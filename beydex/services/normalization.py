"""
Series, generation and type name normalization.

The same logical series or generation reaches the catalog under many
spellings (AI output, wiki categories, Hasbro vs Takara Tomy names). These
tables fold them onto one canonical name.

INVARIANTS:
- Tables are read-only and loaded once at import
- Iteration order of the alias tables is significant (first match wins)
- Unknown values pass through unchanged; lookups never raise
"""

from types import MappingProxyType

SERIES_ALIASES: MappingProxyType[str, str] = MappingProxyType(
    {
        # Metal Fight
        "Metal Fight Beyblade": "Metal Fight",
        "Metal Fight": "Metal Fight",
        "MFB": "Metal Fight",
        # Beyblade Burst
        "Beyblade Burst": "Beyblade Burst",
        "Burst": "Beyblade Burst",
        # Beyblade X
        "Beyblade X": "Beyblade X",
        "BX": "Beyblade X",
        # Original
        "Original": "Original",
        "Bakuten Shoot Beyblade": "Original",
    }
)

GENERATION_ALIASES: MappingProxyType[str, str] = MappingProxyType(
    {
        # SpeedStorm / Surge
        "Speedstorm": "SpeedStorm",
        "SpeedStorm": "SpeedStorm",
        "SpeedStorm System": "SpeedStorm",
        "Beyblade Burst Surge (SpeedStorm)": "SpeedStorm",
        "Beyblade Burst Surge(SpeedStorm)": "SpeedStorm",
        "Surge": "SpeedStorm",
        "Surge System": "SpeedStorm",
        # QuadStrike
        "QuadStrike": "QuadStrike",
        "QuadStrike System": "QuadStrike",
        "Quad Strike": "QuadStrike",
        # QuadDrive
        "QuadDrive": "QuadDrive",
        "QuadDrive System": "QuadDrive",
        "Quad Drive": "QuadDrive",
        # Dynamite Battle
        "Dynamite Battle": "Dynamite Battle",
        "DB": "Dynamite Battle",
        # Superking / Sparking
        "Superking": "Superking",
        "Sparking": "Superking",
        "Super King": "Superking",
        # Other Burst generations
        "GT": "GT",
        "Gachi": "GT",
        "Cho-Z": "Cho-Z",
        "Cho Z": "Cho-Z",
        "Turbo": "Turbo",
        "God": "God",
        "Evolution": "Evolution",
        "Single Layer": "Single Layer",
        "Dual Layer": "Dual Layer",
        # Metal Fight generations
        "Hybrid Wheel System": "Hybrid Wheel System",
        "HWS": "Hybrid Wheel System",
        "4D System": "4D System",
        "4D": "4D System",
        "Metal Fury": "Metal Fury",
        "Metal Masters": "Metal Masters",
        "Metal Fusion": "Metal Fusion",
        "Maximum Series": "Maximum Series",
        # Beyblade X generations
        "Basic Line": "Basic Line",
        "UX System": "UX System",
        "UX": "UX System",
        "Xtreme Gear Sports": "Xtreme Gear Sports",
        "XGS": "Xtreme Gear Sports",
    }
)

# English and legacy type names -> localized canonical names
TYPE_ALIASES: MappingProxyType[str, str] = MappingProxyType(
    {
        "Ataque": "Ataque",
        "Attack": "Ataque",
        "Defesa": "Defesa",
        "Defense": "Defesa",
        "Stamina": "Stamina",
        "Resistência": "Stamina",
        "Equilíbrio": "Equilíbrio",
        "Balance": "Equilíbrio",
    }
)


def _lookup(value: str, aliases: MappingProxyType[str, str]) -> str | None:
    """Exact match, then case-insensitive scan in authored order."""
    if value in aliases:
        return aliases[value]

    lowered = value.lower()
    for key, canonical in aliases.items():
        if key.lower() == lowered:
            return canonical
    return None


def normalize_series(series: str | None) -> str | None:
    """Normalize a series name to its canonical form."""
    if not series:
        return series
    return _lookup(series, SERIES_ALIASES) or series


def normalize_generation(generation: str | None) -> str | None:
    """
    Normalize a generation name to its canonical form.

    Falls back to substring containment in either direction so composite
    names like "Beyblade Burst Surge (SpeedStorm)" still resolve.
    """
    if not generation:
        return generation

    found = _lookup(generation, GENERATION_ALIASES)
    if found is not None:
        return found

    for key, canonical in GENERATION_ALIASES.items():
        if key in generation or generation in key:
            return canonical

    return generation


def normalize_type(type_name: str | None) -> str | None:
    """Normalize a type name (English, legacy or localized) to the localized form."""
    if not type_name:
        return type_name
    return _lookup(type_name.strip(), TYPE_ALIASES) or type_name


def normalize_beyblade(series: str | None, generation: str | None) -> tuple[str | None, str | None]:
    """Normalize series and generation at once."""
    return normalize_series(series), normalize_generation(generation)

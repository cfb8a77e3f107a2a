"""
BeyDex services.

Business logic for identification, catalog reconciliation and collection
statistics.
"""

from beydex.services.ai_parsing import (
    degraded_from_categories,
    extract_json_object,
    parse_completion,
    parse_identification,
    strip_code_fences,
)
from beydex.services.identifier import IMAGE_PROMPT, LOOKUP_PROMPT, Identifier
from beydex.services.image_resolution import extract_slug, get_beyblade_image_url
from beydex.services.normalization import (
    normalize_beyblade,
    normalize_generation,
    normalize_series,
    normalize_type,
)
from beydex.services.object_store import ObjectStore, get_object_store
from beydex.services.ordering import get_generation_order, get_series_order
from beydex.services.reconciliation import (
    ConfirmStatus,
    ReconciliationOutcome,
    confirm_identification,
)
from beydex.services.search_session import CancellationToken, SearchSession
from beydex.services.stats import (
    CollectionStats,
    component_index,
    compute_stats,
    group_catalog,
    group_collection,
)
from beydex.services.wiki_client import SearchResult, WikiClient, WikiDetails, WikiPage

__all__ = [
    "CancellationToken",
    "CollectionStats",
    "ConfirmStatus",
    "IMAGE_PROMPT",
    "Identifier",
    "LOOKUP_PROMPT",
    "ObjectStore",
    "ReconciliationOutcome",
    "SearchResult",
    "SearchSession",
    "WikiClient",
    "WikiDetails",
    "WikiPage",
    "component_index",
    "compute_stats",
    "confirm_identification",
    "degraded_from_categories",
    "extract_json_object",
    "extract_slug",
    "get_beyblade_image_url",
    "get_generation_order",
    "get_object_store",
    "get_series_order",
    "group_catalog",
    "group_collection",
    "normalize_beyblade",
    "normalize_generation",
    "normalize_series",
    "normalize_type",
    "parse_completion",
    "parse_identification",
    "strip_code_fences",
]

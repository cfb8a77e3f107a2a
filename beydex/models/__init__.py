from beydex.models.beyblade import (
    BEYBLADE_TYPES,
    COMPONENT_LABELS,
    BeybladeXParts,
    BurstParts,
    CatalogEntry,
    CollectionItem,
    Components,
    ComponentSchema,
    Confidence,
    IdentificationResult,
    MetalFightParts,
    PartialAnalysis,
    Specs,
    SpinDirection,
    components_from_mapping,
    components_to_dict,
    present_parts,
)
from beydex.models.failure import (
    AIServiceError,
    ApiResponse,
    FailureDetail,
    FailureKind,
    KnownError,
    LookupUnavailableError,
    ObjectStoreError,
    OutcomeType,
    PageNotFoundError,
    RequestTimeoutError,
    SearchTimeoutError,
    WikiServiceError,
)

__all__ = [
    "AIServiceError",
    "ApiResponse",
    "BEYBLADE_TYPES",
    "BeybladeXParts",
    "BurstParts",
    "COMPONENT_LABELS",
    "CatalogEntry",
    "CollectionItem",
    "ComponentSchema",
    "Components",
    "Confidence",
    "FailureDetail",
    "FailureKind",
    "IdentificationResult",
    "KnownError",
    "LookupUnavailableError",
    "MetalFightParts",
    "ObjectStoreError",
    "OutcomeType",
    "PageNotFoundError",
    "PartialAnalysis",
    "RequestTimeoutError",
    "SearchTimeoutError",
    "Specs",
    "SpinDirection",
    "WikiServiceError",
    "components_from_mapping",
    "components_to_dict",
    "present_parts",
]

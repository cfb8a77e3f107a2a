from beydex.api.catalog import router as catalog_router
from beydex.api.collection import router as collection_router
from beydex.api.health import router as health_router
from beydex.api.identify import router as identify_router
from beydex.api.images import router as images_router
from beydex.api.search import router as search_router
from beydex.api.stats import router as stats_router

__all__ = [
    "catalog_router",
    "collection_router",
    "health_router",
    "identify_router",
    "images_router",
    "search_router",
    "stats_router",
]

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "BeyDex"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/beydex"

    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"

    wiki_api_url: str = "https://beyblade.fandom.com/api.php"
    wiki_base_url: str = "https://beyblade.fandom.com/wiki"

    # Public endpoint of the image proxy (GET /beyblade-image)
    image_proxy_url: str = "http://localhost:8000/beyblade-image"

    # Object store: files live under storage_dir, served below storage_public_url
    storage_dir: str = "data/storage"
    storage_public_url: str = "http://localhost:8000/media"

    # Per-call timeouts in seconds
    search_timeout: float = 5.0
    page_timeout: float = 8.0
    image_lookup_timeout: float = 5.0
    image_download_timeout: float = 10.0
    ai_timeout: float = 60.0

    # Text lookup retry policy
    lookup_attempts: int = 2
    lookup_backoff: float = 1.0

    search_debounce: float = 0.3


settings = Settings()


# =============================================================================
# FIXED LIMITS
# =============================================================================

# Searches shorter than this never reach the wiki
MIN_SEARCH_LENGTH = 2

# Upper bound on wiki search candidates
SEARCH_RESULT_LIMIT = 15

# Default pixel size requested from the image proxy
DEFAULT_IMAGE_SIZE = 400

# Number of entries in the "most owned components" ranking
TOP_COMPONENTS_LIMIT = 6

# Rank given to series/generations missing from the order tables
UNKNOWN_ORDER = 999

# Page HTML sent to the model is truncated to this many characters
MAX_PAGE_CHARS = 15000

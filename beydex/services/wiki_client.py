"""
Beyblade Fandom wiki client.

Talks to the wiki's MediaWiki API: opensearch for name candidates, parse for
page content and categories, pageimages for the best thumbnail.

Every call has its own time budget. Page metadata is required, so a page
timeout fails the whole lookup. The image is optional: lookup failures
degrade to no image, and caching failures degrade to the external URL.
"""

import logging
import re
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import httpx

from beydex.config import DEFAULT_IMAGE_SIZE, MIN_SEARCH_LENGTH, SEARCH_RESULT_LIMIT, settings
from beydex.models.failure import (
    ObjectStoreError,
    PageNotFoundError,
    RequestTimeoutError,
    SearchTimeoutError,
    WikiServiceError,
)
from beydex.services.object_store import ObjectStore

logger = logging.getLogger(__name__)

USER_AGENT = "BeyDex/1.0"

# The media CDN rejects requests that do not look like a browser on the wiki
IMAGE_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
    "Referer": "https://beyblade.fandom.com/",
}

# Administrative pages returned by opensearch
EXCLUDED_PREFIXES = ("category:", "template:", "user:", "file:")

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One wiki search candidate."""

    name: str
    url: str
    slug: str


@dataclass(frozen=True, slots=True)
class WikiPage:
    """Parsed wiki page metadata."""

    slug: str
    title: str
    categories: tuple[str, ...]
    html: str
    url: str


@dataclass(frozen=True, slots=True)
class WikiDetails:
    """A page plus its best-effort image reference."""

    page: WikiPage
    image_url: str | None


def title_to_slug(title: str) -> str:
    """Wiki page slug for a title."""
    return title.replace(" ", "_")


def image_cache_key(slug: str, size: int) -> str:
    """Object store key for a cached wiki image."""
    return f"wiki-cache/{_UNSAFE_KEY_CHARS.sub('_', slug)}-{size}.jpg"


def parse_search_response(data: Any) -> list[SearchResult]:
    """
    Parse an opensearch response.

    OpenSearch returns: [searchTerm, [titles], [descriptions], [urls]]
    Non-content pages (categories, templates, users, files) are dropped.
    """
    if not isinstance(data, list) or len(data) < 2:
        return []

    titles = data[1] if isinstance(data[1], list) else []
    urls = data[3] if len(data) > 3 and isinstance(data[3], list) else []

    results: list[SearchResult] = []
    for index, title in enumerate(titles):
        if not isinstance(title, str):
            continue
        if any(prefix in title.lower() for prefix in EXCLUDED_PREFIXES):
            continue
        url = urls[index] if index < len(urls) and isinstance(urls[index], str) else ""
        results.append(SearchResult(name=title, url=url, slug=title_to_slug(title)))

    return results[:SEARCH_RESULT_LIMIT]


def parse_page_response(data: Any, slug: str, base_url: str) -> WikiPage:
    """
    Parse an action=parse response into a WikiPage.

    Raises:
        PageNotFoundError: If the wiki reports an error for the page
        WikiServiceError: If the payload has no parse section
    """
    if not isinstance(data, dict):
        raise WikiServiceError("page: unexpected payload")
    if "error" in data:
        raise PageNotFoundError(slug)

    parse = data.get("parse")
    if not isinstance(parse, dict):
        raise WikiServiceError("page: missing parse section")

    text = parse.get("text")
    html = text.get("*", "") if isinstance(text, dict) else ""
    categories = tuple(
        str(category["*"])
        for category in parse.get("categories") or []
        if isinstance(category, dict) and "*" in category
    )
    title = parse.get("title") or slug

    return WikiPage(
        slug=slug,
        title=str(title),
        categories=categories,
        html=str(html),
        url=f"{base_url}/{slug}",
    )


def parse_pageimages_response(data: Any) -> str | None:
    """Extract the thumbnail source of the first page, if any."""
    if not isinstance(data, dict):
        return None
    pages = (data.get("query") or {}).get("pages")
    if not isinstance(pages, dict) or not pages:
        return None
    first = next(iter(pages.values()))
    if not isinstance(first, dict):
        return None
    thumbnail = first.get("thumbnail") or {}
    source = thumbnail.get("source") if isinstance(thumbnail, dict) else None
    return str(source) if source else None


class WikiClient:
    """
    Async client for the wiki API.

    Use as an async context manager, or pass in a shared httpx client.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        store: ObjectStore | None = None,
        api_url: str | None = None,
        base_url: str | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(headers={"User-Agent": USER_AGENT})
        self._store = store
        self._api_url = api_url or settings.wiki_api_url
        self._base_url = (base_url or settings.wiki_base_url).rstrip("/")

    async def __aenter__(self) -> "WikiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def search(self, query: str) -> list[SearchResult]:
        """
        Search the wiki for Beyblade pages.

        Queries shorter than MIN_SEARCH_LENGTH return [] without a request.

        Raises:
            SearchTimeoutError: If the search exceeds its time budget
            WikiServiceError: If the wiki answers with an error
        """
        if len(query.strip()) < MIN_SEARCH_LENGTH:
            return []

        params = {
            "action": "opensearch",
            "search": query,
            "limit": str(SEARCH_RESULT_LIMIT),
            "format": "json",
        }
        logger.info("Searching wiki for: %s", query)

        try:
            response = await self._client.get(
                self._api_url, params=params, timeout=settings.search_timeout
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Wiki search timed out for %r", query)
            raise SearchTimeoutError(settings.search_timeout) from e
        except httpx.HTTPStatusError as e:
            raise WikiServiceError(f"search: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise WikiServiceError(f"search: {e}") from e
        except ValueError as e:
            raise WikiServiceError("search: invalid JSON") from e

        results = parse_search_response(data)
        logger.info("Found %d results for %r", len(results), query)
        return results

    async def fetch_page(self, slug: str) -> WikiPage:
        """
        Fetch page content and categories.

        Raises:
            RequestTimeoutError: If the page fetch exceeds its time budget
            PageNotFoundError: If the page does not exist
            WikiServiceError: If the wiki answers with an error
        """
        params = {
            "action": "parse",
            "page": slug,
            "format": "json",
            "prop": "text|categories",
        }

        try:
            response = await self._client.get(
                self._api_url, params=params, timeout=settings.page_timeout
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Wiki page fetch timed out for %s", slug)
            raise RequestTimeoutError("page fetch", settings.page_timeout) from e
        except httpx.HTTPStatusError as e:
            raise WikiServiceError(f"page: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise WikiServiceError(f"page: {e}") from e
        except ValueError as e:
            raise WikiServiceError("page: invalid JSON") from e

        return parse_page_response(data, slug, self._base_url)

    async def fetch_image_url(self, slug: str, size: int = DEFAULT_IMAGE_SIZE) -> str | None:
        """Best thumbnail URL for a page, or None on any failure."""
        params = {
            "action": "query",
            "titles": slug,
            "prop": "pageimages",
            "pithumbsize": str(size),
            "format": "json",
            "redirects": "1",
        }

        try:
            response = await self._client.get(
                self._api_url, params=params, timeout=settings.image_lookup_timeout
            )
            response.raise_for_status()
            return parse_pageimages_response(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Image lookup failed for %s: %s", slug, e)
            return None

    async def download_image(self, image_url: str) -> tuple[bytes, str]:
        """
        Download image bytes from the wiki CDN.

        Returns:
            Tuple of (bytes, content type)

        Raises:
            httpx.HTTPError: If the download fails or times out
        """
        response = await self._client.get(
            image_url,
            headers=IMAGE_HEADERS,
            timeout=settings.image_download_timeout,
            follow_redirects=True,
        )
        response.raise_for_status()
        return response.content, response.headers.get("content-type", "image/jpeg")

    async def cache_image(self, slug: str, image_url: str, size: int = DEFAULT_IMAGE_SIZE) -> str:
        """
        Copy a wiki image into the object store.

        Returns the owned URL, or the original URL if anything fails.
        """
        if self._store is None:
            return image_url

        key = image_cache_key(slug, size)
        try:
            data, content_type = await self.download_image(image_url)
            await self._store.upload(key, data, content_type)
        except (httpx.HTTPError, ObjectStoreError) as e:
            logger.warning("Could not cache image for %s, using external URL: %s", slug, e)
            return image_url

        logger.info("Cached image for %s", slug)
        return self._store.public_url(key)

    async def fetch_details(self, slug: str, size: int = DEFAULT_IMAGE_SIZE) -> WikiDetails:
        """
        Fetch a page and its best-effort image.

        Image preference: owned storage URL, then external URL, then None.
        """
        page = await self.fetch_page(slug)

        image_url = await self.fetch_image_url(slug, size)
        if image_url:
            image_url = await self.cache_image(slug, image_url, size)

        return WikiDetails(page=page, image_url=image_url)

    async def fetch_image_bytes(
        self, slug: str, size: int = DEFAULT_IMAGE_SIZE
    ) -> tuple[bytes, str] | None:
        """Look up and download a page image; None if unavailable."""
        image_url = await self.fetch_image_url(slug, size)
        if not image_url:
            logger.info("No image found for %s", slug)
            return None

        try:
            return await self.download_image(image_url)
        except httpx.HTTPError as e:
            logger.warning("Image download failed for %s: %s", slug, e)
            return None

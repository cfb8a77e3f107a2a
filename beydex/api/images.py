"""
Image endpoints.

/beyblade-image proxies wiki images, which are hot-link protected, and
caches them in the object store. Storing the cached copy runs after the
response is sent and never affects it.

/media serves object store content (user photos and cached images).
"""

import logging
import mimetypes
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status

from beydex.api.deps import get_wiki_client
from beydex.config import DEFAULT_IMAGE_SIZE
from beydex.models.failure import ObjectStoreError
from beydex.services.object_store import ObjectStore, get_object_store
from beydex.services.wiki_client import WikiClient, image_cache_key

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])

CACHE_CONTROL = "public, max-age=86400"


async def store_cached_image(store: ObjectStore, key: str, data: bytes, content_type: str) -> None:
    """Write a proxied image to the cache. Failures are logged only."""
    try:
        await store.upload(key, data, content_type)
    except ObjectStoreError:
        logger.exception("Failed to cache image %s", key)
        return
    logger.info("Cached image %s", key)


@router.get("/beyblade-image")
async def beyblade_image(
    slug: Annotated[str, Query(min_length=1)],
    background_tasks: BackgroundTasks,
    store: Annotated[ObjectStore, Depends(get_object_store)],
    wiki: Annotated[WikiClient, Depends(get_wiki_client)],
    size: Annotated[int, Query(ge=16, le=2048)] = DEFAULT_IMAGE_SIZE,
) -> Response:
    """
    Serve a wiki page image.

    Cache hit: served from the object store. Miss: fetched from the wiki and
    stored in the background.
    """
    key = image_cache_key(slug, size)

    cached = await store.download(key)
    if cached is not None:
        logger.debug("Serving cached image for %s", slug)
        return Response(
            content=cached,
            media_type="image/jpeg",
            headers={"Cache-Control": CACHE_CONTROL},
        )

    fetched = await wiki.fetch_image_bytes(slug, size)
    if fetched is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No image available",
        )

    data, content_type = fetched
    background_tasks.add_task(store_cached_image, store, key, data, content_type)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )


@router.get("/media/{key:path}")
async def media(
    key: str,
    store: Annotated[ObjectStore, Depends(get_object_store)],
) -> Response:
    """Serve a stored object."""
    try:
        data = await store.download(key)
    except ObjectStoreError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found") from e
    if data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type, headers={"Cache-Control": CACHE_CONTROL})

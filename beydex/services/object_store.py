"""
Object store for user photos and cached wiki images.

Files are written below a root directory and exposed under a public base
URL (served by GET /media/{key}). Keys are slash-separated relative paths.
"""

import asyncio
import logging
from functools import lru_cache
from pathlib import Path

from beydex.config import settings
from beydex.models.failure import ObjectStoreError

logger = logging.getLogger(__name__)


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def _read_file(path: Path) -> bytes | None:
    if not path.is_file():
        return None
    return path.read_bytes()


class ObjectStore:
    """Key/bytes store with public URLs."""

    def __init__(self, root: Path, public_url: str) -> None:
        self._root = root
        self._public_url = public_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root.resolve()):
            raise ObjectStoreError(key, "key escapes the store root")
        return path

    async def upload(self, key: str, data: bytes, content_type: str = "image/jpeg") -> None:
        """
        Store bytes under key, replacing any existing object.

        Raises:
            ObjectStoreError: If the write fails
        """
        path = self._path_for(key)
        try:
            await asyncio.to_thread(_write_file, path, data)
        except OSError as e:
            raise ObjectStoreError(key, str(e)) from e
        logger.debug("Stored %s (%d bytes, %s)", key, len(data), content_type)

    async def download(self, key: str) -> bytes | None:
        """Return stored bytes, or None if the key does not exist."""
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(_read_file, path)
        except OSError as e:
            raise ObjectStoreError(key, str(e)) from e

    def public_url(self, key: str) -> str:
        """Public URL of a stored object."""
        return f"{self._public_url}/{key}"


@lru_cache(maxsize=1)
def get_object_store() -> ObjectStore:
    """
    Get the configured object store.

    Cached after first call; FastAPI endpoints depend on this.
    """
    return ObjectStore(Path(settings.storage_dir), settings.storage_public_url)

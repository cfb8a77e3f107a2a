"""
Image URL resolution.

Wiki CDN images are hot-link protected, so they are rewritten to go through
our image proxy (GET /beyblade-image), keyed by the wiki page slug.
"""

import re
from urllib.parse import quote

from beydex.config import DEFAULT_IMAGE_SIZE, settings

WIKI_MEDIA_HOSTS = ("static.wikia.nocookie.net", "fandom.com")

_WIKI_PAGE_SLUG = re.compile(r"/wiki/([^?#]+)")
# /beyblade/images/X/XX/FileName.ext
_WIKI_IMAGE_SLUG = re.compile(
    r"/beyblade/images/[a-f0-9]/[a-f0-9]{2}/([^./]+)\.[a-zA-Z]+", re.IGNORECASE
)


def is_owned_storage_url(url: str) -> bool:
    """True if the URL points into our own object store."""
    return url.startswith(settings.storage_public_url)


def extract_slug(image_url: str, wiki_url: str | None = None) -> str | None:
    """
    Derive the wiki slug for an image.

    The page URL wins over the image file name when both are available.
    """
    if wiki_url:
        match = _WIKI_PAGE_SLUG.search(wiki_url)
        if match:
            return match.group(1)

    match = _WIKI_IMAGE_SLUG.search(image_url)
    if match:
        return match.group(1)

    return None


def proxy_url(slug: str, size: int = DEFAULT_IMAGE_SIZE) -> str:
    """Build the image proxy URL for a slug."""
    return f"{settings.image_proxy_url}?slug={quote(slug, safe='')}&size={size}"


def get_beyblade_image_url(
    image_url: str | None,
    wiki_url: str | None = None,
    size: int = DEFAULT_IMAGE_SIZE,
) -> str | None:
    """
    Return a URL that is safe to hot-link, or None.

    Own-storage URLs pass through. Wiki media URLs are rewritten to the
    proxy when a slug can be derived. Anything else is returned unchanged.
    """
    if not image_url:
        return None

    if is_owned_storage_url(image_url):
        return image_url

    if any(host in image_url for host in WIKI_MEDIA_HOSTS):
        slug = extract_slug(image_url, wiki_url)
        if slug:
            return proxy_url(slug, size)

    return image_url

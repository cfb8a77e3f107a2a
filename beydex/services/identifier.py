"""
AI identification client.

Two prompt contracts share one response shape:
- IMAGE_PROMPT: identify a Beyblade from a photo (one attempt, no retry)
- LOOKUP_PROMPT: extract structured data from a wiki page (bounded retries)

Model output is untrusted. Unparseable output never reaches the user as an
error: image identification degrades to "not identified", text lookup
degrades to a result derived from the wiki categories.
"""

import asyncio
import base64
import binascii
import logging
from dataclasses import replace
from typing import Any

import anthropic
from anthropic.types import MessageParam, TextBlock

from beydex.config import MAX_PAGE_CHARS, settings
from beydex.models.beyblade import IdentificationResult
from beydex.models.failure import (
    AIServiceError,
    FailureKind,
    KnownError,
    LookupUnavailableError,
    PageNotFoundError,
    RequestTimeoutError,
)
from beydex.services.ai_parsing import degraded_from_categories, parse_completion
from beydex.services.wiki_client import WikiClient, WikiPage

logger = logging.getLogger(__name__)

_COMPONENT_RULES = """Components depend on the series. Fill ONLY the keys of the detected series:
- Beyblade X: blade, ratchet, bit
- Beyblade Burst: layer, disk, driver
- Metal Fight: face_bolt, energy_ring, fusion_wheel, spin_track, performance_tip
Put a short description of each listed part under components.descriptions, keyed the same way."""

_TYPE_RULES = """TYPE TRANSLATION (MANDATORY):
- Attack -> Ataque
- Defense -> Defesa
- Stamina -> Stamina (NEVER "Resistência")
- Balance -> Equilíbrio"""

IMAGE_PROMPT = f"""You are a Beyblade expert. Analyze the image and identify the Beyblade shown.

IMPORTANT: Reply ONLY with valid JSON in this format, with no extra text:

{{
  "identified": true,
  "confidence": "high | medium | low",
  "manufacturer": "Takara Tomy | Hasbro | Ambos | Desconhecido",
  "name": "Official Takara Tomy name",
  "name_hasbro": "Hasbro name, if different",
  "version_notes": "Notes on the release or variant",
  "series": "Beyblade X | Beyblade Burst | Metal Fight Beyblade",
  "generation": "Specific generation (e.g. Basic Line, Dynamite Battle, Metal Fusion)",
  "type": "Ataque | Defesa | Stamina | Equilíbrio",
  "components": {{"descriptions": {{}}}},
  "specs": {{"weight": "grams", "attack": "1-10", "defense": "1-10", "stamina": "1-10"}},
  "description": "Short description of this Beyblade and its history"
}}

{_COMPONENT_RULES}

{_TYPE_RULES}

If the image quality is too low to be certain, reply:
{{
  "identified": false,
  "confidence": "low",
  "suggestions": ["Possible Beyblade A", "Possible Beyblade B"],
  "partial_analysis": {{
    "detected_colors": ["..."],
    "detected_series": "...",
    "detected_features": ["..."]
  }},
  "error_message": "Low quality image. Consider taking a sharper photo."
}}

If there is no Beyblade in the image, reply:
{{"identified": false, "error_message": "Why identification was not possible"}}"""

LOOKUP_PROMPT = f"""You are a Beyblade expert. Analyze the HTML of a Beyblade Fandom wiki page and extract structured data.

IMPORTANT: Reply ONLY with valid JSON in this format, with no extra text:

{{
  "identified": true,
  "confidence": "high",
  "name": "Official name as it appears on the page",
  "name_hasbro": "Hasbro name, if mentioned",
  "series": "Beyblade X | Beyblade Burst | Metal Fight",
  "generation": "Specific generation (e.g. Basic Line, Dynamite Battle, Metal Fusion)",
  "type": "Ataque | Defesa | Stamina | Equilíbrio",
  "components": {{"descriptions": {{}}}},
  "specs": {{"weight": "if mentioned", "attack": "1-10", "defense": "1-10", "stamina": "1-10"}},
  "description": "Short description based on the page content"
}}

{_COMPONENT_RULES}

Use the page categories to pick the type: a category containing Attack, Defense,
Stamina or Balance decides it.

{_TYPE_RULES}"""


def _image_block(image_base64: str) -> dict[str, Any]:
    """
    Build an Anthropic image block from raw base64 or a data URL.

    Raises:
        KnownError: If the payload is not valid base64
    """
    media_type = "image/jpeg"
    data = image_base64
    if data.startswith("data:"):
        header, _, data = data.partition(",")
        media_type = header[5:].split(";")[0] or media_type

    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise KnownError(
            kind=FailureKind.INVALID_INPUT,
            message="The image could not be read.",
            detail="Image payload is not valid base64",
            status_code=400,
        ) from e

    return {
        "type": "image",
        "source": {"type": "base64", "media_type": media_type, "data": data},
    }


def _page_message(page: WikiPage) -> str:
    return (
        f"Page title: {page.title}\n\n"
        f"Categories: {', '.join(page.categories)}\n\n"
        f"Page HTML:\n{page.html[:MAX_PAGE_CHARS]}"
    )


class Identifier:
    """
    Identification client over the Anthropic messages API.

    The wiki client is only needed for text lookups.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        wiki: WikiClient | None = None,
        model: str | None = None,
    ) -> None:
        self._client = client
        self._wiki = wiki
        self._model = model or settings.anthropic_model

    async def _complete(self, system: str, content: str | list[dict[str, Any]]) -> str:
        """
        Run one completion and return its text.

        Raises:
            RequestTimeoutError: If the model call times out
            AIServiceError: On rate limiting or any other API failure
        """
        messages: list[MessageParam] = [{"role": "user", "content": content}]  # type: ignore[typeddict-item]

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=2048,
                system=system,
                messages=messages,
                timeout=settings.ai_timeout,
            )
        except anthropic.APITimeoutError as e:
            raise RequestTimeoutError("identification", settings.ai_timeout) from e
        except anthropic.RateLimitError as e:
            raise AIServiceError("rate limited", status_code=429) from e
        except anthropic.APIStatusError as e:
            logger.error("AI API error: %s", e.status_code)
            raise AIServiceError(f"HTTP {e.status_code}") from e
        except anthropic.APIError as e:
            raise AIServiceError(str(e)) from e

        text = "".join(block.text for block in response.content if isinstance(block, TextBlock))
        if not text:
            raise AIServiceError("empty completion")
        return text

    async def identify_image(self, image_base64: str) -> IdentificationResult:
        """
        Identify a Beyblade from a photo.

        Unparseable output yields an unidentified result, not an error.
        """
        if not image_base64:
            raise KnownError(
                kind=FailureKind.INVALID_INPUT,
                message="No image provided.",
                status_code=400,
            )

        content = [
            {"type": "text", "text": "Identify the Beyblade in this image:"},
            _image_block(image_base64),
        ]
        text = await self._complete(IMAGE_PROMPT, content)

        result = parse_completion(text)
        if result is None:
            return IdentificationResult(
                identified=False,
                error_message="Failed to parse AI response",
            )
        return result

    async def _lookup_once(self, slug: str) -> IdentificationResult:
        if self._wiki is None:
            raise RuntimeError("Identifier has no wiki client for text lookups")

        details = await self._wiki.fetch_details(slug)
        page = details.page

        try:
            text = await self._complete(LOOKUP_PROMPT, _page_message(page))
            result = parse_completion(text)
        except AIServiceError:
            logger.exception("AI extraction failed for %s, using wiki categories", slug)
            result = None

        if result is None:
            return degraded_from_categories(
                page.title, page.categories, wiki_url=page.url, image_url=details.image_url
            )

        # The page is authoritative for identity and links
        return replace(
            result,
            name=page.title,
            wiki_url=page.url,
            image_url=details.image_url,
        )

    async def lookup(self, slug: str) -> IdentificationResult:
        """
        Resolve a wiki slug into an identification result.

        Retries up to settings.lookup_attempts with a fixed backoff. Missing
        pages are not retried.

        Raises:
            PageNotFoundError: If the wiki has no such page
            LookupUnavailableError: After all attempts failed
        """
        if not slug:
            raise KnownError(
                kind=FailureKind.INVALID_INPUT,
                message="No slug provided.",
                status_code=400,
            )

        attempts = max(1, settings.lookup_attempts)
        last_error: KnownError | None = None

        for attempt in range(attempts):
            if attempt > 0:
                logger.info("Retry attempt %d for slug: %s", attempt, slug)
                await asyncio.sleep(settings.lookup_backoff)
            try:
                return await self._lookup_once(slug)
            except PageNotFoundError:
                raise
            except KnownError as e:
                last_error = e
                logger.warning("Lookup attempt %d failed for %s: %s", attempt + 1, slug, e.detail)

        logger.error("All %d lookup attempts failed for %s", attempts, slug)
        raise LookupUnavailableError(
            attempts, detail=last_error.detail if last_error else None
        ) from last_error

"""Tests for the AI identification client."""

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest
from anthropic.types import TextBlock

from beydex.models.beyblade import BeybladeXParts
from beydex.models.failure import (
    AIServiceError,
    FailureKind,
    KnownError,
    LookupUnavailableError,
    PageNotFoundError,
    RequestTimeoutError,
)
from beydex.services.identifier import IMAGE_PROMPT, LOOKUP_PROMPT, Identifier
from beydex.services.wiki_client import WikiDetails, WikiPage

IMAGE_B64 = "aGVsbG8="

PAGE = WikiPage(
    slug="DranSword",
    title="DranSword 3-60F",
    categories=("Beyblade X", "Attack Type"),
    html="<p>DranSword</p>",
    url="https://beyblade.fandom.com/wiki/DranSword",
)
DETAILS = WikiDetails(page=PAGE, image_url="http://localhost:8000/media/wiki-cache/DranSword-400.jpg")

IDENTIFIED_JSON = """```json
{
  "identified": true,
  "confidence": "high",
  "name": "Dran Sword",
  "series": "Beyblade X",
  "generation": "Basic Line",
  "type": "Attack",
  "components": {"blade": "Dran Sword", "ratchet": "3-60", "bit": "Flat"},
  "image_url": "https://example.com/model-made-this-up.png"
}
```"""


def _completion(text: str) -> MagicMock:
    response = MagicMock()
    response.content = [TextBlock(type="text", text=text)]
    return response


def _anthropic(*responses) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(side_effect=list(responses))
    return client


def _wiki(*details) -> MagicMock:
    wiki = MagicMock()
    wiki.fetch_details = AsyncMock(side_effect=list(details))
    return wiki


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://api.anthropic.com/v1/messages")


@pytest.fixture(autouse=True)
def no_backoff():
    with patch("beydex.services.identifier.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestIdentifyImage:
    async def test_identified(self) -> None:
        client = _anthropic(_completion(IDENTIFIED_JSON))
        identifier = Identifier(client)

        result = await identifier.identify_image(IMAGE_B64)

        assert result.identified is True
        assert result.name == "Dran Sword"
        assert result.type == "Ataque"
        assert result.components == BeybladeXParts(blade="Dran Sword", ratchet="3-60", bit="Flat")

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == IMAGE_PROMPT
        image_block = kwargs["messages"][0]["content"][1]
        assert image_block["source"] == {"type": "base64", "media_type": "image/jpeg", "data": IMAGE_B64}

    async def test_data_url_media_type(self) -> None:
        client = _anthropic(_completion('{"identified": false}'))

        await Identifier(client).identify_image(f"data:image/png;base64,{IMAGE_B64}")

        image_block = client.messages.create.call_args.kwargs["messages"][0]["content"][1]
        assert image_block["source"]["media_type"] == "image/png"
        assert image_block["source"]["data"] == IMAGE_B64

    async def test_unparseable_output_is_not_identified(self) -> None:
        client = _anthropic(_completion("I think this is a spinning top."))

        result = await Identifier(client).identify_image(IMAGE_B64)

        assert result.identified is False
        assert result.error_message == "Failed to parse AI response"
        assert result.outcome == "unidentified"

    async def test_low_confidence_leads(self) -> None:
        client = _anthropic(
            _completion(
                '{"identified": false, "confidence": "low", "suggestions": ["DranSword"],'
                ' "partial_analysis": {"detected_colors": ["red"]}}'
            )
        )

        result = await Identifier(client).identify_image(IMAGE_B64)

        assert result.outcome == "leads"
        assert result.suggestions == ("DranSword",)

    async def test_empty_image_rejected(self) -> None:
        client = _anthropic()

        with pytest.raises(KnownError) as exc_info:
            await Identifier(client).identify_image("")

        assert exc_info.value.kind == FailureKind.INVALID_INPUT
        client.messages.create.assert_not_called()

    async def test_invalid_base64_rejected(self) -> None:
        with pytest.raises(KnownError) as exc_info:
            await Identifier(_anthropic()).identify_image("not base64!!")

        assert exc_info.value.status_code == 400

    async def test_timeout(self) -> None:
        client = _anthropic(anthropic.APITimeoutError(request=_request()))

        with pytest.raises(RequestTimeoutError):
            await Identifier(client).identify_image(IMAGE_B64)

    async def test_rate_limited(self) -> None:
        error = anthropic.RateLimitError(
            "slow down",
            response=httpx.Response(429, request=_request()),
            body=None,
        )
        client = _anthropic(error)

        with pytest.raises(AIServiceError) as exc_info:
            await Identifier(client).identify_image(IMAGE_B64)

        assert exc_info.value.status_code == 429
        assert exc_info.value.kind == FailureKind.RATE_LIMITED

    async def test_empty_completion(self) -> None:
        response = MagicMock()
        response.content = []

        with pytest.raises(AIServiceError):
            await Identifier(_anthropic(response)).identify_image(IMAGE_B64)


class TestLookup:
    async def test_page_is_authoritative_for_identity(self) -> None:
        client = _anthropic(_completion(IDENTIFIED_JSON))
        wiki = _wiki(DETAILS)

        result = await Identifier(client, wiki).lookup("DranSword")

        assert result.identified is True
        assert result.name == "DranSword 3-60F"
        assert result.wiki_url == PAGE.url
        assert result.image_url == DETAILS.image_url
        assert result.type == "Ataque"

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["system"] == LOOKUP_PROMPT
        assert "Categories: Beyblade X, Attack Type" in kwargs["messages"][0]["content"]

    async def test_unparseable_output_degrades_to_categories(self) -> None:
        client = _anthropic(_completion("no json at all"))
        wiki = _wiki(DETAILS)

        result = await Identifier(client, wiki).lookup("DranSword")

        assert result.identified is True
        assert result.name == "DranSword 3-60F"
        assert result.series == "Beyblade X"
        assert result.type == "Ataque"
        assert result.image_url == DETAILS.image_url

    async def test_ai_failure_degrades_to_categories(self) -> None:
        client = _anthropic(anthropic.APIConnectionError(request=_request()))
        wiki = _wiki(DETAILS)

        result = await Identifier(client, wiki).lookup("DranSword")

        assert result.identified is True
        assert result.wiki_url == PAGE.url

    async def test_retries_after_wiki_timeout(self, no_backoff: AsyncMock) -> None:
        client = _anthropic(_completion(IDENTIFIED_JSON))
        wiki = _wiki(RequestTimeoutError("page fetch", 8), DETAILS)

        with patch("beydex.services.identifier.settings.lookup_attempts", 2):
            result = await Identifier(client, wiki).lookup("DranSword")

        assert result.identified is True
        assert wiki.fetch_details.await_count == 2
        no_backoff.assert_awaited_once()

    async def test_exhausted_attempts(self) -> None:
        client = _anthropic()
        wiki = _wiki(
            RequestTimeoutError("page fetch", 8),
            RequestTimeoutError("page fetch", 8),
        )

        with patch("beydex.services.identifier.settings.lookup_attempts", 2):
            with pytest.raises(LookupUnavailableError) as exc_info:
                await Identifier(client, wiki).lookup("DranSword")

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail == "page fetch exceeded 8s"
        assert wiki.fetch_details.await_count == 2

    async def test_missing_page_not_retried(self) -> None:
        wiki = _wiki(PageNotFoundError("Nope"), DETAILS)

        with pytest.raises(PageNotFoundError):
            await Identifier(_anthropic(), wiki).lookup("Nope")

        assert wiki.fetch_details.await_count == 1

    async def test_empty_slug(self) -> None:
        with pytest.raises(KnownError) as exc_info:
            await Identifier(_anthropic(), _wiki()).lookup("")

        assert exc_info.value.kind == FailureKind.INVALID_INPUT

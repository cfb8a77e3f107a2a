"""Tests for the wiki search endpoint."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from beydex.api.deps import get_wiki_client
from beydex.main import app
from beydex.models.failure import SearchTimeoutError
from beydex.services.wiki_client import SearchResult


@pytest.fixture
def wiki(client: AsyncClient) -> MagicMock:
    mock = MagicMock()
    mock.search = AsyncMock(return_value=[])
    app.dependency_overrides[get_wiki_client] = lambda: mock
    return mock


class TestSearch:
    async def test_results(self, client: AsyncClient, wiki: MagicMock) -> None:
        wiki.search.return_value = [
            SearchResult(
                name="Dran Buster",
                url="https://beyblade.fandom.com/wiki/Dran_Buster",
                slug="Dran_Buster",
            )
        ]

        response = await client.get("/search", params={"q": "Dran"})

        assert response.status_code == 200
        assert response.json() == {
            "query": "Dran",
            "results": [
                {
                    "name": "Dran Buster",
                    "url": "https://beyblade.fandom.com/wiki/Dran_Buster",
                    "slug": "Dran_Buster",
                }
            ],
        }

    async def test_timeout_message(self, client: AsyncClient, wiki: MagicMock) -> None:
        wiki.search.side_effect = SearchTimeoutError(5)

        response = await client.get("/search", params={"q": "Dran"})

        assert response.status_code == 504
        failure = response.json()["failure"]
        assert failure["kind"] == "timeout"
        assert failure["message"] == "Search timed out - try again."

    async def test_query_required(self, client: AsyncClient, wiki: MagicMock) -> None:
        response = await client.get("/search")

        assert response.status_code == 422

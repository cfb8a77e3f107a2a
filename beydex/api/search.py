"""
Wiki search endpoint.

Debouncing and stale-response protection live on the caller side
(see services.search_session); this endpoint answers one query.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from beydex.api.deps import get_wiki_client
from beydex.services.wiki_client import WikiClient

router = APIRouter(prefix="/search", tags=["search"])


class SearchResultResponse(BaseModel):
    name: str
    url: str
    slug: str


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResultResponse] = Field(default_factory=list)


@router.get("", response_model=SearchResponse)
async def search(
    q: Annotated[str, Query(max_length=200)],
    wiki: Annotated[WikiClient, Depends(get_wiki_client)],
) -> SearchResponse:
    """
    Search the wiki for Beyblade pages.

    Queries under two characters return no results without calling the wiki.
    """
    results = await wiki.search(q)
    return SearchResponse(
        query=q,
        results=[SearchResultResponse(name=r.name, url=r.url, slug=r.slug) for r in results],
    )

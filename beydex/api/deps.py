"""
Shared FastAPI dependencies for external clients.

Tests replace these through app.dependency_overrides.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

import anthropic
from fastapi import Depends, HTTPException, status

from beydex.config import settings
from beydex.services.identifier import Identifier
from beydex.services.object_store import ObjectStore, get_object_store
from beydex.services.wiki_client import WikiClient


async def get_wiki_client(
    store: Annotated[ObjectStore, Depends(get_object_store)],
) -> AsyncGenerator[WikiClient, None]:
    """Wiki client scoped to one request."""
    async with WikiClient(store=store) as client:
        yield client


def get_anthropic_client() -> anthropic.AsyncAnthropic:
    if not settings.anthropic_api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Anthropic API key not configured",
        )
    return anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)


def get_identifier(
    client: Annotated[anthropic.AsyncAnthropic, Depends(get_anthropic_client)],
    wiki: Annotated[WikiClient, Depends(get_wiki_client)],
) -> Identifier:
    return Identifier(client, wiki)

"""API endpoints for querying a vector index.

``POST /demo/indexes/{name}/query`` embeds the query text, runs a
cosine similarity search against the index with optional category and
author filters, drops matches under ``min_score`` and optionally
re-ranks the candidates with a lexical score.  The response message
describes which filters were applied.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ragadmin.embeddings import EmbeddingClient
from ragadmin.i18n import get_locale, translate
from ragadmin.models import SearchPayload, SearchResponse
from ragadmin.search import ALL_AUTHORS, ALL_CATEGORIES, search_index
from ragadmin.storage import get_embedder, get_store
from ragadmin.vector_store import LibSQLVectorStore

query_router = APIRouter(prefix="/demo", tags=["query"])


def describe_filters(payload: SearchPayload) -> List[str]:
    info: List[str] = []
    if payload.category and payload.category != ALL_CATEGORIES:
        info.append(f"category: {payload.category}")
    if payload.author and payload.author != ALL_AUTHORS:
        info.append(f"author: {payload.author}")
    if payload.min_score > 0:
        info.append(f"min score: {payload.min_score}")
    return info


def search_message(payload: SearchPayload, count: int, locale: str) -> str:
    message = translate("search.found", locale, count=count)
    filters = describe_filters(payload)
    if filters:
        message += translate("search.filteredBy", locale, filters=", ".join(filters))
    return message


async def run_search(
    store: LibSQLVectorStore,
    embedder: EmbeddingClient,
    index_name: str,
    payload: SearchPayload,
    locale: str,
) -> SearchResponse:
    results = await search_index(
        store,
        embedder,
        index_name,
        payload.query_text,
        top_k=payload.top_k,
        min_score=payload.min_score,
        category=payload.category,
        author=payload.author,
        rerank=payload.rerank,
    )
    return SearchResponse(message=search_message(payload, len(results), locale), results=results)


@query_router.post("/indexes/{name}/query", response_model=SearchResponse)
async def query_index(
    name: str,
    payload: SearchPayload,
    store: LibSQLVectorStore = Depends(get_store),
    embedder: EmbeddingClient = Depends(get_embedder),
    locale: str = Depends(get_locale),
) -> SearchResponse:
    """Search ``name`` for the chunks most similar to ``payload.query_text``."""
    return await run_search(store, embedder, name, payload, locale)

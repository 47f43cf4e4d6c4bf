"""Similarity search over a vector index.

The query text is embedded with the same client used for ingestion,
optional category/author filters are applied inside the store, weak
matches are dropped with ``min_score`` and, on request, the candidates
are re-ranked by blending the dense score with a TF-IDF lexical score.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer

from ragadmin.config import settings
from ragadmin.embeddings import EmbeddingClient
from ragadmin.models import QueryResult
from ragadmin.vector_store import LibSQLVectorStore

log = logging.getLogger("api.search")

ALL_CATEGORIES = "all-categories"
ALL_AUTHORS = "all-authors"


def build_filter(category: Optional[str] = None, author: Optional[str] = None) -> Dict[str, Any]:
    flt: Dict[str, Any] = {}
    if category and category != ALL_CATEGORIES:
        flt["category"] = category
    if author and author != ALL_AUTHORS:
        flt["author"] = author
    return flt


def _min_max(scores: np.ndarray) -> np.ndarray:
    if scores.size == 0:
        return scores
    hi, lo = float(scores.max()), float(scores.min())
    return (scores - lo) / (hi - lo) if hi > lo else np.zeros_like(scores)


def lexical_scores(query_text: str, texts: List[str]) -> np.ndarray:
    """TF-IDF cosine similarity between ``query_text`` and each text."""
    if not texts:
        return np.zeros(0, dtype="float32")
    vectorizer = TfidfVectorizer()
    try:
        matrix = vectorizer.fit_transform(texts)
    except ValueError:
        # empty vocabulary (only stop words or punctuation)
        return np.zeros(len(texts), dtype="float32")
    q_vec = vectorizer.transform([query_text])
    return (q_vec @ matrix.T).toarray().flatten().astype("float32")


def rerank_results(query_text: str, results: List[QueryResult], alpha: float) -> List[QueryResult]:
    """Order ``results`` by ``alpha * dense + (1 - alpha) * lexical``.

    Both score lists are min-max normalised over the candidates first.
    The blended value is stored on each result as ``rerank_score``.
    """
    if not 0.0 <= alpha <= 1.0:
        raise ValueError("alpha must be between 0 and 1")
    if not results:
        return []
    dense = np.array([r.score or 0.0 for r in results], dtype="float32")
    texts = [str(r.metadata.get("text", "")) for r in results]
    combined = alpha * _min_max(dense) + (1.0 - alpha) * _min_max(lexical_scores(query_text, texts))
    order = np.argsort(-combined, kind="stable")
    ranked: List[QueryResult] = []
    for i in order:
        ranked.append(results[int(i)].model_copy(update={"rerank_score": float(combined[int(i)])}))
    return ranked


async def search_index(
    store: LibSQLVectorStore,
    embedder: EmbeddingClient,
    index_name: str,
    query_text: str,
    top_k: int = 5,
    min_score: float = 0.0,
    category: Optional[str] = None,
    author: Optional[str] = None,
    rerank: bool = False,
    alpha: Optional[float] = None,
    pool_factor: Optional[int] = None,
) -> List[QueryResult]:
    """Embed ``query_text`` and return up to ``top_k`` matches from ``index_name``."""
    query_vector = await embedder.embed_one(query_text)
    flt = build_filter(category, author)
    pool = top_k * max(1, pool_factor or settings.rerank_pool_factor) if rerank else top_k
    results = store.query(index_name, query_vector, top_k=pool, filter=flt or None)
    results = [r for r in results if r.score is None or r.score >= min_score]
    if rerank:
        results = rerank_results(query_text, results, settings.rerank_alpha if alpha is None else alpha)
    log.info(f"Search '{index_name}': {len(results[:top_k])} results (filter={flt or None}, rerank={rerank})")
    return results[:top_k]

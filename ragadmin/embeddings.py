"""Embedding generation.

``EmbeddingClient`` talks to an OpenAI-compatible ``/embeddings``
endpoint through ``httpx``.  When no API key is configured the client
falls back to ``deterministic_embedding``, which derives a repeatable
pseudo-random vector from the text so that the demo works offline.
Queries and documents always go through the same client, so the two
modes are never mixed inside a single request.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx
import numpy as np

from ragadmin.config import Settings, settings as default_settings
from ragadmin.errors import EmbeddingError

log = logging.getLogger("api.embeddings")


def deterministic_embedding(text: str, dimension: int) -> List[float]:
    """Return a repeatable vector in ``[-1, 1)`` for ``text``.

    The seed is the sum of the text's code points; component ``i`` is
    ``(frac(sin(seed + i) * 10000) - 0.5) * 2``.
    """
    if dimension <= 0:
        raise ValueError("dimension must be positive")
    seed = sum(ord(ch) for ch in text)
    x = np.sin(np.arange(seed, seed + dimension, dtype=np.float64)) * 10000.0
    frac = x - np.floor(x)
    return ((frac - 0.5) * 2.0).tolist()


def sample_embeddings(count: int, dimension: int, seed: Optional[int] = None) -> List[List[float]]:
    """Random vectors for seeding demo indexes."""
    rng = np.random.default_rng(seed)
    return rng.random((count, dimension)).tolist()


def _parse_embeddings(data: Any, expected: int) -> List[List[float]]:
    if not isinstance(data, dict) or not isinstance(data.get("data"), list):
        raise EmbeddingError(f"Unexpected embeddings response: {str(data)[:200]}")
    items = data["data"]
    if len(items) != expected:
        raise EmbeddingError(f"Embedding count mismatch: sent={expected} received={len(items)}")
    try:
        ordered = sorted(items, key=lambda item: item.get("index", 0))
        vectors = [list(map(float, item["embedding"])) for item in ordered]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise EmbeddingError(f"Malformed embedding item: {exc}") from exc
    if any(not v for v in vectors):
        raise EmbeddingError("Embeddings endpoint returned an empty vector.")
    return vectors


class EmbeddingClient:
    """Embed texts through an OpenAI-compatible API, or deterministically."""

    def __init__(
        self,
        base_url: str,
        model: str,
        dimension: int,
        api_key: Optional[str] = None,
        batch_size: int = 32,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.dimension = dimension
        self.api_key = api_key
        self.batch_size = batch_size
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, cfg: Settings = default_settings) -> "EmbeddingClient":
        return cls(
            base_url=cfg.embedding_base_url,
            model=cfg.embedding_model_name,
            dimension=cfg.embedding_dimension,
            api_key=cfg.embedding_api_key,
            batch_size=cfg.embedding_batch_size,
            timeout=cfg.embedding_timeout,
        )

    @property
    def uses_api(self) -> bool:
        return bool(self.api_key)

    async def _embed_batch(self, client: httpx.AsyncClient, batch: List[str]) -> List[List[float]]:
        url = f"{self.base_url}/embeddings"
        payload = {"model": self.model, "input": batch}
        try:
            r = await client.post(url, json=payload, headers={"Authorization": f"Bearer {self.api_key}"})
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPStatusError as exc:
            raise EmbeddingError(
                f"Embeddings endpoint returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise EmbeddingError(f"Embeddings request failed: {exc}") from exc
        return _parse_embeddings(data, len(batch))

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        if not self.uses_api:
            log.debug(f"No embedding API key configured; using deterministic vectors for {len(texts)} texts")
            return [deterministic_embedding(t, self.dimension) for t in texts]

        out: List[List[float]] = []
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for i in range(0, len(texts), self.batch_size):
                out.extend(await self._embed_batch(client, texts[i : i + self.batch_size]))
        log.info(f"Embedded {len(texts)} texts with {self.model} (dim={len(out[0])})")
        return out

    async def embed_one(self, text: str) -> List[float]:
        [vec] = await self.embed([text])
        return vec

"""Display helpers shared by the file management endpoints."""

from __future__ import annotations

from typing import List

from ragadmin.models import ChunkInfo, ChunkPreview


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def preview_chunks(chunks: List[ChunkInfo], head: int = 2, tail: int = 2) -> ChunkPreview:
    """
    Collapse a long chunk list to its first ``head`` and last ``tail`` items.

    Lists of at most ``head + tail`` chunks are returned whole in ``head``.
    """
    if head < 0 or tail < 0:
        raise ValueError("head and tail must be >= 0")
    total = len(chunks)
    if total <= head + tail:
        return ChunkPreview(head=list(chunks), tail=[], hidden_count=0, total=total)
    return ChunkPreview(
        head=list(chunks[:head]),
        tail=list(chunks[total - tail:]) if tail else [],
        hidden_count=total - head - tail,
        total=total,
    )

"""Text chunking strategies used during ingestion.

Three strategies are available:

``window``
    A fixed-size sliding window that prefers to cut at the last sentence
    end or line break inside the window.
``recursive``
    LangChain's ``RecursiveCharacterTextSplitter`` (paragraph, line, word
    and finally character boundaries).
``markdown``
    A structure-aware splitter that keeps a heading together with its list
    items or a short intro paragraph.
"""

from __future__ import annotations

import re
from typing import List, Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter

STRATEGIES = ("recursive", "window", "markdown")

_LIST_ITEM = re.compile(r"^(?:[-*+]|\d+[.)])\s+")
MAX_INTRO_LINES = 2


def _check_window(chunk_size: int, overlap: int) -> None:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be >= 0 and smaller than chunk_size")


def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> List[str]:
    """Split ``text`` with a sliding window of ``chunk_size`` characters.

    When the window does not reach the end of the text, the cut is placed
    just after the last ``.`` or newline in the window provided it lies
    past the window's midpoint; otherwise the window is hard-cut.  The
    next window starts ``overlap`` characters before the cut, but always
    strictly after the previous start.
    """
    _check_window(chunk_size, overlap)
    chunks: List[str] = []
    length = len(text)
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        if end == length:
            chunks.append(text[start:end].strip())
            break
        window = text[start:end]
        brk = max(window.rfind("."), window.rfind("\n"))
        cut = start + brk + 1 if brk > chunk_size * 0.5 else end
        chunks.append(text[start:cut].strip())
        next_start = cut - overlap
        start = next_start if next_start > start else cut
    return [c for c in chunks if c]


def recursive_chunks(text: str, chunk_size: int = 1000, overlap: int = 200) -> List[str]:
    _check_window(chunk_size, overlap)
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=overlap,
        length_function=len,
    )
    return [c.strip() for c in splitter.split_text(text) if c.strip()]


def _is_list_item(line: str) -> bool:
    return _LIST_ITEM.match(line) is not None


def markdown_blocks(md: str, block_size: int = 1000) -> List[str]:
    """Split Markdown into blocks that respect its structure.

    - a heading and the list items directly under it stay together
    - without list items, up to two short intro lines join the heading
    - blank lines end a block
    - blocks longer than ``block_size`` are split, at a newline when one
      sits far enough into the slice
    """
    if block_size <= 0:
        raise ValueError("block_size must be positive")
    lines = md.splitlines()
    blocks: List[str] = []
    current: List[str] = []

    def flush() -> None:
        if current:
            block = "\n".join(current).strip()
            if block:
                blocks.append(block)
            current.clear()

    i = 0
    while i < len(lines):
        line = lines[i]
        stripped = line.strip()
        if stripped.startswith("#"):
            flush()
            current.append(line)
            j = i + 1
            while j < len(lines) and lines[j].strip() and _is_list_item(lines[j].strip()):
                current.append(lines[j])
                j += 1
            if j == i + 1:
                while j < len(lines) and j - i - 1 < MAX_INTRO_LINES:
                    nxt = lines[j].strip()
                    if not nxt or nxt.startswith("#") or _is_list_item(nxt):
                        break
                    current.append(lines[j])
                    j += 1
            flush()
            i = j
            continue
        if not stripped:
            flush()
        else:
            current.append(line)
        i += 1
    flush()

    out: List[str] = []
    min_cut = max(1, block_size // 5)
    for block in blocks:
        start = 0
        while len(block) - start > block_size:
            end = start + block_size
            nl = block.rfind("\n", start, end)
            cut = nl if nl > start + min_cut else end
            piece = block[start:cut].strip()
            if piece:
                out.append(piece)
            start = cut
        tail = block[start:].strip()
        if tail:
            out.append(tail)
    return out


def chunk_document(
    text: str,
    strategy: Optional[str] = None,
    chunk_size: int = 1000,
    overlap: int = 200,
) -> List[str]:
    """Chunk ``text`` with the named strategy (``recursive`` by default)."""
    strategy = (strategy or "recursive").lower()
    if strategy == "window":
        return chunk_text(text, chunk_size, overlap)
    if strategy == "recursive":
        return recursive_chunks(text, chunk_size, overlap)
    if strategy == "markdown":
        return markdown_blocks(text, chunk_size)
    raise ValueError(f"Unknown chunk strategy: {strategy!r} (expected one of {', '.join(STRATEGIES)})")

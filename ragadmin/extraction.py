"""Plain-text extraction for uploaded documents.

Text and Markdown files are decoded as UTF-8 (undecodable bytes are
replaced).  Word ``.docx`` files are read with python-docx: paragraph
text first, then the text of any table cells, one line each.  Legacy
binary ``.doc`` files are not supported.
"""

from __future__ import annotations

import io
import logging
import os
import zipfile
from typing import List

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError

from ragadmin.errors import ExtractionError, UnsupportedFileError

log = logging.getLogger("api.extraction")

TEXT_EXTENSIONS = {".txt", ".md"}
WORD_EXTENSIONS = {".docx"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | WORD_EXTENSIONS


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def extract_docx_text(data: bytes) -> str:
    try:
        doc = DocxDocument(io.BytesIO(data))
    except (zipfile.BadZipFile, PackageNotFoundError, KeyError, ValueError) as exc:
        raise ExtractionError(f"Could not read Word document: {exc}") from exc
    lines: List[str] = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                lines.append("\t".join(cells))
    return "\n".join(lines).strip()


def extract_text(filename: str, data: bytes) -> str:
    """Return the raw text of an uploaded file."""
    ext = file_extension(filename)
    if ext in TEXT_EXTENSIONS:
        return data.decode("utf-8", errors="replace")
    if ext in WORD_EXTENSIONS:
        text = extract_docx_text(data)
        log.info(f"python-docx: extracted {len(text)} chars from '{filename}'")
        return text
    supported = ", ".join(sorted(SUPPORTED_EXTENSIONS))
    raise UnsupportedFileError(f"Unsupported file type '{ext or filename}'. Supported: {supported}")

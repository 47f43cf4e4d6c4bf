"""Message catalogues for user-facing texts.

Catalogues live in ``ragadmin/locales/<locale>.json`` as nested objects
and are addressed with dotted keys (``upload.fileUploadSuccess``).
Placeholders are written ``{name}``.  Missing keys translate to the key
itself; unknown locales use the default locale.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Header, Query

from ragadmin.config import settings

LOCALES = ("zh", "en")
LOCALES_DIR = os.path.join(os.path.dirname(__file__), "locales")


@lru_cache(maxsize=None)
def get_messages(locale: str) -> Dict[str, Any]:
    if locale not in LOCALES:
        locale = settings.default_locale
    with open(os.path.join(LOCALES_DIR, f"{locale}.json"), "r", encoding="utf-8") as f:
        return json.load(f)


def _lookup(messages: Dict[str, Any], key: str) -> Optional[str]:
    node: Any = messages
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def translate(key: str, locale: Optional[str] = None, **params: Any) -> str:
    text = _lookup(get_messages(locale or settings.default_locale), key) or key
    for name, value in params.items():
        text = text.replace(f"{{{name}}}", str(value))
    return text


def resolve_locale(lang: Optional[str] = None, accept_language: Optional[str] = None) -> str:
    """Pick a supported locale from an explicit ``lang`` or an Accept-Language header."""
    if lang and lang.lower() in LOCALES:
        return lang.lower()
    if accept_language:
        for part in accept_language.split(","):
            code = part.split(";")[0].strip().lower()
            primary = code.split("-")[0]
            if primary in LOCALES:
                return primary
    return settings.default_locale


def get_locale(
    lang: Optional[str] = Query(None),
    accept_language: Optional[str] = Header(None),
) -> str:
    return resolve_locale(lang, accept_language)

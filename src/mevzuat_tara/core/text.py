from __future__ import annotations

import re
from typing import Any

WHITESPACE_RE = re.compile(r"\s+")
NON_WORD_RE = re.compile(r"[^\w\s]")

# Explicit table: str.lower() turns "İ" into "i" + U+0307 and leaves "ı" alone.
TURKISH_FOLD = str.maketrans(
    {
        "ı": "i",
        "ğ": "g",
        "ü": "u",
        "ş": "s",
        "ö": "o",
        "ç": "c",
        "İ": "i",
        "Ğ": "g",
        "Ü": "u",
        "Ş": "s",
        "Ö": "o",
        "Ç": "c",
    }
)

TRUTHY_VALUES = {"true", "1"}


def normalize_title(title: str | None) -> str:
    """Canonical key for comparing document titles across stores.

    Approximate by nature: titles that differ only in punctuation collide.
    """
    if not title:
        return ""
    text = title.translate(TURKISH_FOLD).lower()
    text = NON_WORD_RE.sub("", text)
    text = WHITESPACE_RE.sub(" ", text)
    return text.strip()


def is_truthy(value: Any) -> bool:
    """Coerce the boolean-ish flags the backends send (True, "true", 1, "1")."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value in TRUTHY_VALUES
    return False

# selfcarebot/core/alerts.py
from __future__ import annotations

from typing import Iterable, Optional


def find_crisis_keyword(text: str, keywords: Iterable[str]) -> Optional[str]:
    """
    First configured keyword contained in text (case-insensitive substring), or None.
    """
    if not text:
        return None
    low = text.lower()
    for keyword in keywords:
        k = keyword.strip().lower()
        if k and k in low:
            return keyword
    return None

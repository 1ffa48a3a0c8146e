"""Keyword pre-filter used before spending an LLM call on a prize."""

import re
from typing import Iterable


def grep_any(content: str, keywords: Iterable[str]) -> bool:
    """True if any keyword occurs in ``content``, case-insensitively and literally."""
    for raw in keywords:
        keyword = (raw or "").strip()
        if not keyword:
            continue
        if re.search(re.escape(keyword), content, re.IGNORECASE):
            return True
    return False

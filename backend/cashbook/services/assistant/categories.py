"""Category tags carried in transaction descriptions.

A category is stored as a leading ``[#Category]`` prefix on the
description, e.g. ``[#Food] lunch with team``.
"""

import re
from typing import Optional, Tuple

UNCATEGORIZED = "Uncategorized"

_TAG_RE = re.compile(r"^\s*\[#([^\]]+)\]\s*(.*)$", re.DOTALL)


def normalize_category(category: Optional[str]) -> str:
    if not category:
        return ""
    return re.sub(r"[\]\n\r]", "", str(category)).strip()


def decode_description(stored: Optional[str]) -> Tuple[str, str]:
    """Split a stored description into ``(category, description)``.

    Untagged descriptions come back with an empty category.
    """
    raw = stored or ""
    match = _TAG_RE.match(raw)
    if not match:
        return "", raw
    return normalize_category(match.group(1)), (match.group(2) or "").strip()


def encode_description(description: Optional[str], category: Optional[str]) -> str:
    clean_desc = str(description or "").strip()
    clean_cat = normalize_category(category)
    if not clean_cat:
        return clean_desc
    return f"[#{clean_cat}] {clean_desc}".strip()


def category_bucket(stored: Optional[str]) -> str:
    """Name of the aggregation bucket for a stored description."""
    category, _ = decode_description(stored)
    return category or UNCATEGORIZED

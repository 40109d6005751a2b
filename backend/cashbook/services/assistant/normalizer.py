"""Text normalization applied to every question before any matching."""

import re
from typing import List, Tuple

# Whole-word corrections. No replacement is itself a key, so the table can
# be applied in any order and applying it twice changes nothing.
SHORTHAND_FIXES: List[Tuple[str, str]] = [
    (r"outflw", "outflow"),
    (r"outflo", "outflow"),
    (r"outfloww", "outflow"),
    (r"inflw", "inflow"),
    (r"inflo", "inflow"),
    (r"infloww", "inflow"),
    (r"transcation", "transaction"),
    (r"tranaction", "transaction"),
    (r"trnsaction", "transaction"),
    (r"hlo", "hello"),
    (r"hlw", "hello"),
    (r"hii+", "hi"),
]

_COMPILED_FIXES = [(re.compile(rf"\b{pattern}\b"), replacement) for pattern, replacement in SHORTHAND_FIXES]


def normalize(text: str) -> str:
    """Lower-case a question and fix common typos and shorthand."""
    t = str(text or "").lower()
    for pattern, replacement in _COMPILED_FIXES:
        t = pattern.sub(replacement, t)
    return t

"""Work out which of the user's cashbooks a question is about."""

import re
from typing import List, Optional, Union

from ...schemas.assistant import CashbookRef, ClarificationNeeded
from .normalizer import normalize

ALL_CASHBOOKS_RE = re.compile(r"\ball\s+cashbooks\b|\boverall\b|\bacross\s+all\b")

_NUMBER_RE = re.compile(r"\bnumber\b")
_PROFILE_NUMBER_RE = re.compile(r"\b(phone|mobile|contact)\b")
_NAMED_NUMBER_RE = re.compile(r"\b(transaction|transactions|inflow|outflow|spent|balance|net|income|expense)\b")

MAX_CANDIDATES = 2


def coerce_cashbook_id(value) -> Optional[int]:
    """Cashbook ids arrive from clients as ints or numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def find_mentioned(normalized_text: str, cashbooks: List[CashbookRef]) -> List[CashbookRef]:
    """Cashbooks whose name appears anywhere in the question."""
    hits = []
    for cb in cashbooks:
        # Names go through the same typo table as the question.
        name = normalize(cb.name).strip()
        if name and name in normalized_text:
            hits.append(cb)
    return hits


def is_ambiguous_number_question(normalized_text: str) -> bool:
    """True for questions like "number for mar" that never say which number."""
    t = normalized_text or ""
    if not _NUMBER_RE.search(t):
        return False
    if _PROFILE_NUMBER_RE.search(t):
        return False
    return not _NAMED_NUMBER_RE.search(t)


def number_clarification(username: Optional[str] = None) -> ClarificationNeeded:
    name_part = f"{username}, " if username else ""
    return ClarificationNeeded(
        question=(
            f"{name_part}what number do you want for that cashbook: "
            "inflow, outflow (spent), balance, or number of transactions?"
        ),
    )


def cashbook_clarification(cashbooks: List[CashbookRef], username: Optional[str] = None) -> ClarificationNeeded:
    names = [n for n in ((cb.name or "").strip() for cb in cashbooks) if n][:MAX_CANDIDATES]
    name_part = f"{username}, " if username else ""
    if names:
        choices = " or ".join(f'"{n}"' for n in names)
        question = f"{name_part}which cashbook do you mean: {choices}?"
    else:
        question = f"{name_part}which cashbook do you mean? Tell me the cashbook name."
    return ClarificationNeeded(question=question, candidates=names)


def resolve_cashbooks(
    normalized_text: str,
    owned: List[CashbookRef],
    current_cashbook_id=None,
    username: Optional[str] = None,
) -> Union[List[int], ClarificationNeeded]:
    """Resolve the cashbook ids a question refers to.

    Order: "all cashbooks" phrasing, names mentioned in the question, the
    caller's current cashbook, the user's only cashbook. Anything else is
    ambiguous and comes back as a clarification.
    """
    t = normalized_text or ""

    if ALL_CASHBOOKS_RE.search(t):
        return [cb.id for cb in owned]

    mentioned = find_mentioned(t, owned)
    if mentioned:
        return [cb.id for cb in mentioned]

    current_id = coerce_cashbook_id(current_cashbook_id)
    if current_id is not None and any(cb.id == current_id for cb in owned):
        return [current_id]

    if len(owned) == 1:
        return [owned[0].id]

    return cashbook_clarification(owned, username)

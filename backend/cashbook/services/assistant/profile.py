"""Small-talk and profile questions answered straight from the user's identity.

None of these touch cashbook data or the language model.
"""

import re
from typing import Callable, List, Optional, Tuple

from ...schemas.assistant import UserProfile

GREETING_RE = re.compile(r"^(hi|hello|hey|good\s+(morning|afternoon|evening))\s*[!?.]*$")
NAME_RE = re.compile(r"\b(my\s+name|user\s*name|profile\s+name)\b")
PHONE_RE = re.compile(r"\b(phone|mobile|contact)\b")
PHONE_NUMBER_RE = re.compile(r"\b(number|no|num)\b")
REGISTERED_PHONE_RE = re.compile(r"\b(registered|my|profile)\b")
EMAIL_RE = re.compile(r"\b(mail|email)\b")
EMAIL_DETAIL_RE = re.compile(r"\b(id|address)\b|\bmy\s+(mail|email)\b")
CAPABILITIES_RE = re.compile(
    r"\b(what\s+can\s+you\s+do|what\s+all\s+can\s+you\s+do|what\s+details|what\s+information"
    r"|help|commands|examples)\b"
)
ENV_NOTE_ASK_RE = re.compile(r"\b(what\s+is\s+this|what\s+does\s+this\s+mean|why\s+is\s+this|explain)\b")
ENV_NOTE_TOPIC_RE = re.compile(r"\b(openai|api\s*key|openai_api_key)\b|\.env\b")

_BARE_NAME_QUESTIONS = {"name", "my name", "username", "user name"}


def _name_prefix(profile: Optional[UserProfile]) -> str:
    return f"{profile.username}, " if profile and profile.username else ""


def is_greeting(t: str) -> bool:
    return bool(GREETING_RE.match(t.strip()))


def is_name_question(t: str) -> bool:
    return t.strip() in _BARE_NAME_QUESTIONS or bool(NAME_RE.search(t))


def is_phone_question(t: str) -> bool:
    if not PHONE_RE.search(t):
        return False
    return bool(PHONE_NUMBER_RE.search(t) or REGISTERED_PHONE_RE.search(t))


def is_email_question(t: str) -> bool:
    if not EMAIL_RE.search(t):
        return False
    return t.strip() in ("mail", "email") or bool(EMAIL_DETAIL_RE.search(t))


def is_env_note_question(t: str) -> bool:
    return bool(ENV_NOTE_ASK_RE.search(t) and ENV_NOTE_TOPIC_RE.search(t))


def is_capabilities_question(t: str) -> bool:
    return bool(CAPABILITIES_RE.search(t))


def greeting_answer(profile: Optional[UserProfile]) -> str:
    name = profile.username if profile and profile.username else "there"
    return f'Hi {name}! Ask me things like "mar inflow", "spent last 7 days in mar", or "mar full details".'


def name_answer(profile: Optional[UserProfile]) -> str:
    if profile and profile.username:
        return f"Your username is {profile.username}."
    return "I can't see your username right now, but you can check it in Profile."


def phone_answer(profile: Optional[UserProfile]) -> str:
    if profile and profile.mobile:
        return f"Your registered phone number is {profile.mobile}."
    return "I can't see your phone number right now, but you can check it in Profile."


def email_answer(profile: Optional[UserProfile]) -> str:
    if profile and profile.email:
        return f"Your email id is {profile.email}."
    return "I can't see your email right now, but you can check it in Profile."


def env_note_answer(profile: Optional[UserProfile]) -> str:
    return (
        f"{_name_prefix(profile)}that message is about enabling optional AI answers. "
        "If you add an OPENAI_API_KEY to the backend .env file and restart the backend, "
        "the assistant can reply in a more conversational way. "
        "Without it, I can still answer using your cashbook data (totals, spending, recent transactions, etc.)."
    )


def capabilities_answer(profile: Optional[UserProfile]) -> str:
    return (
        f"{_name_prefix(profile)}I can answer using your cashbook data (only what's stored in this app). "
        "For example:\n"
        "- balance / inflow / outflow (spent) / net\n"
        "- last 7 days / this month / last month / custom dates (YYYY-MM-DD)\n"
        "- top category / category breakdown\n"
        "- recent transactions\n"
        "- number of transactions\n"
        "- budget forecast (if you set a monthly budget in the app)\n\n"
        'Try: "mar full details", "spent last 7 days in mar", "top category this month", '
        '"recent transactions for feb".'
    )


# Checked in order; the first matching question type answers.
PROFILE_RULES: List[Tuple[Callable[[str], bool], Callable[[Optional[UserProfile]], str]]] = [
    (is_greeting, greeting_answer),
    (is_name_question, name_answer),
    (is_phone_question, phone_answer),
    (is_email_question, email_answer),
    (is_env_note_question, env_note_answer),
    (is_capabilities_question, capabilities_answer),
]


def is_profile_question(normalized_text: str) -> bool:
    return any(matches(normalized_text) for matches, _ in PROFILE_RULES)


def answer_profile_question(normalized_text: str, profile: Optional[UserProfile]) -> Optional[str]:
    """Answer greeting, identity and help questions; None for anything else."""
    for matches, answer in PROFILE_RULES:
        if matches(normalized_text):
            return answer(profile)
    return None

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./cashbook.db")
    DB_ECHO = os.getenv("DB_ECHO", "").lower() in ("1", "true", "yes")


DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_LLM_TIMEOUT_SECONDS = 20.0

# Trailing window used when a question names no date range
DEFAULT_RANGE_DAYS = 30
MAX_RANGE_DAYS = 366


def get_openai_api_key():
    """Read at call time so a key added to the environment is picked up without a restart."""
    key = os.getenv("OPENAI_API_KEY", "").strip()
    return key or None


def get_openai_model() -> str:
    return os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL


def get_openai_base_url() -> str:
    return (os.getenv("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL).rstrip("/")


def get_llm_timeout() -> float:
    try:
        return float(os.getenv("LLM_TIMEOUT_SECONDS", DEFAULT_LLM_TIMEOUT_SECONDS))
    except ValueError:
        return DEFAULT_LLM_TIMEOUT_SECONDS

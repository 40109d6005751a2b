"""Pytest configuration and fixtures."""

import os
from datetime import date, datetime
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment variables before importing settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from cashbook import models
from cashbook.database import init_db
from cashbook.services.assistant.categories import encode_description
from cashbook.services.assistant.llm import ChatCompletionClient
from cashbook.services.assistant.orchestrator import AssistantOrchestrator
from cashbook.services.storage import CashbookStore

TODAY = date(2024, 3, 20)

ASHA = 1  # one cashbook, "Mar"
RAVI = 2  # two cashbooks, "Home" and "Shop"
NEW_USER = 3  # no cashbooks

MAR, HOME, SHOP = 1, 2, 3


def _txn(id, cashbook_id, type, amount, day, description="", category=""):
    return models.Transaction(
        id=id,
        cashbook_id=cashbook_id,
        type=type,
        amount=Decimal(amount),
        description=encode_description(description, category),
        date=day,
    )


@pytest.fixture(autouse=True)
def no_openai_key(monkeypatch):
    """Tests take the local path unless they pass an LLM client explicitly."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cashbook.db'}")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def store(session_factory):
    """Store over a seeded database.

    Mar (asha), all time: inflow 1700.00, outflow 700.00, 7 transactions.
    Last 7 days: inflow 1000.00, outflow 350.50.
    Default 30 days and this month: inflow 1000.00, outflow 400.00.
    """
    async with session_factory() as db:
        db.add_all([
            models.User(id=ASHA, username="asha", email="asha@example.com", mobile="9876543210"),
            models.User(id=RAVI, username="ravi", email="ravi@example.com", mobile="9123456780"),
            models.User(id=NEW_USER, username="neha", email="neha@example.com", mobile="9000000000"),
        ])
        await db.flush()

        db.add_all([
            models.Cashbook(id=MAR, user_id=ASHA, name="Mar", created_at=datetime(2023, 11, 1)),
            models.Cashbook(id=HOME, user_id=RAVI, name="Home", created_at=datetime(2024, 1, 1)),
            models.Cashbook(id=SHOP, user_id=RAVI, name="Shop", created_at=datetime(2024, 2, 1)),
        ])
        await db.flush()

        db.add_all([
            _txn(1, MAR, "inflow", "1000", date(2024, 3, 20), "march pay", "Salary"),
            _txn(2, MAR, "outflow", "250.50", date(2024, 3, 18), "groceries", "Food"),
            _txn(3, MAR, "outflow", "100", date(2024, 3, 15), "cab", "Travel"),
            _txn(4, MAR, "outflow", "49.50", date(2024, 3, 2), "snacks"),
            _txn(5, MAR, "inflow", "500", date(2024, 2, 10), "birthday", "Gift"),
            _txn(6, MAR, "outflow", "300", date(2024, 1, 5), "january", "Rent"),
            _txn(7, MAR, "inflow", "200", date(2023, 12, 1), "opening cash"),
            _txn(8, HOME, "inflow", "50", date(2024, 3, 19), "old chair", "Sale"),
            _txn(9, SHOP, "outflow", "20", date(2024, 3, 10), "paper", "Stock"),
        ])
        await db.commit()

    return CashbookStore(session_factory)


@pytest_asyncio.fixture
async def broken_store(tmp_path):
    """Store over a database that has no tables, so every query fails."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    yield CashbookStore(async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


@pytest.fixture
def assistant(store):
    """Orchestrator with no API key configured, pinned to TODAY."""
    return AssistantOrchestrator(store, clock=lambda: TODAY)


@pytest.fixture
def completion():
    """Build an OpenAI-style chat completion response."""
    def build(content, status_code=200):
        return httpx.Response(
            status_code,
            json={"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]},
        )
    return build


@pytest.fixture
def make_llm_client():
    """Create a configured client whose HTTP calls go to ``handler``."""
    def factory(handler, timeout=5.0):
        return ChatCompletionClient(
            api_key="sk-test",
            model="gpt-test",
            base_url="https://llm.test/v1",
            timeout=timeout,
            transport=httpx.MockTransport(handler),
        )
    return factory

"""
Read-only storage queries used by the assistant.

Every query is scoped by user: a cashbook the user does not own behaves
as if it were empty. Each call opens its own session so independent
reads can be awaited concurrently.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .. import models
from ..schemas.assistant import AllTimeBalance, CashbookRef, TransactionRow, UserProfile

logger = logging.getLogger(__name__)

MAX_RECENT_LIMIT = 20


class StorageUnavailableError(RuntimeError):
    """Raised when the database cannot be reached or a query fails."""


def _to_row(txn: models.Transaction) -> TransactionRow:
    return TransactionRow(
        id=txn.id,
        cashbook_id=txn.cashbook_id,
        type=txn.type,
        amount=float(txn.amount),
        date=txn.date,
        created_at=txn.created_at,
        description=txn.description or "",
    )


def _owned_transactions():
    """Transactions joined to their cashbook so the owner can be filtered."""
    return select(models.Transaction).join(
        models.Cashbook, models.Transaction.cashbook_id == models.Cashbook.id
    )


class CashbookStore:
    """Async, user-scoped reads over cashbooks and transactions."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def _run(self, label: str, fn):
        try:
            async with self._session_factory() as db:
                return await fn(db)
        except SQLAlchemyError as e:
            logger.error(f"[Storage] {label} failed: {e}")
            raise StorageUnavailableError(f"{label} failed") from e

    async def list_cashbooks(self, user_id: int) -> List[CashbookRef]:
        async def query(db: AsyncSession):
            stmt = (
                select(models.Cashbook)
                .where(models.Cashbook.user_id == user_id)
                .order_by(models.Cashbook.created_at.desc(), models.Cashbook.id.desc())
            )
            result = await db.execute(stmt)
            return [
                CashbookRef(
                    id=cb.id,
                    user_id=cb.user_id,
                    name=cb.name,
                    description=cb.description,
                    created_at=cb.created_at,
                )
                for cb in result.scalars().all()
            ]

        return await self._run("list_cashbooks", query)

    async def get_transactions_in_range(
        self,
        user_id: int,
        cashbook_id: int,
        start_date: date,
        end_date: date,
    ) -> List[TransactionRow]:
        async def query(db: AsyncSession):
            stmt = (
                _owned_transactions()
                .where(models.Transaction.cashbook_id == cashbook_id)
                .where(models.Cashbook.user_id == user_id)
                .where(models.Transaction.date >= start_date)
                .where(models.Transaction.date <= end_date)
                .order_by(models.Transaction.date.asc(), models.Transaction.created_at.asc())
            )
            result = await db.execute(stmt)
            return [_to_row(t) for t in result.scalars().all()]

        return await self._run("get_transactions_in_range", query)

    async def get_all_time_balance(self, user_id: int, cashbook_id: int) -> AllTimeBalance:
        async def query(db: AsyncSession):
            amount = models.Transaction.amount
            is_inflow = models.Transaction.type == "inflow"
            is_outflow = models.Transaction.type == "outflow"
            stmt = (
                select(
                    func.coalesce(func.sum(case((is_inflow, amount), else_=0)), 0).label("total_inflow"),
                    func.coalesce(func.sum(case((is_outflow, amount), else_=0)), 0).label("total_outflow"),
                )
                .select_from(models.Transaction)
                .join(models.Cashbook, models.Transaction.cashbook_id == models.Cashbook.id)
                .where(models.Transaction.cashbook_id == cashbook_id)
                .where(models.Cashbook.user_id == user_id)
            )
            row = (await db.execute(stmt)).one()
            total_inflow = round(float(row.total_inflow or 0), 2)
            total_outflow = round(float(row.total_outflow or 0), 2)
            return AllTimeBalance(
                total_inflow=total_inflow,
                total_outflow=total_outflow,
                balance=round(total_inflow - total_outflow, 2),
            )

        return await self._run("get_all_time_balance", query)

    async def get_recent_transactions(
        self,
        user_id: int,
        cashbook_id: int,
        limit: int = 5,
    ) -> List[TransactionRow]:
        lim = max(1, min(MAX_RECENT_LIMIT, int(limit or 5)))

        async def query(db: AsyncSession):
            stmt = (
                _owned_transactions()
                .where(models.Transaction.cashbook_id == cashbook_id)
                .where(models.Cashbook.user_id == user_id)
                .order_by(models.Transaction.date.desc(), models.Transaction.created_at.desc(), models.Transaction.id.desc())
                .limit(lim)
            )
            result = await db.execute(stmt)
            return [_to_row(t) for t in result.scalars().all()]

        return await self._run("get_recent_transactions", query)

    async def get_transaction_count(self, user_id: int, cashbook_id: int) -> int:
        async def query(db: AsyncSession):
            stmt = (
                select(func.count(models.Transaction.id))
                .select_from(models.Transaction)
                .join(models.Cashbook, models.Transaction.cashbook_id == models.Cashbook.id)
                .where(models.Transaction.cashbook_id == cashbook_id)
                .where(models.Cashbook.user_id == user_id)
            )
            return int((await db.execute(stmt)).scalar() or 0)

        return await self._run("get_transaction_count", query)

    async def get_user_profile(self, user_id: int) -> Optional[UserProfile]:
        async def query(db: AsyncSession):
            user = await db.get(models.User, user_id)
            if not user:
                return None
            return UserProfile(id=user.id, username=user.username, email=user.email, mobile=user.mobile)

        return await self._run("get_user_profile", query)

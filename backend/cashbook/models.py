from sqlalchemy import Column, Integer, String, Numeric, Date, ForeignKey, DateTime, Text, CheckConstraint, func
from sqlalchemy.orm import relationship
from .database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    email = Column(String, unique=True, nullable=False)
    mobile = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    cashbooks = relationship("Cashbook", back_populates="user")

class Cashbook(Base):
    __tablename__ = "cashbooks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    user = relationship("User", back_populates="cashbooks")
    transactions = relationship("Transaction", back_populates="cashbook")

class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("type IN ('inflow', 'outflow')", name="ck_transactions_type"),
        CheckConstraint("amount > 0", name="ck_transactions_amount"),
    )

    id = Column(Integer, primary_key=True, index=True)
    cashbook_id = Column(Integer, ForeignKey("cashbooks.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)  # inflow, outflow
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=True)  # may carry a "[#Category] " prefix
    date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())
    cashbook = relationship("Cashbook", back_populates="transactions")

from datetime import datetime

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
)
from sqlalchemy.orm import relationship

from database.database import Base

class TimestampMixin:
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

class UserModel(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # hash bcrypt
    monthly_income = Column(Float, default=0, nullable=False)
    currency = Column(String, default="USD", nullable=False)

    goals = relationship("GoalModel", back_populates="owner", cascade="all, delete-orphan")

class TransactionModel(TimestampMixin, Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    text = Column(String, nullable=False)
    amount = Column(Float, nullable=False)  # positif = revenu, négatif = dépense
    category = Column(String, index=True, nullable=False, default="Other")
    date = Column(DateTime, index=True, nullable=False, default=datetime.now)

class BudgetModel(TimestampMixin, Base):
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("category", "month", "year", name="uq_budget_category_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String, index=True, nullable=False)
    amount = Column(Float, nullable=False)
    month = Column(String, nullable=False)  # ex: "January"
    year = Column(Integer, nullable=False)  # ex: 2025

class GoalModel(TimestampMixin, Base):
    __tablename__ = "goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String, nullable=False)
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, default=0, nullable=False)
    deadline = Column(DateTime, nullable=False)
    category = Column(String, default="Savings", nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    color = Column(String, default="#3498db", nullable=False)

    owner = relationship("UserModel", back_populates="goals")

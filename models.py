import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


CENT = Decimal("0.01")


def to_cents(amount: object) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1")))


def from_cents(cents: Optional[int]) -> Decimal:
    return (Decimal(cents or 0) / 100).quantize(CENT)


def new_id() -> str:
    return str(uuid.uuid4())


class CategoryType(str, Enum):
    income = "income"
    expense = "expense"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[CategoryType] = mapped_column(
        SAEnum(CategoryType), nullable=False, default=CategoryType.expense
    )
    parent_id: Mapped[Optional[str]] = mapped_column(ForeignKey("categories.id"))

    parent: Mapped[Optional["Category"]] = relationship(
        "Category", remote_side="Category.id", back_populates="children"
    )
    children: Mapped[list["Category"]] = relationship(
        "Category", back_populates="parent", order_by="Category.name"
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "parent_id", "name", name="uq_category_user_parent_name"
        ),
        Index("ix_categories_user_type", "user_id", "type"),
    )


class Wallet(Base, TimestampMixin):
    __tablename__ = "wallets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    balance_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    included_in_total: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="💼")
    color: Mapped[str] = mapped_column(String(9), nullable=False, default="#3b82f6")
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @property
    def balance(self) -> Decimal:
        return from_cents(self.balance_cents)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_wallet_user_name"),
        Index("ix_wallets_user_order", "user_id", "order"),
    )


class Income(Base, TimestampMixin):
    __tablename__ = "incomes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    category_id: Mapped[str] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    wallet_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("wallets.id", ondelete="SET NULL")
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    date: Mapped[date] = mapped_column(Date, nullable=False)

    category: Mapped["Category"] = relationship("Category")
    wallet: Mapped[Optional["Wallet"]] = relationship("Wallet")

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    __table_args__ = (
        Index("ix_incomes_user_date", "user_id", "date"),
        Index("ix_incomes_user_category", "user_id", "category_id"),
        Index("ix_incomes_user_wallet", "user_id", "wallet_id"),
        CheckConstraint("amount_cents > 0", name="ck_incomes_amount_positive"),
    )


class Expense(Base, TimestampMixin):
    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    category_id: Mapped[str] = mapped_column(
        ForeignKey("categories.id"), nullable=False
    )
    wallet_id: Mapped[Optional[str]] = mapped_column(ForeignKey("wallets.id"))
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    date: Mapped[date] = mapped_column(Date, nullable=False)

    category: Mapped["Category"] = relationship("Category")
    wallet: Mapped[Optional["Wallet"]] = relationship("Wallet")

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    __table_args__ = (
        Index("ix_expenses_user_date", "user_id", "date"),
        Index("ix_expenses_user_category", "user_id", "category_id"),
        Index("ix_expenses_user_wallet", "user_id", "wallet_id"),
        CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
    )

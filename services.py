from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterator, Optional, Union

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from config import get_settings
from errors import BadRequestError, ConflictError, NotFoundError, UnauthorizedError
from models import (
    Category,
    CategoryType,
    Expense,
    Income,
    User,
    Wallet,
    from_cents,
    to_cents,
)
from periods import Period, day_period, month_period, resolve_range, week_period
from schemas import (
    CategoryIn,
    CategoryUpdate,
    LoginIn,
    RegisterIn,
    ReorderWalletsIn,
    TransactionIn,
    TransactionUpdate,
    TransferIn,
    WalletIn,
    WalletUpdate,
)
from security import (
    ACCESS,
    REFRESH,
    decode_token,
    generate_tokens,
    hash_password,
    verify_password,
)
from seed_data import DEFAULT_EXPENSE_CATEGORIES, DEFAULT_INCOME_CATEGORIES, label


logger = logging.getLogger(__name__)

DAILY_STATS_LIMIT = 30
FORGOT_PASSWORD_MESSAGE = (
    "If the email exists, we have sent instructions to reset the password"
)

LedgerModel = Union[type[Income], type[Expense]]


def clean_id(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@contextmanager
def atomic(session: Session) -> Iterator[None]:
    try:
        yield
        session.commit()
    except Exception:
        session.rollback()
        raise


@dataclass
class TransactionFilters:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category_id: Optional[str] = None
    wallet_id: Optional[str] = None


def seed_default_categories(
    session: Session, user_id: str, locale: Optional[str] = None
) -> int:
    locale = locale or get_settings().default_locale
    roots = 0
    for category_type, tree in (
        (CategoryType.expense, DEFAULT_EXPENSE_CATEGORIES),
        (CategoryType.income, DEFAULT_INCOME_CATEGORIES),
    ):
        for node in tree:
            parent = Category(
                user_id=user_id,
                name=label(node["name"], locale),
                type=category_type,
            )
            session.add(parent)
            session.flush()
            roots += 1
            session.add_all(
                Category(
                    user_id=user_id,
                    name=label(child, locale),
                    type=category_type,
                    parent_id=parent.id,
                )
                for child in node["children"]
            )
    session.flush()
    return roots


class AuthService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _by_email(self, email: str) -> Optional[User]:
        return self.session.scalar(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )

    def register(self, data: RegisterIn) -> tuple[User, dict[str, str]]:
        if self._by_email(data.email):
            raise ConflictError("Email is already in use")

        user = User(
            email=data.email,
            password=hash_password(data.password),
            name=data.name.strip(),
        )
        with atomic(self.session):
            self.session.add(user)
            self.session.flush()
            seed_default_categories(self.session, user.id)
        self.session.refresh(user)
        logger.info(f"user_registered: id={user.id}")
        return user, generate_tokens(user.id, user.email)

    def login(self, data: LoginIn) -> tuple[User, dict[str, str]]:
        user = self._by_email(data.email)
        if not user or not verify_password(data.password, user.password):
            logger.info("login_failed")
            raise UnauthorizedError("Invalid email or password")
        logger.info(f"login: user={user.id}")
        return user, generate_tokens(user.id, user.email)

    def refresh(self, refresh_token: str) -> dict[str, str]:
        payload = decode_token(refresh_token, REFRESH)
        user = self.session.get(User, payload["sub"])
        if not user:
            raise NotFoundError("User not found")
        return generate_tokens(user.id, user.email)

    def authenticate(self, access_token: str) -> str:
        payload = decode_token(access_token, ACCESS)
        user_id = self.session.scalar(select(User.id).where(User.id == payload["sub"]))
        if not user_id:
            raise UnauthorizedError("Invalid token")
        return user_id

    def forgot_password(self, email: str) -> str:
        # No mail transport yet; the reply must not reveal whether the email exists.
        return FORGOT_PASSWORD_MESSAGE

    def profile(self, user_id: str) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user


class CategoryService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def _query(self):
        return (
            select(Category)
            .options(joinedload(Category.parent), selectinload(Category.children))
            .where(Category.user_id == self.user_id)
            .execution_options(populate_existing=True)
        )

    def list_all(self, type: Optional[CategoryType] = None) -> list[Category]:
        stmt = self._query().order_by(
            Category.parent_id.isnot(None), Category.name, Category.id
        )
        if type:
            stmt = stmt.where(Category.type == type)
        return self.session.scalars(stmt).unique().all()

    def get(self, category_id: str, message: str = "Category not found") -> Category:
        category = self.session.scalar(
            self._query().where(Category.id == category_id)
        )
        if not category:
            raise NotFoundError(message)
        return category

    def require(self, category_id: str, category_type: CategoryType) -> Category:
        category = self.session.scalar(
            select(Category).where(
                Category.id == category_id,
                Category.user_id == self.user_id,
                Category.type == category_type,
            )
        )
        if not category:
            raise NotFoundError(f"{category_type.value.capitalize()} category not found")
        return category

    def _name_taken(
        self, name: str, parent_id: Optional[str], exclude_id: Optional[str] = None
    ) -> bool:
        stmt = select(Category.id).where(
            Category.user_id == self.user_id,
            Category.name == name,
            Category.parent_id.is_(None)
            if parent_id is None
            else Category.parent_id == parent_id,
        )
        if exclude_id:
            stmt = stmt.where(Category.id != exclude_id)
        return self.session.scalar(stmt.limit(1)) is not None

    def create(self, data: CategoryIn) -> Category:
        name = data.name.strip()
        parent_id = clean_id(data.parent_id)
        if parent_id:
            parent = self.get(parent_id, "Parent category not found")
            if parent.parent_id:
                raise ConflictError("Cannot create a subcategory of a subcategory")
            if parent.type != data.type:
                raise BadRequestError("Subcategory type must match its parent")
        if self._name_taken(name, parent_id):
            raise ConflictError("Category already exists")

        category = Category(
            user_id=self.user_id, name=name, type=data.type, parent_id=parent_id
        )
        self.session.add(category)
        self.session.commit()
        return self.get(category.id)

    def update(self, category_id: str, data: CategoryUpdate) -> Category:
        category = self.get(category_id)
        fields = data.model_fields_set

        parent_id = category.parent_id
        if "parent_id" in fields:
            parent_id = clean_id(data.parent_id)
            if parent_id == category.id:
                raise ConflictError("A category cannot be its own parent")
            if parent_id:
                parent = self.get(parent_id, "Parent category not found")
                if parent.parent_id:
                    raise ConflictError("A subcategory cannot be used as a parent")
                if category.children:
                    raise ConflictError(
                        "A category with subcategories cannot become a subcategory"
                    )
                if parent.type != category.type:
                    raise BadRequestError("Subcategory type must match its parent")

        name = data.name.strip() if data.name else category.name
        if name != category.name or parent_id != category.parent_id:
            if self._name_taken(name, parent_id, exclude_id=category.id):
                raise ConflictError("Category already exists")

        category.name = name
        category.parent_id = parent_id
        self.session.commit()
        return self.get(category.id)

    def delete(self, category_id: str) -> None:
        category = self.get(category_id)
        in_use = 0
        for model in (Income, Expense):
            in_use += int(
                self.session.execute(
                    select(func.count(model.id)).where(model.category_id == category.id)
                ).scalar_one()
                or 0
            )
        if in_use:
            raise ConflictError(
                "Cannot delete a category that is in use. "
                "Delete or move its transactions first."
            )
        if category.children:
            raise ConflictError(
                "Cannot delete a category that has subcategories. "
                "Delete or move them first."
            )
        self.session.delete(category)
        self.session.commit()

    def import_defaults(self, locale: Optional[str] = None) -> int:
        existing = int(
            self.session.execute(
                select(func.count(Category.id)).where(Category.user_id == self.user_id)
            ).scalar_one()
            or 0
        )
        if existing:
            raise ConflictError(
                "You already have categories. "
                "Delete them before importing the defaults."
            )
        with atomic(self.session):
            count = seed_default_categories(self.session, self.user_id, locale)
        return count


class WalletService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id

    def list_all(self) -> list[Wallet]:
        stmt = (
            select(Wallet)
            .where(Wallet.user_id == self.user_id)
            .order_by(Wallet.order.asc(), Wallet.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).all()

    def get(self, wallet_id: str, *, for_update: bool = False) -> Wallet:
        stmt = (
            select(Wallet)
            .where(Wallet.id == wallet_id, Wallet.user_id == self.user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        wallet = self.session.scalar(stmt)
        if not wallet:
            raise NotFoundError("Wallet not found")
        return wallet

    def _name_taken(self, name: str, exclude_id: Optional[str] = None) -> bool:
        stmt = select(Wallet.id).where(
            Wallet.user_id == self.user_id, Wallet.name == name
        )
        if exclude_id:
            stmt = stmt.where(Wallet.id != exclude_id)
        return self.session.scalar(stmt.limit(1)) is not None

    def create(self, data: WalletIn) -> Wallet:
        name = data.name.strip()
        if self._name_taken(name):
            raise ConflictError("Wallet name already exists")

        order = data.order
        if order is None:
            max_order = self.session.scalar(
                select(func.max(Wallet.order)).where(Wallet.user_id == self.user_id)
            )
            order = 0 if max_order is None else max_order + 1

        wallet = Wallet(
            user_id=self.user_id,
            name=name,
            balance_cents=0,
            included_in_total=(
                True if data.included_in_total is None else data.included_in_total
            ),
            icon=data.icon or "💼",
            color=data.color or "#3b82f6",
            order=order,
        )
        self.session.add(wallet)
        self.session.commit()
        self.session.refresh(wallet)
        return wallet

    def update(self, wallet_id: str, data: WalletUpdate) -> Wallet:
        wallet = self.get(wallet_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if changes["name"] != wallet.name and self._name_taken(
                changes["name"], exclude_id=wallet.id
            ):
                raise ConflictError("Wallet name already exists")

        for field, value in changes.items():
            setattr(wallet, field, value)
        self.session.commit()
        self.session.refresh(wallet)
        return wallet

    def delete(self, wallet_id: str) -> None:
        wallet = self.get(wallet_id)
        expense_count = int(
            self.session.execute(
                select(func.count(Expense.id)).where(Expense.wallet_id == wallet.id)
            ).scalar_one()
            or 0
        )
        if expense_count:
            raise ConflictError(
                "Cannot delete a wallet that has expenses. "
                "Delete or move them first."
            )
        with atomic(self.session):
            self.session.execute(
                update(Income)
                .where(Income.wallet_id == wallet.id)
                .values(wallet_id=None)
                .execution_options(synchronize_session=False)
            )
            self.session.delete(wallet)
        logger.info(f"wallet_deleted: id={wallet_id} user={self.user_id}")

    def adjust_balance(self, wallet_id: str, delta_cents: int) -> None:
        # SQL-side increment, concurrent writers cannot lose updates.
        self.session.execute(
            update(Wallet)
            .where(Wallet.id == wallet_id, Wallet.user_id == self.user_id)
            .values(balance_cents=Wallet.balance_cents + delta_cents)
            .execution_options(synchronize_session=False)
        )

    def transfer(self, data: TransferIn) -> None:
        from_id = data.from_wallet_id.strip()
        to_id = data.to_wallet_id.strip()
        if from_id == to_id:
            raise BadRequestError("Cannot transfer to the same wallet")

        source = self.get(from_id, for_update=True)
        target = self.get(to_id, for_update=True)
        amount = to_cents(data.amount)
        if source.balance_cents < amount:
            raise BadRequestError("Insufficient balance")

        with atomic(self.session):
            self.adjust_balance(source.id, -amount)
            self.adjust_balance(target.id, amount)
        logger.info(
            f"transfer: user={self.user_id} from={source.id} to={target.id} "
            f"amount={from_cents(amount)}"
        )

    def reorder(self, data: ReorderWalletsIn) -> None:
        wallet_ids = {item.id for item in data.wallets}
        if not wallet_ids:
            return
        owned = set(
            self.session.scalars(
                select(Wallet.id).where(
                    Wallet.user_id == self.user_id, Wallet.id.in_(wallet_ids)
                )
            ).all()
        )
        if owned != wallet_ids:
            raise NotFoundError("Some wallets do not exist or do not belong to you")

        # Each wallet's order is independent; display order only, never balances.
        for item in data.wallets:
            self.session.execute(
                update(Wallet)
                .where(Wallet.id == item.id, Wallet.user_id == self.user_id)
                .values(order=item.order)
                .execution_options(synchronize_session=False)
            )
        self.session.commit()

    def total_balance(self) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(Wallet.balance_cents), 0)).where(
                Wallet.user_id == self.user_id,
                Wallet.included_in_total.is_(True),
            )
        ).scalar_one()
        return from_cents(total)


class _LedgerService:
    """Read paths and analytics shared by incomes and expenses."""

    model: LedgerModel
    category_type: CategoryType
    noun: str

    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id
        self.categories = CategoryService(session, user_id)
        self.wallets = WalletService(session, user_id)

    def _conditions(self, filters: TransactionFilters) -> list:
        model = self.model
        start, end = resolve_range(filters.start_date, filters.end_date)
        conditions = [model.user_id == self.user_id]
        if start:
            conditions.append(model.date >= start)
        if end:
            conditions.append(model.date <= end)
        if filters.category_id:
            conditions.append(model.category_id == filters.category_id)
        if filters.wallet_id:
            conditions.append(model.wallet_id == filters.wallet_id)
        return conditions

    def _require_wallet(self, wallet_id: Optional[str]) -> Optional[str]:
        wallet_id = clean_id(wallet_id)
        if wallet_id:
            self.wallets.get(wallet_id)
        return wallet_id

    def list(self, filters: Optional[TransactionFilters] = None):
        filters = filters or TransactionFilters()
        model = self.model
        stmt = (
            select(model)
            .options(joinedload(model.category), joinedload(model.wallet))
            .where(*self._conditions(filters))
            .order_by(model.date.desc(), model.created_at.desc())
        )
        return self.session.scalars(stmt).all()

    def get(self, transaction_id: str):
        model = self.model
        row = self.session.scalar(
            select(model)
            .options(joinedload(model.category), joinedload(model.wallet))
            .where(model.id == transaction_id, model.user_id == self.user_id)
            .execution_options(populate_existing=True)
        )
        if not row:
            raise NotFoundError(f"{self.noun} not found")
        return row

    def analytics(self, filters: Optional[TransactionFilters] = None) -> dict[str, object]:
        filters = filters or TransactionFilters()
        model = self.model
        conditions = self._conditions(filters)

        totals = self.session.execute(
            select(
                func.coalesce(func.sum(model.amount_cents), 0).label("total"),
                func.count(model.id).label("entries"),
            ).where(*conditions)
        ).one()

        category_rows = self.session.execute(
            select(
                model.category_id.label("category_id"),
                Category.name.label("name"),
                func.sum(model.amount_cents).label("total"),
                func.count(model.id).label("entries"),
            )
            .outerjoin(Category, Category.id == model.category_id)
            .where(*conditions)
            .group_by(model.category_id, Category.name)
            .order_by(func.sum(model.amount_cents).desc())
        ).all()

        wallet_rows = self.session.execute(
            select(
                model.wallet_id.label("wallet_id"),
                Wallet.name.label("name"),
                func.sum(model.amount_cents).label("total"),
                func.count(model.id).label("entries"),
            )
            .outerjoin(Wallet, Wallet.id == model.wallet_id)
            .where(*conditions)
            .group_by(model.wallet_id, Wallet.name)
            .order_by(func.sum(model.amount_cents).desc())
        ).all()

        daily_rows = self.session.execute(
            select(model.date.label("date"), func.sum(model.amount_cents).label("total"))
            .where(*conditions)
            .group_by(model.date)
            .order_by(model.date.desc())
            .limit(DAILY_STATS_LIMIT)
        ).all()

        return {
            "total": from_cents(totals.total),
            "count": int(totals.entries or 0),
            "category_breakdown": [
                {
                    "category_id": row.category_id,
                    "category_name": row.name or "Unknown",
                    "total_amount": from_cents(row.total),
                    "count": int(row.entries),
                }
                for row in category_rows
            ],
            "wallet_breakdown": [
                {
                    "wallet_id": row.wallet_id,
                    "wallet_name": (
                        (row.name or "Unknown") if row.wallet_id else "No wallet"
                    ),
                    "total_amount": from_cents(row.total),
                    "count": int(row.entries),
                }
                for row in wallet_rows
            ],
            "daily_stats": [
                {"date": row.date, "total": from_cents(row.total)} for row in daily_rows
            ],
        }

    def total_for_period(self, period: Period) -> Decimal:
        model = self.model
        total = self.session.execute(
            select(func.coalesce(func.sum(model.amount_cents), 0)).where(
                model.user_id == self.user_id,
                model.date.between(period.start, period.end),
            )
        ).scalar_one()
        return from_cents(total)

    def daily_total(self, day: date) -> dict[str, object]:
        return {"date": day, "total": self.total_for_period(day_period(day))}

    def weekly_total(self, start: date) -> dict[str, object]:
        period = week_period(start)
        return {
            "start_date": period.start,
            "end_date": period.end,
            "total": self.total_for_period(period),
        }

    def monthly_total(self, year: int, month: int) -> dict[str, object]:
        try:
            period = month_period(year, month)
        except ValueError as exc:
            raise BadRequestError(str(exc)) from exc
        return {"year": year, "month": month, "total": self.total_for_period(period)}


class IncomeService(_LedgerService):
    model = Income
    category_type = CategoryType.income
    noun = "Income"

    def create(self, data: TransactionIn) -> Income:
        self.categories.require(data.category_id, self.category_type)
        wallet_id = self._require_wallet(data.wallet_id)
        amount = to_cents(data.amount)

        income = Income(
            user_id=self.user_id,
            category_id=data.category_id,
            wallet_id=wallet_id,
            amount_cents=amount,
            description=data.description,
            date=data.date,
        )
        with atomic(self.session):
            self.session.add(income)
            self.session.flush()
            if wallet_id:
                self.wallets.adjust_balance(wallet_id, amount)
        logger.info(
            f"income_created: id={income.id} wallet={wallet_id} "
            f"amount={from_cents(amount)}"
        )
        return self.get(income.id)

    def update(self, income_id: str, data: TransactionUpdate) -> Income:
        income = self.get(income_id)
        fields = data.model_fields_set

        if data.category_id and data.category_id != income.category_id:
            self.categories.require(data.category_id, self.category_type)

        old_wallet_id = income.wallet_id
        new_wallet_id = old_wallet_id
        if data.wallet_in_patch():
            new_wallet_id = self._require_wallet(data.wallet_id)

        old_amount = income.amount_cents
        new_amount = (
            to_cents(data.amount) if data.amount is not None else old_amount
        )

        with atomic(self.session):
            if old_wallet_id and old_wallet_id == new_wallet_id:
                if new_amount != old_amount:
                    self.wallets.adjust_balance(old_wallet_id, new_amount - old_amount)
            else:
                if old_wallet_id:
                    self.wallets.adjust_balance(old_wallet_id, -old_amount)
                if new_wallet_id:
                    self.wallets.adjust_balance(new_wallet_id, new_amount)

            income.amount_cents = new_amount
            income.wallet_id = new_wallet_id
            if data.category_id:
                income.category_id = data.category_id
            if "description" in fields:
                income.description = data.description
            if data.date:
                income.date = data.date
            self.session.flush()

        logger.info(
            f"income_updated: id={income.id} wallet={old_wallet_id}->{new_wallet_id} "
            f"amount={from_cents(old_amount)}->{from_cents(new_amount)}"
        )
        return self.get(income.id)

    def remove(self, income_id: str) -> None:
        income = self.get(income_id)
        wallet_id = income.wallet_id
        amount = income.amount_cents
        with atomic(self.session):
            if wallet_id:
                self.wallets.adjust_balance(wallet_id, -amount)
            self.session.delete(income)
        logger.info(
            f"income_deleted: id={income_id} wallet={wallet_id} "
            f"amount={from_cents(amount)}"
        )


class ExpenseService(_LedgerService):
    """Expenses are tracked for reporting only and never move wallet balances."""

    model = Expense
    category_type = CategoryType.expense
    noun = "Expense"

    def create(self, data: TransactionIn) -> Expense:
        self.categories.require(data.category_id, self.category_type)
        wallet_id = self._require_wallet(data.wallet_id)

        expense = Expense(
            user_id=self.user_id,
            category_id=data.category_id,
            wallet_id=wallet_id,
            amount_cents=to_cents(data.amount),
            description=data.description,
            date=data.date,
        )
        self.session.add(expense)
        self.session.commit()
        return self.get(expense.id)

    def update(self, expense_id: str, data: TransactionUpdate) -> Expense:
        expense = self.get(expense_id)
        fields = data.model_fields_set

        if data.category_id and data.category_id != expense.category_id:
            self.categories.require(data.category_id, self.category_type)
        if data.wallet_in_patch():
            expense.wallet_id = self._require_wallet(data.wallet_id)

        if data.amount is not None:
            expense.amount_cents = to_cents(data.amount)
        if data.category_id:
            expense.category_id = data.category_id
        if "description" in fields:
            expense.description = data.description
        if data.date:
            expense.date = data.date

        self.session.commit()
        return self.get(expense.id)

    def remove(self, expense_id: str) -> None:
        expense = self.get(expense_id)
        self.session.delete(expense)
        self.session.commit()

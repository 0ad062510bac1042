from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from database import Base, build_engine
from errors import BadRequestError, ConflictError, NotFoundError
from models import CategoryType, Income, User, Wallet, from_cents
from schemas import (
    CategoryIn,
    ReorderWalletsIn,
    TransactionIn,
    TransferIn,
    WalletIn,
    WalletOrderIn,
    WalletUpdate,
)
from services import CategoryService, ExpenseService, IncomeService, WalletService


def make_session():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return SessionLocal()


def make_user(session, email: str = "an@example.com") -> str:
    user = User(email=email, password="not-a-hash", name="An")
    session.add(user)
    session.commit()
    return user.id


def balance(session, wallet_id: str) -> Decimal:
    return from_cents(
        session.scalar(select(Wallet.balance_cents).where(Wallet.id == wallet_id))
    )


def fund(session, user_id: str, wallet_id: str, amount: str) -> Income:
    categories = CategoryService(session, user_id)
    existing = categories.list_all(CategoryType.income)
    category = existing[0] if existing else categories.create(
        CategoryIn(name="Salary", type=CategoryType.income)
    )
    return IncomeService(session, user_id).create(
        TransactionIn(
            amount=Decimal(amount),
            category_id=category.id,
            wallet_id=wallet_id,
            date=date(2026, 3, 1),
        )
    )


def test_create_wallet_defaults() -> None:
    session = make_session()
    service = WalletService(session, make_user(session))

    first = service.create(WalletIn(name=" Cash "))
    second = service.create(WalletIn(name="Bank", includedInTotal=False))

    assert first.name == "Cash"
    assert first.balance == Decimal("0")
    assert first.icon == "💼"
    assert first.color == "#3b82f6"
    assert first.included_in_total is True
    assert (first.order, second.order) == (0, 1)
    assert second.included_in_total is False


def test_wallet_names_are_unique_per_user() -> None:
    session = make_session()
    service = WalletService(session, make_user(session))
    service.create(WalletIn(name="Cash"))
    bank = service.create(WalletIn(name="Bank"))

    with pytest.raises(ConflictError):
        service.create(WalletIn(name="Cash"))
    with pytest.raises(ConflictError):
        service.update(bank.id, WalletUpdate(name="Cash"))

    other = WalletService(session, make_user(session, "binh@example.com"))
    assert other.create(WalletIn(name="Cash")).name == "Cash"


def test_update_wallet_never_touches_balance() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    wallet = service.create(WalletIn(name="Cash"))
    fund(session, user_id, wallet.id, "80")

    updated = service.update(
        wallet.id, WalletUpdate(name="Pocket", color="#000000", includedInTotal=False)
    )

    assert updated.name == "Pocket"
    assert updated.color == "#000000"
    assert updated.included_in_total is False
    assert balance(session, wallet.id) == Decimal("80")


def test_transfer_conserves_total() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    x = service.create(WalletIn(name="Cash"))
    y = service.create(WalletIn(name="Bank"))
    fund(session, user_id, x.id, "300")
    fund(session, user_id, y.id, "20")

    service.transfer(
        TransferIn(fromWalletId=x.id, toWalletId=y.id, amount=Decimal("120.50"))
    )

    assert balance(session, x.id) == Decimal("179.50")
    assert balance(session, y.id) == Decimal("140.50")
    assert balance(session, x.id) + balance(session, y.id) == Decimal("320")


def test_transfer_of_entire_balance_is_allowed() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    x = service.create(WalletIn(name="Cash"))
    y = service.create(WalletIn(name="Bank"))
    fund(session, user_id, x.id, "50")

    service.transfer(TransferIn(fromWalletId=x.id, toWalletId=y.id, amount=Decimal("50")))

    assert balance(session, x.id) == Decimal("0")
    assert balance(session, y.id) == Decimal("50")


def test_insufficient_transfer_leaves_balances_unchanged() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    x = service.create(WalletIn(name="Cash"))
    y = service.create(WalletIn(name="Bank"))
    fund(session, user_id, x.id, "50")

    with pytest.raises(BadRequestError, match="Insufficient balance"):
        service.transfer(
            TransferIn(fromWalletId=x.id, toWalletId=y.id, amount=Decimal("50.01"))
        )

    assert balance(session, x.id) == Decimal("50")
    assert balance(session, y.id) == Decimal("0")


def test_same_wallet_transfer_is_rejected() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    x = service.create(WalletIn(name="Cash"))
    fund(session, user_id, x.id, "50")

    with pytest.raises(BadRequestError, match="same wallet"):
        service.transfer(TransferIn(fromWalletId=x.id, toWalletId=x.id, amount=Decimal("1")))

    assert balance(session, x.id) == Decimal("50")


def test_transfer_to_foreign_wallet_is_not_found() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    x = service.create(WalletIn(name="Cash"))
    fund(session, user_id, x.id, "50")
    foreign = WalletService(session, make_user(session, "binh@example.com")).create(
        WalletIn(name="Theirs")
    )

    with pytest.raises(NotFoundError):
        service.transfer(
            TransferIn(fromWalletId=x.id, toWalletId=foreign.id, amount=Decimal("10"))
        )

    assert balance(session, x.id) == Decimal("50")
    assert balance(session, foreign.id) == Decimal("0")


def test_transfer_amount_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        TransferIn(fromWalletId="a", toWalletId="b", amount=Decimal("0"))
    with pytest.raises(ValidationError):
        TransferIn(fromWalletId="a", toWalletId="b", amount=Decimal("1.001"))


def test_total_balance_counts_included_wallets_only() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    cash = service.create(WalletIn(name="Cash"))
    savings = service.create(WalletIn(name="Savings", includedInTotal=False))
    fund(session, user_id, cash.id, "100")
    fund(session, user_id, savings.id, "1000")

    first = service.total_balance()
    second = service.total_balance()

    assert first == Decimal("100")
    assert first == second


def test_total_balance_without_wallets_is_zero() -> None:
    session = make_session()
    assert WalletService(session, make_user(session)).total_balance() == Decimal("0")


def test_reorder_wallets() -> None:
    session = make_session()
    service = WalletService(session, make_user(session))
    a = service.create(WalletIn(name="A"))
    b = service.create(WalletIn(name="B"))
    c = service.create(WalletIn(name="C"))

    service.reorder(
        ReorderWalletsIn(
            wallets=[
                WalletOrderIn(id=c.id, order=0),
                WalletOrderIn(id=a.id, order=1),
                WalletOrderIn(id=b.id, order=2),
            ]
        )
    )

    assert [w.name for w in service.list_all()] == ["C", "A", "B"]


def test_reorder_with_foreign_wallet_changes_nothing() -> None:
    session = make_session()
    service = WalletService(session, make_user(session))
    a = service.create(WalletIn(name="A"))
    foreign = WalletService(session, make_user(session, "binh@example.com")).create(
        WalletIn(name="Theirs")
    )

    with pytest.raises(NotFoundError):
        service.reorder(
            ReorderWalletsIn(
                wallets=[
                    WalletOrderIn(id=a.id, order=5),
                    WalletOrderIn(id=foreign.id, order=0),
                ]
            )
        )

    assert service.get(a.id).order == 0


def test_delete_wallet_detaches_incomes() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    wallet = service.create(WalletIn(name="Cash"))
    income = fund(session, user_id, wallet.id, "25")

    service.delete(wallet.id)

    with pytest.raises(NotFoundError):
        service.get(wallet.id)
    assert IncomeService(session, user_id).get(income.id).wallet_id is None


def test_delete_wallet_with_expenses_is_refused() -> None:
    session = make_session()
    user_id = make_user(session)
    service = WalletService(session, user_id)
    wallet = service.create(WalletIn(name="Cash"))
    food = CategoryService(session, user_id).create(CategoryIn(name="Food"))
    ExpenseService(session, user_id).create(
        TransactionIn(
            amount=Decimal("12"),
            category_id=food.id,
            wallet_id=wallet.id,
            date=date(2026, 3, 2),
        )
    )

    with pytest.raises(ConflictError):
        service.delete(wallet.id)

    assert service.get(wallet.id).name == "Cash"


def test_blank_wallet_names_are_rejected() -> None:
    with pytest.raises(ValidationError):
        WalletIn(name="   ")
    with pytest.raises(ValidationError):
        WalletUpdate(name=" \t ")

    assert WalletIn(name="  Cash ").name == "Cash"
    assert WalletUpdate(name=None).name is None

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from database import Base, build_engine
from errors import BadRequestError, ConflictError, NotFoundError
from models import Category, CategoryType, User
from schemas import CategoryIn, CategoryUpdate, TransactionIn
from seed_data import DEFAULT_EXPENSE_CATEGORIES, DEFAULT_INCOME_CATEGORIES
from services import CategoryService, IncomeService


def make_session():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return SessionLocal()


def make_service(session, email: str = "an@example.com") -> CategoryService:
    user = User(email=email, password="not-a-hash", name="An")
    session.add(user)
    session.commit()
    return CategoryService(session, user.id)


def test_create_root_and_child() -> None:
    session = make_session()
    service = make_service(session)

    home = service.create(CategoryIn(name="Home"))
    rent = service.create(CategoryIn(name=" Rent ", parentId=home.id))

    assert home.type == CategoryType.expense
    assert rent.name == "Rent"
    assert rent.parent.id == home.id
    assert [c.name for c in service.get(home.id).children] == ["Rent"]


def test_categories_are_two_levels_deep() -> None:
    session = make_session()
    service = make_service(session)
    home = service.create(CategoryIn(name="Home"))
    rent = service.create(CategoryIn(name="Rent", parent_id=home.id))

    with pytest.raises(ConflictError):
        service.create(CategoryIn(name="Deposit", parent_id=rent.id))


def test_child_type_must_match_parent() -> None:
    session = make_session()
    service = make_service(session)
    home = service.create(CategoryIn(name="Home"))

    with pytest.raises(BadRequestError):
        service.create(
            CategoryIn(name="Refund", type=CategoryType.income, parent_id=home.id)
        )


def test_names_are_unique_per_parent() -> None:
    session = make_session()
    service = make_service(session)
    home = service.create(CategoryIn(name="Home"))
    travel = service.create(CategoryIn(name="Travel"))
    service.create(CategoryIn(name="Misc", parent_id=home.id))

    with pytest.raises(ConflictError):
        service.create(CategoryIn(name="Home"))
    with pytest.raises(ConflictError):
        service.create(CategoryIn(name="Misc", parent_id=home.id))

    assert service.create(CategoryIn(name="Misc", parent_id=travel.id)).name == "Misc"


def test_missing_parent_is_not_found() -> None:
    session = make_session()
    service = make_service(session)

    with pytest.raises(NotFoundError, match="Parent category not found"):
        service.create(CategoryIn(name="Orphan", parent_id="missing"))


def test_update_rejects_invalid_parents() -> None:
    session = make_session()
    service = make_service(session)
    home = service.create(CategoryIn(name="Home"))
    rent = service.create(CategoryIn(name="Rent", parent_id=home.id))
    travel = service.create(CategoryIn(name="Travel"))

    with pytest.raises(ConflictError):
        service.update(travel.id, CategoryUpdate(parent_id=travel.id))
    with pytest.raises(ConflictError):
        service.update(travel.id, CategoryUpdate(parent_id=rent.id))
    with pytest.raises(ConflictError):
        service.update(home.id, CategoryUpdate(parent_id=travel.id))


def test_update_moves_and_renames() -> None:
    session = make_session()
    service = make_service(session)
    home = service.create(CategoryIn(name="Home"))
    travel = service.create(CategoryIn(name="Travel"))
    rent = service.create(CategoryIn(name="Rent", parent_id=home.id))

    moved = service.update(rent.id, CategoryUpdate(name="Hotels", parent_id=travel.id))
    assert moved.name == "Hotels"
    assert moved.parent_id == travel.id

    root = service.update(rent.id, CategoryUpdate(parent_id=None))
    assert root.parent_id is None
    assert service.get(travel.id).children == []


def test_delete_refuses_categories_in_use_or_with_children() -> None:
    session = make_session()
    service = make_service(session)
    salary = service.create(CategoryIn(name="Salary", type=CategoryType.income))
    home = service.create(CategoryIn(name="Home"))
    service.create(CategoryIn(name="Rent", parent_id=home.id))
    IncomeService(session, service.user_id).create(
        TransactionIn(amount=Decimal("10"), category_id=salary.id, date=date(2026, 1, 1))
    )

    with pytest.raises(ConflictError, match="in use"):
        service.delete(salary.id)
    with pytest.raises(ConflictError, match="subcategories"):
        service.delete(home.id)

    unused = service.create(CategoryIn(name="Unused"))
    service.delete(unused.id)
    with pytest.raises(NotFoundError):
        service.get(unused.id)


def test_list_filters_by_type_and_puts_roots_first() -> None:
    session = make_session()
    service = make_service(session)
    home = service.create(CategoryIn(name="Home"))
    service.create(CategoryIn(name="Appliances", parent_id=home.id))
    service.create(CategoryIn(name="Salary", type=CategoryType.income))

    expenses = service.list_all(CategoryType.expense)
    assert [c.name for c in expenses] == ["Home", "Appliances"]
    assert [c.name for c in service.list_all(CategoryType.income)] == ["Salary"]
    assert len(service.list_all()) == 3


def test_categories_of_another_user_are_hidden() -> None:
    session = make_session()
    mine = make_service(session)
    theirs = make_service(session, "binh@example.com")
    home = theirs.create(CategoryIn(name="Home"))

    with pytest.raises(NotFoundError):
        mine.get(home.id)
    with pytest.raises(NotFoundError):
        mine.delete(home.id)
    assert mine.list_all() == []


def test_import_defaults_seeds_bilingual_tree() -> None:
    session = make_session()
    service = make_service(session)

    count = service.import_defaults("en")

    assert count == len(DEFAULT_EXPENSE_CATEGORIES) + len(DEFAULT_INCOME_CATEGORIES)
    names = {c.name for c in service.list_all(CategoryType.income)}
    assert {"💰 Salary", "Base salary", "🛒 Sales"} <= names
    salary = next(c for c in service.list_all() if c.name == "💰 Salary")
    assert {c.name for c in salary.children} == {"Base salary", "Freelance", "Overtime"}

    with pytest.raises(ConflictError):
        service.import_defaults("en")


def test_import_defaults_in_vietnamese() -> None:
    session = make_session()
    service = make_service(session)

    service.import_defaults("vi")

    roots = session.scalar(
        select(func.count(Category.id)).where(
            Category.user_id == service.user_id, Category.parent_id.is_(None)
        )
    )
    assert roots == 19
    assert "🍜 Ăn uống" in {c.name for c in service.list_all(CategoryType.expense)}


def test_blank_category_names_are_rejected() -> None:
    with pytest.raises(ValidationError):
        CategoryIn(name="   ")
    with pytest.raises(ValidationError):
        CategoryUpdate(name="  ")

    session = make_session()
    service = make_service(session)
    home = service.create(CategoryIn(name=" Home "))
    assert service.update(home.id, CategoryUpdate(name=" House ")).name == "House"

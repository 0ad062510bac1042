import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models import CategoryType
from periods import parse_day


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


def _calendar_day(value):
    if isinstance(value, str):
        return parse_day(value)
    if isinstance(value, datetime):
        return value.date()
    return value


CalendarDay = Annotated[dt.date, BeforeValidator(_calendar_day)]


def _strip(value):
    return value.strip() if isinstance(value, str) else value


# surrounding whitespace is dropped before the length checks run
Name = Annotated[str, BeforeValidator(_strip)]


class MessageOut(ApiModel):
    message: str


# auth


class RegisterIn(ApiModel):
    email: str = Field(
        ..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
    )
    password: str = Field(..., min_length=6, max_length=50)
    name: Name = Field(..., min_length=2, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginIn(ApiModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class RefreshTokenIn(ApiModel):
    refresh_token: str = Field(..., min_length=1)


class ForgotPasswordIn(ApiModel):
    email: str = Field(..., min_length=1, max_length=255)


class UserOut(ApiModel):
    id: str
    email: str
    name: str
    created_at: datetime


class TokensOut(ApiModel):
    access_token: str
    refresh_token: str


class AuthOut(TokensOut):
    user: UserOut


# wallets


class WalletIn(ApiModel):
    name: Name = Field(..., min_length=1, max_length=100)
    included_in_total: Optional[bool] = None
    icon: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, max_length=9)
    order: Optional[int] = Field(default=None, ge=0)


class WalletUpdate(ApiModel):
    name: Optional[Name] = Field(default=None, min_length=1, max_length=100)
    included_in_total: Optional[bool] = None
    icon: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, max_length=9)
    order: Optional[int] = Field(default=None, ge=0)


class WalletOut(ApiModel):
    id: str
    name: str
    balance: Decimal
    included_in_total: bool
    icon: str
    color: str
    order: int
    created_at: datetime
    updated_at: datetime


class WalletSummary(ApiModel):
    id: str
    name: str


class TransferIn(ApiModel):
    from_wallet_id: str = Field(..., min_length=1)
    to_wallet_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=200)


class WalletOrderIn(ApiModel):
    id: str = Field(..., min_length=1)
    order: int = Field(..., ge=0)


class ReorderWalletsIn(ApiModel):
    wallets: list[WalletOrderIn]


class TotalBalanceOut(ApiModel):
    total_balance: Decimal


# categories


class CategoryIn(ApiModel):
    name: Name = Field(..., min_length=1, max_length=100)
    type: CategoryType = CategoryType.expense
    parent_id: Optional[str] = None


class CategoryUpdate(ApiModel):
    name: Optional[Name] = Field(default=None, min_length=1, max_length=100)
    parent_id: Optional[str] = None


class CategorySummary(ApiModel):
    id: str
    name: str


class CategoryNode(ApiModel):
    id: str
    name: str
    type: CategoryType
    parent_id: Optional[str] = None


class CategoryOut(CategoryNode):
    parent: Optional[CategoryNode] = None
    children: list[CategoryNode] = Field(default_factory=list)


class CategoryImportOut(MessageOut):
    count: int


# incomes / expenses


class TransactionIn(ApiModel):
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    category_id: str = Field(..., min_length=1)
    description: Optional[str] = Field(default=None, max_length=500)
    date: CalendarDay
    wallet_id: Optional[str] = None


class TransactionUpdate(ApiModel):
    amount: Optional[Decimal] = Field(
        default=None, gt=0, max_digits=14, decimal_places=2
    )
    category_id: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, max_length=500)
    date: Optional[CalendarDay] = None
    wallet_id: Optional[str] = None

    def wallet_in_patch(self) -> bool:
        return "wallet_id" in self.model_fields_set


class TransactionOut(ApiModel):
    id: str
    amount: Decimal
    category_id: str
    wallet_id: Optional[str] = None
    description: Optional[str] = None
    date: dt.date
    category: CategorySummary
    wallet: Optional[WalletSummary] = None
    created_at: datetime
    updated_at: datetime


class CategoryBreakdownOut(ApiModel):
    category_id: str
    category_name: str
    total_amount: Decimal
    count: int


class WalletBreakdownOut(ApiModel):
    wallet_id: Optional[str] = None
    wallet_name: str
    total_amount: Decimal
    count: int


class DailyStatOut(ApiModel):
    date: dt.date
    total: Decimal


class AnalyticsOut(ApiModel):
    total: Decimal
    count: int
    category_breakdown: list[CategoryBreakdownOut]
    wallet_breakdown: list[WalletBreakdownOut]
    daily_stats: list[DailyStatOut]


class DailyTotalOut(ApiModel):
    date: dt.date
    total: Decimal


class WeeklyTotalOut(ApiModel):
    start_date: dt.date
    end_date: dt.date
    total: Decimal


class MonthlyTotalOut(ApiModel):
    year: int
    month: int
    total: Decimal

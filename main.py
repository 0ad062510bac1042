import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings
from database import session_scope
from errors import status_code_for
from models import CategoryType
from periods import parse_day
from schemas import (
    AnalyticsOut,
    AuthOut,
    CategoryImportOut,
    CategoryIn,
    CategoryOut,
    CategoryUpdate,
    DailyTotalOut,
    ForgotPasswordIn,
    LoginIn,
    MessageOut,
    MonthlyTotalOut,
    RefreshTokenIn,
    RegisterIn,
    ReorderWalletsIn,
    TokensOut,
    TotalBalanceOut,
    TransactionIn,
    TransactionOut,
    TransactionUpdate,
    TransferIn,
    UserOut,
    WalletIn,
    WalletOut,
    WalletUpdate,
    WeeklyTotalOut,
)
from services import (
    AuthService,
    CategoryService,
    ExpenseService,
    IncomeService,
    TransactionFilters,
    WalletService,
)


settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Wallet Tracker")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

bearer_scheme = HTTPBearer(auto_error=False)


def get_db():
    with session_scope() as db:
        yield db


def http_error(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status_code_for(exc), detail=str(exc))


def current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> str:
    if not credentials or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing access token")
    try:
        return AuthService(db).authenticate(credentials.credentials)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail), "statusCode": exc.status_code},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"message": message, "statusCode": 400})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logging.exception("Database error while handling %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500, content={"message": "Internal server error", "statusCode": 500}
    )


def filters_from_request(request: Request) -> TransactionFilters:
    params = request.query_params
    try:
        start = parse_day(params["startDate"]) if params.get("startDate") else None
        end = parse_day(params["endDate"]) if params.get("endDate") else None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TransactionFilters(
        start_date=start,
        end_date=end,
        category_id=params.get("categoryId") or None,
        wallet_id=params.get("walletId") or None,
    )


# auth


@app.post("/auth/register", response_model=AuthOut, status_code=201)
def register(data: RegisterIn, db: Session = Depends(get_db)):
    try:
        user, tokens = AuthService(db).register(data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return AuthOut(user=UserOut.model_validate(user), **tokens)


@app.post("/auth/login", response_model=AuthOut)
def login(data: LoginIn, db: Session = Depends(get_db)):
    try:
        user, tokens = AuthService(db).login(data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return AuthOut(user=UserOut.model_validate(user), **tokens)


@app.post("/auth/refresh", response_model=TokensOut)
def refresh_tokens(data: RefreshTokenIn, db: Session = Depends(get_db)):
    try:
        tokens = AuthService(db).refresh(data.refresh_token)
    except ValueError as exc:
        raise http_error(exc) from exc
    return TokensOut(**tokens)


@app.post("/auth/forgot-password", response_model=MessageOut)
def forgot_password(data: ForgotPasswordIn, db: Session = Depends(get_db)):
    return MessageOut(message=AuthService(db).forgot_password(data.email))


@app.get("/users/me", response_model=UserOut)
def profile(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    try:
        return AuthService(db).profile(user_id)
    except ValueError as exc:
        raise http_error(exc) from exc


# wallets


@app.post("/wallets", response_model=WalletOut, status_code=201)
def create_wallet(
    data: WalletIn,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return WalletService(db, user_id).create(data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/wallets", response_model=list[WalletOut])
def list_wallets(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    return WalletService(db, user_id).list_all()


@app.get("/wallets/total-balance", response_model=TotalBalanceOut)
def total_balance(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    return TotalBalanceOut(total_balance=WalletService(db, user_id).total_balance())


@app.post("/wallets/transfer", response_model=MessageOut)
def transfer_money(
    data: TransferIn,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        WalletService(db, user_id).transfer(data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return MessageOut(message="Transfer completed")


@app.post("/wallets/reorder", response_model=MessageOut)
def reorder_wallets(
    data: ReorderWalletsIn,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        WalletService(db, user_id).reorder(data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return MessageOut(message="Wallets reordered")


@app.get("/wallets/{wallet_id}", response_model=WalletOut)
def get_wallet(
    wallet_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return WalletService(db, user_id).get(wallet_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.patch("/wallets/{wallet_id}", response_model=WalletOut)
def update_wallet(
    wallet_id: str,
    data: WalletUpdate,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return WalletService(db, user_id).update(wallet_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/wallets/{wallet_id}", response_model=MessageOut)
def delete_wallet(
    wallet_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        WalletService(db, user_id).delete(wallet_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return MessageOut(message="Wallet deleted")


# categories


@app.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(
    data: CategoryIn,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return CategoryService(db, user_id).create(data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.get("/categories", response_model=list[CategoryOut])
def list_categories(
    type: Optional[CategoryType] = None,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return CategoryService(db, user_id).list_all(type)


@app.post("/categories/import-default", response_model=CategoryImportOut)
def import_default_categories(
    user_id: str = Depends(current_user_id), db: Session = Depends(get_db)
):
    try:
        count = CategoryService(db, user_id).import_defaults()
    except ValueError as exc:
        raise http_error(exc) from exc
    return CategoryImportOut(message="Default categories imported", count=count)


@app.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return CategoryService(db, user_id).get(category_id)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: str,
    data: CategoryUpdate,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return CategoryService(db, user_id).update(category_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc


@app.delete("/categories/{category_id}", response_model=MessageOut)
def delete_category(
    category_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    try:
        CategoryService(db, user_id).delete(category_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return MessageOut(message="Category deleted")


# incomes / expenses


def ledger_router(service_cls, noun: str) -> APIRouter:
    router = APIRouter()

    @router.post("", response_model=TransactionOut, status_code=201)
    def create(
        data: TransactionIn,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        try:
            return service_cls(db, user_id).create(data)
        except ValueError as exc:
            raise http_error(exc) from exc

    @router.get("", response_model=list[TransactionOut])
    def list_all(
        request: Request,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        filters = filters_from_request(request)
        try:
            return service_cls(db, user_id).list(filters)
        except ValueError as exc:
            raise http_error(exc) from exc

    @router.get("/analytics", response_model=AnalyticsOut)
    def analytics(
        request: Request,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        filters = filters_from_request(request)
        try:
            return service_cls(db, user_id).analytics(filters)
        except ValueError as exc:
            raise http_error(exc) from exc

    @router.get("/daily/{day}", response_model=DailyTotalOut)
    def daily_total(
        day: str,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        try:
            return service_cls(db, user_id).daily_total(parse_day(day))
        except ValueError as exc:
            raise http_error(exc) from exc

    @router.get("/weekly/{start_date}", response_model=WeeklyTotalOut)
    def weekly_total(
        start_date: str,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        try:
            return service_cls(db, user_id).weekly_total(parse_day(start_date))
        except ValueError as exc:
            raise http_error(exc) from exc

    @router.get("/monthly/{year}/{month}", response_model=MonthlyTotalOut)
    def monthly_total(
        year: int,
        month: int,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        try:
            return service_cls(db, user_id).monthly_total(year, month)
        except ValueError as exc:
            raise http_error(exc) from exc

    @router.get("/{transaction_id}", response_model=TransactionOut)
    def get_one(
        transaction_id: str,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        try:
            return service_cls(db, user_id).get(transaction_id)
        except ValueError as exc:
            raise http_error(exc) from exc

    @router.patch("/{transaction_id}", response_model=TransactionOut)
    def update_one(
        transaction_id: str,
        data: TransactionUpdate,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        try:
            return service_cls(db, user_id).update(transaction_id, data)
        except ValueError as exc:
            raise http_error(exc) from exc

    @router.delete("/{transaction_id}", response_model=MessageOut)
    def delete_one(
        transaction_id: str,
        user_id: str = Depends(current_user_id),
        db: Session = Depends(get_db),
    ):
        try:
            service_cls(db, user_id).remove(transaction_id)
        except ValueError as exc:
            raise http_error(exc) from exc
        return MessageOut(message=f"{noun} deleted")

    return router


app.include_router(ledger_router(IncomeService, "Income"), prefix="/incomes", tags=["incomes"])
app.include_router(ledger_router(ExpenseService, "Expense"), prefix="/expenses", tags=["expenses"])


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()

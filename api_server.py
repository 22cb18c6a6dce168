"""REST backend for the family expense chat, served with FastAPI."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

import analytics
from config import configure_logging
from database import User, get_db, init_db
from errors import ExtractionError
from expense_store import MAX_AMOUNT_MINOR, SqlExpenseStore
from extractors import classify_category, clean_description, detect_language, normalize_category
from formatting import from_minor, to_minor
from models import ExpenseDraft, ExpenseRecord
from recorder import ExpenseRecorder

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Family Expense Chat API", version="1.0.0", lifespan=lifespan)
api = APIRouter(prefix="/api")


def get_current_user(authorization: Optional[str] = Header(None), db: Session = Depends(get_db)) -> User:
    # Tokens are issued by the auth service; this side only resolves them.
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = db.query(User).filter(User.api_token == token.strip()).first()
    if user is None:
        raise HTTPException(status_code=401, detail="Session expired. Please log in again.")
    return user


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ExpenseIn(BaseModel):
    description: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0, lt=MAX_AMOUNT_MINOR / 100)
    category: Optional[str] = None
    date: Optional[datetime] = None


class ExpenseOut(CamelModel):
    id: int
    description: str
    amount: float
    category: str
    date: datetime
    created_at: datetime = Field(alias="createdAt")
    user_id: int = Field(alias="userId")
    family_id: Optional[int] = Field(None, alias="familyId")

    @classmethod
    def from_record(cls, record: ExpenseRecord) -> "ExpenseOut":
        return cls(
            id=record.id,
            description=record.description,
            amount=float(record.amount),
            category=record.category,
            date=record.occurred_at,
            created_at=record.created_at,
            user_id=record.owner_user_id,
            family_id=record.family_id,
        )


class Language(BaseModel):
    name: str
    code: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)


class ChatExpenseResponse(CamelModel):
    success: bool
    expense: ExpenseOut
    message: str
    parsed_data: dict = Field(alias="parsedData")
    family_total: float = Field(alias="familyTotal")
    language: Language


class ChatQueryResponse(BaseModel):
    success: bool
    message: str
    context: dict
    language: Language


class StatsResponse(CamelModel):
    total: float
    month_total: float = Field(alias="monthTotal")
    week_total: float = Field(alias="weekTotal")
    count: int
    category_breakdown: Dict[str, float] = Field(alias="categoryBreakdown")


def _local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _family_expenses(store: SqlExpenseStore, user: User) -> List[ExpenseRecord]:
    return store.list_family_expenses(user.id, user.family_id)


@api.post("/expenses", response_model=ExpenseOut, status_code=201)
async def add_expense(req: ExpenseIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if req.category:
        category = normalize_category(req.category)
        if category is None:
            raise HTTPException(status_code=422, detail=f"Unknown category '{req.category}'")
    else:
        category = classify_category(req.description)

    try:
        record = SqlExpenseStore(db).add_expense(
            ExpenseDraft(
                owner_user_id=user.id,
                family_id=user.family_id,
                amount_minor=to_minor(req.amount),
                category=category,
                description=clean_description(req.description),
                occurred_at=_local_naive(req.date) if req.date else datetime.now(),
            )
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ExpenseOut.from_record(record)


@api.get("/expenses", response_model=List[ExpenseOut])
async def list_expenses(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [ExpenseOut.from_record(r) for r in SqlExpenseStore(db).list_expenses(user.id)]


@api.get("/expenses/family", response_model=List[ExpenseOut])
async def list_family_expenses(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [ExpenseOut.from_record(r) for r in _family_expenses(SqlExpenseStore(db), user)]


@api.get("/expenses/stats", response_model=StatsResponse)
async def expense_stats(
    scope: str = Query("personal", pattern="^(personal|family)$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = SqlExpenseStore(db)
    expenses = _family_expenses(store, user) if scope == "family" else store.list_expenses(user.id)
    stats = analytics.expense_stats(expenses)
    return StatsResponse(
        total=float(from_minor(stats["total"])),
        month_total=float(from_minor(stats["month_total"])),
        week_total=float(from_minor(stats["week_total"])),
        count=stats["count"],
        category_breakdown={cat: float(from_minor(amt)) for cat, amt in stats["category_breakdown"].items()},
    )


@api.post("/chat/expense", response_model=ChatExpenseResponse)
async def chat_expense(req: ChatRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    store = SqlExpenseStore(db)
    try:
        result = ExpenseRecorder(store).record(req.message, user.id, user.family_id)
    except ExtractionError as exc:
        logger.info("No amount in chat message from user %s: %r", user.id, req.message)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    family_total = sum(e.amount_minor for e in _family_expenses(store, user))
    return ChatExpenseResponse(
        success=True,
        expense=ExpenseOut.from_record(result.expense),
        message=result.message,
        parsed_data=result.parsed.to_payload(),
        family_total=float(from_minor(family_total)),
        language=result.parsed.language.to_payload(),
    )


@api.post("/chat/query", response_model=ChatQueryResponse)
async def chat_query(req: ChatRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    context = analytics.answer(req.message, _family_expenses(SqlExpenseStore(db), user))
    return ChatQueryResponse(
        success=True,
        message=context.summary_text,
        context=context.to_payload(),
        language=detect_language(req.message).to_payload(),
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


app.include_router(api)


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    uvicorn.run("api_server:app", host="0.0.0.0", port=8000, reload=True)

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from formatting import from_minor, to_minor


class Intent(str, Enum):
    LOG_EXPENSE = "log_expense"
    QUERY = "query"


class Role(str, Enum):
    USER = "user"
    BOT = "bot"
    ERROR = "error"


class QueryKind(str, Enum):
    TODAY = "today"
    RECENT = "recent"
    CATEGORY_BREAKDOWN = "categoryBreakdown"
    TOTAL = "total"
    THIS_MONTH = "thisMonth"
    HELP = "help"


@dataclass(frozen=True)
class LanguageHint:
    name: str = "English"
    code: str = "en"

    def to_payload(self) -> Dict[str, str]:
        return {"name": self.name, "code": self.code}

    @classmethod
    def from_payload(cls, data: Optional[dict]) -> "LanguageHint":
        if not data:
            return cls()
        return cls(name=data.get("name") or "English", code=data.get("code") or "en")


ENGLISH = LanguageHint()


def _parse_ts(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    # fromisoformat on 3.10 does not accept a trailing 'Z'
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        # all date arithmetic is done in naive local time
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    owner_user_id: int
    amount_minor: int  # paise, always >= 0
    category: str
    description: str
    occurred_at: datetime
    created_at: datetime
    family_id: Optional[int] = None

    @property
    def amount(self) -> Decimal:
        return from_minor(self.amount_minor)

    def to_payload(self) -> Dict[str, Any]:
        """Wire shape used by the REST backend."""
        return {
            "id": self.id,
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category,
            "date": self.occurred_at.isoformat(),
            "createdAt": self.created_at.isoformat(),
            "userId": self.owner_user_id,
            "familyId": self.family_id,
        }

    @classmethod
    def from_payload(cls, data: dict) -> "ExpenseRecord":
        occurred_at = _parse_ts(data.get("date"))
        return cls(
            id=data["id"],
            owner_user_id=data.get("userId"),
            family_id=data.get("familyId"),
            amount_minor=to_minor(data.get("amount", 0)),
            category=data.get("category") or "Other",
            description=data.get("description") or "",
            occurred_at=occurred_at,
            created_at=_parse_ts(data.get("createdAt")) or occurred_at,
        )


@dataclass(frozen=True)
class ExpenseDraft:
    """A persist request handed to the expense store."""
    owner_user_id: int
    amount_minor: int
    category: str
    description: str
    occurred_at: datetime
    family_id: Optional[int] = None


@dataclass(frozen=True)
class ParsedUtterance:
    raw_text: str
    intent: Intent
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    occurred_at: Optional[datetime] = None
    confidence: float = 0.0
    language: LanguageHint = ENGLISH
    parser: str = "rules"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.value,
            "amount": float(self.amount) if self.amount is not None else None,
            "category": self.category,
            "date": self.occurred_at.isoformat() if self.occurred_at else None,
            "confidence": self.confidence,
            "parser": self.parser,
        }


@dataclass(frozen=True)
class AnalyticsContext:
    kind: QueryKind
    summary_text: str
    supporting_expenses: Tuple[ExpenseRecord, ...] = ()
    totals: Dict[str, int] = field(default_factory=dict)  # category -> minor units
    total_minor: int = 0
    count: int = 0

    def to_payload(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "recentExpenses": [e.to_payload() for e in self.supporting_expenses],
            "totals": {cat: float(from_minor(amt)) for cat, amt in self.totals.items()},
            "total": float(from_minor(self.total_minor)),
            "count": self.count,
        }

    @classmethod
    def from_payload(cls, message: str, data: Optional[dict]) -> "AnalyticsContext":
        data = data or {}
        try:
            kind = QueryKind(data.get("kind", QueryKind.HELP.value))
        except ValueError:
            kind = QueryKind.HELP
        return cls(
            kind=kind,
            summary_text=message,
            supporting_expenses=tuple(ExpenseRecord.from_payload(e) for e in data.get("recentExpenses") or []),
            totals={cat: to_minor(amt) for cat, amt in (data.get("totals") or {}).items()},
            total_minor=to_minor(data.get("total", 0)),
            count=int(data.get("count", 0)),
        )


@dataclass(frozen=True)
class ChatMessage:
    id: int
    role: Role
    text: str
    timestamp: datetime
    expense: Optional[ExpenseRecord] = None
    context: Optional[AnalyticsContext] = None
    parsed: Optional[dict] = None
    language: Optional[LanguageHint] = None


@dataclass
class SessionStats:
    running_total_minor: int = 0
    today_total_minor: int = 0
    entry_count: int = 0

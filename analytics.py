"""
Answers chat questions about the expense history.

The query is matched against an ordered keyword table, first match wins,
so "today's total" is a today question and not a grand-total one. Every
answer is a pure read over the collection it is given; the collection is
expected newest first, as the expense store returns it.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple

import pandas as pd

from errors import UnrecognizedQuery
from formatting import format_currency
from models import AnalyticsContext, ExpenseRecord, QueryKind, SessionStats

TODAY_SUPPORT_LIMIT = 5
RECENT_LIMIT = 10
TOP_CATEGORIES = 5

HELP_TEXT = (
    "I can help you with:\n"
    "• Today's expenses\n"
    "• Recent expenses\n"
    "• Category breakdown\n"
    "• Total spending\n"
    "• This month's expenses"
)

Handler = Callable[[pd.DataFrame, Sequence[ExpenseRecord], datetime], AnalyticsContext]


def expenses_to_df(expenses: Sequence[ExpenseRecord]) -> pd.DataFrame:
    """One row per expense, row label = position in ``expenses``."""
    if not expenses:
        return pd.DataFrame({
            "Date": pd.Series(dtype="datetime64[ns]"),
            "Amount": pd.Series(dtype="int64"),
            "Category": pd.Series(dtype="object"),
            "Description": pd.Series(dtype="object"),
        })

    df = pd.DataFrame(
        [
            {
                "Date": e.occurred_at,
                "Amount": e.amount_minor,
                "Category": e.category or "Other",
                "Description": e.description,
            }
            for e in expenses
        ]
    )
    df["Date"] = pd.to_datetime(df["Date"])
    df["Amount"] = df["Amount"].astype("int64")
    return df


def _month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _today_mask(df: pd.DataFrame, now: datetime) -> pd.Series:
    return df["Date"].dt.date == now.date()


def _pick(expenses: Sequence[ExpenseRecord], df: pd.DataFrame, limit: int) -> Tuple[ExpenseRecord, ...]:
    return tuple(expenses[i] for i in df.index[:limit])


def _today(df, expenses, now) -> AnalyticsContext:
    today = df[_today_mask(df, now)]
    total = int(today["Amount"].sum())
    return AnalyticsContext(
        kind=QueryKind.TODAY,
        summary_text=f"Today you've spent {format_currency(total)} across {len(today)} expenses.",
        supporting_expenses=_pick(expenses, today, TODAY_SUPPORT_LIMIT),
        total_minor=total,
        count=len(today),
    )


def _recent(df, expenses, now) -> AnalyticsContext:
    # no re-sort: the collection already comes newest first
    recent = df.head(RECENT_LIMIT)
    total = int(recent["Amount"].sum())
    return AnalyticsContext(
        kind=QueryKind.RECENT,
        summary_text=f"Your recent {RECENT_LIMIT} expenses total {format_currency(total)}.",
        supporting_expenses=_pick(expenses, recent, RECENT_LIMIT),
        total_minor=total,
        count=len(recent),
    )


def category_totals(df: pd.DataFrame) -> pd.Series:
    """Summed amount per category, largest first; ties keep first-seen order."""
    return (
        df.groupby("Category", sort=False)["Amount"]
        .sum()
        .sort_values(ascending=False, kind="stable")
    )


def _category_breakdown(df, expenses, now) -> AnalyticsContext:
    top = category_totals(df).head(TOP_CATEGORIES)
    totals = {str(cat): int(amt) for cat, amt in top.items()}

    if totals:
        lines = [f"• {cat}: {format_currency(amt)}" for cat, amt in totals.items()]
    else:
        lines = ["No expenses recorded yet."]

    return AnalyticsContext(
        kind=QueryKind.CATEGORY_BREAKDOWN,
        summary_text="Your top spending categories:\n" + "\n".join(lines),
        totals=totals,
        total_minor=int(df["Amount"].sum()),
        count=len(df),
    )


def _total(df, expenses, now) -> AnalyticsContext:
    total = int(df["Amount"].sum())
    return AnalyticsContext(
        kind=QueryKind.TOTAL,
        summary_text=f"Your total spending is {format_currency(total)} across {len(df)} expenses.",
        total_minor=total,
        count=len(df),
    )


def _this_month(df, expenses, now) -> AnalyticsContext:
    month = df[df["Date"] >= _month_start(now)]
    total = int(month["Amount"].sum())
    return AnalyticsContext(
        kind=QueryKind.THIS_MONTH,
        summary_text=f"This month you've spent {format_currency(total)} across {len(month)} expenses.",
        total_minor=total,
        count=len(month),
    )


QUERY_RULES: List[Tuple[Tuple[str, ...], QueryKind, Handler]] = [
    (("today",), QueryKind.TODAY, _today),
    (("recent",), QueryKind.RECENT, _recent),
    (("category", "breakdown"), QueryKind.CATEGORY_BREAKDOWN, _category_breakdown),
    (("total", "spent"), QueryKind.TOTAL, _total),
    (("month",), QueryKind.THIS_MONTH, _this_month),
]


def match_query(text: str) -> Tuple[QueryKind, Handler]:
    lowered = (text or "").lower()
    for keywords, kind, handler in QUERY_RULES:
        if any(k in lowered for k in keywords):
            return kind, handler
    raise UnrecognizedQuery(text)


def help_context() -> AnalyticsContext:
    return AnalyticsContext(kind=QueryKind.HELP, summary_text=HELP_TEXT)


def answer(text: str, expenses: Sequence[ExpenseRecord], now: Optional[datetime] = None) -> AnalyticsContext:
    """Compute the aggregate the query asks for, or the help text."""
    try:
        _, handler = match_query(text)
    except UnrecognizedQuery:
        return help_context()

    now = now or datetime.now()
    return handler(expenses_to_df(expenses), expenses, now)


def session_stats(expenses: Sequence[ExpenseRecord], now: Optional[datetime] = None) -> SessionStats:
    now = now or datetime.now()
    df = expenses_to_df(expenses)
    return SessionStats(
        running_total_minor=int(df["Amount"].sum()),
        today_total_minor=int(df[_today_mask(df, now)]["Amount"].sum()),
        entry_count=len(df),
    )


def expense_stats(expenses: Sequence[ExpenseRecord], now: Optional[datetime] = None) -> dict:
    """Headline numbers for an expense list: total, this month, last 7 days, per category."""
    now = now or datetime.now()
    df = expenses_to_df(expenses)

    return {
        "total": int(df["Amount"].sum()),
        "month_total": int(df[df["Date"] >= _month_start(now)]["Amount"].sum()),
        "week_total": int(df[df["Date"] >= now - timedelta(days=7)]["Amount"].sum()),
        "count": len(df),
        "category_breakdown": {str(cat): int(amt) for cat, amt in category_totals(df).items()},
    }

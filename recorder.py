import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from errors import ExtractionError
from expense_store import MAX_AMOUNT_MINOR, ExpenseStore
from formatting import format_currency, to_minor
from intent import parse_utterance
from extractors import clean_description
from models import ExpenseDraft, ExpenseRecord, ParsedUtterance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordResult:
    expense: ExpenseRecord
    parsed: ParsedUtterance
    message: str


def confirmation_message(expense: ExpenseRecord) -> str:
    return f"Logged {format_currency(expense.amount_minor)} under {expense.category}"


class ExpenseRecorder:
    """
    Turns an expense-logging utterance into a stored expense.

    Amount extraction runs first and fails fast: an utterance without an
    amount raises ExtractionError and nothing is written.
    """

    def __init__(self, store: ExpenseStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    def record(self, text: str, owner_user_id: int, family_id: Optional[int] = None) -> RecordResult:
        parsed = parse_utterance(text, now=self.clock())
        if parsed.amount is None:
            raise ExtractionError(
                "I couldn't find an amount in that message. Try something like \"500 for food\"."
            )

        amount_minor = to_minor(parsed.amount)
        if amount_minor > MAX_AMOUNT_MINOR:
            raise ExtractionError("That amount is too large to record.")

        draft = ExpenseDraft(
            owner_user_id=owner_user_id,
            family_id=family_id,
            amount_minor=amount_minor,
            category=parsed.category,
            description=clean_description(text),
            occurred_at=parsed.occurred_at,
        )
        expense = self.store.add_expense(draft)
        logger.debug("Recorded %r as expense %s", text, expense.id)
        return RecordResult(expense=expense, parsed=parsed, message=confirmation_message(expense))

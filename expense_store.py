"""Expense store: the only place that reads or writes expense rows."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import Expense, User
from models import ExpenseDraft, ExpenseRecord

logger = logging.getLogger(__name__)

# largest value a 64-bit INTEGER column holds
MAX_AMOUNT_MINOR = 2**63 - 1


class ExpenseStore(ABC):

    @abstractmethod
    def add_expense(self, draft: ExpenseDraft) -> ExpenseRecord:
        pass

    @abstractmethod
    def list_expenses(self, owner_user_id: int) -> List[ExpenseRecord]:
        """The owner's expenses, newest first."""

    @abstractmethod
    def list_family_expenses(self, owner_user_id: int, family_id: Optional[int] = None) -> List[ExpenseRecord]:
        """The family's expenses (the owner's own without a family), newest first."""


def to_record(row: Expense) -> ExpenseRecord:
    return ExpenseRecord(
        id=row.id,
        owner_user_id=row.user_id,
        family_id=row.family_id,
        amount_minor=row.amount_minor,
        category=row.category,
        description=row.description or "",
        occurred_at=row.occurred_at,
        created_at=row.created_at,
    )


class SqlExpenseStore(ExpenseStore):
    """SQLAlchemy backed store working inside the caller's session."""

    def __init__(self, db: Session):
        self.db = db

    def add_expense(self, draft: ExpenseDraft) -> ExpenseRecord:
        if not 0 <= draft.amount_minor <= MAX_AMOUNT_MINOR:
            raise ValueError(f"amount_minor must be between 0 and {MAX_AMOUNT_MINOR}")

        row = Expense(
            user_id=draft.owner_user_id,
            family_id=draft.family_id,
            amount_minor=draft.amount_minor,
            category=draft.category,
            description=draft.description,
            occurred_at=draft.occurred_at,
            created_at=datetime.now(),
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError:
            # the session refuses further work until rolled back
            self.db.rollback()
            logger.exception("Failed to store expense for user %s", draft.owner_user_id)
            raise
        logger.info("Stored expense %s for user %s (%s, %s)", row.id, row.user_id, row.amount_minor, row.category)
        return to_record(row)

    def _ordered(self, query) -> List[ExpenseRecord]:
        rows = query.order_by(Expense.occurred_at.desc(), Expense.created_at.desc(), Expense.id.desc()).all()
        return [to_record(r) for r in rows]

    def list_expenses(self, owner_user_id: int) -> List[ExpenseRecord]:
        return self._ordered(self.db.query(Expense).filter(Expense.user_id == owner_user_id))

    def list_family_expenses(self, owner_user_id: int, family_id: Optional[int] = None) -> List[ExpenseRecord]:
        if family_id is None:
            family_id = self.family_of(owner_user_id)
        if family_id is None:
            return self.list_expenses(owner_user_id)
        return self._ordered(self.db.query(Expense).filter(Expense.family_id == family_id))

    def family_of(self, user_id: int) -> Optional[int]:
        user = self.db.get(User, user_id)
        return user.family_id if user else None

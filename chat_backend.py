"""
Where a chat turn gets its work done.

``RemoteChatBackend`` is the default: it hands expense logging and queries to
the REST backend. ``LocalChatBackend`` runs the same recorder and analytics
code in-process against a local store, for offline use and tests. Both share
the parser in ``extractors``/``intent``, so there is one set of rules.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import analytics
from api_client import ExpenseApiClient
from errors import ApiError
from expense_store import ExpenseStore
from extractors import detect_language
from formatting import to_minor
from models import AnalyticsContext, ExpenseRecord, LanguageHint
from recorder import ExpenseRecorder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordOutcome:
    expense: ExpenseRecord
    message: str
    parsed: dict
    language: LanguageHint
    family_total_minor: Optional[int] = None


@dataclass(frozen=True)
class QueryOutcome:
    context: AnalyticsContext
    language: LanguageHint

    @property
    def message(self) -> str:
        return self.context.summary_text


class ChatBackend(ABC):

    @abstractmethod
    async def log_expense(self, text: str) -> RecordOutcome:
        pass

    @abstractmethod
    async def answer_query(self, text: str) -> QueryOutcome:
        pass

    @abstractmethod
    async def fetch_expenses(self) -> List[ExpenseRecord]:
        """The collection session stats and queries are computed over."""


class RemoteChatBackend(ChatBackend):

    def __init__(self, client: ExpenseApiClient, clock: Callable[[], datetime] = datetime.now):
        self.client = client
        self.clock = clock

    async def log_expense(self, text: str) -> RecordOutcome:
        data = await self.client.log_expense_by_chat(text)
        family_total = data.get("familyTotal")
        return RecordOutcome(
            expense=ExpenseRecord.from_payload(data["expense"]),
            message=data.get("message") or "",
            parsed=data.get("parsedData") or {},
            language=LanguageHint.from_payload(data.get("language")),
            family_total_minor=to_minor(family_total) if family_total is not None else None,
        )

    async def answer_query(self, text: str) -> QueryOutcome:
        try:
            data = await self.client.chat_query(text)
        except ApiError as exc:
            if exc.status_code != 404:
                raise
            # Older backends have no query endpoint: answer from the family list.
            logger.info("Query endpoint unavailable, answering client-side")
            context = analytics.answer(text, await self.client.get_family_expenses(), now=self.clock())
            return QueryOutcome(context=context, language=detect_language(text))

        return QueryOutcome(
            context=AnalyticsContext.from_payload(data.get("message") or "", data.get("context")),
            language=LanguageHint.from_payload(data.get("language")),
        )

    async def fetch_expenses(self) -> List[ExpenseRecord]:
        return await self.client.get_family_expenses()


class LocalChatBackend(ChatBackend):

    def __init__(
        self,
        store: ExpenseStore,
        owner_user_id: int,
        family_id: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.owner_user_id = owner_user_id
        self.family_id = family_id
        self.clock = clock
        self.recorder = ExpenseRecorder(store, clock=clock)

    async def log_expense(self, text: str) -> RecordOutcome:
        result = self.recorder.record(text, self.owner_user_id, self.family_id)
        expenses = await self.fetch_expenses()
        return RecordOutcome(
            expense=result.expense,
            message=result.message,
            parsed=result.parsed.to_payload(),
            language=result.parsed.language,
            family_total_minor=sum(e.amount_minor for e in expenses),
        )

    async def answer_query(self, text: str) -> QueryOutcome:
        context = analytics.answer(text, await self.fetch_expenses(), now=self.clock())
        return QueryOutcome(context=context, language=detect_language(text))

    async def fetch_expenses(self) -> List[ExpenseRecord]:
        return self.store.list_family_expenses(self.owner_user_id, self.family_id)

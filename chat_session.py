"""
Chat session controller.

One ``ChatSession`` per open chat view. A turn moves the session from IDLE to
AWAITING_RESPONSE and back; a submission that arrives while a turn is in
flight is rejected rather than interleaved. Every failure inside a turn ends
up as a single error message in the transcript.
"""

import itertools
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

import analytics
from chat_backend import ChatBackend, RecordOutcome
from errors import AuthExpired, ExpenseChatError
from intent import classify
from models import ENGLISH, ChatMessage, Intent, LanguageHint, Role, SessionStats

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    'Hi! I can help you track expenses in any language. '
    'Try: "500 rupees for food" or "आज ₹300 खाने पर खर्च किया"'
)
AUTH_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
GENERIC_ERROR_MESSAGE = "Failed to process message"

# (button label, text submitted)
QUICK_ACTIONS = [
    ("Today's total", "Show me today's expenses"),
    ("Recent expenses", "Show recent expenses"),
    ("Category breakdown", "Show spending by category"),
    ("Add ₹500 food", "₹500 for food"),
    ("Add ₹100 transport", "₹100 for transport"),
    ("Total spending", "What is my total spending?"),
]


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    CLOSED = "closed"


class ChatSession:

    def __init__(
        self,
        backend: ChatBackend,
        clock: Callable[[], datetime] = datetime.now,
        verb_routing: bool = False,
        on_auth_expired: Optional[Callable[[], None]] = None,
        welcome: bool = True,
    ):
        self.backend = backend
        self.clock = clock
        self.verb_routing = verb_routing
        self.on_auth_expired = on_auth_expired

        self.state = SessionState.IDLE
        self.stats = SessionStats()
        self.language: LanguageHint = ENGLISH
        self._transcript: List[ChatMessage] = []
        self._ids = itertools.count(1)
        # bumped on reset/close so a turn started before can tell it is stale
        self._epoch = 0

        if welcome:
            self._append(Role.BOT, WELCOME_MESSAGE)

    @property
    def transcript(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._transcript)

    @property
    def busy(self) -> bool:
        return self.state is SessionState.AWAITING_RESPONSE

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def _append(self, role: Role, text: str, **attachments) -> ChatMessage:
        message = ChatMessage(id=next(self._ids), role=role, text=text, timestamp=self.clock(), **attachments)
        self._transcript.append(message)
        return message

    async def refresh_stats(self) -> SessionStats:
        """Recompute the running figures from the backend's full collection."""
        epoch = self._epoch
        stats = analytics.session_stats(await self.backend.fetch_expenses(), now=self.clock())
        if epoch == self._epoch and not self.closed:
            self.stats = stats
        return stats

    async def submit(self, text: str) -> Optional[ChatMessage]:
        """
        Run one turn and return the bot (or error) message it appended.

        Returns None when nothing was appended: blank input, a turn already
        in flight, a closed session, or a session reset while this turn was
        waiting on the backend.
        """
        if not text or not text.strip():
            return None
        if self.closed:
            logger.debug("Ignoring submission on a closed session")
            return None
        if self.busy:
            logger.info("Rejected submission while a turn is in flight: %r", text)
            return None

        self._append(Role.USER, text)
        self.state = SessionState.AWAITING_RESPONSE
        epoch = self._epoch
        try:
            reply = await self._run_turn(text, epoch)
        except AuthExpired:
            if epoch != self._epoch:
                return None
            message = self._append(Role.ERROR, AUTH_EXPIRED_MESSAGE)
            self.close()
            if self.on_auth_expired:
                self.on_auth_expired()
            return message
        except ExpenseChatError as exc:
            reply = (Role.ERROR, str(exc) or GENERIC_ERROR_MESSAGE, {})
        except Exception:
            logger.exception("Chat turn failed for %r", text)
            reply = (Role.ERROR, GENERIC_ERROR_MESSAGE, {})
        finally:
            if epoch == self._epoch and self.state is SessionState.AWAITING_RESPONSE:
                self.state = SessionState.IDLE

        if epoch != self._epoch:
            logger.debug("Dropping reply for a discarded transcript")
            return None
        role, reply_text, attachments = reply
        return self._append(role, reply_text, **attachments)

    async def _run_turn(self, text: str, epoch: int):
        if classify(text, verb_routing=self.verb_routing) is Intent.LOG_EXPENSE:
            outcome = await self.backend.log_expense(text)
            if epoch == self._epoch:
                self._apply_recorded(outcome)
            return Role.BOT, outcome.message, {
                "expense": outcome.expense,
                "parsed": outcome.parsed,
                "language": outcome.language,
            }

        outcome = await self.backend.answer_query(text)
        if epoch == self._epoch:
            self.language = outcome.language
        return Role.BOT, outcome.message, {"context": outcome.context, "language": outcome.language}

    def _apply_recorded(self, outcome: RecordOutcome):
        amount = outcome.expense.amount_minor
        self.stats.running_total_minor += amount
        if outcome.expense.occurred_at.date() == self.clock().date():
            self.stats.today_total_minor += amount
        self.stats.entry_count += 1
        self.language = outcome.language

    def reset(self):
        """Start a fresh transcript; a turn still in flight is discarded."""
        self._epoch += 1
        self._transcript.clear()
        self.stats = SessionStats()
        if not self.closed:
            self.state = SessionState.IDLE

    def close(self):
        """The chat view went away. Nothing may be appended after this."""
        self._epoch += 1
        self.state = SessionState.CLOSED

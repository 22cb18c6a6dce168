"""Error taxonomy shared by the chat core, the REST client and the API server."""

from typing import Optional


class ExpenseChatError(Exception):
    """Base class for every failure a chat turn can surface to the user."""


class ExtractionError(ExpenseChatError):
    """An expense-logging utterance did not contain an amount."""


class NetworkError(ExpenseChatError):
    """The backend could not be reached or did not answer in time."""


class AuthExpired(ExpenseChatError):
    """The shared session token was rejected by the backend."""


class UnrecognizedQuery(ExpenseChatError):
    """No analytics rule matched the query. Answered with the help text."""


class ApiError(ExpenseChatError):
    """Any other non-successful response from the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

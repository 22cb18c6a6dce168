"""
Async client for the expense REST backend.

Every call opens its own ``httpx.AsyncClient`` so a client object can be
reused across event loops (the Streamlit page runs each turn in a fresh
one). Transport failures, expired sessions and error responses are turned
into the errors in ``errors.py``; nothing is retried.
"""

import logging
from typing import Any, List, Optional

import httpx

from config import API_BASE_URL, API_TOKEN, REQUEST_TIMEOUT
from errors import ApiError, AuthExpired, ExtractionError, NetworkError
from models import ExpenseRecord

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."


def error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("detail", "message", "error"):
            if isinstance(data.get(key), str) and data[key]:
                return data[key]
    return "An error occurred"


class ExpenseApiClient:

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: Optional[str] = API_TOKEN,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def request(self, method: str, path: str, **kwargs) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            # covers timeouts and refused connections
            logger.warning("Network error on %s %s: %s", method, path, exc)
            raise NetworkError(NETWORK_ERROR_MESSAGE) from exc

        if response.status_code == 401:
            logger.warning("Session rejected on %s %s", method, path)
            raise AuthExpired(error_message(response))
        if response.is_error:
            message = error_message(response)
            logger.error("API error %s on %s %s: %s", response.status_code, method, path, message)
            raise ApiError(message, status_code=response.status_code)
        return response.json()

    async def add_expense(self, description: str, amount: float, category: Optional[str] = None, date: Optional[str] = None) -> ExpenseRecord:
        payload = {"description": description, "amount": amount}
        if category:
            payload["category"] = category
        if date:
            payload["date"] = date
        data = await self.request("POST", "/expenses", json=payload)
        return ExpenseRecord.from_payload(data)

    async def get_expenses(self) -> List[ExpenseRecord]:
        data = await self.request("GET", "/expenses")
        return [ExpenseRecord.from_payload(e) for e in data]

    async def get_family_expenses(self) -> List[ExpenseRecord]:
        data = await self.request("GET", "/expenses/family")
        return [ExpenseRecord.from_payload(e) for e in data]

    async def get_expense_stats(self, scope: str = "personal") -> dict:
        return await self.request("GET", "/expenses/stats", params={"scope": scope})

    async def log_expense_by_chat(self, message: str) -> dict:
        try:
            return await self.request("POST", "/chat/expense", json={"message": message})
        except ApiError as exc:
            if exc.status_code == 422:
                raise ExtractionError(str(exc)) from exc
            raise

    async def chat_query(self, message: str) -> dict:
        return await self.request("POST", "/chat/query", json={"message": message})

"""
Admin console client.

Talks to the admin API with a bearer token. Every call is a single request:
no retries, and a missing token fails closed before anything is sent.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

import httpx

from admin_forms import (
    GenerateTransactionsDraft, InvestmentDraft, ProductDraft, TimestampEditDraft, TimestampField, build_draft,
)
from config import settings
from status_actions import (
    ACCOUNT_REQUESTS, CHAT_THREADS, CRYPTO_DEPOSITS, IDENTITY_DOCUMENTS, USER_INVESTMENTS, WIRE_TRANSFERS,
    check_reason,
)

log = logging.getLogger(__name__)

FETCH_FAILED = "Failed to load data. Please try again."
MUTATION_FAILED = "The action could not be completed. Please try again."
SESSION_EXPIRED = "Session expired. Please log in again."

INVESTMENT_PRODUCTS = "investment_products"


class AdminApiError(Exception):
    """A request failed; the message is the backend's own text or a generic fallback."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionMissing(AdminApiError):
    def __init__(self, message: str = SESSION_EXPIRED):
        super().__init__(message, status_code=401)


class ResourceEndpoint(NamedTuple):
    path: str
    list_key: str


RESOURCES: Dict[str, ResourceEndpoint] = {
    CRYPTO_DEPOSITS: ResourceEndpoint("/api/admin/crypto-deposits", "deposits"),
    WIRE_TRANSFERS: ResourceEndpoint("/api/admin/wire-transfers", "transfers"),
    ACCOUNT_REQUESTS: ResourceEndpoint("/api/admin/account-requests", "requests"),
    IDENTITY_DOCUMENTS: ResourceEndpoint("/api/admin/documents", "documents"),
    USER_INVESTMENTS: ResourceEndpoint("/api/admin/investments", "investments"),
    CHAT_THREADS: ResourceEndpoint("/api/admin/threads", "threads"),
    INVESTMENT_PRODUCTS: ResourceEndpoint("/api/admin/investment-products", "products"),
}


def error_message(response: httpx.Response, fallback: str) -> str:
    """Pull the backend's error text out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback

    detail = body.get("detail") or body.get("error")
    if isinstance(detail, str) and detail:
        return detail
    if isinstance(detail, list) and detail:
        # FastAPI validation errors
        return "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)
    return fallback


def _iso(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class AdminApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.ADMIN_API_BASE_URL,
            timeout=timeout if timeout is not None else settings.ADMIN_API_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    # ==================== SESSION ====================

    async def login(self, email: str, password: str) -> str:
        response = await self._client.post("/auth/token", data={"username": email, "password": password})
        if response.is_error:
            raise AdminApiError(error_message(response, "Login failed"), response.status_code)
        self.token = response.json()["access_token"]
        return self.token

    async def logout(self) -> None:
        await self._request("POST", "/auth/logout", fallback=MUTATION_FAILED)
        self.token = None

    def _auth_headers(self) -> Dict[str, str]:
        if not self.token:
            raise SessionMissing()
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, *, fallback: str, **kwargs) -> Any:
        headers = self._auth_headers()
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            log.error(f"{method} {path} failed: {e}")
            raise AdminApiError(str(e) or fallback) from e

        if response.is_error:
            message = error_message(response, fallback)
            log.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise AdminApiError(message, response.status_code)
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            log.warning(f"{method} {path} -> {response.status_code}: body is not JSON")
            return {}

    # ==================== LIST LOADER ====================

    async def fetch(
        self,
        resource: str,
        status: Optional[str] = None,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[dict]:
        endpoint = RESOURCES[resource]
        params = {
            key: _iso(value)
            for key, value in (("status", status), ("search", search), ("start_date", start_date), ("end_date", end_date))
            if value not in (None, "")
        }
        body = await self._request("GET", endpoint.path, params=params, fallback=FETCH_FAILED)
        return body.get(endpoint.list_key, [])

    async def fetch_crypto_deposits(self, **filters) -> List[dict]:
        return await self.fetch(CRYPTO_DEPOSITS, **filters)

    async def fetch_wire_transfers(self, **filters) -> List[dict]:
        return await self.fetch(WIRE_TRANSFERS, **filters)

    async def fetch_account_requests(self, **filters) -> List[dict]:
        return await self.fetch(ACCOUNT_REQUESTS, **filters)

    async def fetch_documents(self, **filters) -> List[dict]:
        return await self.fetch(IDENTITY_DOCUMENTS, **filters)

    async def fetch_investments(self, **filters) -> List[dict]:
        return await self.fetch(USER_INVESTMENTS, **filters)

    async def fetch_investment_products(self, search: Optional[str] = None) -> List[dict]:
        return await self.fetch(INVESTMENT_PRODUCTS, search=search)

    async def fetch_threads(self, **filters) -> List[dict]:
        return await self.fetch(CHAT_THREADS, **filters)

    async def fetch_users(self, search: Optional[str] = None) -> List[dict]:
        params = {"search": search} if search else {}
        body = await self._request("GET", "/api/admin/users", params=params, fallback=FETCH_FAILED)
        return body.get("users", [])

    async def fetch_user_accounts(self, user_id: int) -> List[dict]:
        return await self._request("GET", f"/api/admin/users/{user_id}/accounts", fallback=FETCH_FAILED)

    # ==================== ACTION DISPATCHER ====================

    async def dispatch(
        self,
        resource: str,
        record_id: int,
        action: str,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a status action for one record.

        Raises ReasonRequired without sending anything when the action needs a
        reason and none was given.
        """
        check_reason(resource, action, reason)
        endpoint = RESOURCES[resource]
        payload = {"action": action, "reason": reason, "notes": notes}
        return await self._request(
            "POST", f"{endpoint.path}/{record_id}/actions", json=payload, fallback=MUTATION_FAILED
        )

    # ==================== FORMS ====================

    async def edit_crypto_deposit(self, deposit_id: int, **changes) -> Dict[str, Any]:
        return await self._request(
            "PUT", f"/api/admin/crypto-deposits/{deposit_id}", json=changes, fallback=MUTATION_FAILED
        )

    async def delete_crypto_deposit(self, deposit_id: int) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/admin/crypto-deposits/{deposit_id}", fallback=MUTATION_FAILED)

    async def create_product(self, draft: ProductDraft) -> Dict[str, Any]:
        return await self._request(
            "POST", "/api/admin/investment-products", json=draft.model_dump(), fallback=MUTATION_FAILED
        )

    async def toggle_product(self, product_id: int) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/api/admin/investment-products/{product_id}/toggle", fallback=MUTATION_FAILED
        )

    async def create_investment(self, draft: InvestmentDraft) -> Dict[str, Any]:
        return await self._request("POST", "/api/admin/investments", json=draft.to_payload(), fallback=MUTATION_FAILED)

    async def generate_transactions(self, draft: GenerateTransactionsDraft) -> Dict[str, Any]:
        return await self._request(
            "POST", "/api/admin/transactions/generate", json=draft.to_payload(), fallback=MUTATION_FAILED
        )

    async def get_thread(self, thread_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/api/admin/threads/{thread_id}", fallback=FETCH_FAILED)

    async def reply(self, thread_id: int, message: str) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/api/admin/threads/{thread_id}/reply", json={"message": message}, fallback=MUTATION_FAILED
        )

    async def document_urls(self, document_id: int) -> Dict[str, Any]:
        body = await self._request("GET", f"/api/admin/documents/{document_id}/urls", fallback=FETCH_FAILED)
        return body["documents"]

    # ==================== TIMESTAMPS ====================

    async def fetch_timestamps(self, user_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/api/admin/timestamps/{user_id}", fallback=FETCH_FAILED)

    async def update_timestamp(self, target: TimestampField, value: datetime) -> Dict[str, Any]:
        payload = {"table": target.table, "record_id": target.record_id, "field": target.field, "value": value.isoformat()}
        return await self._request("POST", "/api/admin/timestamps", json=payload, fallback=MUTATION_FAILED)


# ==================== BULK TIMESTAMP UPDATER ====================

@dataclass
class BulkUpdateSummary:
    success_count: int = 0
    fail_count: int = 0
    failures: List[Tuple[TimestampField, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + self.fail_count

    @property
    def message(self) -> str:
        return f"Updated {self.success_count} field(s), {self.fail_count} failed"


class BulkTimestampUpdater:
    """Applies one timestamp value to many fields, one request at a time."""

    def __init__(self, client: AdminApiClient):
        self.client = client

    async def apply(self, selected: Iterable[TimestampField], value: datetime) -> BulkUpdateSummary:
        draft = build_draft(TimestampEditDraft, selected=list(selected), value=value)
        if not self.client.token:
            raise SessionMissing()

        summary = BulkUpdateSummary()
        for target in draft.selected:
            try:
                await self.client.update_timestamp(target, draft.value)
            except AdminApiError as e:
                summary.fail_count += 1
                summary.failures.append((target, e.message))
            else:
                summary.success_count += 1
        log.info(f"Bulk timestamp update: {summary.message}")
        return summary


# ==================== REALTIME ====================

THREAD_EVENTS = {"thread:updated", "message:created"}


class ThreadChangeSubscriber:
    """
    Consumes the threads channel's text frames and calls `on_change` for each
    thread or message notification. Any async iterator of frames works, such as
    a connected websocket client.
    """

    def __init__(self, frames: AsyncIterator[str], on_change: Callable[[dict], Awaitable[Any]]):
        self.frames = frames
        self.on_change = on_change

    async def run(self) -> int:
        handled = 0
        async for frame in self.frames:
            try:
                event = json.loads(frame)
            except ValueError:
                continue  # ping acks
            if not isinstance(event, dict) or event.get("event") not in THREAD_EVENTS:
                continue
            await self.on_change(event)
            handled += 1
        return handled

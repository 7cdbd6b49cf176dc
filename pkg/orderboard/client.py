"""
Persistence clients used by the board.

Both clients expose the same two async operations the board consumes:

    fetch_orders(organization_id)        -> ApiResponse(data=[order dicts])
    update_order_status(order_id, stage) -> ApiResponse(data=order dict)

HttpOrdersClient talks to board_server.py with requests (run in a worker
thread so the event loop stays responsive). LocalOrdersClient goes straight
to a WorkOrderRepository for standalone use.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from .repository import WorkOrderRepository

logger = logging.getLogger(__name__)


class OrderBoardError(Exception):
    """Base class for order board errors."""
    pass


class TransportError(OrderBoardError):
    """Raised when the order API cannot be reached."""
    pass


@dataclass
class ApiResponse:
    """Envelope returned by every persistence call: { success, data, error }."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def from_json(cls, body: Any) -> "ApiResponse":
        if not isinstance(body, dict):
            return cls(success=False, error="Malformed response")
        return cls(
            success=bool(body.get("success", False)),
            data=body.get("data"),
            error=body.get("error"),
        )


class HttpOrdersClient:
    """Client for the work order JSON API."""

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> ApiResponse:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        try:
            body = r.json()
        except ValueError:
            body = None

        if not r.ok:
            error = body.get("error") if isinstance(body, dict) else None
            return ApiResponse(success=False, error=error or f"HTTP {r.status_code}")
        return ApiResponse.from_json(body)

    async def fetch_orders(self, organization_id: str) -> ApiResponse:
        return await asyncio.to_thread(
            self._request, "GET", "/api/work-orders", params={"organization_id": organization_id}
        )

    async def update_order_status(self, order_id: str, status: str) -> ApiResponse:
        return await asyncio.to_thread(
            self._request, "PUT", f"/api/work-orders/{order_id}/status", json={"status": status}
        )

    async def update_order(self, order_id: str, fields: Dict[str, Any]) -> ApiResponse:
        return await asyncio.to_thread(self._request, "PUT", f"/api/work-orders/{order_id}", json=fields)


class LocalOrdersClient:
    """Standalone mode: same contract, backed directly by SQLite."""

    def __init__(self, repository: WorkOrderRepository, limit: int = 1000):
        self.repository = repository
        self.limit = limit

    def _fetch(self, organization_id: str) -> ApiResponse:
        orders = self.repository.list_for_organization(organization_id, limit=self.limit)
        return ApiResponse(success=True, data=[o.to_dict() for o in orders])

    def _update_status(self, order_id: str, status: str) -> ApiResponse:
        try:
            order = self.repository.update_status(order_id, status)
        except ValueError as e:
            return ApiResponse(success=False, error=str(e))
        if order is None:
            return ApiResponse(success=False, error=f"Order {order_id} not found")
        return ApiResponse(success=True, data=order.to_dict())

    def _update(self, order_id: str, fields: Dict[str, Any]) -> ApiResponse:
        try:
            order = self.repository.update_fields(order_id, fields)
        except ValueError as e:
            return ApiResponse(success=False, error=str(e))
        if order is None:
            return ApiResponse(success=False, error=f"Order {order_id} not found")
        return ApiResponse(success=True, data=order.to_dict())

    async def fetch_orders(self, organization_id: str) -> ApiResponse:
        return await asyncio.to_thread(self._fetch, organization_id)

    async def update_order_status(self, order_id: str, status: str) -> ApiResponse:
        return await asyncio.to_thread(self._update_status, order_id, status)

    async def update_order(self, order_id: str, fields: Dict[str, Any]) -> ApiResponse:
        return await asyncio.to_thread(self._update, order_id, fields)

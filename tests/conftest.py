"""Shared test fixtures for the order board tests."""

import asyncio
import tempfile
from pathlib import Path
from typing import Optional

import pytest

from pkg.orderboard.client import ApiResponse
from pkg.orderboard.pipeline import OrderStatus
from pkg.orderboard.schema import WorkOrder


class FakeOrdersClient:
    """In-memory persistence client with switchable failures."""

    def __init__(self, orders=None):
        self.records = [o.to_dict() for o in orders or []]
        self.fetch_error: Optional[Exception] = None
        self.fetch_response: Optional[ApiResponse] = None
        self.update_error: Optional[Exception] = None
        self.update_response: Optional[ApiResponse] = None
        self.gate: Optional[asyncio.Event] = None  # holds status writes until set
        self.calls = []

    @property
    def updates(self):
        return [c for c in self.calls if c[0] == "update"]

    async def fetch_orders(self, organization_id):
        self.calls.append(("fetch", organization_id))
        if self.fetch_error:
            raise self.fetch_error
        if self.fetch_response:
            return self.fetch_response
        return ApiResponse(success=True, data=[dict(r) for r in self.records])

    async def update_order_status(self, order_id, status):
        self.calls.append(("update", order_id, status))
        if self.gate is not None:
            await self.gate.wait()
        if self.update_error:
            raise self.update_error
        if self.update_response:
            return self.update_response
        for record in self.records:
            if record["id"] == order_id:
                record["status"] = status
        return ApiResponse(success=True, data={"id": order_id, "status": status})


def make_order(order_id, status="reception", **kwargs) -> WorkOrder:
    return WorkOrder(id=order_id, status=OrderStatus(status), **kwargs)


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def fake_client():
    return FakeOrdersClient()


@pytest.fixture
def db_path():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp:
        path = tmp.name
    yield path
    for suffix in ("", "-wal", "-shm"):
        Path(path + suffix).unlink(missing_ok=True)

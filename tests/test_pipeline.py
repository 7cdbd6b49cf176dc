"""
Tests for the repair pipeline stages and the schema built on them.
"""
import pytest

from pkg.orderboard.pipeline import (
    PIPELINE,
    OrderStatus,
    coerce_stage,
    is_valid_stage,
    stage_title,
)
from pkg.orderboard.filters import group_by_stage
from pkg.orderboard.schema import Column, WorkOrder, parse_timestamp


def test_pipeline_has_ten_stages_in_board_order():
    assert [s.value for s in PIPELINE] == [
        "reception",
        "diagnosis",
        "initial_quote",
        "waiting_approval",
        "disassembly",
        "waiting_parts",
        "assembly",
        "testing",
        "ready",
        "completed",
    ]


def test_is_valid_stage():
    assert is_valid_stage("diagnosis")
    assert is_valid_stage(OrderStatus.READY)
    # Order ids share the drop-target id space and must not pass
    assert not is_valid_stage("3f2b9c1e-0d7a-4f51-9a55-2f6d1c0e8b77")
    assert not is_valid_stage("cancelled")
    assert not is_valid_stage("Diagnosis")
    assert not is_valid_stage(None)
    assert not is_valid_stage(3)


def test_coerce_stage():
    assert coerce_stage("testing") is OrderStatus.TESTING
    assert coerce_stage(OrderStatus.TESTING) is OrderStatus.TESTING
    assert coerce_stage("order-42") is None


def test_every_stage_has_a_title():
    assert all(stage_title(s) for s in PIPELINE)
    assert stage_title(OrderStatus.WAITING_PARTS) == "Waiting Parts"


def test_column_rejects_unknown_stage():
    with pytest.raises(ValueError):
        Column(id="cancelled")


def test_column_coerces_stage_id_and_title():
    column = Column(id="ready")
    assert column.id is OrderStatus.READY
    assert column.title == "Ready"
    assert column.orders == []


def test_work_order_coerces_string_status():
    order = WorkOrder(id="o-1", status=" Diagnosis")
    assert order.status is OrderStatus.DIAGNOSIS
    columns = {c.id: c for c in group_by_stage([order])}
    assert columns[OrderStatus.DIAGNOSIS].orders == [order]


def test_work_order_rejects_unknown_string_status():
    with pytest.raises(ValueError):
        WorkOrder(id="o-1", status="cancelled")


def test_work_order_from_dict_rejects_unknown_status():
    with pytest.raises(ValueError):
        WorkOrder.from_dict({"id": "o-1", "status": "cancelled"})


def test_work_order_from_dict_requires_id():
    with pytest.raises(ValueError):
        WorkOrder.from_dict({"status": "reception"})


def test_work_order_serialization():
    data = {
        "id": "o-1",
        "status": "waiting_parts",
        "organization_id": "org-1",
        "customer": {"id": "c-1", "name": "Ana", "phone": "5551234"},
        "vehicle": {"id": "v-1", "brand": "Honda", "model": "Civic", "year": "2018", "license_plate": "ABC-123"},
        "images": [{"url": "https://img/1.jpg", "category": "reception"}],
        "description": "Brake noise",
        "estimated_cost": "1500.50",
        "entry_date": "2026-10-01T09:30:00",
        "created_at": "2026-10-01T09:00:00",
    }
    order = WorkOrder.from_dict(data)
    assert order.status is OrderStatus.WAITING_PARTS
    assert order.vehicle.year == 2018
    assert order.estimated_cost == 1500.5
    assert order.images[0].url == "https://img/1.jpg"
    assert order.effective_date == order.entry_date

    out = order.to_dict()
    assert out["status"] == "waiting_parts"
    assert out["customer"]["name"] == "Ana"
    assert out["entry_date"] == "2026-10-01T09:30:00"


def test_effective_date_falls_back_to_created_at():
    order = WorkOrder.from_dict({"id": "o-1", "created_at": "2026-10-01T09:00:00"})
    assert order.entry_date is None
    assert order.effective_date == order.created_at


def test_parse_timestamp_handles_offsets_and_garbage():
    assert parse_timestamp("2026-10-01T09:00:00Z").tzinfo is None
    assert parse_timestamp("2026-10-01T09:00:00+02:00").tzinfo is None
    assert parse_timestamp("not a date") is None
    assert parse_timestamp("") is None

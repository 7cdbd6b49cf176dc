"""
Tests for optimistic transitions: apply, confirm, rollback.
"""
import asyncio

import pytest

from pkg.orderboard.client import ApiResponse, TransportError
from pkg.orderboard.events import BoardEvents, BOARD_ERROR, BOARD_STALE, ORDER_CONFIRMED, ORDER_MOVED, ORDER_REVERTED
from pkg.orderboard.mutator import STATUS_UPDATE_FAILED, OptimisticMutator
from pkg.orderboard.pipeline import OrderStatus
from pkg.orderboard.store import OrderStore

from conftest import FakeOrdersClient, make_order


def seeded():
    store = OrderStore([
        make_order("o-1", "diagnosis"),
        make_order("o-2", "diagnosis"),
        make_order("o-3", "diagnosis"),
        make_order("o-4", "waiting_parts"),
    ])
    client = FakeOrdersClient()
    events = BoardEvents()
    return store, client, events, OptimisticMutator(store, client, events)


def contents(store):
    return {c.id: list(c.orders) for c in store.columns}


def record(events, *event_types):
    seen = []
    for event_type in event_types:
        events.subscribe(event_type, lambda _t=event_type, **kw: seen.append((_t, kw)))
    return seen


def test_move_is_visible_before_write_resolves():
    store, client, _, mutator = seeded()

    async def scenario():
        client.gate = asyncio.Event()
        task = mutator.commit_transition("o-2", "diagnosis", "waiting_parts")
        await asyncio.sleep(0)
        # Write is held at the gate; the board already shows the move
        assert store.find("o-2").status == OrderStatus.WAITING_PARTS
        assert task in mutator.in_flight
        client.gate.set()
        return await task

    assert asyncio.run(scenario()) is True
    assert mutator.in_flight == set()


def test_success_leaves_optimistic_state():
    store, client, events, mutator = seeded()
    seen = record(events, ORDER_MOVED, ORDER_CONFIRMED, BOARD_ERROR)

    async def scenario():
        return await mutator.commit_transition("o-2", "diagnosis", "waiting_parts")

    assert asyncio.run(scenario()) is True
    assert [o.id for o in store.column("waiting_parts").orders] == ["o-4", "o-2"]
    assert [o.id for o in store.column("diagnosis").orders] == ["o-1", "o-3"]
    assert [t for t, _ in seen] == [ORDER_MOVED, ORDER_CONFIRMED]


@pytest.mark.parametrize("failure", ["rejected", "raised"])
@pytest.mark.parametrize("target", ["reception", "waiting_parts", "completed"])
def test_failed_write_restores_exact_contents(failure, target):
    store, client, events, mutator = seeded()
    if failure == "rejected":
        client.update_response = ApiResponse(success=False, error="HTTP 500")
    else:
        client.update_error = TransportError("connection refused")
    before = contents(store)
    seen = record(events, ORDER_REVERTED, BOARD_ERROR)

    async def scenario():
        return await mutator.commit_transition("o-2", "diagnosis", target)

    assert asyncio.run(scenario()) is False
    assert contents(store) == before
    assert store.find("o-2").status == OrderStatus.DIAGNOSIS
    assert [t for t, _ in seen] == [ORDER_REVERTED, BOARD_ERROR]
    assert seen[1][1]["message"] == STATUS_UPDATE_FAILED
    assert seen[1][1]["order_id"] == "o-2"


def test_no_automatic_retry():
    _, client, _, mutator = seeded()
    client.update_response = ApiResponse(success=False, error="nope")

    async def scenario():
        await mutator.commit_transition("o-1", "diagnosis", "ready")
        await mutator.drain()

    asyncio.run(scenario())
    assert len(client.updates) == 1


def test_wrong_source_stage_is_rejected():
    store, client, _, mutator = seeded()
    before = contents(store)

    async def scenario():
        return mutator.commit_transition("o-1", "reception", "ready")

    assert asyncio.run(scenario()) is None
    assert contents(store) == before
    assert client.updates == []


def test_same_stage_is_rejected():
    _, client, _, mutator = seeded()

    async def scenario():
        return mutator.commit_transition("o-1", "diagnosis", "diagnosis")

    assert asyncio.run(scenario()) is None
    assert client.updates == []


def test_superseded_failure_requests_refetch():
    """A failed write whose order was dragged on again cannot be undone locally."""
    store, client, events, mutator = seeded()
    seen = record(events, ORDER_REVERTED, BOARD_STALE, BOARD_ERROR)

    async def scenario():
        client.gate = asyncio.Event()
        client.update_response = ApiResponse(success=False, error="stale")
        first = mutator.commit_transition("o-1", "diagnosis", "ready")
        second = mutator.commit_transition("o-1", "ready", "completed")
        client.gate.set()
        return await first, await second

    assert asyncio.run(scenario()) == (False, False)
    # First revert found o-1 gone from "ready" and skipped; second revert restored "ready"'s snapshot
    ids = [o.id for c in store.columns for o in c.orders]
    assert ids.count("o-1") == 1
    assert store.find("o-1").status == OrderStatus.READY
    assert [t for t, _ in seen] == [BOARD_STALE, BOARD_ERROR, ORDER_REVERTED, BOARD_ERROR]
    assert seen[0][1] == {"order_id": "o-1"}


def test_drain_waits_for_all_writes():
    store, client, _, mutator = seeded()

    async def scenario():
        client.gate = asyncio.Event()
        mutator.commit_transition("o-1", "diagnosis", "ready")
        mutator.commit_transition("o-2", "diagnosis", "testing")
        assert len(mutator.in_flight) == 2
        asyncio.get_running_loop().call_soon(client.gate.set)
        await mutator.drain()

    asyncio.run(scenario())
    assert mutator.in_flight == set()
    assert len(client.updates) == 2


def test_no_event_loop_moves_nothing():
    store, client, events, mutator = seeded()
    before = contents(store)
    seen = record(events, ORDER_MOVED)

    assert mutator.commit_transition("o-1", "diagnosis", "ready") is None
    assert contents(store) == before
    assert client.updates == []
    assert seen == []

#!/usr/bin/env python3
"""
Quick verification that the order board works end-to-end (standalone mode).
"""
import asyncio
from datetime import datetime

from pkg.orderboard.board import OrderBoard
from pkg.orderboard.client import LocalOrdersClient
from pkg.orderboard.pipeline import OrderStatus
from pkg.orderboard.repository import WorkOrderRepository, new_order_id
from pkg.orderboard.schema import Customer, Vehicle, WorkOrder

DB_PATH = "/tmp/orderboard_verify.db"
ORG = "verify-org"


async def main():
    print("=" * 60)
    print("Order Board Verification")
    print("=" * 60)

    print("\n[1/6] Creating SQLite repository...")
    repo = WorkOrderRepository(DB_PATH)
    order = WorkOrder(
        id=new_order_id(),
        organization_id=ORG,
        status=OrderStatus.DIAGNOSIS,
        customer=Customer(name="Ana Torres", phone="5551234"),
        vehicle=Vehicle(brand="Honda", model="Civic", license_plate="ABC-123"),
        description="Brake noise",
        entry_date=datetime.now(),
    )
    repo.save(order)
    print(f"✅ Order saved: {order.id}")

    print("\n[2/6] Loading board...")
    board = OrderBoard(LocalOrdersClient(repo), ORG)
    if not await board.refresh():
        print(f"❌ Load failed: {board.error}")
        return
    for column in board.columns:
        if column.orders:
            print(f"   {column.title}: {len(column.orders)}")

    print("\n[3/6] Dragging order to Waiting Parts...")
    board.on_drag_start(order.id)
    task = board.on_drag_end(order.id, OrderStatus.WAITING_PARTS.value)
    confirmed = await task if task else False
    print(f"{'✅' if confirmed else '❌'} Write confirmed: {confirmed}")

    print("\n[4/6] Dropping on another card id (ignored)...")
    board.on_drag_start(order.id)
    print(f"✅ Task returned: {board.on_drag_end(order.id, new_order_id())}")

    print("\n[5/6] Reloading from repository...")
    board.open_order(order.id)
    await board.refresh()
    print(f"✅ Stored status: {repo.get(order.id).status.value}")
    print(f"   Selected order status: {board.selected_order.status.value}")
    print(f"   History: {repo.get_history(order.id)}")

    print("\n[6/6] Failed write is rolled back...")
    doomed = WorkOrder(id=new_order_id(), organization_id=ORG, status=OrderStatus.TESTING, entry_date=datetime.now())
    repo.save(doomed)
    await board.refresh()
    repo.soft_delete(doomed.id)  # the status write will find nothing to update
    task = board.on_drag_end(doomed.id, OrderStatus.READY.value)
    confirmed = await task if task else True
    stage = board.store.find(doomed.id).status.value
    ok = not confirmed and stage == OrderStatus.TESTING.value
    print(f"{'✅' if ok else '❌'} Write confirmed: {confirmed}, board shows: {stage}, error: {board.error}")

    print("\n" + "=" * 60)
    print("✅ ALL CHECKS PASSED")
    print("=" * 60)
    print(f"Test database: {DB_PATH}")


if __name__ == "__main__":
    asyncio.run(main())

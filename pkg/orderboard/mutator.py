"""
Optimistic status transitions.

A drag is committed in two phases:
  1. apply   - synchronous move in the OrderStore (the board updates at once)
  2. confirm - asynchronous status write to the persistence client; on any
               failure the move is reverted from the snapshot taken in
               phase 1 and BOARD_ERROR is emitted. If a later drag already
               moved the order again, BOARD_STALE asks the board to re-fetch.

Failed transitions are never retried; the operator drags again.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional, Set

from .events import BoardEvents, BOARD_ERROR, BOARD_STALE, ORDER_CONFIRMED, ORDER_MOVED, ORDER_REVERTED
from .pipeline import OrderStatus, coerce_stage
from .schema import WorkOrder
from .store import OrderStore

logger = logging.getLogger(__name__)

STATUS_UPDATE_FAILED = "Failed to update order status"


@dataclass
class PendingTransition:
    """Rollback payload captured when the move is applied."""
    order_id: str
    from_stage: OrderStatus
    to_stage: OrderStatus
    original: WorkOrder
    index: int


class OptimisticMutator:
    """Applies column moves locally and confirms them remotely."""

    def __init__(self, store: OrderStore, client, events: Optional[BoardEvents] = None):
        self.store = store
        self.client = client
        self.events = events or BoardEvents()
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> Set[asyncio.Task]:
        return set(self._in_flight)

    def commit_transition(self, order_id: str, from_stage, to_stage) -> Optional[asyncio.Task]:
        """
        Move order_id and schedule the remote write.

        Returns the confirmation task (resolving to True on success, False
        after a failure), or None when nothing was moved. Outside a running
        event loop nothing is moved.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error(f"Transition of {order_id} refused: no running event loop")
            return None

        source, target = coerce_stage(from_stage), coerce_stage(to_stage)
        if source is None or target is None or source == target:
            return None
        located = self.store.locate(order_id)
        if located is None or located[0] != source:
            logger.info(f"Transition skipped: order {order_id} not in {source.value}")
            return None

        original = self.store.find(order_id)
        pending = PendingTransition(
            order_id=order_id,
            from_stage=source,
            to_stage=target,
            original=replace(original),
            index=located[1],
        )
        if not self.store.move_order(order_id, source, target):
            return None

        logger.info(f"Order {order_id} moved {source.value} → {target.value} (pending)")
        self.events.emit(ORDER_MOVED, order_id=order_id, from_stage=source, to_stage=target)

        task = loop.create_task(self._confirm(pending))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _confirm(self, pending: PendingTransition) -> bool:
        try:
            response = await self.client.update_order_status(pending.order_id, pending.to_stage.value)
        except Exception as e:
            logger.error(f"Status write for {pending.order_id} raised: {e}")
            self._rollback(pending, str(e))
            return False

        if not response.success:
            logger.error(f"Status write for {pending.order_id} rejected: {response.error}")
            self._rollback(pending, response.error or "")
            return False

        logger.info(f"Order {pending.order_id} confirmed in {pending.to_stage.value}")
        self.events.emit(ORDER_CONFIRMED, order_id=pending.order_id, stage=pending.to_stage)
        return True

    def _rollback(self, pending: PendingTransition, detail: str) -> None:
        reverted = self.store.revert_move(
            pending.order_id,
            pending.to_stage,
            pending.from_stage,
            pending.original,
            index=pending.index,
        )
        if reverted:
            self.events.emit(
                ORDER_REVERTED,
                order_id=pending.order_id,
                from_stage=pending.from_stage,
                to_stage=pending.to_stage,
            )
        else:
            # A later move owns the order now; only a re-fetch shows the stored stage
            logger.warning(f"Rollback of {pending.order_id} skipped: order left {pending.to_stage.value}")
            self.events.emit(BOARD_STALE, order_id=pending.order_id)
        self.events.emit(BOARD_ERROR, message=STATUS_UPDATE_FAILED, detail=detail, order_id=pending.order_id)

    async def drain(self) -> None:
        """Wait for every in-flight status write to settle."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

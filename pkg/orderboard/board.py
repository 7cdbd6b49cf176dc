"""
OrderBoard: the Kanban board for one organization.

Inputs from the UI:  set_filter(), on_drag_start(), on_drag_end()
Outputs to the UI:   columns (for rendering), error (toast/banner) and the
                     BOARD_ERROR event on the event bus.

Every refresh replaces the optimistic state with what the persistence
client returns; the selection reconciler then re-points the detail panel.
"""
import asyncio
import logging
from typing import List, Optional, Set

from .drag import DragCoordinator
from .events import BoardEvents, BOARD_ERROR, BOARD_LOADED, BOARD_STALE
from .filters import FilterSelection, compute_date_range, filter_orders
from .mutator import OptimisticMutator
from .schema import Column, WorkOrder
from .selection import SelectionReconciler
from .store import OrderStore

logger = logging.getLogger(__name__)

LOAD_FAILED = "Failed to load orders"


class OrderBoard:
    """Wires filters, store, drag handling and persistence together."""

    def __init__(self, client, organization_id: str, events: Optional[BoardEvents] = None):
        self.client = client
        self.organization_id = organization_id
        self.events = events or BoardEvents()
        self.selection = FilterSelection()

        self.store = OrderStore()
        self.mutator = OptimisticMutator(self.store, client, self.events)
        self.drag = DragCoordinator(self.store, self.mutator)
        self.reconciler = SelectionReconciler(self.store)

        self.loading = False
        self.error: Optional[str] = None
        self._resyncs: Set[asyncio.Task] = set()
        self.events.subscribe(BOARD_ERROR, self._on_error)
        self.events.subscribe(BOARD_STALE, self._on_stale)

    # -------------------- outputs --------------------
    @property
    def columns(self) -> List[Column]:
        return self.store.columns

    @property
    def is_empty(self) -> bool:
        return self.store.total == 0

    @property
    def selected_order(self) -> Optional[WorkOrder]:
        return self.reconciler.selected

    def _on_error(self, message: str = "", **_) -> None:
        self.error = message

    def clear_error(self) -> None:
        self.error = None

    def _on_stale(self, order_id: str = "", **_) -> None:
        """A failed write could not be rolled back locally: re-fetch the board."""
        logger.info(f"Re-fetching board after unrecoverable move of {order_id}")
        task = asyncio.get_running_loop().create_task(self._resync())
        self._resyncs.add(task)
        task.add_done_callback(self._resyncs.discard)

    async def _resync(self) -> None:
        error = self.error
        await self.refresh()
        if self.error is None:
            self.error = error

    def close(self) -> None:
        """Detach from the event bus (it may be shared with other boards)."""
        self.events.unsubscribe(BOARD_ERROR, self._on_error)
        self.events.unsubscribe(BOARD_STALE, self._on_stale)

    # -------------------- loading --------------------
    def _parse_orders(self, records) -> List[WorkOrder]:
        orders = []
        for record in records or []:
            try:
                orders.append(WorkOrder.from_dict(record))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed order {record!r:.80}: {e}")
        return orders

    async def refresh(self) -> bool:
        """
        Fetch, filter and load the board.

        On failure the previous columns stay on screen and BOARD_ERROR is
        emitted; calling refresh() again is the retry.
        """
        self.loading = True
        self.error = None
        try:
            response = await self.client.fetch_orders(self.organization_id)
        except Exception as e:
            logger.error(f"Fetch for {self.organization_id} raised: {e}")
            self.events.emit(BOARD_ERROR, message=LOAD_FAILED, detail=str(e))
            return False
        finally:
            self.loading = False

        if not response.success:
            logger.error(f"Fetch for {self.organization_id} failed: {response.error}")
            self.events.emit(BOARD_ERROR, message=LOAD_FAILED, detail=response.error or "")
            return False
        if not isinstance(response.data, list):
            logger.error(f"Fetch for {self.organization_id} returned {type(response.data).__name__}, not a list")
            self.events.emit(BOARD_ERROR, message=LOAD_FAILED, detail="Malformed order list")
            return False

        orders = self._parse_orders(response.data)
        date_range = compute_date_range(self.selection)
        visible = filter_orders(orders, date_range, self.selection.query)
        logger.info(
            f"Loaded {len(orders)} orders for {self.organization_id}, "
            f"{len(visible)} after filters (mode={self.selection.mode})"
        )
        self.store.load(visible)
        self.events.emit(BOARD_LOADED, counts=self.store.counts())
        return True

    async def set_filter(self, selection: FilterSelection) -> bool:
        self.selection = selection
        return await self.refresh()

    # -------------------- gestures --------------------
    def on_drag_start(self, candidate_id: str) -> bool:
        return self.drag.on_drag_start(candidate_id)

    def on_drag_end(self, candidate_id: str, drop_target_id: Optional[str]) -> Optional[asyncio.Task]:
        return self.drag.on_drag_end(candidate_id, drop_target_id)

    def on_drag_cancel(self) -> None:
        self.drag.on_drag_cancel()

    def open_order(self, order_id: str) -> Optional[WorkOrder]:
        """Card click: select the order for the detail panel."""
        order = self.reconciler.select(order_id)
        if order is None:
            logger.warning(f"Order {order_id} not on the board")
        return order

    def close_order(self) -> None:
        self.reconciler.clear()

    async def wait_for_writes(self) -> None:
        """Wait for pending status writes and any re-fetch they triggered."""
        while self.mutator.in_flight or self._resyncs:
            await self.mutator.drain()
            if self._resyncs:
                await asyncio.gather(*list(self._resyncs), return_exceptions=True)

"""
In-memory order store backing the board.

Holds one Column per pipeline stage. Only two paths write here: load()
after a fetch, and the optimistic mutator (move_order / revert_move).
Every order is listed in exactly one column, the one matching its status.
"""
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .filters import group_by_stage
from .pipeline import PIPELINE, OrderStatus, coerce_stage
from .schema import Column, WorkOrder

logger = logging.getLogger(__name__)


class OrderStore:
    """Columns of work orders, rebuilt on fetch and mutated on drag."""

    def __init__(self, orders: Optional[Iterable[WorkOrder]] = None):
        self._columns: Dict[OrderStatus, Column] = {c.id: c for c in group_by_stage([])}
        self._listeners: List[Callable[[str], None]] = []
        if orders:
            self.load(orders)

    # -------------------- listeners --------------------
    def add_listener(self, callback: Callable[[str], None]) -> None:
        """Register callback(reason) run after every change ("load", "move", "revert")."""
        self._listeners.append(callback)

    def _notify(self, reason: str) -> None:
        for callback in self._listeners:
            try:
                callback(reason)
            except Exception as e:
                logger.error(f"Store listener failed on {reason}: {e}")

    # -------------------- queries --------------------
    @property
    def columns(self) -> List[Column]:
        return [self._columns[stage] for stage in PIPELINE]

    def column(self, stage: Any) -> Optional[Column]:
        status = coerce_stage(stage)
        return self._columns[status] if status else None

    def all_orders(self) -> List[WorkOrder]:
        return [order for column in self.columns for order in column.orders]

    @property
    def total(self) -> int:
        return sum(len(c.orders) for c in self._columns.values())

    def counts(self) -> Dict[str, int]:
        return {stage.value: len(self._columns[stage].orders) for stage in PIPELINE}

    def find(self, order_id: str) -> Optional[WorkOrder]:
        located = self.locate(order_id)
        if located is None:
            return None
        stage, index = located
        return self._columns[stage].orders[index]

    def locate(self, order_id: str) -> Optional[Tuple[OrderStatus, int]]:
        """(stage, index) of order_id, or None."""
        for stage in PIPELINE:
            index = self._columns[stage].index_of(order_id)
            if index >= 0:
                return stage, index
        return None

    # -------------------- mutations --------------------
    def load(self, orders: Iterable[WorkOrder]) -> None:
        """Replace every column with a fresh grouping of orders."""
        self._columns = {c.id: c for c in group_by_stage(orders)}
        logger.debug(f"Store loaded: {self.counts()}")
        self._notify("load")

    def move_order(self, order_id: str, from_stage: Any, to_stage: Any) -> bool:
        """
        Move order_id from one column to the end of another.

        The order is replaced by a copy carrying the new status; the object
        that was in the source column is left untouched so callers can keep
        it for rollback. Returns False (and changes nothing) when either
        stage is invalid, the stages are equal, or the order is not in the
        source column.
        """
        source, target = coerce_stage(from_stage), coerce_stage(to_stage)
        if source is None or target is None or source == target:
            return False
        index = self._columns[source].index_of(order_id)
        if index < 0:
            return False

        order = self._columns[source].orders.pop(index)
        self._columns[target].orders.append(replace(order, status=target))
        self._notify("move")
        return True

    def revert_move(
        self,
        order_id: str,
        to_stage: Any,
        from_stage: Any,
        original: WorkOrder,
        index: Optional[int] = None,
    ) -> bool:
        """
        Undo move_order: take order_id out of to_stage and put original back
        into from_stage (at index when given, else at the end).

        Returns False without mutating when the order is no longer in
        to_stage, e.g. a later drag already moved it elsewhere.
        """
        source, target = coerce_stage(from_stage), coerce_stage(to_stage)
        if source is None or target is None or source == target:
            return False
        position = self._columns[target].index_of(order_id)
        if position < 0:
            logger.warning(f"Revert skipped: order {order_id} no longer in {target.value}")
            return False

        self._columns[target].orders.pop(position)
        orders = self._columns[source].orders
        if index is None or index > len(orders):
            orders.append(original)
        else:
            orders.insert(max(index, 0), original)
        self._notify("revert")
        return True

    # -------------------- serialization --------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": [c.to_dict() for c in self.columns],
            "counts": self.counts(),
            "total": self.total,
        }

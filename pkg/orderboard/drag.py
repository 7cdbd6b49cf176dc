"""
Drag gesture state machine.

  IDLE --drag start (order found)--> DRAGGING(order_id)
  DRAGGING --drop / cancel--> IDLE

Cards and columns share one id space in the rendering layer, so a card can
be dropped onto another card. The drop target is only treated as a stage
after the pipeline accepts it; anything else is ignored.
"""
import asyncio
import logging
from enum import Enum
from typing import Optional

from .mutator import OptimisticMutator
from .pipeline import coerce_stage
from .schema import WorkOrder
from .store import OrderStore

logger = logging.getLogger(__name__)


class DragPhase(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class DragCoordinator:
    """Turns drag start/end events into status transitions."""

    def __init__(self, store: OrderStore, mutator: OptimisticMutator):
        self.store = store
        self.mutator = mutator
        self.phase = DragPhase.IDLE
        self.active_order: Optional[WorkOrder] = None  # rendered in the drag overlay

    @property
    def active_id(self) -> Optional[str]:
        return self.active_order.id if self.active_order else None

    def _reset(self) -> None:
        self.phase = DragPhase.IDLE
        self.active_order = None

    def on_drag_start(self, candidate_id: str) -> bool:
        """Start dragging candidate_id. Stale or unknown ids leave the board idle."""
        order = self.store.find(candidate_id)
        if order is None:
            logger.debug(f"Drag start ignored: order {candidate_id} not on the board")
            self._reset()
            return False
        self.phase = DragPhase.DRAGGING
        self.active_order = order
        return True

    def on_drag_cancel(self) -> None:
        self._reset()

    def on_drag_end(self, candidate_id: str, drop_target_id: Optional[str]) -> Optional[asyncio.Task]:
        """
        Finish a drag. Returns the confirmation task when a transition was
        committed, None otherwise. Always leaves the coordinator IDLE.
        """
        try:
            if not drop_target_id:
                return None

            target = coerce_stage(drop_target_id)
            if target is None:
                logger.debug(f"Drop on {drop_target_id!r} ignored: not a stage")
                return None

            order = self.store.find(candidate_id)
            if order is None or order.status == target:
                return None

            return self.mutator.commit_transition(candidate_id, order.status, target)
        finally:
            self._reset()

"""
Repair pipeline stages.

Work order lifecycle (left to right on the board):
  Reception → Diagnosis → Quote → Waiting approval → Disassembly →
  Waiting parts → Assembly → Testing → Ready → Completed

The set is closed: a column is never built for any other id, and a drop
target is only treated as a stage after is_valid_stage() accepts it.
Moves are unrestricted between any two stages.
"""
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class OrderStatus(Enum):
    """Valid work order stages, in board order."""
    RECEPTION = "reception"
    DIAGNOSIS = "diagnosis"
    INITIAL_QUOTE = "initial_quote"
    WAITING_APPROVAL = "waiting_approval"
    DISASSEMBLY = "disassembly"
    WAITING_PARTS = "waiting_parts"
    ASSEMBLY = "assembly"
    TESTING = "testing"
    READY = "ready"
    COMPLETED = "completed"

    @classmethod
    def from_str(cls, value: str) -> "OrderStatus":
        """Parse a stage id, raising ValueError for anything outside the pipeline."""
        return cls(value.strip().lower())


PIPELINE: Tuple[OrderStatus, ...] = tuple(OrderStatus)

STAGE_TITLES: Dict[OrderStatus, str] = {
    OrderStatus.RECEPTION: "Reception",
    OrderStatus.DIAGNOSIS: "Diagnosis",
    OrderStatus.INITIAL_QUOTE: "Quote",
    OrderStatus.WAITING_APPROVAL: "Waiting Approval",
    OrderStatus.DISASSEMBLY: "Disassembly",
    OrderStatus.WAITING_PARTS: "Waiting Parts",
    OrderStatus.ASSEMBLY: "Assembly",
    OrderStatus.TESTING: "Testing",
    OrderStatus.READY: "Ready",
    OrderStatus.COMPLETED: "Completed",
}

# Stages that stamp completed_at when an order enters them
COMPLETION_STAGES = frozenset({OrderStatus.READY, OrderStatus.COMPLETED})

_STAGE_IDS = frozenset(s.value for s in PIPELINE)


def is_valid_stage(value: Any) -> bool:
    """True if value is one of the ten stage ids (or an OrderStatus member)."""
    if isinstance(value, OrderStatus):
        return True
    return isinstance(value, str) and value in _STAGE_IDS


def coerce_stage(value: Any) -> Optional[OrderStatus]:
    """Return the OrderStatus for value, or None if it is not a stage id."""
    if isinstance(value, OrderStatus):
        return value
    if is_valid_stage(value):
        return OrderStatus(value)
    return None


def stage_title(stage: OrderStatus) -> str:
    return STAGE_TITLES[stage]

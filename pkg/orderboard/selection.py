"""
Selection reconciliation for the order detail panel.

The panel holds a WorkOrder reference. Whenever the store changes the
reference is swapped for the live object with the same id, or cleared if
that order is gone.
"""
from typing import Optional

from .schema import WorkOrder
from .store import OrderStore


class SelectionReconciler:
    """Keeps the inspected order pointing at the store's current object."""

    def __init__(self, store: OrderStore):
        self.store = store
        self.selected: Optional[WorkOrder] = None
        store.add_listener(lambda reason: self.reconcile())

    def select(self, order_id: str) -> Optional[WorkOrder]:
        """Select an order by id (card click). Unknown ids clear the selection."""
        self.selected = self.store.find(order_id)
        return self.selected

    def clear(self) -> None:
        self.selected = None

    def reconcile(self) -> Optional[WorkOrder]:
        if self.selected is not None:
            self.selected = self.store.find(self.selected.id)
        return self.selected

"""
Board event bus: carries board notifications and the error signal to the UI.

The UI subscribes to BOARD_ERROR to show a toast/banner, and may listen to
the others to animate cards or refresh counters.
"""
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

BOARD_LOADED = "board_loaded"        # columns replaced from a fetch
BOARD_ERROR = "board_error"          # fetch or persistence failure (message=...)
ORDER_MOVED = "order_moved"          # optimistic move applied locally
ORDER_CONFIRMED = "order_confirmed"  # remote write accepted the move
ORDER_REVERTED = "order_reverted"    # remote write failed, move rolled back
BOARD_STALE = "board_stale"          # failed write could not be rolled back; re-fetch


class BoardEvents:
    """Routes board events to subscribed callbacks."""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}  # event_type -> callbacks

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        self.subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        callbacks = self.subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event_type: str, **kwargs) -> None:
        """Emit an event to all subscribers. Callback errors are logged, not raised."""
        for callback in list(self.subscribers.get(event_type, [])):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")

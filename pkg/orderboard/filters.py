"""
Board filters: date range presets, free-text search, column grouping.

All functions here are pure. The UI owns the FilterSelection and hands it
in on every change; nothing is persisted.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from .pipeline import PIPELINE
from .schema import Column, WorkOrder, parse_timestamp

FILTER_MODES = ("all", "7days", "30days", "month", "custom")

_PRESET_DAYS = {"7days": 7, "30days": 30}


@dataclass
class DateRange:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass
class FilterSelection:
    """What the operator picked in the filter bar."""
    mode: str = "all"
    custom_from: Optional[datetime] = None
    custom_to: Optional[datetime] = None
    query: str = ""

    def __post_init__(self):
        if self.mode not in FILTER_MODES:
            raise ValueError(f"Invalid filter mode: {self.mode}")


def _start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)


def _end_of_day(d: date) -> datetime:
    return datetime.combine(d, time.max)


def _as_bound(value, end: bool) -> Optional[datetime]:
    """Normalize a custom bound; plain dates cover the whole day."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return parse_timestamp(value)
    if isinstance(value, date):
        return _end_of_day(value) if end else _start_of_day(value)
    return parse_timestamp(value)


def compute_date_range(selection: FilterSelection, now: Optional[datetime] = None) -> Optional[DateRange]:
    """
    Resolve a selection into an inclusive range, or None for "no date filter".

    An incomplete custom range (only one bound) filters nothing rather than
    everything.
    """
    now = now or datetime.now()
    today = now.date()

    if selection.mode in _PRESET_DAYS:
        first = today - timedelta(days=_PRESET_DAYS[selection.mode])
        return DateRange(_start_of_day(first), _end_of_day(today))

    if selection.mode == "month":
        first = today.replace(day=1)
        if first.month == 12:
            next_month = first.replace(year=first.year + 1, month=1)
        else:
            next_month = first.replace(month=first.month + 1)
        return DateRange(_start_of_day(first), _end_of_day(next_month - timedelta(days=1)))

    if selection.mode == "custom":
        start = _as_bound(selection.custom_from, end=False)
        end = _as_bound(selection.custom_to, end=True)
        if start is None or end is None:
            return None
        return DateRange(start, end)

    return None


def _search_fields(order: WorkOrder) -> Iterable[Optional[str]]:
    if order.customer:
        yield order.customer.name
        yield order.customer.phone
    if order.vehicle:
        yield order.vehicle.brand
        yield order.vehicle.model
        yield order.vehicle.license_plate
    yield order.description


def matches_query(order: WorkOrder, query: str) -> bool:
    """Case-insensitive substring match over customer, vehicle and description."""
    needle = query.strip().lower()
    if not needle:
        return True
    return any(value and needle in value.lower() for value in _search_fields(order))


def filter_orders(orders: Iterable[WorkOrder], date_range: Optional[DateRange], query: str = "") -> List[WorkOrder]:
    """Apply the date range (entry_date, else created_at) then the text query."""
    result: List[WorkOrder] = []
    for order in orders:
        if date_range is not None:
            moment = order.effective_date
            if moment is None or not date_range.contains(moment):
                continue
        if query and not matches_query(order, query):
            continue
        result.append(order)
    return result


def group_by_stage(orders: Iterable[WorkOrder]) -> List[Column]:
    """One Column per pipeline stage; stable partition of the input order."""
    columns = {stage: Column(id=stage) for stage in PIPELINE}
    for order in orders:
        columns[order.status].orders.append(order)
    return [columns[stage] for stage in PIPELINE]

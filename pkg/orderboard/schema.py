"""
Work order schema.

WorkOrder is the board's unit of work. Customer, Vehicle and OrderImage are
denormalized reference data carried along for filtering and display; the
board never mutates them. Column groups the orders of one pipeline stage.

Timestamps are held as naive local datetimes so date filters can compare
them against "today" without timezone juggling.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from .pipeline import OrderStatus, stage_title


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 value into a naive local datetime (None if empty/invalid)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Customer:
    id: str = ""
    name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "phone": self.phone, "email": self.email}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Customer"]:
        if not data:
            return None
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            phone=data.get("phone"),
            email=data.get("email"),
        )


@dataclass
class Vehicle:
    id: str = ""
    brand: str = ""
    model: str = ""
    year: Optional[int] = None
    license_plate: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "brand": self.brand,
            "model": self.model,
            "year": self.year,
            "license_plate": self.license_plate,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Vehicle"]:
        if not data:
            return None
        year = data.get("year")
        return cls(
            id=str(data.get("id") or ""),
            brand=data.get("brand") or "",
            model=data.get("model") or "",
            year=int(year) if year not in (None, "") else None,
            license_plate=data.get("license_plate"),
        )


@dataclass
class OrderImage:
    """Photo attached to an order at reception or during the job."""
    url: str
    category: str = "reception"
    description: str = ""
    uploaded_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "category": self.category,
            "description": self.description,
            "uploaded_at": self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderImage":
        return cls(
            url=data.get("url", ""),
            category=data.get("category", "reception"),
            description=data.get("description", ""),
            uploaded_at=data.get("uploaded_at"),
        )


@dataclass
class WorkOrder:
    """One repair job on the board."""

    # Identifiers
    id: str
    status: OrderStatus = OrderStatus.RECEPTION
    organization_id: str = ""

    # Reference data (read-only for the board)
    customer: Optional[Customer] = None
    vehicle: Optional[Vehicle] = None
    images: List[OrderImage] = field(default_factory=list)

    # Scalars owned by other parts of the system
    description: str = ""
    notes: str = ""
    estimated_cost: Optional[float] = None
    total_amount: Optional[float] = None
    assigned_to: Optional[str] = None

    # Timestamps
    entry_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self):
        # Raises ValueError for anything outside the pipeline
        if not isinstance(self.status, OrderStatus):
            self.status = OrderStatus.from_str(str(self.status))

    @property
    def effective_date(self) -> Optional[datetime]:
        """Date used by the board's date filters: entry date, else creation date."""
        return self.entry_date or self.created_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status.value,
            "organization_id": self.organization_id,
            "customer": self.customer.to_dict() if self.customer else None,
            "vehicle": self.vehicle.to_dict() if self.vehicle else None,
            "images": [img.to_dict() for img in self.images],
            "description": self.description,
            "notes": self.notes,
            "estimated_cost": self.estimated_cost,
            "total_amount": self.total_amount,
            "assigned_to": self.assigned_to,
            "entry_date": format_timestamp(self.entry_date),
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "completed_at": format_timestamp(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkOrder":
        """Deserialize from dict.

        Raises ValueError when the id is missing or the status is not one of
        the pipeline stages; callers loading remote data skip such records.
        """
        order_id = data.get("id")
        if not order_id:
            raise ValueError("work order without id")
        status = OrderStatus.from_str(str(data.get("status") or "reception"))

        return cls(
            id=str(order_id),
            status=status,
            organization_id=str(data.get("organization_id") or ""),
            customer=Customer.from_dict(data.get("customer")),
            vehicle=Vehicle.from_dict(data.get("vehicle")),
            images=[OrderImage.from_dict(i) for i in data.get("images") or []],
            description=data.get("description") or "",
            notes=data.get("notes") or "",
            estimated_cost=_float_or_none(data.get("estimated_cost")),
            total_amount=_float_or_none(data.get("total_amount")),
            assigned_to=data.get("assigned_to"),
            entry_date=parse_timestamp(data.get("entry_date")),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            completed_at=parse_timestamp(data.get("completed_at")),
        )


@dataclass
class Column:
    """All orders currently in one stage, in display order."""
    id: OrderStatus
    title: str = ""
    orders: List[WorkOrder] = field(default_factory=list)

    def __post_init__(self):
        # Raises ValueError for anything outside the pipeline
        if not isinstance(self.id, OrderStatus):
            self.id = OrderStatus(self.id)
        if not self.title:
            self.title = stage_title(self.id)

    def index_of(self, order_id: str) -> int:
        """Position of order_id in this column, or -1."""
        for i, order in enumerate(self.orders):
            if order.id == order_id:
                return i
        return -1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id.value,
            "title": self.title,
            "count": len(self.orders),
            "orders": [o.to_dict() for o in self.orders],
        }

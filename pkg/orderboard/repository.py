"""
Work order storage backend (SQLite).

This is the remote store the board reads from and writes statuses to,
served over HTTP by board_server.py. Customer, vehicle and image data are
denormalized into JSON columns; status changes are appended to the
status_history table.
"""
import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .pipeline import COMPLETION_STAGES, OrderStatus
from .schema import WorkOrder, format_timestamp

logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 1000

# Scalar fields that PUT /api/work-orders/<id> may change
EDITABLE_FIELDS = ("description", "notes", "estimated_cost", "total_amount", "assigned_to")


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with WAL mode and dict-like rows."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def new_order_id() -> str:
    return str(uuid.uuid4())


class WorkOrderRepository:
    """SQLite-backed store for work orders."""

    def __init__(self, db_path: str = None):
        """Initialize repository and create tables if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "orderboard" / "orders.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS work_orders (
                    id TEXT PRIMARY KEY,
                    organization_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'reception',
                    customer TEXT,        -- JSON object
                    vehicle TEXT,         -- JSON object
                    images TEXT,          -- JSON list
                    description TEXT DEFAULT '',
                    notes TEXT DEFAULT '',
                    estimated_cost REAL,
                    total_amount REAL,
                    assigned_to TEXT,
                    entry_date TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    completed_at TEXT,
                    deleted_at TEXT
                )
            """)
            self._migrate_columns(conn)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS status_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    order_id TEXT NOT NULL,
                    from_status TEXT NOT NULL,
                    to_status TEXT NOT NULL,
                    changed_by TEXT,
                    timestamp TEXT NOT NULL,
                    FOREIGN KEY (order_id) REFERENCES work_orders(id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_orders_org ON work_orders(organization_id, created_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_orders_status ON work_orders(status)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_history_order ON status_history(order_id)")
            conn.commit()

    def _migrate_columns(self, conn):
        """Add columns introduced after the first release (ignored if present)."""
        new_columns = [
            ("notes", "TEXT DEFAULT ''"),
            ("images", "TEXT"),
            ("deleted_at", "TEXT"),
        ]
        for col_name, col_type in new_columns:
            try:
                conn.execute(f"ALTER TABLE work_orders ADD COLUMN {col_name} {col_type}")
            except sqlite3.OperationalError:
                pass  # Column already exists

    # -------------------- writes --------------------
    def save(self, order: WorkOrder) -> bool:
        """Insert or replace a work order."""
        now = datetime.now()
        if order.created_at is None:
            order.created_at = now
        if order.updated_at is None:
            order.updated_at = now
        data = order.to_dict()
        try:
            with _connect(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO work_orders
                    (id, organization_id, status, customer, vehicle, images,
                     description, notes, estimated_cost, total_amount, assigned_to,
                     entry_date, created_at, updated_at, completed_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        organization_id=excluded.organization_id, status=excluded.status,
                        customer=excluded.customer, vehicle=excluded.vehicle, images=excluded.images,
                        description=excluded.description, notes=excluded.notes,
                        estimated_cost=excluded.estimated_cost, total_amount=excluded.total_amount,
                        assigned_to=excluded.assigned_to, entry_date=excluded.entry_date,
                        created_at=excluded.created_at, updated_at=excluded.updated_at,
                        completed_at=excluded.completed_at
                """, (
                    data["id"],
                    data["organization_id"],
                    data["status"],
                    json.dumps(data["customer"]) if data["customer"] else None,
                    json.dumps(data["vehicle"]) if data["vehicle"] else None,
                    json.dumps(data["images"]),
                    data["description"],
                    data["notes"],
                    data["estimated_cost"],
                    data["total_amount"],
                    data["assigned_to"],
                    data["entry_date"],
                    data["created_at"],
                    data["updated_at"],
                    data["completed_at"],
                ))
                conn.commit()
                return True
        except sqlite3.Error as e:
            logger.error(f"Error saving order {order.id}: {e}")
            return False

    def update_status(self, order_id: str, status: str, changed_by: str = "") -> Optional[WorkOrder]:
        """
        Persist a new stage for order_id and record it in status_history.

        Raises ValueError for a status outside the pipeline. Returns the
        updated order, or None if it does not exist or the write failed.
        """
        new_status = OrderStatus.from_str(status)
        order = self.get(order_id)
        if order is None:
            return None

        now = datetime.now()
        previous = order.status
        order.status = new_status
        order.updated_at = now
        if new_status in COMPLETION_STAGES:
            order.completed_at = now
        try:
            with _connect(self.db_path) as conn:
                conn.execute(
                    "UPDATE work_orders SET status = ?, updated_at = ?, completed_at = ? WHERE id = ?",
                    (new_status.value, format_timestamp(now), format_timestamp(order.completed_at), order_id),
                )
                if previous != new_status:
                    conn.execute(
                        "INSERT INTO status_history (order_id, from_status, to_status, changed_by, timestamp) VALUES (?,?,?,?,?)",
                        (order_id, previous.value, new_status.value, changed_by or None, format_timestamp(now)),
                    )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error updating status of {order_id}: {e}")
            return None
        return order

    def update_fields(self, order_id: str, fields: Dict[str, Any], changed_by: str = "") -> Optional[WorkOrder]:
        """Update editable scalar fields (and status, if present)."""
        order = self.get(order_id)
        if order is None:
            return None
        if "status" in fields:
            order = self.update_status(order_id, fields["status"], changed_by=changed_by)
            if order is None:
                return None
        for name in EDITABLE_FIELDS:
            if name in fields:
                setattr(order, name, fields[name])
        order.updated_at = datetime.now()
        return order if self.save(order) else None

    def soft_delete(self, order_id: str) -> bool:
        """Hide an order from every listing without dropping its history."""
        try:
            with _connect(self.db_path) as conn:
                cur = conn.execute(
                    "UPDATE work_orders SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                    (format_timestamp(datetime.now()), order_id),
                )
                conn.commit()
                return cur.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Error deleting order {order_id}: {e}")
            return False

    # -------------------- reads --------------------
    def get(self, order_id: str) -> Optional[WorkOrder]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT * FROM work_orders WHERE id = ? AND deleted_at IS NULL",
                    (order_id,),
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error retrieving order {order_id}: {e}")
            return None
        return self._row_to_order(row) if row else None

    def list_for_organization(self, organization_id: str, limit: int = DEFAULT_FETCH_LIMIT) -> List[WorkOrder]:
        """Active orders of one organization, newest first."""
        try:
            with _connect(self.db_path) as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM work_orders
                    WHERE organization_id = ? AND deleted_at IS NULL
                    ORDER BY created_at DESC
                    LIMIT ?
                    """,
                    (organization_id, limit),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Error listing orders for {organization_id}: {e}")
            raise
        orders = []
        for row in rows:
            try:
                orders.append(self._row_to_order(row))
            except ValueError as e:
                logger.warning(f"Skipping order {row['id']}: {e}")
        return orders

    def get_history(self, order_id: str) -> List[Dict[str, Any]]:
        """Status changes of one order, oldest first."""
        with _connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT from_status, to_status, changed_by, timestamp FROM status_history WHERE order_id = ? ORDER BY id ASC",
                (order_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_stats(self, organization_id: str) -> Dict[str, Any]:
        """Order counts per status for one organization."""
        stats = {"by_status": {}, "total": 0}
        try:
            with _connect(self.db_path) as conn:
                for row in conn.execute(
                    "SELECT status, COUNT(*) FROM work_orders WHERE organization_id = ? AND deleted_at IS NULL GROUP BY status",
                    (organization_id,),
                ):
                    stats["by_status"][row[0]] = row[1]
                    stats["total"] += row[1]
        except sqlite3.Error as e:
            logger.error(f"Error getting stats: {e}")
        return stats

    def _row_to_order(self, row: sqlite3.Row) -> WorkOrder:
        data = dict(row)
        for key in ("customer", "vehicle", "images"):
            if data.get(key):
                try:
                    data[key] = json.loads(data[key])
                except (json.JSONDecodeError, TypeError):
                    data[key] = None
        return WorkOrder.from_dict(data)

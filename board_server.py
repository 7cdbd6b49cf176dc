#!/usr/bin/env python3
"""
Order Board Server
------------------
JSON API over the SQLite work order repository. This is the persistence
collaborator the board's HttpOrdersClient talks to.

Usage:
    python board_server.py --port 3000 --db /path/to/orders.db

API:
    GET /api/work-orders?organization_id=ORG   → { success, data: [orders] }
    GET /api/work-orders/<id>                  → { success, data: order }
    PUT /api/work-orders/<id>/status           → body { status }
                                                 { success, data: order }
    PUT /api/work-orders/<id>                  → body { description, notes,
                                                 estimated_cost, total_amount,
                                                 assigned_to, status }
    GET /api/work-orders/<id>/history          → { success, data: [changes] }
    GET /api/board?organization_id=ORG&filter=7days&q=honda
                                               → { success, data: { columns, counts, total } }
    GET /health
"""

import logging
import os
from datetime import date

from flask import Flask, jsonify, request

from pkg.orderboard.config import BoardConfig, setup_logging
from pkg.orderboard.filters import FILTER_MODES, FilterSelection, compute_date_range, filter_orders
from pkg.orderboard.pipeline import is_valid_stage
from pkg.orderboard.repository import EDITABLE_FIELDS, WorkOrderRepository
from pkg.orderboard.schema import parse_timestamp
from pkg.orderboard.store import OrderStore

logger = logging.getLogger("board_server")

app = Flask(__name__)


# ── Config ───────────────────────────────────────────────────────────────────

def get_config() -> BoardConfig:
    return BoardConfig.load(os.environ.get("ORDERBOARD_CONFIG"))


def get_repository() -> WorkOrderRepository:
    return WorkOrderRepository(get_config().db_path)


def fail(error: str, code: int):
    return jsonify({"success": False, "error": error}), code


def _parse_bound(value):
    """Query-string bound: YYYY-MM-DD means the whole day, else full ISO timestamp."""
    if not value:
        return None
    if len(value) == 10:
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    return parse_timestamp(value)


# ── Routes ───────────────────────────────────────────────────────────────────

@app.route("/api/work-orders", methods=["GET"])
def api_list_orders():
    organization_id = request.args.get("organization_id", "").strip()
    if not organization_id:
        return fail("organization_id is required", 400)
    try:
        orders = get_repository().list_for_organization(organization_id, limit=get_config().fetch_limit)
    except Exception as e:
        logger.error(f"list orders failed: {e}")
        return fail(str(e), 500)
    return jsonify({"success": True, "data": [o.to_dict() for o in orders]})


@app.route("/api/work-orders/<order_id>", methods=["GET"])
def api_get_order(order_id):
    order = get_repository().get(order_id)
    if not order:
        return fail("Work order not found", 404)
    return jsonify({"success": True, "data": order.to_dict()})


@app.route("/api/work-orders/<order_id>/status", methods=["PUT"])
def api_update_status(order_id):
    """Move an order to a new stage."""
    data = request.get_json(force=True, silent=True) or {}
    status = str(data.get("status", "")).strip().lower()
    if not status:
        return fail("status is required", 400)
    if not is_valid_stage(status):
        return fail(f"Invalid status: {status}", 400)

    repo = get_repository()
    if repo.get(order_id) is None:
        return fail("Work order not found", 404)
    order = repo.update_status(order_id, status, changed_by=data.get("changed_by", "api"))
    if order is None:
        return fail("Failed to update order status", 500)
    logger.info(f"Order {order_id} → {status}")
    return jsonify({"success": True, "data": order.to_dict()})


@app.route("/api/work-orders/<order_id>", methods=["PUT"])
def api_update_order(order_id):
    """Update scalar fields of an order."""
    data = request.get_json(force=True, silent=True) or {}
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS or k == "status"}
    if not fields:
        return fail(f"Nothing to update; editable fields: {', '.join(EDITABLE_FIELDS)}, status", 400)
    if "status" in fields and not is_valid_stage(fields["status"]):
        return fail(f"Invalid status: {fields['status']}", 400)

    repo = get_repository()
    if repo.get(order_id) is None:
        return fail("Work order not found", 404)
    order = repo.update_fields(order_id, fields, changed_by=data.get("changed_by", "api"))
    if order is None:
        return fail("Failed to update work order", 500)
    return jsonify({"success": True, "data": order.to_dict()})


@app.route("/api/work-orders/<order_id>/history", methods=["GET"])
def api_order_history(order_id):
    repo = get_repository()
    if repo.get(order_id) is None:
        return fail("Work order not found", 404)
    return jsonify({"success": True, "data": repo.get_history(order_id)})


@app.route("/api/board", methods=["GET"])
def api_board():
    """Server-side grouped board, same filters as the client board."""
    organization_id = request.args.get("organization_id", "").strip()
    if not organization_id:
        return fail("organization_id is required", 400)
    mode = request.args.get("filter", "all")
    if mode not in FILTER_MODES:
        return fail(f"filter must be one of {', '.join(FILTER_MODES)}", 400)

    selection = FilterSelection(
        mode=mode,
        custom_from=_parse_bound(request.args.get("from")),
        custom_to=_parse_bound(request.args.get("to")),
        query=request.args.get("q", ""),
    )
    orders = get_repository().list_for_organization(organization_id, limit=get_config().fetch_limit)
    visible = filter_orders(orders, compute_date_range(selection), selection.query)
    return jsonify({"success": True, "data": OrderStore(visible).to_dict()})


@app.route("/health")
def health():
    return jsonify({"status": "ok", "db": get_config().db_path})


# ── Main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Order Board Server")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--host", help="Bind address (overrides config)")
    parser.add_argument("--port", type=int, help="Port (overrides config)")
    parser.add_argument("--db", help="Path to orders.db (overrides ORDERBOARD_DB env var)")
    args = parser.parse_args()

    if args.config:
        os.environ["ORDERBOARD_CONFIG"] = args.config
    if args.db:
        os.environ["ORDERBOARD_DB"] = args.db

    cfg = get_config()
    setup_logging(cfg, "board_server")
    host = args.host or cfg.host
    port = args.port or cfg.port
    logger.info(f"Serving {cfg.db_path} on http://{host}:{port}")

    app.run(host=host, port=port, debug=False, threaded=True)

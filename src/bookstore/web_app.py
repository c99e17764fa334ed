from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from flask import Flask, jsonify, request

from .config import AppConfig, ConfigError, configure_logging, load_config
from .db import Db
from .errors import BookstoreError, InternalError, ValidationError
from .repositories.book_repo import BookRepository
from .repositories.customer_repo import CustomerRepository
from .repositories.line_item_repo import LineItemRepository
from .repositories.order_log_repo import OrderLogRepository
from .repositories.order_repo import OrderRepository
from .repositories.payment_repo import PaymentRepository
from .services.order_service import OrderService, parse_place_order

logger = logging.getLogger(__name__)

app = Flask(__name__)

db: Db | None = None
order_service: OrderService | None = None


def build_order_service() -> OrderService:
    return OrderService(
        customer_repo=CustomerRepository(),
        book_repo=BookRepository(),
        order_repo=OrderRepository(),
        line_item_repo=LineItemRepository(),
        payment_repo=PaymentRepository(),
        order_log_repo=OrderLogRepository(),
    )


def init_app(cfg: AppConfig) -> Flask:
    global db, order_service
    db = Db(cfg.db, cfg.pool)
    db.open()
    order_service = build_order_service()
    return app


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _json_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _to_json(row: dict) -> dict:
    return {_camel(k): _json_value(v) for k, v in row.items()}


def _error(e: BookstoreError):
    return jsonify(error=str(e)), e.http_status


def _internal(action: str):
    logger.exception("Failed to %s", action)
    return _error(InternalError(f"Failed to {action}"))


def _unavailable():
    return jsonify(error="Database not connected"), 503


@app.route("/health")
def health():
    if db is None:
        return jsonify(status="degraded", database="not connected"), 503
    ok = db.ping()
    return jsonify(status="ok" if ok else "degraded", database="ok" if ok else "failed"), (200 if ok else 503)


@app.route("/orders", methods=["POST"])
def orders_create():
    if db is None or order_service is None:
        return _unavailable()
    try:
        order = parse_place_order(request.get_json(silent=True))
        with db.transaction() as conn:
            placed = order_service.place_order(conn, order)
        return jsonify(orderId=placed.order_id, totalAmount=float(placed.total_amount)), 201
    except BookstoreError as e:
        return _error(e)
    except Exception:
        return _internal("place order")


@app.route("/orders")
def orders_list():
    if db is None or order_service is None:
        return _unavailable()
    limit = request.args.get("limit", 50, type=int)
    try:
        with db.session() as conn:
            rows = order_service.list_orders(conn, limit=limit)
        return jsonify([_to_json(r) for r in rows])
    except BookstoreError as e:
        return _error(e)
    except Exception:
        return _internal("fetch orders")


@app.route("/orders/<int:order_id>/details")
def orders_details(order_id: int):
    if db is None or order_service is None:
        return _unavailable()
    try:
        with db.session() as conn:
            rows = order_service.order_details(conn, order_id)
        return jsonify([_to_json(r) for r in rows])
    except BookstoreError as e:
        return _error(e)
    except Exception:
        return _internal("fetch order details")


@app.route("/orders/<int:order_id>/status", methods=["PUT"])
def orders_status(order_id: int):
    if db is None or order_service is None:
        return _unavailable()
    body = request.get_json(silent=True) or {}
    status = body.get("status") if isinstance(body, dict) else None
    if not status:
        return _error(ValidationError("Valid order ID and status are required"))
    try:
        with db.transaction() as conn:
            new_status = order_service.update_status(conn, order_id=order_id, status=status)
        return jsonify(orderId=order_id, status=new_status)
    except BookstoreError as e:
        return _error(e)
    except Exception:
        return _internal("update order status")


@app.route("/customers/<int:customer_id>/orders")
def customer_orders(customer_id: int):
    if db is None or order_service is None:
        return _unavailable()
    try:
        with db.session() as conn:
            rows = order_service.customer_orders(conn, customer_id)
        return jsonify([_to_json(r) for r in rows])
    except BookstoreError as e:
        return _error(e)
    except Exception:
        return _internal("fetch customer orders")


def serve() -> int:
    try:
        cfg = load_config()
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        return 2
    configure_logging(cfg.log_level)
    try:
        init_app(cfg)
    except BookstoreError as e:
        logger.error("Database connection failed: %s", e)
        return 3
    try:
        app.run(debug=cfg.server.debug, host=cfg.server.host, port=cfg.server.port)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(serve())

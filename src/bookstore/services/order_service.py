from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from psycopg import Connection

from ..domain import (
    ALLOWED_TRANSITIONS,
    ORDER_STATUSES,
    PAYMENT_METHODS,
    AuditLogEntry,
    Payment,
)
from ..errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..repositories.book_repo import BookRepository
from ..repositories.customer_repo import CustomerRepository
from ..repositories.line_item_repo import LineItemRepository
from ..repositories.order_log_repo import OrderLogRepository
from ..repositories.order_repo import OrderRepository
from ..repositories.payment_repo import PaymentRepository

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 500


@dataclass
class OrderItemInput:
    book_id: int
    quantity: int


@dataclass
class PlaceOrderInput:
    customer_id: int
    items: list[OrderItemInput]
    payment_method: str


@dataclass(frozen=True)
class PlacedOrder:
    order_id: int
    total_amount: Decimal


def _positive_int(value: object, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer.")
    if isinstance(value, int):
        n = value
    elif isinstance(value, str) and re.fullmatch(r"-?[0-9]+", value.strip()):
        n = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer.")
    if n <= 0:
        raise ValidationError(f"{field} must be > 0.")
    return n


def validate_place_order(order: PlaceOrderInput) -> PlaceOrderInput:
    """Check an order request without touching the database.

    Lines for the same book are merged, so each book is reserved once, and
    items come back sorted by book id so concurrent orders lock book rows in
    the same order.
    """
    customer_id = _positive_int(order.customer_id, "customerId")
    if not order.items:
        raise ValidationError("Order must contain at least one item.")
    if order.payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method. Must be one of: {', '.join(PAYMENT_METHODS)}"
        )

    merged: dict[int, int] = {}
    for item in order.items:
        book_id = _positive_int(item.book_id, "bookId")
        qty = _positive_int(item.quantity, "quantity")
        merged[book_id] = merged.get(book_id, 0) + qty

    return PlaceOrderInput(
        customer_id=customer_id,
        items=[OrderItemInput(book_id=b, quantity=q) for b, q in sorted(merged.items())],
        payment_method=order.payment_method,
    )


def parse_place_order(payload: object) -> PlaceOrderInput:
    """Build a validated PlaceOrderInput from a ``POST /orders`` JSON body."""
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object.")

    customer_id = payload.get("customerId")
    items = payload.get("items")
    payment_method = payload.get("paymentMethod")
    if customer_id is None or not items or not isinstance(items, list) or not payment_method:
        raise ValidationError("Customer ID, items array, and payment method are required")

    parsed: list[OrderItemInput] = []
    for item in items:
        if not isinstance(item, Mapping) or item.get("bookId") is None or item.get("quantity") is None:
            raise ValidationError("Each item must have bookId and quantity > 0")
        parsed.append(OrderItemInput(book_id=item["bookId"], quantity=item["quantity"]))

    return validate_place_order(
        PlaceOrderInput(customer_id=customer_id, items=parsed, payment_method=str(payment_method))
    )


def _check_limit(limit: int) -> int:
    if not 1 <= limit <= MAX_LIST_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIST_LIMIT}.")
    return limit


class OrderService:
    def __init__(
        self,
        *,
        customer_repo: CustomerRepository,
        book_repo: BookRepository,
        order_repo: OrderRepository,
        line_item_repo: LineItemRepository,
        payment_repo: PaymentRepository,
        order_log_repo: OrderLogRepository,
    ) -> None:
        self.customer_repo = customer_repo
        self.book_repo = book_repo
        self.order_repo = order_repo
        self.line_item_repo = line_item_repo
        self.payment_repo = payment_repo
        self.order_log_repo = order_log_repo

    def place_order(self, conn: Connection, order: PlaceOrderInput) -> PlacedOrder:
        """Create an order with all its lines, one payment and one log entry.

        Must run inside a single ``Db.transaction()``: any error raised here
        rolls back every line already reserved.
        """
        order = validate_place_order(order)

        if not self.customer_repo.exists(conn, order.customer_id):
            raise NotFoundError(f"Unknown customer_id={order.customer_id}")

        order_id = self.order_repo.create(conn, customer_id=order.customer_id)

        total = Decimal("0.00")
        for item in order.items:
            price = self.book_repo.reserve_stock(conn, book_id=item.book_id, qty=item.quantity)
            if price is None:
                if self.book_repo.get(conn, item.book_id) is None:
                    raise NotFoundError(f"Unknown book_id={item.book_id}")
                logger.warning(
                    "Rejected order for customer_id=%s: book_id=%s has less than %s in stock",
                    order.customer_id,
                    item.book_id,
                    item.quantity,
                )
                raise InsufficientStockError(item.book_id, item.quantity)

            self.line_item_repo.add(
                conn,
                order_id=order_id,
                book_id=item.book_id,
                quantity=item.quantity,
                unit_price=price,
            )
            total += price * item.quantity

        self.payment_repo.create(conn, order_id=order_id, method=order.payment_method, amount=total)
        self.order_log_repo.append(conn, order_id=order_id, payment_method=order.payment_method)

        logger.info(
            "Placed order_id=%s customer_id=%s lines=%s total=%s method=%s",
            order_id,
            order.customer_id,
            len(order.items),
            total,
            order.payment_method,
        )
        return PlacedOrder(order_id=order_id, total_amount=total)

    def update_status(self, conn: Connection, *, order_id: int, status: str) -> str:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")

        current = self.order_repo.get(conn, order_id, for_update=True)
        if current is None:
            raise NotFoundError(f"Unknown order_id={order_id}")
        if current.status == status:
            return status
        if status not in ALLOWED_TRANSITIONS.get(current.status, ()):
            raise InvalidTransitionError(
                f"Cannot move order_id={order_id} from {current.status} to {status}."
            )

        if status == "Cancelled":
            for line in self.line_item_repo.list_for_order(conn, order_id):
                self.book_repo.release_stock(conn, book_id=line.book_id, qty=line.quantity)

        self.order_repo.set_status(conn, order_id=order_id, status=status)
        logger.info("Order order_id=%s: %s -> %s", order_id, current.status, status)
        return status

    def order_details(self, conn: Connection, order_id: int) -> list[dict]:
        if self.order_repo.get(conn, order_id) is None:
            raise NotFoundError(f"Unknown order_id={order_id}")
        return self.line_item_repo.details_for_order(conn, order_id)

    def list_orders(self, conn: Connection, limit: int = 50) -> list[dict]:
        return self.order_repo.list_summaries(conn, limit=_check_limit(limit))

    def customer_orders(self, conn: Connection, customer_id: int) -> list[dict]:
        if not self.customer_repo.exists(conn, customer_id):
            raise NotFoundError(f"Unknown customer_id={customer_id}")
        return self.order_repo.list_for_customer(conn, customer_id)

    def order_payment(self, conn: Connection, order_id: int) -> Payment:
        payment = self.payment_repo.get_for_order(conn, order_id)
        if payment is None:
            raise NotFoundError(f"No payment for order_id={order_id}")
        return payment

    def order_audit_trail(self, conn: Connection, order_id: int) -> list[AuditLogEntry]:
        return self.order_log_repo.list_for_order(conn, order_id)

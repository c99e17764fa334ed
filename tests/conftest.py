from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from bookstore.domain import AuditLogEntry, Book, Order, OrderLineItem, Payment
from bookstore.services.order_service import OrderService


class FakeConn:
    """Stands in for a psycopg connection; collects undo steps for rollback."""

    def __init__(self) -> None:
        self.undo: list = []


class FakeStore:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.authors = {1: "Paulo Coelho", 2: "Saadat Hasan Manto"}
        self.customers = {1: "Ali Khan", 2: "Sara Ahmed"}
        self.books: dict[int, dict] = {}
        self.orders: dict[int, dict] = {}
        self.lines: dict[int, dict] = {}
        self.payments: dict[int, dict] = {}
        self.logs: dict[int, dict] = {}
        self._ids = {name: itertools.count(1) for name in ("order", "line", "payment", "log")}

    def next_id(self, table: str) -> int:
        return next(self._ids[table])

    def add_book(self, book_id: int, title: str, price: str, stock: int, author_id: int = 1) -> None:
        self.books[book_id] = {
            "title": title,
            "author_id": author_id,
            "price": Decimal(price),
            "stock": stock,
        }

    def insert(self, conn: FakeConn, table: dict, row_id: int, row: dict) -> None:
        table[row_id] = row
        conn.undo.append(lambda: table.pop(row_id, None))


class FakeCustomerRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def exists(self, conn, customer_id):
        return customer_id in self.store.customers


class FakeBookRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def get(self, conn, book_id):
        b = self.store.books.get(book_id)
        if b is None:
            return None
        return Book(id=book_id, title=b["title"], author_id=b["author_id"], price=b["price"], stock=b["stock"])

    def list(self, conn, limit=50):
        return [self.get(conn, i) for i in sorted(self.store.books)][:limit]

    def reserve_stock(self, conn, *, book_id, qty):
        with self.store.lock:
            b = self.store.books.get(book_id)
            if b is None or b["stock"] < qty:
                return None
            b["stock"] -= qty
        conn.undo.append(lambda: self._add(book_id, qty))
        return b["price"]

    def release_stock(self, conn, *, book_id, qty):
        self._add(book_id, qty)
        conn.undo.append(lambda: self._add(book_id, -qty))

    def _add(self, book_id, qty):
        with self.store.lock:
            self.store.books[book_id]["stock"] += qty


class FakeOrderRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def create(self, conn, *, customer_id):
        with self.store.lock:
            order_id = self.store.next_id("order")
            self.store.insert(
                conn,
                self.store.orders,
                order_id,
                {"customer_id": customer_id, "created_at": datetime.now(timezone.utc), "status": "Pending"},
            )
        return order_id

    def get(self, conn, order_id, *, for_update=False):
        o = self.store.orders.get(order_id)
        if o is None:
            return None
        return Order(id=order_id, customer_id=o["customer_id"], created_at=o["created_at"], status=o["status"])

    def set_status(self, conn, *, order_id, status):
        o = self.store.orders[order_id]
        previous = o["status"]
        o["status"] = status
        conn.undo.append(lambda: o.__setitem__("status", previous))

    def list_summaries(self, conn, limit=50):
        rows = []
        for order_id in sorted(self.store.orders, reverse=True)[:limit]:
            o = self.store.orders[order_id]
            total = sum(
                (ln["quantity"] * ln["unit_price"] for ln in self.store.lines.values() if ln["order_id"] == order_id),
                Decimal("0.00"),
            )
            rows.append(
                {
                    "order_id": order_id,
                    "customer_name": self.store.customers[o["customer_id"]],
                    "created_at": o["created_at"],
                    "total_amount": total,
                    "status": o["status"],
                }
            )
        return rows

    def list_for_customer(self, conn, customer_id):
        rows = []
        for order_id, o in sorted(self.store.orders.items(), reverse=True):
            if o["customer_id"] != customer_id:
                continue
            pay = next((p for p in self.store.payments.values() if p["order_id"] == order_id), None)
            rows.append(
                {
                    "order_id": order_id,
                    "created_at": o["created_at"],
                    "status": o["status"],
                    "payment_method": pay["method"] if pay else None,
                    "amount": pay["amount"] if pay else None,
                }
            )
        return rows


class FakeLineItemRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def add(self, conn, *, order_id, book_id, quantity, unit_price):
        with self.store.lock:
            line_id = self.store.next_id("line")
            self.store.insert(
                conn,
                self.store.lines,
                line_id,
                {"order_id": order_id, "book_id": book_id, "quantity": quantity, "unit_price": unit_price},
            )
        return line_id

    def list_for_order(self, conn, order_id):
        return [
            OrderLineItem(id=i, **ln)
            for i, ln in sorted(self.store.lines.items())
            if ln["order_id"] == order_id
        ]

    def details_for_order(self, conn, order_id):
        rows = []
        for ln in self.list_for_order(conn, order_id):
            book = self.store.books[ln.book_id]
            rows.append(
                {
                    "order_detail_id": ln.id,
                    "order_id": ln.order_id,
                    "book_id": ln.book_id,
                    "title": book["title"],
                    "author_name": self.store.authors[book["author_id"]],
                    "quantity": ln.quantity,
                    "unit_price": ln.unit_price,
                    "line_total": ln.quantity * ln.unit_price,
                }
            )
        return rows


class FakePaymentRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def create(self, conn, *, order_id, method, amount):
        with self.store.lock:
            payment_id = self.store.next_id("payment")
            self.store.insert(
                conn,
                self.store.payments,
                payment_id,
                {"order_id": order_id, "method": method, "amount": amount, "paid_at": datetime.now(timezone.utc)},
            )
        return payment_id

    def get_for_order(self, conn, order_id):
        for payment_id, p in self.store.payments.items():
            if p["order_id"] == order_id:
                return Payment(id=payment_id, **p)
        return None


class FakeOrderLogRepository:
    def __init__(self, store: FakeStore) -> None:
        self.store = store

    def append(self, conn, *, order_id, payment_method):
        with self.store.lock:
            log_id = self.store.next_id("log")
            self.store.insert(
                conn,
                self.store.logs,
                log_id,
                {"order_id": order_id, "payment_method": payment_method, "logged_at": datetime.now(timezone.utc)},
            )
        return log_id

    def list_for_order(self, conn, order_id):
        return [AuditLogEntry(id=i, **e) for i, e in sorted(self.store.logs.items()) if e["order_id"] == order_id]


class FakeDb:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def session(self):
        yield FakeConn()

    @contextmanager
    def transaction(self):
        conn = FakeConn()
        try:
            yield conn
        except Exception:
            for step in reversed(conn.undo):
                step()
            self.rollbacks += 1
            raise
        self.commits += 1

    def ping(self) -> bool:
        return True


@pytest.fixture
def store() -> FakeStore:
    s = FakeStore()
    s.add_book(1, "Mottled Dawn", "1200.00", 30, author_id=2)
    s.add_book(4, "The Alchemist", "900.00", 100, author_id=1)
    return s


@pytest.fixture
def service(store: FakeStore) -> OrderService:
    return OrderService(
        customer_repo=FakeCustomerRepository(store),
        book_repo=FakeBookRepository(store),
        order_repo=FakeOrderRepository(store),
        line_item_repo=FakeLineItemRepository(store),
        payment_repo=FakePaymentRepository(store),
        order_log_repo=FakeOrderLogRepository(store),
    )


@pytest.fixture
def db() -> FakeDb:
    return FakeDb()

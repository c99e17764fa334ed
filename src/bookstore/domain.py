from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional, get_args

OrderStatus = Literal["Pending", "Completed", "Cancelled"]
PaymentMethod = Literal["SadaPay", "EasyPaisa", "JazzCash", "Card", "Cash"]

ORDER_STATUSES: tuple[str, ...] = get_args(OrderStatus)
PAYMENT_METHODS: tuple[str, ...] = get_args(PaymentMethod)

# current status -> statuses it may move to
ALLOWED_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "Pending": ("Completed", "Cancelled"),
    "Completed": (),
    "Cancelled": (),
}


@dataclass(frozen=True)
class Book:
    id: int
    title: str
    author_id: int
    price: Decimal
    stock: int


@dataclass(frozen=True)
class Order:
    id: int
    customer_id: int
    created_at: datetime
    status: OrderStatus


@dataclass(frozen=True)
class OrderLineItem:
    id: int
    order_id: int
    book_id: int
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class Payment:
    id: int
    order_id: int
    method: PaymentMethod
    amount: Decimal
    paid_at: datetime


@dataclass(frozen=True)
class AuditLogEntry:
    id: int
    order_id: int
    payment_method: PaymentMethod
    logged_at: Optional[datetime]

from __future__ import annotations

from .db import Db
from .domain import ORDER_STATUSES, PAYMENT_METHODS
from .errors import BookstoreError, ValidationError
from .repositories.book_repo import BookRepository
from .services.order_service import (
    OrderItemInput,
    OrderService,
    PlaceOrderInput,
    validate_place_order,
)


def _prompt(msg: str) -> str:
    return input(msg).strip()


def _prompt_int(msg: str) -> int:
    raw = _prompt(msg)
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Not a number: {raw!r}") from None


def run_cli(db: Db, service: OrderService, book_repo: BookRepository) -> None:
    while True:
        print("\n=== Bookstore CLI ===")
        print("1) List books (stock)")
        print("2) Place order (single transaction)")
        print("3) Show order details")
        print("4) Update order status")
        print("5) List recent orders")
        print("6) List orders of a customer")
        print("0) Exit")

        choice = _prompt("> ")
        try:
            if choice == "0":
                return

            elif choice == "1":
                with db.session() as conn:
                    books = book_repo.list(conn, limit=50)
                for b in books:
                    print(f"#{b.id} {b.title} price={b.price} stock={b.stock}")

            elif choice == "2":
                customer_id = _prompt_int("customer_id: ")
                items: list[OrderItemInput] = []
                while True:
                    add = _prompt("Add book? (y/n): ").lower()
                    if add != "y":
                        break
                    book_id = _prompt_int("  book_id: ")
                    qty = _prompt_int("  quantity: ")
                    items.append(OrderItemInput(book_id=book_id, quantity=qty))
                method = _prompt(f"payment method ({'/'.join(PAYMENT_METHODS)}): ")

                order = validate_place_order(
                    PlaceOrderInput(customer_id=customer_id, items=items, payment_method=method)
                )
                with db.transaction() as conn:
                    placed = service.place_order(conn, order)
                print(f"Placed order_id={placed.order_id} total={placed.total_amount}")

            elif choice == "3":
                order_id = _prompt_int("order_id: ")
                with db.session() as conn:
                    lines = service.order_details(conn, order_id)
                    payment = service.order_payment(conn, order_id)
                    trail = service.order_audit_trail(conn, order_id)
                for ln in lines:
                    print(
                        f'  {ln["title"]} by {ln["author_name"]} qty={ln["quantity"]} '
                        f'unit={ln["unit_price"]} line={ln["line_total"]}'
                    )
                print(f"  paid {payment.amount} via {payment.method} at {payment.paid_at:%Y-%m-%d %H:%M}")
                for entry in trail:
                    print(f"  log#{entry.id} {entry.payment_method} {entry.logged_at}")

            elif choice == "4":
                order_id = _prompt_int("order_id: ")
                status = _prompt(f"status ({'/'.join(ORDER_STATUSES)}): ")
                with db.transaction() as conn:
                    new_status = service.update_status(conn, order_id=order_id, status=status)
                print(f"order_id={order_id} is now {new_status}")

            elif choice == "5":
                with db.session() as conn:
                    rows = service.list_orders(conn, limit=30)
                for r in rows:
                    print(
                        f'order#{r["order_id"]} {r["created_at"]:%Y-%m-%d} status={r["status"]} '
                        f'customer={r["customer_name"]} total={r["total_amount"]}'
                    )

            elif choice == "6":
                customer_id = _prompt_int("customer_id: ")
                with db.session() as conn:
                    rows = service.customer_orders(conn, customer_id)
                for r in rows:
                    print(f'order#{r["order_id"]} status={r["status"]} {r["payment_method"]} amount={r["amount"]}')

            else:
                print("Unknown choice.")

        except ValidationError as e:
            print(f"[INPUT ERROR] {e}")
        except BookstoreError as e:
            print(f"[{type(e).__name__}] {e}")

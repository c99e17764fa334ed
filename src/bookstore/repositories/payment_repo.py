from __future__ import annotations

from decimal import Decimal

from psycopg import Connection

from ..domain import Payment


class PaymentRepository:
    def create(self, conn: Connection, *, order_id: int, method: str, amount: Decimal) -> int:
        cur = conn.execute(
            """
            INSERT INTO payment(order_id, method, amount)
            VALUES (%s, %s, %s)
            RETURNING id;
            """,
            (order_id, method, amount),
        )
        return int(cur.fetchone()[0])

    def get_for_order(self, conn: Connection, order_id: int) -> Payment | None:
        cur = conn.execute(
            "SELECT id, order_id, method, amount, paid_at FROM payment WHERE order_id = %s;",
            (order_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        cols = [d.name for d in cur.description]
        return Payment(**dict(zip(cols, row)))

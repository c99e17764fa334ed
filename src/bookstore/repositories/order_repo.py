from __future__ import annotations

from psycopg import Connection

from ..domain import Order


class OrderRepository:
    def create(self, conn: Connection, *, customer_id: int) -> int:
        cur = conn.execute(
            """
            INSERT INTO customer_order(customer_id)
            VALUES (%s)
            RETURNING id;
            """,
            (customer_id,),
        )
        return int(cur.fetchone()[0])

    def get(self, conn: Connection, order_id: int, *, for_update: bool = False) -> Order | None:
        sql = "SELECT id, customer_id, created_at, status FROM customer_order WHERE id = %s"
        if for_update:
            sql += " FOR UPDATE"
        cur = conn.execute(sql + ";", (order_id,))
        row = cur.fetchone()
        if not row:
            return None
        cols = [d.name for d in cur.description]
        return Order(**dict(zip(cols, row)))

    def set_status(self, conn: Connection, *, order_id: int, status: str) -> None:
        conn.execute(
            "UPDATE customer_order SET status = %s WHERE id = %s;",
            (status, order_id),
        )

    def list_summaries(self, conn: Connection, limit: int = 50) -> list[dict]:
        cur = conn.execute(
            """
            SELECT order_id, customer_name, created_at, total_amount, status
            FROM v_order_summary
            ORDER BY created_at DESC, order_id DESC
            LIMIT %s;
            """,
            (limit,),
        )
        cols = [d.name for d in cur.description]
        return [dict(zip(cols, row)) for row in cur.fetchall()]

    def list_for_customer(self, conn: Connection, customer_id: int) -> list[dict]:
        cur = conn.execute(
            """
            SELECT o.id AS order_id, o.created_at, o.status, p.method AS payment_method, p.amount
            FROM customer_order o
            LEFT JOIN payment p ON p.order_id = o.id
            WHERE o.customer_id = %s
            ORDER BY o.created_at DESC, o.id DESC;
            """,
            (customer_id,),
        )
        cols = [d.name for d in cur.description]
        return [dict(zip(cols, row)) for row in cur.fetchall()]

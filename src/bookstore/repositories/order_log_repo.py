from __future__ import annotations

from psycopg import Connection

from ..domain import AuditLogEntry


class OrderLogRepository:
    """Append-only audit trail: one row per placed order."""

    def append(self, conn: Connection, *, order_id: int, payment_method: str) -> int:
        cur = conn.execute(
            """
            INSERT INTO order_log(order_id, payment_method)
            VALUES (%s, %s)
            RETURNING id;
            """,
            (order_id, payment_method),
        )
        return int(cur.fetchone()[0])

    def list_for_order(self, conn: Connection, order_id: int) -> list[AuditLogEntry]:
        cur = conn.execute(
            """
            SELECT id, order_id, payment_method, logged_at
            FROM order_log
            WHERE order_id = %s
            ORDER BY id;
            """,
            (order_id,),
        )
        cols = [d.name for d in cur.description]
        return [AuditLogEntry(**dict(zip(cols, row))) for row in cur.fetchall()]

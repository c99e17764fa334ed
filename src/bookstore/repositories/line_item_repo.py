from __future__ import annotations

from decimal import Decimal

from psycopg import Connection

from ..domain import OrderLineItem


class LineItemRepository:
    def add(self, conn: Connection, *, order_id: int, book_id: int, quantity: int, unit_price: Decimal) -> int:
        cur = conn.execute(
            """
            INSERT INTO order_line_item(order_id, book_id, quantity, unit_price)
            VALUES (%s, %s, %s, %s)
            RETURNING id;
            """,
            (order_id, book_id, quantity, unit_price),
        )
        return int(cur.fetchone()[0])

    def list_for_order(self, conn: Connection, order_id: int) -> list[OrderLineItem]:
        cur = conn.execute(
            """
            SELECT id, order_id, book_id, quantity, unit_price
            FROM order_line_item
            WHERE order_id = %s
            ORDER BY id;
            """,
            (order_id,),
        )
        cols = [d.name for d in cur.description]
        return [OrderLineItem(**dict(zip(cols, row))) for row in cur.fetchall()]

    def details_for_order(self, conn: Connection, order_id: int) -> list[dict]:
        cur = conn.execute(
            """
            SELECT li.id AS order_detail_id, li.order_id, li.book_id, b.title,
                   a.name AS author_name, li.quantity, li.unit_price,
                   li.quantity * li.unit_price AS line_total
            FROM order_line_item li
            JOIN book b ON b.id = li.book_id
            JOIN author a ON a.id = b.author_id
            WHERE li.order_id = %s
            ORDER BY li.id;
            """,
            (order_id,),
        )
        cols = [d.name for d in cur.description]
        return [dict(zip(cols, row)) for row in cur.fetchall()]

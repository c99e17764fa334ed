from __future__ import annotations

from decimal import Decimal

from psycopg import Connection

from ..domain import Book


class BookRepository:
    def get(self, conn: Connection, book_id: int) -> Book | None:
        cur = conn.execute(
            "SELECT id, title, author_id, price, stock FROM book WHERE id = %s;",
            (book_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        cols = [d.name for d in cur.description]
        return Book(**dict(zip(cols, row)))

    def list(self, conn: Connection, limit: int = 50) -> list[Book]:
        cur = conn.execute(
            """
            SELECT id, title, author_id, price, stock
            FROM book
            ORDER BY id
            LIMIT %s;
            """,
            (limit,),
        )
        cols = [d.name for d in cur.description]
        return [Book(**dict(zip(cols, row))) for row in cur.fetchall()]

    def reserve_stock(self, conn: Connection, *, book_id: int, qty: int) -> Decimal | None:
        """Take ``qty`` units off the shelf in one conditional update.

        Returns the book's price at reservation time, or None when no row
        matched (unknown book or not enough stock).
        """
        cur = conn.execute(
            """
            UPDATE book
            SET stock = stock - %s
            WHERE id = %s AND stock >= %s
            RETURNING price;
            """,
            (qty, book_id, qty),
        )
        if cur.rowcount != 1:
            return None
        return Decimal(cur.fetchone()[0])

    def release_stock(self, conn: Connection, *, book_id: int, qty: int) -> None:
        cur = conn.execute(
            "UPDATE book SET stock = stock + %s WHERE id = %s;",
            (qty, book_id),
        )
        if cur.rowcount != 1:
            raise ValueError("Cannot restock missing book_id=%s" % book_id)

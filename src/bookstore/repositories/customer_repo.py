from __future__ import annotations

from psycopg import Connection


class CustomerRepository:
    def exists(self, conn: Connection, customer_id: int) -> bool:
        cur = conn.execute("SELECT 1 FROM customer WHERE id = %s;", (customer_id,))
        return cur.fetchone() is not None

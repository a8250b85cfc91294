from typing import Any, Dict, List, Optional
from uuid import UUID
import asyncpg

ORDER_COLUMNS = (
    "order_number", "user_id", "status", "payment_method", "payment_status",
    "subtotal", "tax", "shipping_cost", "total_amount", "notes",
    "customer_name", "customer_phone", "customer_email",
    "shipping_address", "shipping_city", "shipping_state", "shipping_zip_code",
)

class OrderStore:
    """Table of truth for orders and their line items"""

    def __init__(self, db):
        self.db = db

    async def get(self, order_id: UUID,
                  conn: Optional[asyncpg.Connection] = None) -> Optional[Dict[str, Any]]:
        """Fetch an order together with its items"""
        async with self.db.acquire(conn) as conn:
            order = await conn.fetchrow(
                "SELECT * FROM orders WHERE id = $1", order_id
            )
            if not order:
                return None

            result = dict(order)
            result['items'] = await self.list_items(order_id, conn)
            return result

    async def get_status(self, order_id: UUID) -> Optional[str]:
        async with self.db.acquire() as conn:
            return await conn.fetchval(
                "SELECT status FROM orders WHERE id = $1", order_id
            )

    async def list_items(self, order_id: UUID,
                         conn: Optional[asyncpg.Connection] = None) -> List[Dict[str, Any]]:
        async with self.db.acquire(conn) as conn:
            items = await conn.fetch("""
                SELECT *
                FROM order_items
                WHERE order_id = $1
                ORDER BY created_at ASC
            """, order_id)
            return [dict(item) for item in items]

    async def create(self, order: Dict[str, Any], items: List[Dict[str, Any]],
                     conn: Optional[asyncpg.Connection] = None) -> Dict[str, Any]:
        """Insert an order and its items; returns the stored order"""
        columns = [c for c in ORDER_COLUMNS if c in order]
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))

        async with self.db.acquire(conn) as conn:
            row = await conn.fetchrow(f"""
                INSERT INTO orders ({", ".join(columns)}, created_at, updated_at)
                VALUES ({placeholders}, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                RETURNING *
            """, *[order[c] for c in columns])

            await conn.executemany("""
                INSERT INTO order_items (
                    order_id, product_id, product_name, product_price,
                    total_price, quantity, size
                ) VALUES ($1, $2, $3, $4, $5, $6, $7)
            """, [
                (row['id'], item['product_id'], item['product_name'],
                 item['product_price'], item['total_price'],
                 item['quantity'], item.get('size'))
                for item in items
            ])

            result = dict(row)
            result['items'] = await self.list_items(row['id'], conn)
            return result

    async def lock_order(self, order_id: UUID,
                         conn: asyncpg.Connection) -> Optional[Dict[str, Any]]:
        """Read an order row and hold its lock until the transaction ends"""
        row = await conn.fetchrow(
            "SELECT * FROM orders WHERE id = $1 FOR UPDATE", order_id
        )
        return dict(row) if row else None

    async def cancel_if_open(self, order_id: UUID,
                             conn: Optional[asyncpg.Connection] = None) -> Optional[Dict[str, Any]]:
        """Mark an order cancelled unless it is already cancelled or delivered.

        Returns the updated order, or None when no row qualified.
        """
        async with self.db.acquire(conn) as conn:
            row = await conn.fetchrow("""
                UPDATE orders
                SET status = 'cancelled',
                    cancelled_at = CURRENT_TIMESTAMP,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = $1
                  AND status NOT IN ('cancelled', 'delivered')
                RETURNING *
            """, order_id)
            if not row:
                return None

            result = dict(row)
            result['items'] = await self.list_items(order_id, conn)
            return result

    async def update_status(self, order_id: UUID, status: str) -> Optional[Dict[str, Any]]:
        """Set the status field directly"""
        async with self.db.acquire() as conn:
            row = await conn.fetchrow("""
                UPDATE orders
                SET status = $2,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = $1
                RETURNING *
            """, order_id, status)
            return dict(row) if row else None

    async def get_item(self, order_item_id: UUID) -> Optional[Dict[str, Any]]:
        async with self.db.acquire() as conn:
            item = await conn.fetchrow(
                "SELECT * FROM order_items WHERE id = $1", order_item_id
            )
            return dict(item) if item else None

    async def cancel_item_quantity(self, order_item_id: UUID, quantity: int,
                                   conn: Optional[asyncpg.Connection] = None) -> Optional[Dict[str, Any]]:
        """Add quantity to cancelled_quantity if that many units remain"""
        async with self.db.acquire(conn) as conn:
            row = await conn.fetchrow("""
                UPDATE order_items
                SET cancelled_quantity = cancelled_quantity + $2,
                    cancelled_at = CURRENT_TIMESTAMP
                WHERE id = $1
                  AND quantity - cancelled_quantity >= $2
                RETURNING *
            """, order_item_id, quantity)
            return dict(row) if row else None

    async def update_totals(self, order_id: UUID, fields: Dict[str, Any],
                            conn: Optional[asyncpg.Connection] = None) -> Optional[Dict[str, Any]]:
        """Write recalculated totals (and optionally status) to an order.

        Orders already cancelled or delivered are left alone; returns None then.
        """
        allowed = ("subtotal", "tax", "total_amount", "status", "cancelled_at")
        columns = [c for c in allowed if c in fields]
        assignments = ", ".join(f"{c} = ${i}" for i, c in enumerate(columns, start=2))

        async with self.db.acquire(conn) as conn:
            row = await conn.fetchrow(f"""
                UPDATE orders
                SET {assignments}, updated_at = CURRENT_TIMESTAMP
                WHERE id = $1
                  AND status NOT IN ('cancelled', 'delivered')
                RETURNING *
            """, order_id, *[fields[c] for c in columns])
            return dict(row) if row else None

    async def get_user_orders(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent orders of a user, without items"""
        async with self.db.acquire() as conn:
            orders = await conn.fetch("""
                SELECT *
                FROM orders
                WHERE user_id = $1
                ORDER BY created_at DESC
                LIMIT $2
            """, user_id, limit)
            return [dict(order) for order in orders]

from typing import Any, Dict, Optional
from uuid import UUID
import asyncpg

class StockLedger:
    """Per-product stock_quantity counter.

    Every mutation is a single statement so concurrent orders for the same
    product cannot overwrite each other's decrement.
    """

    def __init__(self, db):
        self.db = db

    async def decrement(self, product_id: UUID, quantity: int,
                        conn: Optional[asyncpg.Connection] = None) -> Optional[Dict[str, Any]]:
        """Take quantity out of stock, flooring at zero.

        Returns name, previous_stock and new_stock, or None when the
        product does not exist.
        """
        async with self.db.acquire(conn) as conn:
            row = await conn.fetchrow("""
                WITH locked AS (
                    SELECT id, stock_quantity
                    FROM products
                    WHERE id = $1
                    FOR UPDATE
                )
                UPDATE products p
                SET stock_quantity = GREATEST(locked.stock_quantity - $2, 0),
                    updated_at = CURRENT_TIMESTAMP
                FROM locked
                WHERE p.id = locked.id
                RETURNING p.name,
                          locked.stock_quantity AS previous_stock,
                          p.stock_quantity AS new_stock
            """, product_id, quantity)
            return dict(row) if row else None

    async def increment(self, product_id: UUID, quantity: int,
                        conn: Optional[asyncpg.Connection] = None) -> Optional[int]:
        """Put quantity back into stock; returns the new stock"""
        async with self.db.acquire(conn) as conn:
            return await conn.fetchval("""
                UPDATE products
                SET stock_quantity = stock_quantity + $2,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = $1
                RETURNING stock_quantity
            """, product_id, quantity)

    async def set_stock(self, product_id: UUID, quantity: int,
                        conn: Optional[asyncpg.Connection] = None) -> Optional[Dict[str, Any]]:
        """Overwrite the stock of a product"""
        async with self.db.acquire(conn) as conn:
            row = await conn.fetchrow("""
                UPDATE products
                SET stock_quantity = $2,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = $1
                RETURNING id, name, description, price, stock_quantity, is_active,
                          created_at, updated_at
            """, product_id, quantity)
            return dict(row) if row else None

import asyncio
import logging
from typing import Iterable, List, Optional, Tuple
from uuid import UUID
import asyncpg
from ..database import DATABASE_ERRORS
from ..errors import NotFoundError, PersistenceError
from ..models.product import Product
from ..models.stock import StockUpdateItem, StockUpdateResult, StockUpdateReport

PRODUCT_NOT_FOUND = "Product not found"

class StockService:
    """Applies order quantities to the stock ledger"""

    def __init__(self, ledger):
        self.ledger = ledger
        self.logger = logging.getLogger(__name__)

    async def apply_stock_for_order(self, items: List[StockUpdateItem],
                                    conn: Optional[asyncpg.Connection] = None) -> StockUpdateReport:
        """Decrement stock for every item; one failing item never stops the others.

        Without a connection the items run concurrently on pooled
        connections. With one (inside a transaction) they run in order.
        """
        if conn is None:
            results = await asyncio.gather(
                *(self._decrement_item(item) for item in items)
            )
        else:
            results = [await self._decrement_item(item, conn) for item in items]

        report = StockUpdateReport(updates=list(results))
        if report.has_failures:
            self.logger.warning(
                f"Stock update finished with {len(report.failed_updates)} "
                f"of {len(items)} items failed"
            )
        return report

    async def _decrement_item(self, item: StockUpdateItem,
                              conn: Optional[asyncpg.Connection] = None) -> StockUpdateResult:
        try:
            row = await self.ledger.decrement(item.product_id, item.quantity, conn)
        except DATABASE_ERRORS as e:
            self.logger.error(f"Error updating stock for product {item.product_id}: {e}")
            return StockUpdateResult(
                product_id=item.product_id,
                quantity_ordered=item.quantity,
                success=False,
                error=str(e) or type(e).__name__
            )

        if row is None:
            self.logger.error(f"Error fetching product {item.product_id}: {PRODUCT_NOT_FOUND}")
            return StockUpdateResult(
                product_id=item.product_id,
                quantity_ordered=item.quantity,
                success=False,
                error=PRODUCT_NOT_FOUND
            )

        return StockUpdateResult(
            product_id=item.product_id,
            product_name=row['name'],
            previous_stock=row['previous_stock'],
            quantity_ordered=item.quantity,
            new_stock=row['new_stock'],
            success=True
        )

    async def restock(self, lines: Iterable[Tuple[UUID, int]],
                      conn: Optional[asyncpg.Connection] = None) -> None:
        """Return quantities to stock"""
        for product_id, quantity in lines:
            if quantity <= 0:
                continue
            new_stock = await self.ledger.increment(product_id, quantity, conn)
            if new_stock is None:
                # product removed since the order was placed
                self.logger.warning(f"Restock skipped, product {product_id} no longer exists")
                continue
            self.logger.info(f"Restocked {quantity} of product {product_id}, now {new_stock}")

    async def set_stock(self, product_id: UUID, quantity: int) -> Product:
        """Overwrite a product's stock (admin)"""
        try:
            product = await self.ledger.set_stock(product_id, quantity)
        except DATABASE_ERRORS as e:
            raise PersistenceError("Failed to update stock", details=str(e))

        if product is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)

        self.logger.info(f"Stock of product {product_id} set to {quantity}")
        return Product.model_validate(product)

from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, RootModel
from .base import RequestModel

class StockUpdateItem(RequestModel):
    """One order line to be taken out of stock"""
    product_id: UUID
    quantity: int = Field(gt=0, strict=True)

class StockUpdateBatch(RootModel[List[StockUpdateItem]]):
    root: List[StockUpdateItem] = Field(min_length=1)

class StockUpdateResult(BaseModel):
    """Outcome of decrementing stock for a single line item"""
    product_id: UUID
    product_name: Optional[str] = None
    previous_stock: Optional[int] = None
    quantity_ordered: int
    new_stock: Optional[int] = None
    success: bool
    error: Optional[str] = None

class StockUpdateReport(BaseModel):
    """Per-item results of one stock update call, in input order"""
    updates: List[StockUpdateResult]

    @property
    def successful_updates(self) -> List[StockUpdateResult]:
        return [u for u in self.updates if u.success]

    @property
    def failed_updates(self) -> List[StockUpdateResult]:
        return [u for u in self.updates if not u.success]

    @property
    def has_failures(self) -> bool:
        return any(not u.success for u in self.updates)

class SetStockRequest(RequestModel):
    product_id: UUID = Field(alias="productId")
    quantity: int = Field(ge=0, strict=True)

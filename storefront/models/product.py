from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import Field
from .base import TimeStampedModel

class Product(TimeStampedModel):
    """Catalog product; stock_quantity is the stock ledger counter"""
    id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True

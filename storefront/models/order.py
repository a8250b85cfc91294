from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field
from .base import TimeStampedModel, RequestModel

class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

# cancellation is refused from these states
NON_CANCELLABLE_STATUSES = (OrderStatus.CANCELLED, OrderStatus.DELIVERED)

class PaymentMethod(str, Enum):
    RAZORPAY = "razorpay"
    COD = "cod"
    UPI = "upi"

class OrderItem(BaseModel):
    """Line item of an order"""
    id: Optional[UUID] = None
    order_id: Optional[UUID] = None
    product_id: UUID
    product_name: str
    product_price: Decimal
    quantity: int = Field(gt=0)
    cancelled_quantity: int = 0
    size: Optional[str] = None
    total_price: Optional[Decimal] = None
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def active_quantity(self) -> int:
        return self.quantity - self.cancelled_quantity

    @property
    def active_total(self) -> Decimal:
        return self.product_price * self.active_quantity

class Order(TimeStampedModel):
    """Order record"""
    id: UUID
    order_number: Optional[str] = None
    user_id: str
    status: OrderStatus
    payment_method: Optional[PaymentMethod] = None
    payment_status: Optional[str] = None
    subtotal: Decimal = Decimal(0)
    tax: Decimal = Decimal(0)
    shipping_cost: Decimal = Decimal(0)
    total_amount: Decimal = Decimal(0)
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_zip_code: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    items: List[OrderItem] = []

    @property
    def is_cancellable(self) -> bool:
        return self.status not in NON_CANCELLABLE_STATUSES

class CancelOrderRequest(RequestModel):
    order_id: str = Field(min_length=1)

class CancelItemRequest(RequestModel):
    order_item_id: str = Field(min_length=1)
    cancelled_quantity: int = Field(gt=0, strict=True)

class UpdateOrderStatusRequest(RequestModel):
    order_id: str = Field(min_length=1, alias="orderId")
    status: OrderStatus

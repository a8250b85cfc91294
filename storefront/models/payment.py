import re
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator
from .base import RequestModel

class PaymentOrderRequest(RequestModel):
    """Checkout request for a gateway order; amount is in major units"""
    amount: Optional[Decimal] = None
    currency: str = "INR"
    user_id: Optional[str] = Field(default=None, alias="userId")

class PaymentGatewayOrder(BaseModel):
    """Gateway-side order handed to the client checkout widget"""
    id: str
    amount: int
    currency: str
    receipt: Optional[str] = None
    key: Optional[str] = None

class PaymentVerification(RequestModel):
    razorpay_order_id: str = Field(min_length=1)
    razorpay_payment_id: str = Field(min_length=1)
    razorpay_signature: str = Field(min_length=1)

class CheckoutItem(RequestModel):
    product_id: UUID
    product_name: str
    product_price: Decimal = Field(ge=0)
    total_price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0, strict=True)
    size: Optional[str] = None

class CustomerDetails(RequestModel):
    full_name: str = Field(min_length=1, alias="fullName")
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(pattern=r"^\d{6}$", alias="zipCode")
    phone: str
    email: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, value: str) -> str:
        # drop the +91 country prefix, keep digits only
        cleaned = re.sub(r"\D", "", re.sub(r"^\+91\s*", "", value))
        if len(cleaned) != 10:
            raise ValueError("Phone number must be exactly 10 digits")
        return cleaned

class CheckoutData(RequestModel):
    total: Decimal = Field(gt=0)
    subtotal: Optional[Decimal] = None
    shipping_cost: Decimal = Field(default=Decimal(0), alias="shippingCost")
    form_data: CustomerDetails = Field(alias="formData")

class PlaceOrderRequest(PaymentVerification):
    """Verified payment plus the cart it paid for"""
    order_number: str = Field(min_length=1, alias="orderNumber")
    order_items: List[CheckoutItem] = Field(min_length=1, alias="orderItems")
    order_data: CheckoutData = Field(alias="orderData")

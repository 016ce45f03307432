from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from storefront.catalog.models import ProductOut
from storefront.schema.full_schema import OrderStatus, PaymentStatus


class CreateOrderRequest(BaseModel):
    cart_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    order_status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.NOTPAID
    billing_address: str = Field(..., min_length=1, max_length=1000, pattern=r"\S")
    billing_phone: str = Field(..., min_length=1, max_length=32, pattern=r"\S")
    billing_name: str = Field(..., min_length=1, max_length=128, pattern=r"\S")


class OrderStatusUpdate(BaseModel):
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None

    @model_validator(mode="after")
    def at_least_one(self):
        if self.order_status is None and self.payment_status is None:
            raise ValueError("order_status or payment_status is required")
        return self


class BillingUpdate(BaseModel):
    billing_address: Optional[str] = Field(default=None, min_length=1, max_length=1000, pattern=r"\S")
    billing_phone: Optional[str] = Field(default=None, min_length=1, max_length=32, pattern=r"\S")
    billing_name: Optional[str] = Field(default=None, min_length=1, max_length=128, pattern=r"\S")


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quantity: int
    total_price: float
    product: Optional[ProductOut] = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_status: str
    payment_status: str
    order_amount: float
    billing_address: str
    billing_phone: str
    billing_name: str
    ordered_date: datetime
    delivered_date: Optional[datetime] = None
    user_id: str
    provider_order_id: Optional[str] = None
    payment_id: Optional[str] = None
    items: List[OrderItemOut] = []

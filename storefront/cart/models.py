from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from storefront.catalog.models import ProductOut


class AddItemToCartIn(BaseModel):
    product_id: str
    quantity: int


class CartItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quantity: int
    total_price: float
    product: Optional[ProductOut] = None


class CartOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    created_at: Optional[datetime] = None
    items: List[CartItemOut] = []

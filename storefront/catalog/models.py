from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CategoryIn(BaseModel):
    title: str = Field(..., min_length=4, max_length=128)
    description: Optional[str] = Field(default=None, max_length=1000)
    cover_image: Optional[str] = Field(default=None, max_length=1024)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    cover_image: Optional[str] = None


class ProductIn(BaseModel):
    title: str = Field(..., min_length=3, max_length=256)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    discounted_price: float = Field(..., ge=0)
    quantity: int = Field(default=0, ge=0)
    live: bool = False
    stock: bool = True
    product_image_name: Optional[str] = Field(default=None, max_length=1024)
    category_id: Optional[str] = None

    @model_validator(mode="after")
    def discount_not_above_price(self):
        if self.discounted_price > self.price:
            raise ValueError("discounted_price must not exceed price")
        return self


class ProductUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=256)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    discounted_price: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    live: Optional[bool] = None
    stock: Optional[bool] = None
    product_image_name: Optional[str] = Field(default=None, max_length=1024)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    price: float
    discounted_price: float
    quantity: int
    added_date: Optional[datetime] = None
    live: bool
    stock: bool
    product_image_name: Optional[str] = None
    category_id: Optional[str] = None

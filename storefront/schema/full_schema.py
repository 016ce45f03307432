import enum
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel, String

from storefront.common.utils import new_id, now


class Providers(str, enum.Enum):
    SELF = "SELF"
    GOOGLE = "GOOGLE"
    FACEBOOK = "FACEBOOK"
    GITHUB = "GITHUB"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    DISPATCHED = "DISPATCHED"
    DELIVERED = "DELIVERED"


class PaymentStatus(str, enum.Enum):
    NOTPAID = "NOTPAID"
    PAID = "PAID"


# Join table
class UserRole(SQLModel, table=True):
    __tablename__ = "user_role"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(sa_column=Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False))
    role_id: str = Field(sa_column=Column(String(64), ForeignKey("role.id", ondelete="CASCADE"), index=True, nullable=False))

    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_role_user_id_role_id"),)


class Users(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, sa_column=Column(String(64), primary_key=True))
    email: str = Field(sa_column=Column(String(320), unique=True, index=True, nullable=False))
    name: str = Field(sa_column=Column(String(128), nullable=False))
    password_hash: str = Field(sa_column=Column(Text(), nullable=False))
    gender: Optional[str] = Field(default=None, sa_column=Column(String(16), nullable=True))
    about: Optional[str] = Field(default=None, sa_column=Column(String(1000), nullable=True))
    image_name: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))
    provider: str = Field(default=Providers.SELF.value, sa_column=Column(String(16), nullable=False, default=Providers.SELF.value))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    updated_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now, onupdate=now))


class Role(SQLModel, table=True):
    id: str = Field(default_factory=new_id, sa_column=Column(String(64), primary_key=True))
    name: str = Field(sa_column=Column(String(64), unique=True, nullable=False))
    description: Optional[str] = None


class RefreshToken(SQLModel, table=True):
    """At most one row per user; the value is rotated in place on every login or refresh."""
    __tablename__ = "refresh_token"

    id: Optional[int] = Field(default=None, primary_key=True)
    token: str = Field(sa_column=Column(String(128), unique=True, index=True, nullable=False))
    expiry_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    user_id: str = Field(sa_column=Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False))


class Category(SQLModel, table=True):
    id: str = Field(default_factory=new_id, sa_column=Column(String(64), primary_key=True))
    title: str = Field(sa_column=Column(String(128), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(String(1000), nullable=True))
    cover_image: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))


class Product(SQLModel, table=True):
    id: str = Field(default_factory=new_id, sa_column=Column(String(64), primary_key=True))
    title: str = Field(sa_column=Column(String(256), nullable=False))
    description: Optional[str] = Field(default=None, sa_column=Column(Text(), nullable=True))
    price: float = Field(sa_column=Column(Float, nullable=False))
    discounted_price: float = Field(sa_column=Column(Float, nullable=False))
    quantity: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    added_date: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    live: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    stock: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    product_image_name: Optional[str] = Field(default=None, sa_column=Column(String(1024), nullable=True))
    category_id: Optional[str] = Field(default=None,
        sa_column=Column(String(64), ForeignKey("category.id", ondelete="SET NULL"), index=True, nullable=True))


class Cart(SQLModel, table=True):
    id: str = Field(default_factory=new_id, sa_column=Column(String(64), primary_key=True))
    user_id: str = Field(sa_column=Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False))
    created_at: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now))

    items: List["CartItem"] = Relationship(back_populates="cart",
                                           sa_relationship_kwargs={"cascade": "all, delete-orphan",
                                                                   "order_by": "CartItem.id"})


class CartItem(SQLModel, table=True):
    __tablename__ = "cart_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    cart_id: str = Field(sa_column=Column(String(64), ForeignKey("cart.id", ondelete="CASCADE"), index=True, nullable=False))
    product_id: str = Field(sa_column=Column(String(64), ForeignKey("product.id", ondelete="CASCADE"), nullable=False))
    quantity: int = Field(sa_column=Column(Integer, nullable=False))
    total_price: float = Field(sa_column=Column(Float, nullable=False))

    cart: Optional["Cart"] = Relationship(back_populates="items")
    product: Optional["Product"] = Relationship()

    __table_args__ = (UniqueConstraint("cart_id", "product_id", name="uq_cart_item_cart_id_product_id"),)


class Orders(SQLModel, table=True):
    id: str = Field(default_factory=new_id, sa_column=Column(String(64), primary_key=True))
    order_status: str = Field(default=OrderStatus.PENDING.value, sa_column=Column(String(16), nullable=False))
    payment_status: str = Field(default=PaymentStatus.NOTPAID.value, sa_column=Column(String(16), nullable=False))
    order_amount: float = Field(sa_column=Column(Float, nullable=False))
    billing_address: str = Field(sa_column=Column(String(1000), nullable=False))
    billing_phone: str = Field(sa_column=Column(String(32), nullable=False))
    billing_name: str = Field(sa_column=Column(String(128), nullable=False))
    ordered_date: datetime = Field(default_factory=now,
        sa_column=Column(DateTime(timezone=True), nullable=False, default=now))
    delivered_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    user_id: str = Field(sa_column=Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False))
    provider_order_id: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    payment_id: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))
    idempotency_key: Optional[str] = Field(default=None, sa_column=Column(String(128), nullable=True))

    items: List["OrderItem"] = Relationship(back_populates="order",
                                            sa_relationship_kwargs={"cascade": "all, delete-orphan",
                                                                    "order_by": "OrderItem.id"})

    __table_args__ = (UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_id_idempotency_key"),)


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_item"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: str = Field(sa_column=Column(String(64), ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False))
    product_id: str = Field(sa_column=Column(String(64), ForeignKey("product.id", ondelete="RESTRICT"), nullable=False))
    quantity: int = Field(sa_column=Column(Integer, nullable=False))
    total_price: float = Field(sa_column=Column(Float, nullable=False))

    order: Optional["Orders"] = Relationship(back_populates="items")
    product: Optional["Product"] = Relationship()

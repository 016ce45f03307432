from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.common.custom_exceptions import OrderNotFound
from storefront.schema.full_schema import Cart, CartItem, OrderItem, Orders, Product

ORDER_SORTABLE = {
    "ordered_date": Orders.ordered_date,
    "order_amount": Orders.order_amount,
    "order_status": Orders.order_status,
}


def orders_with_items():
    return select(Orders).options(selectinload(Orders.items).selectinload(OrderItem.product))


async def lock_cart(session: AsyncSession, cart_id: str):
    """Cart header row, locked for the rest of the transaction where the backend supports row locks."""
    stmt = select(Cart.id, Cart.user_id).where(Cart.id == cart_id).with_for_update()
    res = await session.execute(stmt)
    return res.one_or_none()


async def cart_lines(session: AsyncSession, cart_id: str) -> List[Tuple[int, Product]]:
    stmt = (
        select(CartItem.quantity, Product)
        .join(Product, Product.id == CartItem.product_id)
        .where(CartItem.cart_id == cart_id)
        .order_by(CartItem.id)
        .execution_options(populate_existing=True)
    )
    res = await session.execute(stmt)
    return [(row[0], row[1]) for row in res.all()]


async def order_by_idempotency_key(session: AsyncSession, user_id: str, key: str) -> Optional[Orders]:
    res = await session.execute(orders_with_items().where(Orders.user_id == user_id, Orders.idempotency_key == key))
    return res.scalar_one_or_none()


async def require_order(session: AsyncSession, order_id: str) -> Orders:
    res = await session.execute(orders_with_items().where(Orders.id == order_id))
    order = res.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(f"Order not found with given id : {order_id}")
    return order


async def orders_of_user(session: AsyncSession, user_id: str) -> List[Orders]:
    res = await session.execute(orders_with_items().where(Orders.user_id == user_id).order_by(Orders.ordered_date.desc()))
    return list(res.scalars().all())


def all_orders_query():
    return orders_with_items()

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.schema.full_schema import Cart, CartItem


def _cart_with_items():
    return select(Cart).options(selectinload(Cart.items).selectinload(CartItem.product))


async def cart_by_user(session: AsyncSession, user_id: str) -> Optional[Cart]:
    res = await session.execute(_cart_with_items().where(Cart.user_id == user_id))
    return res.scalar_one_or_none()


async def cart_item_by_id(session: AsyncSession, item_id: int) -> Optional[CartItem]:
    return await session.get(CartItem, item_id)


async def delete_cart_items(session: AsyncSession, cart_id: str) -> None:
    """Single bulk statement, no per-row loading."""
    await session.execute(
        delete(CartItem).where(CartItem.cart_id == cart_id).execution_options(synchronize_session=False)
    )

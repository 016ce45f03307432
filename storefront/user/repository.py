from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.schema.full_schema import Cart, CartItem, OrderItem, Orders, RefreshToken, UserRole, Users

USER_SORTABLE = {
    "name": Users.name,
    "email": Users.email,
    "created_at": Users.created_at,
}


def users_query():
    return select(Users)


def users_by_keyword_query(keywords: str):
    return select(Users).where(Users.name.ilike(f"%{keywords}%"))


async def delete_user_cascade(session: AsyncSession, user_id: str) -> None:
    """Removes the user together with its orders, cart, refresh token and role links."""
    order_ids = select(Orders.id).where(Orders.user_id == user_id)
    cart_ids = select(Cart.id).where(Cart.user_id == user_id)

    await session.execute(delete(OrderItem).where(OrderItem.order_id.in_(order_ids))
                          .execution_options(synchronize_session=False))
    await session.execute(delete(Orders).where(Orders.user_id == user_id)
                          .execution_options(synchronize_session=False))
    await session.execute(delete(CartItem).where(CartItem.cart_id.in_(cart_ids))
                          .execution_options(synchronize_session=False))
    await session.execute(delete(Cart).where(Cart.user_id == user_id)
                          .execution_options(synchronize_session=False))
    await session.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id)
                          .execution_options(synchronize_session=False))
    await session.execute(delete(UserRole).where(UserRole.user_id == user_id)
                          .execution_options(synchronize_session=False))
    await session.execute(delete(Users).where(Users.id == user_id)
                          .execution_options(synchronize_session=False))

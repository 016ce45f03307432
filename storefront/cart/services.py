from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.repository import require_user_by_id
from storefront.cart.constants import logger
from storefront.cart.repository import cart_by_user, cart_item_by_id, delete_cart_items
from storefront.catalog.repository import require_product
from storefront.common.custom_exceptions import CartItemNotFound, CartNotFound, InvalidQuantity
from storefront.orders.utils import line_total
from storefront.schema.full_schema import Cart, CartItem


async def _put_item(session: AsyncSession, user_id: str, product_id: str, quantity: int) -> Cart:
    await require_user_by_id(session, user_id)
    product = await require_product(session, product_id)

    cart = await cart_by_user(session, user_id)
    if cart is None:
        cart = Cart(user_id=user_id)
        session.add(cart)
        logger.info("cart.created", extra={"user_id": user_id})

    total = line_total(quantity, product.discounted_price)

    existing = next((it for it in cart.items if it.product_id == product_id), None)
    if existing is not None:
        # re-adding a product sets the quantity, it does not add to it
        existing.quantity = quantity
        existing.total_price = total
    else:
        cart.items.append(CartItem(product=product, quantity=quantity, total_price=total))

    await session.commit()
    return cart


async def add_item_to_cart(session: AsyncSession, user_id: str, product_id: str, quantity: int,
                           attempts: int = 2) -> Cart:
    """
    Put `quantity` units of a product in the user's cart, creating the cart on first use.

    The line total is always recomputed from the product's current discounted
    price, so a price change since the last add is picked up.
    """
    if quantity <= 0:
        raise InvalidQuantity()

    for attempt in range(1, attempts + 1):
        try:
            return await _put_item(session, user_id, product_id, quantity)
        except IntegrityError:
            # a concurrent request created the cart or the line first
            await session.rollback()
            if attempt == attempts:
                raise
            logger.info("cart.add.retry", extra={"user_id": user_id, "attempt": attempt})


async def remove_item_from_cart(session: AsyncSession, user_id: str, item_id: int) -> None:
    cart = await cart_by_user(session, user_id)
    item = await cart_item_by_id(session, item_id)
    if cart is None or item is None or item.cart_id != cart.id:
        raise CartItemNotFound()

    await session.delete(item)
    await session.commit()
    logger.info("cart.item.removed", extra={"user_id": user_id, "item_id": item_id})


async def clear_cart(session: AsyncSession, user_id: str) -> None:
    cart = await cart_by_user(session, user_id)
    if cart is None:
        raise CartNotFound()

    await delete_cart_items(session, cart.id)
    await session.commit()
    logger.info("cart.cleared", extra={"user_id": user_id})


async def get_cart(session: AsyncSession, user_id: str) -> Cart:
    await require_user_by_id(session, user_id)
    cart = await cart_by_user(session, user_id)
    if cart is None:
        raise CartNotFound()
    return cart

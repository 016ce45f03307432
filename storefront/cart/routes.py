from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.dependencies import ensure_self_or_admin, require_roles
from storefront.auth.security import Role, SecurityContext
from storefront.cart.models import AddItemToCartIn, CartOut
from storefront.cart.services import add_item_to_cart, clear_cart, get_cart, remove_item_from_cart
from storefront.common.utils import message_response, success_response
from storefront.db.dependencies import get_session

carts_router = APIRouter()

shopper = require_roles(Role.NORMAL, Role.ADMIN)


@carts_router.post("/{user_id}")
async def add_to_cart(user_id: str, payload: AddItemToCartIn,
                      context: SecurityContext = shopper,
                      session: AsyncSession = Depends(get_session)):
    ensure_self_or_admin(context, user_id)
    cart = await add_item_to_cart(session, user_id, payload.product_id, payload.quantity)
    return success_response(CartOut.model_validate(cart).model_dump(mode="json"))


@carts_router.delete("/{user_id}/items/{item_id}")
async def remove_from_cart(user_id: str, item_id: int,
                           context: SecurityContext = shopper,
                           session: AsyncSession = Depends(get_session)):
    ensure_self_or_admin(context, user_id)
    await remove_item_from_cart(session, user_id, item_id)
    return message_response("Item is removed !!")


@carts_router.delete("/{user_id}")
async def empty_cart(user_id: str,
                     context: SecurityContext = shopper,
                     session: AsyncSession = Depends(get_session)):
    ensure_self_or_admin(context, user_id)
    await clear_cart(session, user_id)
    return message_response("Now cart is blank !!")


@carts_router.get("/{user_id}")
async def cart_of_user(user_id: str,
                       context: SecurityContext = shopper,
                       session: AsyncSession = Depends(get_session)):
    ensure_self_or_admin(context, user_id)
    cart = await get_cart(session, user_id)
    return success_response(CartOut.model_validate(cart).model_dump(mode="json"))

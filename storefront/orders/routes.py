from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.dependencies import ensure_self_or_admin, require_roles
from storefront.auth.security import Role, SecurityContext
from storefront.common.custom_exceptions import AccessDenied
from storefront.common.pagination import PageParams, fetch_page, page_params
from storefront.common.utils import message_response, success_response
from storefront.db.dependencies import get_session
from storefront.orders.constants import IDEMPOTENCY_HEADER, logger
from storefront.orders.models import BillingUpdate, CreateOrderRequest, OrderOut, OrderStatusUpdate
from storefront.orders.repository import ORDER_SORTABLE, all_orders_query, orders_of_user, require_order
from storefront.orders.services import create_order, remove_order, update_billing, update_order_status
from storefront.schema.full_schema import Orders, OrderStatus, PaymentStatus

orders_router = APIRouter()
orders_admin_router = APIRouter()

shopper = require_roles(Role.NORMAL, Role.ADMIN)
admin = require_roles(Role.ADMIN)


def _order(order: Orders) -> dict:
    return OrderOut.model_validate(order).model_dump(mode="json")


@orders_router.post("", status_code=status.HTTP_201_CREATED)
async def place_order(payload: CreateOrderRequest,
                      idempotency_key: Optional[str] = Header(None, alias=IDEMPOTENCY_HEADER, max_length=128),
                      context: SecurityContext = shopper,
                      session: AsyncSession = Depends(get_session)):
    ensure_self_or_admin(context, payload.user_id)
    # shoppers start at PENDING/NOTPAID; PAID only comes from a verified capture
    if not context.is_admin and (payload.order_status != OrderStatus.PENDING
                                 or payload.payment_status != PaymentStatus.NOTPAID):
        raise AccessDenied("Only admins may set the initial order or payment status")

    logger.info("order.create.attempt", extra={"user_id": payload.user_id, "cart_id": payload.cart_id})

    order, replayed = await create_order(session, payload, idempotency_key=idempotency_key)
    status_code = status.HTTP_200_OK if replayed else status.HTTP_201_CREATED
    return success_response(_order(order), status_code)


@orders_router.get("/users/{user_id}")
async def orders_for_user(user_id: str,
                          context: SecurityContext = shopper,
                          session: AsyncSession = Depends(get_session)):
    ensure_self_or_admin(context, user_id)
    orders = await orders_of_user(session, user_id)
    return success_response([_order(o) for o in orders])


@orders_admin_router.get("", dependencies=[admin])
async def list_orders(params: PageParams = Depends(page_params("ordered_date", "desc")),
                      session: AsyncSession = Depends(get_session)):
    page = await fetch_page(session, all_orders_query(), params, ORDER_SORTABLE)
    page["content"] = [_order(o) for o in page["content"]]
    return success_response(page)


@orders_admin_router.delete("/{order_id}", dependencies=[admin])
async def delete_order(order_id: str, session: AsyncSession = Depends(get_session)):
    await remove_order(session, order_id)
    return message_response("order is removed !!")


@orders_admin_router.put("/admin/{order_id}", dependencies=[admin])
async def change_order_status(order_id: str, payload: OrderStatusUpdate,
                              session: AsyncSession = Depends(get_session)):
    order = await update_order_status(session, order_id, payload)
    return success_response(_order(order))


@orders_router.put("/user/{order_id}")
async def change_billing(order_id: str, payload: BillingUpdate,
                         context: SecurityContext = shopper,
                         session: AsyncSession = Depends(get_session)):
    order = await require_order(session, order_id)
    ensure_self_or_admin(context, order.user_id)
    order = await update_billing(session, order, payload)
    return success_response(_order(order))

from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.repository import user_by_id
from storefront.cart.repository import delete_cart_items
from storefront.common.custom_exceptions import CartNotFound, EmptyCart, UserNotFound
from storefront.common.utils import now
from storefront.orders.constants import logger
from storefront.orders.models import BillingUpdate, CreateOrderRequest, OrderStatusUpdate
from storefront.orders.repository import cart_lines, lock_cart, order_by_idempotency_key, require_order
from storefront.orders.utils import ORDER_STATUS_FLOW, PAYMENT_STATUS_FLOW, check_transition, line_total
from storefront.schema.full_schema import OrderItem, Orders, OrderStatus


async def persist_order(session: AsyncSession, cart_id: str, order: Orders) -> None:
    """Empty the cart and write the order; nothing is visible until the caller commits."""
    await delete_cart_items(session, cart_id)
    session.add(order)
    await session.flush()


async def _convert_cart(session: AsyncSession, request: CreateOrderRequest,
                        idempotency_key: Optional[str]) -> Tuple[Orders, bool]:
    user = await user_by_id(session, request.user_id)
    if user is None:
        raise UserNotFound(f"User not found with given id : {request.user_id}")

    if idempotency_key:
        existing = await order_by_idempotency_key(session, user.id, idempotency_key)
        if existing is not None:
            logger.info("order.create.replayed", extra={"order_id": existing.id, "user_id": user.id})
            return existing, True

    cart = await lock_cart(session, request.cart_id)
    if cart is None or cart.user_id != user.id:
        raise CartNotFound(f"Cart not found with given id : {request.cart_id}")

    lines = await cart_lines(session, cart.id)
    if not lines:
        raise EmptyCart()

    order = Orders(
        billing_name=request.billing_name,
        billing_phone=request.billing_phone,
        billing_address=request.billing_address,
        order_status=request.order_status.value,
        payment_status=request.payment_status.value,
        ordered_date=now(),
        delivered_date=now() if request.order_status == OrderStatus.DELIVERED else None,
        user_id=user.id,
        order_amount=0.0,
        idempotency_key=idempotency_key,
    )

    items = [
        OrderItem(product=product, quantity=quantity, total_price=line_total(quantity, product.discounted_price))
        for quantity, product in lines
    ]
    order.items = items
    order.order_amount = round(sum(it.total_price for it in items), 2)

    await persist_order(session, cart.id, order)
    return order, False


async def create_order(session: AsyncSession, request: CreateOrderRequest,
                       idempotency_key: Optional[str] = None) -> Tuple[Orders, bool]:
    """
    Convert the user's cart into an order.

    Every line is priced at the product's current discounted price, the order
    amount is the sum of the lines, and the cart's items are removed in the
    same transaction that inserts the order: either both happen or neither.

    Returns (order, replayed); `replayed` is True when an order created
    earlier with the same idempotency key was returned instead.
    """
    try:
        order, replayed = await _convert_cart(session, request, idempotency_key)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        if not idempotency_key:
            raise
        # a concurrent request with the same key won the insert
        existing = await order_by_idempotency_key(session, request.user_id, idempotency_key)
        if existing is None:
            raise
        logger.info("order.create.replayed", extra={"order_id": existing.id, "user_id": request.user_id})
        return existing, True
    except Exception:
        await session.rollback()
        raise

    if not replayed:
        logger.info("order.create.success", extra={
            "order_id": order.id,
            "user_id": order.user_id,
            "items": len(order.items),
            "amount": order.order_amount,
        })
    return order, replayed


async def update_order_status(session: AsyncSession, order_id: str, update: OrderStatusUpdate) -> Orders:
    order = await require_order(session, order_id)

    if update.order_status is not None:
        target = update.order_status.value
        check_transition(ORDER_STATUS_FLOW, order.order_status, target, "order status")
        if target == OrderStatus.DELIVERED.value and order.delivered_date is None:
            order.delivered_date = now()
        order.order_status = target

    if update.payment_status is not None:
        target = update.payment_status.value
        check_transition(PAYMENT_STATUS_FLOW, order.payment_status, target, "payment status")
        order.payment_status = target

    await session.commit()
    logger.info("order.status.updated", extra={
        "order_id": order_id,
        "order_status": order.order_status,
        "payment_status": order.payment_status,
    })
    return order


async def update_billing(session: AsyncSession, order: Orders, update: BillingUpdate) -> Orders:
    for field_name, value in update.model_dump(exclude_none=True).items():
        setattr(order, field_name, value)
    await session.commit()
    logger.info("order.billing.updated", extra={"order_id": order.id})
    return order


async def remove_order(session: AsyncSession, order_id: str) -> None:
    order = await require_order(session, order_id)
    await session.delete(order)
    await session.commit()
    logger.info("order.deleted", extra={"order_id": order_id})

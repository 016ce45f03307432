from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.dependencies import ensure_self_or_admin, require_roles
from storefront.auth.security import Role, SecurityContext
from storefront.common.utils import success_response
from storefront.db.dependencies import get_session
from storefront.orders.repository import require_order
from storefront.payments.models import PaymentCaptureIn
from storefront.payments.services import PspOrderCreator, capture_payment, create_psp_order, initiate_payment

payments_router = APIRouter()

shopper = require_roles(Role.NORMAL, Role.ADMIN)


def get_psp_order_creator() -> PspOrderCreator:
    return create_psp_order


@payments_router.post("/initiate-payment/{order_id}", status_code=status.HTTP_201_CREATED)
async def initiate(order_id: str,
                   context: SecurityContext = shopper,
                   psp_create: PspOrderCreator = Depends(get_psp_order_creator),
                   session: AsyncSession = Depends(get_session)):
    order = await require_order(session, order_id)
    ensure_self_or_admin(context, order.user_id)

    out = await initiate_payment(session, order, psp_create)
    return success_response(out.model_dump(mode="json"), status.HTTP_201_CREATED)


@payments_router.post("/capture/{order_id}")
async def capture(order_id: str, payload: PaymentCaptureIn,
                  context: SecurityContext = shopper,
                  session: AsyncSession = Depends(get_session)):
    order = await require_order(session, order_id)
    ensure_self_or_admin(context, order.user_id)

    out = await capture_payment(session, order, payload)
    return success_response(out.model_dump(mode="json"))

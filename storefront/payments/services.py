import hashlib
import hmac
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.common.custom_exceptions import BadApiRequest, PaymentProviderError
from storefront.common.logging_setup import get_logger
from storefront.common.retries import retry_async
from storefront.config.settings import config_settings
from storefront.orders.utils import PAYMENT_STATUS_FLOW, check_transition
from storefront.payments.models import PaymentCaptureIn, PaymentCaptureOut, PaymentInitiateOut
from storefront.schema.full_schema import Orders, PaymentStatus

logger = get_logger("storefront.payments")

PSP_API_BASE = config_settings.RZPAY_GATEWAY_URL
PSP_TIMEOUT_SECONDS = 10.0


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


async def create_psp_order(amount_minor: int, currency: str, receipt: str, notes: Optional[dict] = None,
                           transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[str, Any]:
    """
    Create a provider-side order (server -> razorpay) and return the provider's JSON.
    amount_minor: integer amount in the currency's minor unit (paise for INR)
    """
    key_id, key_secret = config_settings.RZPAY_KEY, config_settings.RZPAY_SECRET
    if not key_id or not key_secret:
        raise PaymentProviderError("Payment provider is not configured")

    payload = {
        "amount": amount_minor,
        "currency": currency,
        "receipt": receipt,
        "notes": notes or {},
    }

    async def _post() -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=PSP_TIMEOUT_SECONDS, auth=(key_id, key_secret),
                                     transport=transport) as client:
            resp = await client.post(f"{PSP_API_BASE}/orders", json=payload)
            resp.raise_for_status()
            return resp.json()

    try:
        return await retry_async(_post, op_name="payments.create_order")
    except httpx.HTTPStatusError as exc:
        logger.error("payment.provider.http_error", extra={"status_code": exc.response.status_code})
        raise PaymentProviderError(f"Payment provider rejected the request ({exc.response.status_code})") from exc
    except httpx.HTTPError as exc:
        logger.error("payment.provider.unreachable", extra={"error": type(exc).__name__})
        raise PaymentProviderError("Payment provider unreachable") from exc


PspOrderCreator = Callable[..., Awaitable[Dict[str, Any]]]


async def initiate_payment(session: AsyncSession, order: Orders,
                           psp_create: Optional[PspOrderCreator] = None) -> PaymentInitiateOut:
    if order.payment_status == PaymentStatus.PAID.value:
        raise BadApiRequest("Order is already paid")

    psp_create = psp_create or create_psp_order
    currency = config_settings.PAYMENT_CURRENCY
    amount_minor = to_minor_units(order.order_amount)

    psp_resp = await psp_create(
        amount_minor=amount_minor,
        currency=currency,
        receipt=f"order_{order.id[:20]}",
        notes={"order_id": order.id, "user_id": order.user_id},
    )

    provider_order_id = psp_resp.get("id")
    if not provider_order_id:
        logger.error("payment.provider.missing_order_id", extra={"order_id": order.id})
        raise PaymentProviderError("Payment provider returned no order id")

    order.provider_order_id = provider_order_id
    await session.commit()

    logger.info("payment.initiated", extra={"order_id": order.id, "provider_order_id": provider_order_id})
    return PaymentInitiateOut(
        order_id=order.id,
        provider_order_id=provider_order_id,
        amount=order.order_amount,
        amount_minor=amount_minor,
        currency=currency,
        payment_status=order.payment_status,
    )


def payment_signature(provider_order_id: str, payment_id: str, secret: str) -> str:
    body = f"{provider_order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(provider_order_id: str, payment_id: str, signature: str, secret: Optional[str]) -> bool:
    if not secret:
        return False
    expected = payment_signature(provider_order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)


async def capture_payment(session: AsyncSession, order: Orders, body: PaymentCaptureIn) -> PaymentCaptureOut:
    if order.provider_order_id and order.provider_order_id != body.razorpay_order_id:
        logger.warning("payment.capture.order_mismatch", extra={"order_id": order.id})
        raise BadApiRequest("Provider order id does not belong to this order")

    verified = verify_signature(body.razorpay_order_id, body.razorpay_payment_id, body.razorpay_signature,
                                config_settings.RZPAY_SECRET)
    if not verified:
        logger.warning("payment.capture.bad_signature", extra={"order_id": order.id})
        raise BadApiRequest("Payment signature verification failed")

    check_transition(PAYMENT_STATUS_FLOW, order.payment_status, PaymentStatus.PAID.value, "payment status")
    order.payment_status = PaymentStatus.PAID.value
    order.payment_id = body.razorpay_payment_id
    if not order.provider_order_id:
        order.provider_order_id = body.razorpay_order_id
    await session.commit()

    logger.info("payment.captured", extra={"order_id": order.id})
    return PaymentCaptureOut(
        message="Payment Done",
        success=True,
        signature_verified=True,
        order_id=order.id,
        payment_status=order.payment_status,
    )

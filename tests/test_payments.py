import base64
import json
from functools import partial

import httpx
import pytest
from sqlalchemy import select

from storefront.cart.services import add_item_to_cart
from storefront.common.custom_exceptions import PaymentProviderError
from storefront.config.settings import config_settings
from storefront.db.connection import async_session
from storefront.main import app
from storefront.orders.models import CreateOrderRequest
from storefront.orders.services import create_order
from storefront.payments.routes import get_psp_order_creator
from storefront.payments.services import create_psp_order, payment_signature, to_minor_units, verify_signature
from storefront.schema.full_schema import Orders

billing = {
    "billing_name": "Alice Shopper",
    "billing_phone": "9876543210",
    "billing_address": "12 MG Road, Bengaluru",
}


class FakeGateway:
    def __init__(self, status_code=200, fail_times=0):
        self.status_code = status_code
        self.fail_times = fail_times
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_times:
            self.fail_times -= 1
            return httpx.Response(503, json={"error": "unavailable"})
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"description": "bad request"}})
        body = json.loads(request.content)
        return httpx.Response(200, json={"id": "order_PSP123", "amount": body["amount"], "status": "created"})

    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture
async def placed_order(db_session, make_user, make_product):
    user = await make_user(email="alice@example.com")
    tea = await make_product(price=30.0, discounted_price=25.5)
    cart = await add_item_to_cart(db_session, user.id, tea.id, 2)
    order, _ = await create_order(db_session, CreateOrderRequest(cart_id=cart.id, user_id=user.id, **billing))
    return user, order


def test_minor_units_round_correctly():
    assert to_minor_units(25.0) == 2500
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(0.1 + 0.2) == 30


def test_signature_check():
    secret = "s3cr3t"
    good = payment_signature("order_1", "pay_1", secret)

    assert verify_signature("order_1", "pay_1", good, secret)
    assert not verify_signature("order_1", "pay_2", good, secret)
    assert not verify_signature("order_1", "pay_1", good, None)


@pytest.mark.asyncio
async def test_create_psp_order_sends_basic_auth_and_minor_amount():
    gateway = FakeGateway()

    resp = await create_psp_order(5100, "INR", "order_abc", transport=gateway.transport())

    assert resp["id"] == "order_PSP123"
    sent = gateway.requests[0]
    assert str(sent.url) == f"{config_settings.RZPAY_GATEWAY_URL}/orders"
    expected_auth = base64.b64encode(f"{config_settings.RZPAY_KEY}:{config_settings.RZPAY_SECRET}".encode()).decode()
    assert sent.headers["authorization"] == f"Basic {expected_auth}"
    assert json.loads(sent.content) == {"amount": 5100, "currency": "INR", "receipt": "order_abc", "notes": {}}


@pytest.mark.asyncio
async def test_create_psp_order_retries_provider_outage():
    gateway = FakeGateway(fail_times=1)

    resp = await create_psp_order(100, "INR", "r1", transport=gateway.transport())

    assert resp["id"] == "order_PSP123"
    assert len(gateway.requests) == 2


@pytest.mark.asyncio
async def test_create_psp_order_rejection_is_not_retried():
    gateway = FakeGateway(status_code=400)

    with pytest.raises(PaymentProviderError):
        await create_psp_order(100, "INR", "r1", transport=gateway.transport())
    assert len(gateway.requests) == 1


@pytest.mark.asyncio
async def test_initiate_payment_records_provider_order(ac_client, placed_order, bearer):
    _, order = placed_order
    gateway = FakeGateway()
    app.dependency_overrides[get_psp_order_creator] = lambda: partial(create_psp_order, transport=gateway.transport())

    resp = await ac_client.post(f"/payments/initiate-payment/{order.id}", headers=bearer("alice@example.com"))

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["provider_order_id"] == "order_PSP123"
    assert data["amount"] == 51.0
    assert data["amount_minor"] == 5100
    assert data["currency"] == "INR"
    assert data["payment_status"] == "NOTPAID"

    async with async_session() as s:
        stored = (await s.execute(select(Orders.provider_order_id).where(Orders.id == order.id))).scalar_one()
    assert stored == "order_PSP123"


@pytest.mark.asyncio
async def test_initiate_payment_provider_failure_is_502(ac_client, placed_order, bearer):
    _, order = placed_order
    gateway = FakeGateway(status_code=401)
    app.dependency_overrides[get_psp_order_creator] = lambda: partial(create_psp_order, transport=gateway.transport())

    resp = await ac_client.post(f"/payments/initiate-payment/{order.id}", headers=bearer("alice@example.com"))

    assert resp.status_code == 502
    assert resp.json()["code"] == "PAYMENT_PROVIDER_ERROR"


@pytest.mark.asyncio
async def test_capture_with_valid_signature_marks_paid(ac_client, placed_order, bearer):
    _, order = placed_order
    signature = payment_signature("order_PSP123", "pay_789", config_settings.RZPAY_SECRET)

    resp = await ac_client.post(f"/payments/capture/{order.id}", json={
        "razorpay_order_id": "order_PSP123",
        "razorpay_payment_id": "pay_789",
        "razorpay_signature": signature,
    }, headers=bearer("alice@example.com"))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["message"] == "Payment Done"
    assert data["signature_verified"] is True
    assert data["payment_status"] == "PAID"

    async with async_session() as s:
        stored = (await s.execute(select(Orders).where(Orders.id == order.id))).scalar_one()
    assert stored.payment_status == "PAID"
    assert stored.payment_id == "pay_789"


@pytest.mark.asyncio
async def test_capture_with_bad_signature_changes_nothing(ac_client, placed_order, bearer):
    _, order = placed_order

    resp = await ac_client.post(f"/payments/capture/{order.id}", json={
        "razorpay_order_id": "order_PSP123",
        "razorpay_payment_id": "pay_789",
        "razorpay_signature": "0" * 64,
    }, headers=bearer("alice@example.com"))

    assert resp.status_code == 400
    assert resp.json()["message"] == "Payment signature verification failed"

    async with async_session() as s:
        status = (await s.execute(select(Orders.payment_status).where(Orders.id == order.id))).scalar_one()
    assert status == "NOTPAID"


@pytest.mark.asyncio
async def test_paid_order_cannot_be_initiated_again(ac_client, placed_order, bearer):
    _, order = placed_order
    headers = bearer("alice@example.com")
    signature = payment_signature("order_PSP123", "pay_789", config_settings.RZPAY_SECRET)
    await ac_client.post(f"/payments/capture/{order.id}", json={
        "razorpay_order_id": "order_PSP123",
        "razorpay_payment_id": "pay_789",
        "razorpay_signature": signature,
    }, headers=headers)

    resp = await ac_client.post(f"/payments/initiate-payment/{order.id}", headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_other_shopper_cannot_pay_for_order(ac_client, placed_order, make_user, bearer):
    _, order = placed_order
    await make_user(email="bob@example.com")

    resp = await ac_client.post(f"/payments/initiate-payment/{order.id}", headers=bearer("bob@example.com"))
    assert resp.status_code == 403

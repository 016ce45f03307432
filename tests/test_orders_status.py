import pytest

from storefront.cart.services import add_item_to_cart
from storefront.orders.models import CreateOrderRequest
from storefront.orders.services import create_order
from storefront.orders.utils import ORDER_STATUS_FLOW, check_transition
from storefront.common.custom_exceptions import InvalidStatusTransition

billing = {
    "billing_name": "Alice Shopper",
    "billing_phone": "9876543210",
    "billing_address": "12 MG Road, Bengaluru",
}


@pytest.fixture
async def placed_order(db_session, make_user, make_product):
    user = await make_user(email="alice@example.com")
    tea = await make_product(price=12.0, discounted_price=10.0)
    cart = await add_item_to_cart(db_session, user.id, tea.id, 3)
    order, _ = await create_order(db_session, CreateOrderRequest(cart_id=cart.id, user_id=user.id, **billing))
    return user, order


def test_transition_table():
    check_transition(ORDER_STATUS_FLOW, "PENDING", "DISPATCHED", "order status")
    check_transition(ORDER_STATUS_FLOW, "DISPATCHED", "DELIVERED", "order status")
    check_transition(ORDER_STATUS_FLOW, "PENDING", "PENDING", "order status")

    with pytest.raises(InvalidStatusTransition):
        check_transition(ORDER_STATUS_FLOW, "DELIVERED", "PENDING", "order status")
    with pytest.raises(InvalidStatusTransition):
        check_transition(ORDER_STATUS_FLOW, "PENDING", "DELIVERED", "order status")


@pytest.mark.asyncio
async def test_admin_moves_order_forward(ac_client, placed_order, make_admin, bearer):
    _, order = placed_order
    await make_admin()
    headers = bearer("admin@example.com")

    dispatched = await ac_client.put(f"/orders/admin/{order.id}", json={"order_status": "DISPATCHED"},
                                     headers=headers)
    assert dispatched.status_code == 200
    assert dispatched.json()["data"]["order_status"] == "DISPATCHED"
    assert dispatched.json()["data"]["delivered_date"] is None

    delivered = await ac_client.put(f"/orders/admin/{order.id}",
                                    json={"order_status": "DELIVERED", "payment_status": "PAID"},
                                    headers=headers)
    data = delivered.json()["data"]
    assert data["order_status"] == "DELIVERED"
    assert data["payment_status"] == "PAID"
    assert data["delivered_date"] is not None


@pytest.mark.asyncio
async def test_backwards_transitions_are_refused(ac_client, placed_order, make_admin, bearer):
    _, order = placed_order
    await make_admin()
    headers = bearer("admin@example.com")

    await ac_client.put(f"/orders/admin/{order.id}", json={"order_status": "DISPATCHED"}, headers=headers)
    await ac_client.put(f"/orders/admin/{order.id}", json={"order_status": "DELIVERED", "payment_status": "PAID"},
                        headers=headers)

    undo = await ac_client.put(f"/orders/admin/{order.id}", json={"order_status": "DISPATCHED"}, headers=headers)
    assert undo.status_code == 400

    back = await ac_client.put(f"/orders/admin/{order.id}", json={"order_status": "PENDING"}, headers=headers)
    assert back.status_code == 400
    assert back.json()["code"] == "INVALID_STATUS_TRANSITION"

    unpaid = await ac_client.put(f"/orders/admin/{order.id}", json={"payment_status": "NOTPAID"}, headers=headers)
    assert unpaid.status_code == 400


@pytest.mark.asyncio
async def test_empty_status_update_is_invalid(ac_client, placed_order, make_admin, bearer):
    _, order = placed_order
    await make_admin()

    resp = await ac_client.put(f"/orders/admin/{order.id}", json={}, headers=bearer("admin@example.com"))
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_shopper_cannot_change_status(ac_client, placed_order, bearer):
    _, order = placed_order

    resp = await ac_client.put(f"/orders/admin/{order.id}", json={"order_status": "DELIVERED"},
                               headers=bearer("alice@example.com"))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_owner_updates_billing(ac_client, placed_order, bearer):
    _, order = placed_order

    resp = await ac_client.put(f"/orders/user/{order.id}", json={"billing_address": "7 Park Street, Kolkata"},
                               headers=bearer("alice@example.com"))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["billing_address"] == "7 Park Street, Kolkata"
    assert data["billing_name"] == "Alice Shopper"


@pytest.mark.asyncio
async def test_other_shopper_cannot_update_billing(ac_client, placed_order, make_user, bearer):
    _, order = placed_order
    await make_user(email="bob@example.com")

    resp = await ac_client.put(f"/orders/user/{order.id}", json={"billing_name": "Bob"},
                               headers=bearer("bob@example.com"))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_orders_of_user(ac_client, placed_order, bearer):
    user, order = placed_order

    resp = await ac_client.get(f"/orders/users/{user.id}", headers=bearer("alice@example.com"))

    assert resp.status_code == 200
    orders = resp.json()["data"]
    assert [o["id"] for o in orders] == [order.id]
    assert orders[0]["order_amount"] == 30.0


@pytest.mark.asyncio
async def test_admin_lists_and_deletes_orders(ac_client, placed_order, make_admin, bearer):
    _, order = placed_order
    await make_admin()
    headers = bearer("admin@example.com")

    page = (await ac_client.get("/orders", params={"page_size": 5}, headers=headers)).json()["data"]
    assert page["total_elements"] == 1
    assert page["last_page"] is True
    assert page["content"][0]["id"] == order.id

    deleted = await ac_client.delete(f"/orders/{order.id}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "order is removed !!"

    missing = await ac_client.put(f"/orders/admin/{order.id}", json={"order_status": "DISPATCHED"},
                                  headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_unknown_sort_field_is_bad_request(ac_client, make_admin, bearer):
    await make_admin()

    resp = await ac_client.get("/orders", params={"sort_by": "password"}, headers=bearer("admin@example.com"))
    assert resp.status_code == 400

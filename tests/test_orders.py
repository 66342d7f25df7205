import asyncio
import json
import uuid

from sqlmodel import func, select

from conftest import API, auth_headers, make_category, make_coupon, make_product, make_user

from app.models.cart import Cart
from app.models.order import Order
from app.models.product import Product
from app.routers import orders as orders_router


def count(session, model) -> int:
    return session.exec(select(func.count()).select_from(model)).one()


def fill_cart(client, headers, *lines):
    res = None
    for product, quantity in lines:
        res = client.post(
            f"{API}/cart",
            json={"product_id": str(product.id), "quantity": quantity},
            headers=headers,
        )
    return res.json()["data"]["id"]


def test_cash_order_moves_inventory_and_deletes_cart(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    category = make_category(session)
    phone = make_product(session, category, title="Phone", price=100, quantity=10)
    case = make_product(session, category, title="Case", price=50, quantity=5)
    make_coupon(session, name="SAVE20", discount=20, maximum_discount_amount=40)

    cart_id = fill_cart(client, headers, (phone, 2), (case, 1))
    client.put(f"{API}/cart/apply-coupon", json={"coupon": "SAVE20"}, headers=headers)

    res = client.post(
        f"{API}/orders/{cart_id}",
        json={"shipping_address": {"details": "1 Main St", "city": "Cairo"}},
        headers=headers,
    )
    assert res.status_code == 201
    order = res.json()["data"]
    assert order["total_order_price"] == 210.0
    assert order["payment_method"] == "cash"
    assert order["is_paid"] is False
    assert order["coupon"] == "SAVE20"
    assert order["shipping_address"]["city"] == "Cairo"
    lines = {i["product_id"]: (i["quantity"], i["price"]) for i in order["cart_items"]}
    assert lines == {str(phone.id): (2, 100.0), str(case.id): (1, 50.0)}
    assert all(i["order_id"] == order["id"] for i in order["cart_items"])

    session.expire_all()
    assert (session.get(Product, phone.id).quantity, session.get(Product, phone.id).sold) == (8, 2)
    assert (session.get(Product, case.id).quantity, session.get(Product, case.id).sold) == (4, 1)
    assert session.get(Cart, uuid.UUID(cart_id)) is None


def test_cash_order_for_missing_or_foreign_cart_is_not_found(client, session):
    owner = make_user(session)
    other = make_user(session)
    product = make_product(session, make_category(session))
    cart_id = fill_cart(client, auth_headers(owner), (product, 1))

    res = client.post(f"{API}/orders/{cart_id}", headers=auth_headers(other))
    assert res.status_code == 404

    res = client.post(f"{API}/orders/{product.id}", headers=auth_headers(owner))
    assert res.status_code == 404

    session.expire_all()
    assert session.get(Product, product.id).quantity == 10


def test_orders_are_scoped_by_role(client, session):
    alice = make_user(session, name="Alice")
    bob = make_user(session, name="Bob")
    manager = make_user(session, role="manager")
    product = make_product(session, make_category(session), quantity=100)

    for buyer in (alice, bob):
        headers = auth_headers(buyer)
        cart_id = fill_cart(client, headers, (product, 1))
        client.post(f"{API}/orders/{cart_id}", headers=headers)

    mine = client.get(f"{API}/orders", headers=auth_headers(alice)).json()
    assert mine["results"] == 1
    assert mine["data"][0]["user_id"] == str(alice.id)
    assert len(mine["data"][0]["cart_items"]) == 1

    everything = client.get(f"{API}/orders", headers=auth_headers(manager)).json()
    assert everything["results"] == 2

    bobs_order = next(o for o in everything["data"] if o["user_id"] == str(bob.id))
    res = client.get(f"{API}/orders/{bobs_order['id']}", headers=auth_headers(alice))
    assert res.status_code == 404


def test_pay_and_deliver_are_monotonic(client, session):
    user = make_user(session)
    admin = make_user(session, role="admin")
    headers = auth_headers(user)
    product = make_product(session, make_category(session))
    cart_id = fill_cart(client, headers, (product, 1))
    order_id = client.post(f"{API}/orders/{cart_id}", headers=headers).json()["data"]["id"]

    assert client.put(f"{API}/orders/{order_id}/pay", headers=headers).status_code == 403

    paid = client.put(f"{API}/orders/{order_id}/pay", headers=auth_headers(admin)).json()["data"]
    assert paid["is_paid"] is True
    assert paid["paid_at"] is not None
    assert paid["is_delivered"] is False

    again = client.put(f"{API}/orders/{order_id}/pay", headers=auth_headers(admin)).json()["data"]
    assert again["paid_at"] == paid["paid_at"]

    delivered = client.put(f"{API}/orders/{order_id}/deliver", headers=auth_headers(admin)).json()["data"]
    assert delivered["is_delivered"] is True
    assert delivered["is_paid"] is True

    missing = client.put(f"{API}/orders/{product.id}/deliver", headers=auth_headers(admin))
    assert missing.status_code == 404


def test_checkout_session_does_not_create_order(client, session, gateway):
    user = make_user(session, email="buyer@example.com")
    headers = auth_headers(user)
    product = make_product(session, make_category(session), price=40)
    cart_id = fill_cart(client, headers, (product, 2))

    res = client.post(
        f"{API}/orders/checkout-session/{cart_id}",
        json={"shipping_address": {"details": "Street 9"}},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["session"]["url"] == "https://checkout.test/cs_test_1"

    sent = gateway.sessions[0]
    assert sent["amount"] == 80
    assert sent["customer_email"] == "buyer@example.com"
    assert sent["client_reference_id"] == cart_id
    assert sent["metadata"]["user_id"] == str(user.id)
    assert json.loads(sent["metadata"]["shipping_address"])["details"] == "Street 9"

    session.expire_all()
    assert count(session, Order) == 0
    assert session.get(Product, product.id).quantity == 10


def completed_event(cart_id: str, email: str, user_id: str, amount_total: int) -> dict:
    return {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "client_reference_id": cart_id,
                "customer_email": email,
                "amount_total": amount_total,
                "metadata": {
                    "shipping_address": json.dumps({"details": "Street 9"}),
                    "coupon": "",
                    "user_id": user_id,
                },
            }
        },
    }


def test_webhook_creates_paid_card_order(client, session, gateway):
    user = make_user(session, email="buyer@example.com")
    product = make_product(session, make_category(session), price=40)
    cart_id = fill_cart(client, auth_headers(user), (product, 2))

    event = completed_event(cart_id, "buyer@example.com", str(user.id), 8000)
    res = client.post(
        f"{API}/webhook-checkout",
        content=json.dumps(event),
        headers={"Stripe-Signature": "valid", "Content-Type": "application/json"},
    )
    assert res.status_code == 200
    assert res.json() == {"received": True}

    session.expire_all()
    order = session.exec(select(Order)).one()
    assert order.payment_method == "card"
    assert order.is_paid is True
    assert order.paid_at is not None
    assert order.total_order_price == 80
    assert order.shipping_address == {"details": "Street 9"}
    assert session.get(Product, product.id).sold == 2
    assert count(session, Cart) == 0


def test_webhook_rejects_bad_signature(client, session, gateway):
    user = make_user(session, email="buyer@example.com")
    product = make_product(session, make_category(session))
    cart_id = fill_cart(client, auth_headers(user), (product, 1))

    event = completed_event(cart_id, "buyer@example.com", str(user.id), 10000)
    res = client.post(
        f"{API}/webhook-checkout",
        content=json.dumps(event),
        headers={"Stripe-Signature": "forged"},
    )
    assert res.status_code == 400
    session.expire_all()
    assert count(session, Order) == 0


def test_webhook_ignores_mismatched_buyer(client, session, gateway):
    buyer = make_user(session, email="buyer@example.com")
    make_user(session, email="stranger@example.com")
    product = make_product(session, make_category(session))
    cart_id = fill_cart(client, auth_headers(buyer), (product, 1))

    event = completed_event(cart_id, "stranger@example.com", str(buyer.id), 10000)
    res = client.post(
        f"{API}/webhook-checkout",
        content=json.dumps(event),
        headers={"Stripe-Signature": "valid"},
    )
    assert res.status_code == 200
    session.expire_all()
    assert count(session, Order) == 0
    assert count(session, Cart) == 1


def test_webhook_ignores_other_event_types(client, gateway):
    res = client.post(
        f"{API}/webhook-checkout",
        content=json.dumps({"id": "evt_2", "type": "payment_intent.created", "data": {"object": {}}}),
        headers={"Stripe-Signature": "valid"},
    )
    assert res.status_code == 200


def test_webhook_processing_runs_in_a_worker_thread(client, gateway, monkeypatch):
    handled = []

    def record(session, event):
        try:
            asyncio.get_running_loop()
            handled.append("event loop")
        except RuntimeError:
            handled.append(event["type"])

    monkeypatch.setattr(orders_router.service, "handle_payment_event", record)
    res = client.post(
        f"{API}/webhook-checkout",
        content=json.dumps({"id": "evt_3", "type": "checkout.session.completed", "data": {"object": {}}}),
        headers={"Stripe-Signature": "valid"},
    )
    assert res.status_code == 200
    assert handled == ["checkout.session.completed"]

from datetime import timedelta

from conftest import API, auth_headers, make_category, make_coupon, make_product, make_user


def add(client, headers, product, **extra):
    return client.post(f"{API}/cart", json={"product_id": str(product.id), **extra}, headers=headers)


def test_cart_totals_and_capped_coupon(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    category = make_category(session)
    phone = make_product(session, category, title="Phone", price=100)
    case = make_product(session, category, title="Case", price=50)
    make_coupon(session, name="SAVE20", discount=20, maximum_discount_amount=40)

    add(client, headers, phone, quantity=2)
    res = add(client, headers, case)
    body = res.json()
    assert body["status"] == "success"
    assert body["number_of_items"] == 2
    assert body["data"]["total_cart_price"] == 250

    res = client.put(f"{API}/cart/apply-coupon", json={"coupon": " save20 "}, headers=headers)
    assert res.status_code == 200
    data = res.json()["data"]
    # min(250 * 20%, 40) = 40
    assert data["total_price_after_discount"] == 210.0
    assert data["coupon"] == "SAVE20"


def test_uncapped_coupon_uses_percentage(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    product = make_product(session, make_category(session), price=80)
    make_coupon(session, name="TEN", discount=10)

    add(client, headers, product)
    data = client.put(f"{API}/cart/apply-coupon", json={"coupon": "TEN"}, headers=headers).json()["data"]
    assert data["total_price_after_discount"] == 72.0


def test_same_product_and_color_increments_without_repricing(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    product = make_product(session, make_category(session), price=30)

    add(client, headers, product, color="red")
    product.price = 45
    session.add(product)
    session.commit()

    add(client, headers, product, color="red")
    res = add(client, headers, product, color="blue")
    data = res.json()["data"]

    lines = {line["color"]: line for line in data["cart_items"]}
    assert lines["red"]["quantity"] == 2
    assert lines["red"]["price"] == 30
    assert lines["blue"]["price"] == 45
    assert data["total_cart_price"] == 30 * 2 + 45


def test_item_changes_clear_applied_coupon(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    product = make_product(session, make_category(session), price=100)
    make_coupon(session, name="HALF", discount=50)

    res = add(client, headers, product)
    item_id = res.json()["data"]["cart_items"][0]["id"]
    client.put(f"{API}/cart/apply-coupon", json={"coupon": "HALF"}, headers=headers)

    res = client.put(f"{API}/cart/{item_id}", json={"quantity": 3}, headers=headers)
    data = res.json()["data"]
    assert data["total_cart_price"] == 300
    assert data["coupon"] is None
    assert data["total_price_after_discount"] is None


def test_remove_item_recomputes_total(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    category = make_category(session)
    a = make_product(session, category, title="First", price=10)
    b = make_product(session, category, title="Second", price=20)

    add(client, headers, a)
    res = add(client, headers, b)
    first_line = next(i for i in res.json()["data"]["cart_items"] if i["product_id"] == str(a.id))

    res = client.delete(f"{API}/cart/{first_line['id']}", headers=headers)
    assert res.json()["number_of_items"] == 1
    assert res.json()["data"]["total_cart_price"] == 20


def test_expired_or_unknown_coupon_is_not_found(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    add(client, headers, make_product(session, make_category(session)))
    make_coupon(session, name="OLD", expires_in=timedelta(days=-1))

    assert client.put(f"{API}/cart/apply-coupon", json={"coupon": "OLD"}, headers=headers).status_code == 404
    assert client.put(f"{API}/cart/apply-coupon", json={"coupon": "NOPE"}, headers=headers).status_code == 404


def test_update_missing_line_is_not_found(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    product = make_product(session, make_category(session))

    res = client.put(f"{API}/cart/{product.id}", json={"quantity": 2}, headers=headers)
    assert res.status_code == 404

    add(client, headers, product)
    res = client.put(f"{API}/cart/{product.id}", json={"quantity": 2}, headers=headers)
    assert res.status_code == 404


def test_clear_cart_then_get_is_not_found(client, session):
    user = make_user(session)
    headers = auth_headers(user)
    add(client, headers, make_product(session, make_category(session)))

    assert client.delete(f"{API}/cart", headers=headers).status_code == 204
    assert client.get(f"{API}/cart", headers=headers).status_code == 404


def test_add_unknown_product_is_not_found(client, session):
    user = make_user(session)
    category = make_category(session)
    res = client.post(f"{API}/cart", json={"product_id": str(category.id)}, headers=auth_headers(user))
    assert res.status_code == 404


def test_staff_has_no_cart(client, session):
    admin = make_user(session, role="admin")
    assert client.get(f"{API}/cart", headers=auth_headers(admin)).status_code == 403

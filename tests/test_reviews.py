from conftest import API, auth_headers, make_category, make_product, make_user

from app.models.product import Product


def post_review(client, user, product, rating, title="Nice"):
    return client.post(
        f"{API}/products/{product.id}/reviews",
        json={"title": title, "rating": rating},
        headers=auth_headers(user),
    )


def test_reviews_update_product_ratings(client, session):
    product = make_product(session, make_category(session))
    alice, bob = make_user(session), make_user(session)

    assert post_review(client, alice, product, 4).status_code == 201
    res = post_review(client, bob, product, 5, title="Great")
    created = res.json()["data"]
    assert created["user_id"] == str(bob.id)
    assert created["product_id"] == str(product.id)
    assert (created["title"], created["rating"]) == ("Great", 5)
    assert created["id"]

    session.expire_all()
    stored = session.get(Product, product.id)
    assert stored.ratings_quantity == 2
    assert stored.ratings_average == 4.5

    listed = client.get(f"{API}/products/{product.id}/reviews").json()
    assert listed["results"] == 2


def test_one_review_per_user_and_product(client, session):
    product = make_product(session, make_category(session))
    user = make_user(session)
    post_review(client, user, product, 3)
    assert post_review(client, user, product, 5).status_code == 400


def test_only_author_updates_and_staff_may_delete(client, session):
    product = make_product(session, make_category(session))
    author, other = make_user(session), make_user(session)
    manager = make_user(session, role="manager")
    review_id = post_review(client, author, product, 2).json()["data"]["id"]

    res = client.put(f"{API}/reviews/{review_id}", json={"rating": 5}, headers=auth_headers(other))
    assert res.status_code == 403
    res = client.put(f"{API}/reviews/{review_id}", json={"rating": 5}, headers=auth_headers(author))
    assert res.status_code == 200
    assert res.json()["data"]["rating"] == 5
    assert res.json()["data"]["id"] == review_id

    session.expire_all()
    assert session.get(Product, product.id).ratings_average == 5

    assert client.delete(f"{API}/reviews/{review_id}", headers=auth_headers(other)).status_code == 403
    assert client.delete(f"{API}/reviews/{review_id}", headers=auth_headers(manager)).status_code == 204

    session.expire_all()
    stored = session.get(Product, product.id)
    assert stored.ratings_quantity == 0
    assert stored.ratings_average == 0


def test_review_rating_bounds(client, session):
    product = make_product(session, make_category(session))
    user = make_user(session)
    assert post_review(client, user, product, 6).status_code == 422

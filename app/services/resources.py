"""
Entity definitions for the generic handlers.

Each Resource names its model, its type name (used in messages and to
pick keyword-search fields) and the entity hooks that run around the
generic operations.
"""

import uuid
from typing import Any

from sqlmodel import Session, func, select

from app.core.security import hash_password
from app.core.storage_utils import public_url
from app.models.brand import Brand
from app.models.category import Category, SubCategory
from app.models.coupon import Coupon
from app.models.order import Order
from app.models.product import Product
from app.models.review import Review
from app.models.user import User
from app.services.resource_service import Resource

USER_HIDDEN_FIELDS = (
    "password",
    "password_reset_code",
    "password_reset_expires",
    "password_reset_verified",
)


# ---- hooks ----


def _hash_user_password(payload: dict[str, Any]) -> dict[str, Any]:
    payload["password"] = hash_password(payload["password"])
    return payload


def recalc_product_ratings(session: Session, review: Review) -> None:
    """
    Recompute Product.ratings_average / ratings_quantity from its reviews.

    Average is rounded to one decimal; a product without reviews goes
    back to 0 / 0.
    """
    product = session.get(Product, review.product_id)
    if product is None:
        return

    avg, count = session.exec(
        select(func.avg(Review.rating), func.count(Review.id)).where(
            Review.product_id == review.product_id
        )
    ).one()

    product.ratings_average = round(float(avg), 1) if count else 0
    product.ratings_quantity = count
    session.add(product)
    session.flush()


def _populate_product(session: Session, data: dict[str, Any]) -> dict[str, Any]:
    product_id = uuid.UUID(data["id"])

    category = session.get(Category, uuid.UUID(data["category_id"])) if data.get("category_id") else None
    data["category"] = {"id": str(category.id), "name": category.name} if category else None

    reviews = session.exec(
        select(Review, User)
        .join(User, User.id == Review.user_id)
        .where(Review.product_id == product_id)
        .order_by(Review.created_at.desc())
    ).all()
    data["reviews"] = [
        {
            **review.model_dump(mode="json"),
            "user": {"id": str(user.id), "name": user.name},
        }
        for review, user in reviews
    ]
    return data


def _populate_review(session: Session, data: dict[str, Any]) -> dict[str, Any]:
    user = session.get(User, uuid.UUID(data["user_id"]))
    data["user"] = (
        {"id": str(user.id), "name": user.name, "profile_img": public_url("users", user.profile_img)}
        if user
        else None
    )
    return data


# ---- resources ----

categories = Resource(
    model=Category,
    name="Category",
    image_fields={"image": "categories"},
)

subcategories = Resource(
    model=SubCategory,
    name="SubCategory",
    default_limit=5,
)

brands = Resource(
    model=Brand,
    name="Brand",
    default_limit=5,
    image_fields={"image": "brands"},
)

products = Resource(
    model=Product,
    name="Product",
    image_fields={"image_cover": "products", "images": "products"},
    populate=_populate_product,
)

reviews = Resource(
    model=Review,
    name="Review",
    after_write=recalc_product_ratings,
    populate=_populate_review,
)

coupons = Resource(
    model=Coupon,
    name="Coupon",
)

users = Resource(
    model=User,
    name="User",
    hidden_fields=USER_HIDDEN_FIELDS,
    image_fields={"profile_img": "users"},
    before_create=_hash_user_password,
)

orders = Resource(
    model=Order,
    name="Order",
)

# app/services/cart_service.py
import logging
import uuid
from typing import Any

from sqlmodel import Session, select

from app.core.errors import NotFoundError
from app.core.time_utils import as_utc, utc_now
from app.models.cart import Cart, CartItem
from app.models.coupon import Coupon, normalize_coupon_name
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartItemCreate

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - create the cart lazily on first add
      - capture the product price when a line is added
      - recompute totals after every mutation (and drop any applied coupon)
      - apply percentage coupons with an optional absolute cap

    Every mutator reloads the cart with a row lock and commits once.
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    # ---- internal helpers ----

    def _locked_cart(self, session: Session, user_id: uuid.UUID) -> Cart:
        cart = self.cart_repo.get_for_user(session, user_id, lock=True)
        if cart is None:
            raise NotFoundError(f"There is no cart for this user id : {user_id}")
        return cart

    def _recompute(self, session: Session, cart: Cart) -> list[CartItem]:
        """
        total_cart_price = sum(price * quantity) over the remaining lines.
        Any applied coupon is cleared; it must be applied again.
        """
        items = self.cart_repo.list_items(session, cart.id)
        cart.total_cart_price = round(sum(it.price * it.quantity for it in items), 2)
        cart.total_price_after_discount = None
        cart.coupon = None
        session.add(cart)
        return items

    def serialize(self, cart: Cart, items: list[CartItem]) -> dict[str, Any]:
        data = cart.model_dump(mode="json")
        data["cart_items"] = [it.model_dump(mode="json") for it in items]
        return data

    def _response(
        self,
        session: Session,
        cart: Cart,
        message: str | None = None,
    ) -> dict[str, Any]:
        session.refresh(cart)
        items = self.cart_repo.list_items(session, cart.id)
        body: dict[str, Any] = {
            "status": "success",
            "number_of_items": len(items),
            "data": self.serialize(cart, items),
        }
        if message:
            body["message"] = message
        return body

    # ---- public operations ----

    def get_cart(self, session: Session, user_id: uuid.UUID) -> dict[str, Any]:
        cart = self.cart_repo.get_for_user(session, user_id)
        if cart is None:
            raise NotFoundError(f"There is no cart for this user id : {user_id}")
        return self._response(session, cart)

    def add_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> dict[str, Any]:
        """
        Add a product to the user's cart.

        Rules:
          - no cart yet => create one with this single line
          - same product + color already in the cart => quantity += given
            quantity (1 when omitted); the line keeps its captured price
          - otherwise append a line at the product's current price
        """
        product = self.product_repo.get_by_id(session, payload.product_id)
        if product is None:
            raise NotFoundError(f"No product for this id : {payload.product_id}")

        cart = self.cart_repo.get_for_user(session, user_id, lock=True)
        if cart is None:
            cart = self.cart_repo.create(session, user_id)

        line = self.cart_repo.find_line(session, cart.id, product.id, payload.color)
        if line is not None:
            line.quantity += payload.quantity or 1
            session.add(line)
        else:
            self.cart_repo.add_item(
                session,
                CartItem(
                    cart_id=cart.id,
                    product_id=product.id,
                    color=payload.color,
                    quantity=payload.quantity or 1,
                    price=product.price,
                ),
            )

        self._recompute(session, cart)
        session.commit()
        return self._response(session, cart, "Product added to cart successfully")

    def update_item_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        quantity: int,
    ) -> dict[str, Any]:
        cart = self._locked_cart(session, user_id)
        item = self.cart_repo.get_item(session, cart.id, item_id)
        if item is None:
            raise NotFoundError(f"There is no item for this id : {item_id}")

        item.quantity = quantity
        session.add(item)
        self._recompute(session, cart)
        session.commit()
        return self._response(session, cart)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> dict[str, Any]:
        cart = self._locked_cart(session, user_id)
        item = self.cart_repo.get_item(session, cart.id, item_id)
        if item is not None:
            self.cart_repo.delete_item(session, item)

        self._recompute(session, cart)
        session.commit()
        return self._response(session, cart)

    def clear(self, session: Session, user_id: uuid.UUID) -> None:
        """Delete the user's cart (no-op when there is none)."""
        cart = self.cart_repo.get_for_user(session, user_id, lock=True)
        if cart is not None:
            self.cart_repo.delete(session, cart)
            session.commit()

    def apply_coupon(
        self,
        session: Session,
        user_id: uuid.UUID,
        coupon_name: str,
    ) -> dict[str, Any]:
        """
        Apply an unexpired coupon to the cart.

        discount = min(total * pct / 100, maximum_discount_amount)
        total_price_after_discount = max(0, round(total - discount, 2))
        """
        name = normalize_coupon_name(coupon_name)
        coupon = session.exec(select(Coupon).where(Coupon.name == name)).first()
        if coupon is None or as_utc(coupon.expire_at) <= utc_now():
            raise NotFoundError("Coupon is invalid or expired")

        cart = self._locked_cart(session, user_id)
        total = cart.total_cart_price
        discount = total * coupon.discount / 100
        if coupon.maximum_discount_amount is not None:
            discount = min(discount, coupon.maximum_discount_amount)

        cart.total_price_after_discount = max(0.0, round(total - discount, 2))
        cart.coupon = coupon.name
        session.add(cart)
        session.commit()
        logger.info("Coupon %s applied to cart %s", coupon.name, cart.id)
        return self._response(session, cart)

# app/services/order_service.py
import json
import logging
import uuid
from typing import Any

from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import BadRequestError, NotFoundError
from app.core.payment_client import PaymentGateway
from app.core.query_features import QueryParams
from app.core.time_utils import utc_now
from app.models.cart import Cart
from app.models.order import Order, OrderItem
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.schemas.order import ShippingAddress
from app.services.resource_service import ResourceService

logger = logging.getLogger(__name__)

PAYMENT_COMPLETED_EVENT = "checkout.session.completed"


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create an order from a cart (cash, or card after the payment webhook)
      - Snapshot cart lines into order lines
      - Move inventory (quantity -= n, sold += n) in one batched UPDATE
      - Delete the cart
      - Keep paid / delivered flags monotonic

    Order insert, inventory update and cart delete share one transaction:
    if any step fails nothing is committed.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        user_repo: UserRepository,
        orders: ResourceService,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.user_repo = user_repo
        self.orders = orders

    # -------- helpers --------

    def _cart_for(self, session: Session, cart_id: uuid.UUID, user: User, lock: bool = False) -> Cart:
        cart = self.cart_repo.get_by_id(session, cart_id, lock=lock)
        # Another user's cart is reported exactly like a missing one
        if cart is None or cart.user_id != user.id:
            raise NotFoundError(f"There is no cart with this id : {cart_id}")
        return cart

    @staticmethod
    def cart_price(cart: Cart) -> float:
        """Price after coupon when one is applied, else the plain total."""
        if cart.coupon and cart.total_price_after_discount is not None:
            return cart.total_price_after_discount
        return cart.total_cart_price

    def _order_total(self, cart: Cart) -> float:
        settings = get_settings()
        return round(self.cart_price(cart) + settings.TAX_PRICE + settings.SHIPPING_PRICE, 2)

    def _serialize(self, order: Order, items: list[OrderItem]) -> dict[str, Any]:
        data = self.orders.resource.serialize(order)
        data["cart_items"] = [it.model_dump(mode="json") for it in items]
        return data

    def _create_from_cart(
        self,
        session: Session,
        cart: Cart,
        user: User,
        shipping_address: dict | None,
        *,
        payment_method: str,
        total: float,
        coupon: str | None,
        paid: bool = False,
    ) -> dict[str, Any]:
        """
        Steps:
          1. Snapshot the cart lines (error if empty).
          2. Insert Order + OrderItems.
          3. Batched inventory UPDATE for all lines.
          4. Delete the cart.
          5. Commit once.
        """
        cart_items = self.cart_repo.list_items(session, cart.id)
        if not cart_items:
            raise BadRequestError("Cart is empty")

        settings = get_settings()
        now = utc_now()
        order = self.order_repo.create_order(
            session,
            Order(
                user_id=user.id,
                shipping_address=shipping_address,
                tax_price=settings.TAX_PRICE,
                shipping_price=settings.SHIPPING_PRICE,
                total_order_price=total,
                coupon=coupon,
                payment_method=payment_method,
                is_paid=paid,
                paid_at=now if paid else None,
            ),
        )
        items = self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=ci.product_id,
                    quantity=ci.quantity,
                    color=ci.color,
                    price=ci.price,
                )
                for ci in cart_items
            ],
        )
        self.product_repo.apply_sale(
            session, [(ci.product_id, ci.quantity) for ci in cart_items]
        )
        self.cart_repo.delete(session, cart)
        session.commit()

        session.refresh(order)
        logger.info(
            "Order %s created (%s, %d lines, total %.2f) for user %s",
            order.id, payment_method, len(items), total, user.id,
        )
        # Commit expired the line objects; read them back
        return self._serialize(order, self.order_repo.list_items_for_orders(session, [order.id]))

    # -------- User-facing operations --------

    def create_cash_order(
        self,
        session: Session,
        cart_id: uuid.UUID,
        shipping_address: ShippingAddress | None,
        user: User,
    ) -> dict[str, Any]:
        """
        Convert the user's cart into an unpaid cash order.

        total = cart price (after coupon if applied) + tax + shipping
        """
        cart = self._cart_for(session, cart_id, user, lock=True)
        return self._create_from_cart(
            session,
            cart,
            user,
            shipping_address.model_dump() if shipping_address else None,
            payment_method="cash",
            total=self._order_total(cart),
            coupon=cart.coupon,
        )

    def get_checkout_session(
        self,
        session: Session,
        gateway: PaymentGateway,
        cart_id: uuid.UUID,
        shipping_address: ShippingAddress | None,
        user: User,
    ) -> dict[str, Any]:
        """
        Open a hosted payment page for the cart total.

        The cart id travels as client_reference_id; shipping address,
        coupon and user id travel as metadata and come back in the
        webhook. Nothing is written here.
        """
        cart = self._cart_for(session, cart_id, user)
        settings = get_settings()
        checkout = gateway.create_session(
            amount=self._order_total(cart),
            currency=settings.PAYMENT_CURRENCY,
            success_url=settings.CHECKOUT_SUCCESS_URL,
            cancel_url=settings.CHECKOUT_CANCEL_URL,
            customer_email=user.email,
            client_reference_id=str(cart.id),
            metadata={
                "shipping_address": json.dumps(
                    shipping_address.model_dump() if shipping_address else None
                ),
                "coupon": cart.coupon or "",
                "user_id": str(user.id),
            },
            product_name=user.name,
        )
        return {"status": "success", "session": {"id": checkout.id, "url": checkout.url}}

    def handle_payment_event(self, session: Session, event: dict[str, Any]) -> None:
        """
        Create a paid card order from a verified `checkout.session.completed`
        event. Other event types are ignored.

        Rules:
          - the buyer is resolved by the email the provider reports
          - that user must match the user_id recorded at session creation;
            otherwise the event is ignored
          - a cart that no longer exists (e.g. a redelivered event) is ignored
          - total = amount the provider actually charged
        """
        if event.get("type") != PAYMENT_COMPLETED_EVENT:
            logger.info("Ignoring payment event %s", event.get("type"))
            return

        payload = event.get("data", {}).get("object", {})
        metadata = payload.get("metadata") or {}
        email = payload.get("customer_email") or (payload.get("customer_details") or {}).get("email")

        user = self.user_repo.get_by_email(session, email) if email else None
        if user is None:
            logger.warning("Payment event %s: no user for the reported email", event.get("id"))
            return
        if metadata.get("user_id") and metadata["user_id"] != str(user.id):
            logger.warning(
                "Payment event %s: reported email belongs to user %s but the session was opened by %s",
                event.get("id"), user.id, metadata["user_id"],
            )
            return

        try:
            cart_id = uuid.UUID(payload.get("client_reference_id") or "")
        except ValueError:
            logger.warning("Payment event %s: missing or invalid cart reference", event.get("id"))
            return

        cart = self.cart_repo.get_by_id(session, cart_id, lock=True)
        if cart is None or cart.user_id != user.id:
            logger.warning("Payment event %s: cart %s not found", event.get("id"), cart_id)
            return

        raw_address = metadata.get("shipping_address")
        self._create_from_cart(
            session,
            cart,
            user,
            json.loads(raw_address) if raw_address else None,
            payment_method="card",
            total=round((payload.get("amount_total") or 0) / 100, 2),
            coupon=metadata.get("coupon") or None,
            paid=True,
        )

    # -------- Read paths --------

    @staticmethod
    def _scope(user: User) -> dict[str, Any] | None:
        return {"user_id": user.id} if user.role == "user" else None

    def list_orders(
        self,
        session: Session,
        user: User,
        params: QueryParams,
    ) -> tuple[list[dict[str, Any]], Any]:
        """
        Customers see their own orders; staff see every order.
        """
        data, pagination = self.orders.list(session, params, self._scope(user))
        ids = [uuid.UUID(row["id"]) for row in data]
        by_order: dict[str, list[dict[str, Any]]] = {}
        for item in self.order_repo.list_items_for_orders(session, ids):
            by_order.setdefault(str(item.order_id), []).append(item.model_dump(mode="json"))
        for row in data:
            row["cart_items"] = by_order.get(row["id"], [])
        return data, pagination

    def get_order(self, session: Session, user: User, order_id: uuid.UUID) -> dict[str, Any]:
        order = self.orders.get_instance(session, order_id, self._scope(user))
        items = self.order_repo.list_items_for_orders(session, [order.id])
        return self._serialize(order, items)

    # -------- Staff transitions --------

    def mark_paid(self, session: Session, order_id: uuid.UUID) -> dict[str, Any]:
        order = self.orders.get_instance(session, order_id)
        if not order.is_paid:
            order.is_paid = True
            order.paid_at = utc_now()
            self.order_repo.update_order(session, order)
            session.commit()
        session.refresh(order)
        return self._serialize(order, self.order_repo.list_items_for_orders(session, [order.id]))

    def mark_delivered(self, session: Session, order_id: uuid.UUID) -> dict[str, Any]:
        order = self.orders.get_instance(session, order_id)
        if not order.is_delivered:
            order.is_delivered = True
            order.delivered_at = utc_now()
            self.order_repo.update_order(session, order)
            session.commit()
        session.refresh(order)
        return self._serialize(order, self.order_repo.list_items_for_orders(session, [order.id]))

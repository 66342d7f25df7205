# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, Header, Request, status
from starlette.concurrency import run_in_threadpool
from sqlmodel import Session

from app.core.auth import require_any_role, require_staff, require_user
from app.core.payment_client import PaymentGateway, get_payment_gateway
from app.core.query_features import query_params_to_dict
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.routers.factory import list_envelope
from app.schemas.order import OrderCreate
from app.services import resources
from app.services.order_service import OrderService
from app.services.resource_service import ResourceService

router = APIRouter(prefix="/orders", tags=["Orders"])
webhook_router = APIRouter(tags=["Orders"])

service = OrderService(
    OrderRepository(),
    CartRepository(),
    ProductRepository(),
    UserRepository(),
    ResourceService(resources.orders),
)


# -------- Read endpoints --------


@router.get("")
def list_orders(
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_any_role),
):
    """
    List orders.

    - role 'user': own orders only
    - admin / manager: all orders
    """
    params = query_params_to_dict(request.query_params.multi_items())
    data, pagination = service.list_orders(session, current_user, params)
    return list_envelope(data, pagination)


@router.get("/{order_id}")
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_any_role),
):
    return {"data": service.get_order(session, current_user, order_id)}


# -------- Customer endpoints --------


@router.post("/checkout-session/{cart_id}")
def checkout_session(
    cart_id: uuid.UUID,
    payload: OrderCreate | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Open a hosted card-payment page for the cart.

    The order itself is created by the payment webhook.
    """
    return service.get_checkout_session(
        session,
        gateway,
        cart_id,
        payload.shipping_address if payload else None,
        current_user,
    )


@router.post("/{cart_id}", status_code=status.HTTP_201_CREATED)
def create_cash_order(
    cart_id: uuid.UUID,
    payload: OrderCreate | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Create a cash order from the user's cart.

    Steps:
      - snapshot cart lines into the order
      - move product quantity/sold counters
      - delete the cart
    """
    data = service.create_cash_order(
        session,
        cart_id,
        payload.shipping_address if payload else None,
        current_user,
    )
    return {"status": "success", "data": data}


# -------- Staff endpoints --------


@router.put("/{order_id}/pay", dependencies=[Depends(require_staff)])
def mark_order_paid(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return {"status": "success", "data": service.mark_paid(session, order_id)}


@router.put("/{order_id}/deliver", dependencies=[Depends(require_staff)])
def mark_order_delivered(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return {"status": "success", "data": service.mark_delivered(session, order_id)}


# -------- Payment provider --------


@webhook_router.post("/webhook-checkout")
async def webhook_checkout(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Payment webhook.

    - Verifies the signature over the raw body (400 if invalid).
    - `checkout.session.completed` creates a paid card order.
    """
    payload = await request.body()
    event = await run_in_threadpool(gateway.verify_webhook, payload, stripe_signature)
    await run_in_threadpool(service.handle_payment_event, session, event)
    return {"received": True}

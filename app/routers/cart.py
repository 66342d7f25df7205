# app/routers/cart.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import ApplyCouponRequest, CartItemCreate, CartItemUpdate
from app.services.cart_service import CartService

# Only role='user' (customer) has a cart; staff are forbidden.
router = APIRouter(
    prefix="/cart",
    tags=["Cart"],
)

cart_repo = CartRepository()
product_repo = ProductRepository()
service = CartService(cart_repo, product_repo)


@router.get("")
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Get the current user's cart (404 when none exists yet).
    """
    return service.get_cart(session, current_user.id)


@router.post("")
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Add a product (optionally a color) to the cart.

    Returns the updated cart.
    """
    return service.add_item(session, current_user.id, payload)


@router.put("/apply-coupon")
def apply_coupon(
    payload: ApplyCouponRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Apply a coupon to the cart total.
    """
    return service.apply_coupon(session, current_user.id, payload.coupon)


@router.put("/{item_id}")
def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Overwrite the quantity of a cart line.
    """
    return service.update_item_quantity(
        session=session,
        user_id=current_user.id,
        item_id=item_id,
        quantity=payload.quantity,
    )


@router.delete("/{item_id}")
def remove_cart_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Remove a line from the cart.
    """
    return service.remove_item(session, current_user.id, item_id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Delete the whole cart.
    """
    service.clear(session, current_user.id)
    return None

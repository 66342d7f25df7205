# app/routers/wishlist.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user import WishlistAdd
from app.services.user_service import UserService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])

service = UserService(UserRepository(), ProductRepository())


@router.get("")
def get_wishlist(current_user: User = Depends(require_user)):
    return service.get_wishlist(current_user)


@router.post("")
def add_to_wishlist(
    payload: WishlistAdd,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.add_to_wishlist(session, current_user, payload.product_id)


@router.delete("/{product_id}")
def remove_from_wishlist(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.remove_from_wishlist(session, current_user, product_id)

# app/routers/addresses.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user import AddressCreate
from app.services.user_service import UserService

router = APIRouter(prefix="/addresses", tags=["Addresses"])

service = UserService(UserRepository(), ProductRepository())


@router.get("")
def list_addresses(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.get_addresses(session, current_user)


@router.post("")
def add_address(
    payload: AddressCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.add_address(session, current_user, payload)


@router.delete("/{address_id}")
def remove_address(
    address_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.remove_address(session, current_user, address_id)

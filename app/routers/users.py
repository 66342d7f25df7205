# app/routers/users.py
import uuid

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlmodel import Session

from app.core.auth import get_current_user, require_admin
from app.core.image_utils import USER_IMAGE
from app.database import get_session
from app.models.user import User
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.routers.factory import build_crud_router
from app.schemas.user import MeUpdate, PasswordChange, UserCreate, UserUpdate
from app.services import resources
from app.services.image_service import ImageService
from app.services.resource_service import ResourceService
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo, ProductRepository())
resource_service = ResourceService(resources.users)
image_service = ImageService()


# -------- Self profile --------
# Mounted before the admin /{item_id} routes so "me" is never parsed as an id.


@router.get("/me")
def read_me(current_user: User = Depends(get_current_user)):
    """
    Return the authenticated user's profile.
    """
    return {"data": service.get_me(current_user)}


@router.put("/me")
def update_me(
    payload: MeUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Update name / email / phone. Passwords are changed via /me/password.
    """
    return {"data": service.update_me(session, current_user, payload)}


@router.put("/me/password")
def change_my_password(
    payload: PasswordChange,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Change the own password (current password required).

    Returns a new token; tokens issued earlier stop working.
    """
    return service.change_my_password(session, current_user, payload)


@router.put("/me/image")
def upload_my_image(
    image: UploadFile = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    data = image_service.set_image(
        session,
        resource_service,
        current_user.id,
        field="profile_img",
        upload=(image.content_type, image.file.read()),
        size=USER_IMAGE,
        prefix="user",
    )
    return {"data": data, "message": "Profile image updated successfully"}


@router.delete("/me/deactivate", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_me(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    service.deactivate_me(session, current_user)
    return None


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
def delete_me(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    service.delete_me(session, current_user)
    return None


# -------- Admin endpoints --------


@router.put("/{user_id}/password", dependencies=[Depends(require_admin)])
def change_user_password(
    user_id: uuid.UUID,
    payload: PasswordChange,
    session: Session = Depends(get_session),
):
    """
    Set a user's password (admin only).
    """
    return service.change_password(session, user_id, payload)


@router.put("/{user_id}/deactivate", dependencies=[Depends(require_admin)])
def deactivate_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.deactivate_user(session, user_id)


@router.post("/{user_id}/reset-password", dependencies=[Depends(require_admin)])
def admin_reset_password(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Generate a temporary password and email it to the user (admin only).

    If the email can't be sent the previous password is restored.
    """
    return service.admin_reset_password(session, user_id)


# Generic admin CRUD; main.py mounts it after `router` so /users/me wins.
admin_router = build_crud_router(
    resource_service,
    prefix="/users",
    tags=["Users"],
    create_schema=UserCreate,
    update_schema=UserUpdate,
    auth={op: [require_admin] for op in ("list", "get", "create", "update", "delete")},
)

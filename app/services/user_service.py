# app/services/user_service.py
import logging
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.email_client import send_email
from app.core.errors import (
    BadRequestError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from app.core.security import (
    create_access_token,
    generate_temp_password,
    hash_password,
    verify_password,
)
from app.core.time_utils import utc_now
from app.models.user import Address, User
from app.repositories.product_repo import ProductRepository
from app.repositories.user_repo import UserRepository
from app.schemas.user import AddressCreate, MeUpdate, PasswordChange
from app.services import resources

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User accounts beyond the generic admin CRUD.

    Responsibilities:
      - self profile (read, edit, password, deactivate, delete)
      - admin password change / reset / deactivation
      - wishlist and saved addresses
    """

    def __init__(self, repo: UserRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    def _public(self, user: User) -> dict[str, Any]:
        return resources.users.serialize(user)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Raises:
            NotFoundError(404): if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _set_password(self, session: Session, user: User, password: str) -> User:
        user.password = hash_password(password)
        user.password_changed_at = utc_now()
        return self.repo.update(session, user)

    # ----- Self profile -----

    def get_me(self, current_user: User) -> dict[str, Any]:
        """Return the current authenticated user."""
        return self._public(current_user)

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: MeUpdate,
    ) -> dict[str, Any]:
        """
        Partial update for profile edits: name, email, phone.
        """
        changes = payload.model_dump(exclude_unset=True)
        if "email" in changes:
            other = self.repo.get_by_email(session, changes["email"])
            if other is not None and other.id != current_user.id:
                raise BadRequestError("E-mail already in use")

        for key, value in changes.items():
            setattr(current_user, key, value)
        return self._public(self.repo.update(session, current_user))

    def change_my_password(
        self,
        session: Session,
        current_user: User,
        payload: PasswordChange,
    ) -> dict[str, Any]:
        """
        Rules:
          - the current password is required and must match
          - every previously issued token becomes stale; a new one is returned
        """
        if not payload.current_password or not verify_password(
            payload.current_password, current_user.password
        ):
            raise UnauthorizedError("Incorrect current password")

        user = self._set_password(session, current_user, payload.password)
        return {"data": self._public(user), "token": create_access_token(user.id)}

    def deactivate_me(self, session: Session, current_user: User) -> None:
        current_user.is_active = False
        self.repo.update(session, current_user)

    def delete_me(self, session: Session, current_user: User) -> None:
        """
        Delete the account and its saved addresses. Accounts still
        referenced by orders or reviews are rejected with 400.
        """
        for address in self.repo.list_addresses(session, current_user.id):
            session.delete(address)
        self.repo.delete(session, current_user)

    # ----- Admin operations -----

    def change_password(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: PasswordChange,
    ) -> dict[str, Any]:
        user = self._set_password(session, self.get_user(session, user_id), payload.password)
        return {"data": self._public(user)}

    def deactivate_user(self, session: Session, user_id: uuid.UUID) -> dict[str, Any]:
        user = self.get_user(session, user_id)
        user.is_active = False
        return {"data": self._public(self.repo.update(session, user))}

    def admin_reset_password(self, session: Session, user_id: uuid.UUID) -> dict[str, str]:
        """
        Replace the user's password with a generated one and email it.

        Steps:
          1. Keep the previous hash + password_changed_at.
          2. Store the temporary password (old tokens become stale).
          3. Email it. On failure restore step 1 and raise InternalError;
             if the restore itself fails, raise a distinct critical error.
        """
        user = self.get_user(session, user_id)
        previous_hash = user.password
        previous_changed_at = user.password_changed_at

        temp_password = generate_temp_password()
        self._set_password(session, user, temp_password)

        try:
            send_email(
                to_email=user.email,
                subject="Your password has been reset",
                text_body=(
                    f"Hi {user.name},\n\n"
                    "An administrator reset the password on your account.\n"
                    f"Temporary password: {temp_password}\n"
                    "Please log in and change it right away.\n"
                ),
            )
        except (RuntimeError, OSError) as exc:
            logger.error("Temporary password email to user %s failed: %s", user.id, exc)
            try:
                user.password = previous_hash
                user.password_changed_at = previous_changed_at
                self.repo.update(session, user)
            except SQLAlchemyError:
                session.rollback()
                logger.critical(
                    "Could not restore the previous password of user %s after a failed reset email",
                    user.id,
                    exc_info=True,
                )
                raise InternalError(
                    "Password was reset but the email failed and the previous "
                    "password could not be restored. Contact support."
                )
            raise InternalError("There is an error in sending email")

        logger.info("Admin password reset completed for user %s", user.id)
        return {"status": "success", "message": "Temporary password sent to email"}

    # ----- Wishlist -----

    def add_to_wishlist(
        self,
        session: Session,
        current_user: User,
        product_id: uuid.UUID,
    ) -> dict[str, Any]:
        if self.product_repo.get_by_id(session, product_id) is None:
            raise NotFoundError(f"No product for this id : {product_id}")

        key = str(product_id)
        if key not in current_user.wishlist:
            # New list so the JSON column is flagged dirty
            current_user.wishlist = [*current_user.wishlist, key]
            self.repo.update(session, current_user)
        return {
            "status": "success",
            "message": "Product added successfully to your wishlist.",
            "data": current_user.wishlist,
        }

    def remove_from_wishlist(
        self,
        session: Session,
        current_user: User,
        product_id: uuid.UUID,
    ) -> dict[str, Any]:
        key = str(product_id)
        if key in current_user.wishlist:
            current_user.wishlist = [p for p in current_user.wishlist if p != key]
            self.repo.update(session, current_user)
        return {
            "status": "success",
            "message": "Product removed successfully from your wishlist.",
            "data": current_user.wishlist,
        }

    def get_wishlist(self, current_user: User) -> dict[str, Any]:
        return {
            "status": "success",
            "results": len(current_user.wishlist),
            "data": current_user.wishlist,
        }

    # ----- Addresses -----

    def add_address(
        self,
        session: Session,
        current_user: User,
        payload: AddressCreate,
    ) -> dict[str, Any]:
        self.repo.create_address(
            session,
            Address(user_id=current_user.id, **payload.model_dump()),
        )
        return self.get_addresses(session, current_user, "Address added successfully.")

    def remove_address(
        self,
        session: Session,
        current_user: User,
        address_id: uuid.UUID,
    ) -> dict[str, Any]:
        address = self.repo.get_address(session, current_user.id, address_id)
        if address is None:
            raise NotFoundError(f"There is no address for this id : {address_id}")
        self.repo.delete_address(session, address)
        return self.get_addresses(session, current_user, "Address removed successfully.")

    def get_addresses(
        self,
        session: Session,
        current_user: User,
        message: str | None = None,
    ) -> dict[str, Any]:
        addresses = self.repo.list_addresses(session, current_user.id)
        body: dict[str, Any] = {
            "status": "success",
            "results": len(addresses),
            "data": [a.model_dump(mode="json") for a in addresses],
        }
        if message:
            body["message"] = message
        return body

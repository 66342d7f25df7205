# app/services/auth_service.py
import logging
from datetime import timedelta
from typing import Any

from sqlmodel import Session

from app.core.email_client import send_email
from app.core.errors import BadRequestError, InternalError, NotFoundError, UnauthorizedError
from app.core.security import (
    RESET_CODE_TTL_MINUTES,
    create_access_token,
    dummy_password_hash,
    generate_reset_code,
    hash_password,
    hash_reset_code,
    verify_password,
)
from app.core.time_utils import as_utc, utc_now
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import SignupRequest
from app.services import resources

logger = logging.getLogger(__name__)


def _clear_reset_state(user: User) -> None:
    user.password_reset_code = None
    user.password_reset_expires = None
    user.password_reset_verified = None


class AuthService:
    """
    Sign-up, login and the emailed reset-code flow.

    Responses carry the public user representation and, where a session
    starts, a fresh access token.
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def _session_payload(self, user: User) -> dict[str, Any]:
        return {
            "data": resources.users.serialize(user),
            "token": create_access_token(user.id),
        }

    def signup(self, session: Session, payload: SignupRequest) -> dict[str, Any]:
        if self.repo.get_by_email(session, payload.email) is not None:
            raise BadRequestError("E-mail already in use")

        user = self.repo.create(
            session,
            User(
                name=payload.name,
                email=payload.email,
                phone=payload.phone,
                password=hash_password(payload.password),
            ),
        )
        logger.info("User %s signed up", user.id)
        return self._session_payload(user)

    def login(self, session: Session, email: str, password: str) -> dict[str, Any]:
        """
        Rules:
          - unknown email and wrong password fail identically
          - an unknown email still pays for one bcrypt comparison
          - deactivated accounts cannot log in
        """
        user = self.repo.get_by_email(session, email)
        if user is None:
            verify_password(password, dummy_password_hash())
            raise UnauthorizedError("Incorrect email or password")
        if not verify_password(password, user.password):
            raise UnauthorizedError("Incorrect email or password")
        if not user.is_active:
            raise UnauthorizedError(
                "This user is either deactivated or deleted. Please contact support."
            )
        return self._session_payload(user)

    # ---- password reset ----

    def forgot_password(self, session: Session, email: str) -> dict[str, str]:
        """
        Steps:
          1. Store sha256(code), a 10 minute expiry and verified=False.
          2. Email the plaintext code.
          3. If the email can't be sent, clear the reset state again.
        """
        user = self.repo.get_by_email(session, email)
        if user is None:
            raise NotFoundError(f"There is no user with that email {email}")

        code = generate_reset_code()
        # Codes identify the account on verification, so keep them unique
        while any(
            other.id != user.id
            for other in self.repo.list_by_reset_code(session, hash_reset_code(code))
        ):
            code = generate_reset_code()
        user.password_reset_code = hash_reset_code(code)
        user.password_reset_expires = utc_now() + timedelta(minutes=RESET_CODE_TTL_MINUTES)
        user.password_reset_verified = False
        self.repo.update(session, user)

        try:
            send_email(
                to_email=user.email,
                subject=f"Your password reset code (valid for {RESET_CODE_TTL_MINUTES} min)",
                text_body=(
                    f"Hi {user.name},\n\n"
                    "We received a request to reset the password on your account.\n"
                    f"{code}\n"
                    "Enter this code to complete the reset.\n"
                ),
            )
        except (RuntimeError, OSError) as exc:
            logger.error("Reset code email to user %s failed: %s", user.id, exc)
            _clear_reset_state(user)
            self.repo.update(session, user)
            raise InternalError("There is an error in sending email")

        return {"status": "success", "message": "Reset code sent to email"}

    def verify_reset_code(self, session: Session, reset_code: str) -> dict[str, str]:
        matches = self.repo.list_by_reset_code(session, hash_reset_code(reset_code.strip()))
        # A code held by more than one account identifies none of them
        user = matches[0] if len(matches) == 1 else None
        if (
            user is None
            or user.password_reset_expires is None
            or as_utc(user.password_reset_expires) <= utc_now()
        ):
            raise BadRequestError("Reset code invalid or expired")

        user.password_reset_verified = True
        self.repo.update(session, user)
        return {"status": "success"}

    def reset_password(
        self,
        session: Session,
        email: str,
        new_password: str,
    ) -> dict[str, Any]:
        user = self.repo.get_by_email(session, email)
        if user is None:
            raise NotFoundError(f"There is no user with email {email}")
        if not user.password_reset_verified:
            raise BadRequestError("Reset code not verified")

        user.password = hash_password(new_password)
        user.password_changed_at = utc_now()
        _clear_reset_state(user)
        self.repo.update(session, user)
        logger.info("Password reset completed for user %s", user.id)
        return {"token": create_access_token(user.id)}

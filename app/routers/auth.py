# app/routers/auth.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.database import get_session
from app.repositories.user_repo import UserRepository
from app.schemas.user import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyResetCodeRequest,
)
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])

repo = UserRepository()
service = AuthService(repo)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, session: Session = Depends(get_session)):
    """
    Create a customer account and return it with an access token.
    """
    return service.signup(session, payload)


@router.post("/login")
def login(payload: LoginRequest, session: Session = Depends(get_session)):
    """
    Exchange email + password for an access token.

    Unknown email and wrong password both return the same 401.
    """
    return service.login(session, payload.email, payload.password)


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordRequest,
    session: Session = Depends(get_session),
):
    """
    Email a 6-digit reset code, valid for 10 minutes.
    """
    return service.forgot_password(session, payload.email)


@router.post("/verify-reset-code")
def verify_reset_code(
    payload: VerifyResetCodeRequest,
    session: Session = Depends(get_session),
):
    return service.verify_reset_code(session, payload.reset_code)


@router.put("/reset-password")
def reset_password(
    payload: ResetPasswordRequest,
    session: Session = Depends(get_session),
):
    """
    Set a new password once the reset code was verified.
    """
    return service.reset_password(session, payload.email, payload.new_password)

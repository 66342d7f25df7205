import uuid
from typing import Literal

from pydantic import EmailStr, ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

Role = Literal["user", "manager", "admin"]


def _clean_name(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("name cannot be empty")
    return v


# -------- Auth payloads --------


class SignupRequest(SQLModel):
    """
    Self sign-up payload.

    Validation rules:
      - email must be a valid EmailStr
      - password at least 6 characters, confirmed
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=3, max_length=50)
    email: EmailStr
    phone: str | None = None
    password: str = Field(min_length=6)
    password_confirm: str

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _clean_name(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Password confirmation is incorrect")
        return self


class LoginRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class ForgotPasswordRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class VerifyResetCodeRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    reset_code: str = Field(min_length=1)


class ResetPasswordRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    new_password: str = Field(min_length=6)


# -------- Admin user management --------


class UserCreate(SQLModel):
    """
    Admin payload for creating a user. The password is hashed before insert.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=3, max_length=50)
    email: EmailStr
    phone: str | None = None
    password: str = Field(min_length=6)
    role: Role = "user"

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return _clean_name(v)


class UserUpdate(SQLModel):
    """
    Admin partial update. Passwords are changed only through
    PUT /users/{id}/password or the reset flow.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=3, max_length=50)
    email: EmailStr | None = None
    phone: str | None = None
    role: Role | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return _clean_name(v)


class PasswordChange(SQLModel):
    """
    Password change payload.

    `current_password` is required when users change their own password;
    admins changing someone else's password may omit it.
    """

    model_config = ConfigDict(extra="forbid")

    current_password: str | None = None
    password: str = Field(min_length=6)
    password_confirm: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Password confirmation is incorrect")
        return self


# -------- Logged-in user --------


class MeUpdate(SQLModel):
    """
    Partial profile update for authenticated users.
    Editable fields: name, email, phone.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=3, max_length=50)
    email: EmailStr | None = None
    phone: str | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return _clean_name(v)


class WishlistAdd(SQLModel):
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID


class AddressCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    alias: str | None = None
    details: str = Field(min_length=1)
    phone: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, JSON, event
from sqlmodel import SQLModel, Field

from app.core.text_utils import slugify


class User(SQLModel, table=True):
    """
    Persistent user account.

    Role:
      - "user" | "manager" | "admin"

    Password:
      - only the bcrypt hash is stored
      - password_changed_at invalidates tokens issued before it

    Password reset state (all cleared together):
      - password_reset_code: sha256 of the emailed 6-digit code
      - password_reset_expires: code expiry (10 minutes)
      - password_reset_verified: set once the code has been verified
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=50)
    slug: str | None = Field(default=None, index=True)

    email: str = Field(
        unique=True,
        index=True,
        description="Login email (stored lowercased)",
    )
    phone: str | None = None
    profile_img: str | None = Field(
        default=None,
        description="Stored image filename (users/ folder)",
    )

    password: str = Field(description="bcrypt hash")
    password_changed_at: datetime | None = None
    password_reset_code: str | None = Field(default=None, index=True)
    password_reset_expires: datetime | None = None
    password_reset_verified: bool | None = None

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | manager | admin",
    )
    is_active: bool = Field(default=True)

    wishlist: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
        description="Product ids (as strings)",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"onupdate": lambda: datetime.now(timezone.utc)},
    )


class Address(SQLModel, table=True):
    """
    Saved shipping address of a user.
    """

    __tablename__ = "addresses"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    alias: str | None = None
    details: str
    phone: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


@event.listens_for(User, "before_insert")
@event.listens_for(User, "before_update")
def _user_slug(mapper, connection, target: User) -> None:
    target.slug = slugify(target.name)
    target.email = target.email.strip().lower()

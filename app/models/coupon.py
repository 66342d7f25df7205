import uuid
from datetime import datetime, timezone

from sqlalchemy import event
from sqlmodel import SQLModel, Field


class Coupon(SQLModel, table=True):
    """
    Percentage discount coupon.

    - name is unique and stored stripped + uppercased
    - discount is a percentage
    - maximum_discount_amount caps the absolute discount when set
    - coupons with expire_at <= now are never applied
    """

    __tablename__ = "coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    name: str = Field(unique=True, index=True)
    discount: float
    expire_at: datetime
    maximum_discount_amount: float | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"onupdate": lambda: datetime.now(timezone.utc)},
    )


def normalize_coupon_name(name: str) -> str:
    return name.strip().upper()


@event.listens_for(Coupon, "before_insert")
@event.listens_for(Coupon, "before_update")
def _coupon_name(mapper, connection, target: Coupon) -> None:
    target.name = normalize_coupon_name(target.name)

import uuid

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    `quantity` defaults to 1 for a new line and to an increment of 1
    for an existing (product, color) line.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    color: str | None = None
    quantity: int | None = Field(default=None, gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(gt=0)


class ApplyCouponRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    coupon: str = Field(min_length=1)

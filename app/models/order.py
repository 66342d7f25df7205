import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order, created once from a cart.

    Payment / delivery flags are independent and only move forward:
      is_paid: False -> True (sets paid_at)
      is_delivered: False -> True (sets delivered_at)
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # {details, phone, city, postal_code, country}
    shipping_address: dict | None = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )

    tax_price: float = Field(default=0.0)
    shipping_price: float = Field(default=0.0)
    total_order_price: float = Field(
        default=0.0,
        description="Cart price (after coupon) + tax + shipping",
    )
    coupon: str | None = None

    # cash | card
    payment_method: str = Field(default="cash", index=True)

    is_paid: bool = Field(default=False)
    paid_at: datetime | None = None
    is_delivered: bool = Field(default=False)
    delivered_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"onupdate": lambda: datetime.now(timezone.utc)},
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order: a copy of the cart line at checkout time.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )
    color: str | None = None

    price: float = Field(
        description="Unit price captured in the cart",
    )

from pydantic import ConfigDict
from sqlmodel import SQLModel


class ShippingAddress(SQLModel):
    """
    Shipping address copied onto the order.
    """

    model_config = ConfigDict(extra="forbid")

    details: str | None = None
    phone: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None


class OrderCreate(SQLModel):
    """
    Payload for POST /orders/{cart_id} and
    POST /orders/checkout-session/{cart_id}.
    """

    model_config = ConfigDict(extra="forbid")

    shipping_address: ShippingAddress | None = None

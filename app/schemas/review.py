import uuid

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class ReviewCreate(SQLModel):
    """
    Payload for creating a review.

    - user_id always comes from the token
    - product_id may be omitted on /products/{product_id}/reviews
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    rating: float = Field(ge=1, le=5)
    product_id: uuid.UUID | None = None


class ReviewUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    rating: float | None = Field(default=None, ge=1, le=5)

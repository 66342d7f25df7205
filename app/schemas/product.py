import uuid

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field


def _uuid_strings(values: list[str] | None) -> list[str] | None:
    if values is None:
        return values
    out: list[str] = []
    for v in values:
        try:
            out.append(str(uuid.UUID(str(v))))
        except ValueError:
            raise ValueError(f"Invalid id: {v}")
    return out


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is derived from `title`
    - subcategories are subcategory ids, stored as strings
    - price_after_discount must be lower than price
    - image_cover / images are set through PUT /products/{id}/images
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=20, max_length=2000)
    quantity: int = Field(default=0, ge=0)
    sold: int = Field(default=0, ge=0)
    price: float = Field(gt=0, le=500000)
    price_after_discount: float | None = Field(default=None, gt=0)
    colors: list[str] = Field(default_factory=list)
    category_id: uuid.UUID
    subcategories: list[str] = Field(default_factory=list)
    brand_id: uuid.UUID | None = None

    @field_validator("title", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("subcategories")
    @classmethod
    def valid_subcategory_ids(cls, v: list[str]) -> list[str]:
        return _uuid_strings(v)

    @model_validator(mode="after")
    def discount_below_price(self):
        if self.price_after_discount is not None and self.price_after_discount >= self.price:
            raise ValueError("price_after_discount must be lower than price")
        return self


class ProductUpdate(SQLModel):
    """
    Partial update payload for products.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=20, max_length=2000)
    quantity: int | None = Field(default=None, ge=0)
    price: float | None = Field(default=None, gt=0, le=500000)
    price_after_discount: float | None = Field(default=None, gt=0)
    colors: list[str] | None = None
    category_id: uuid.UUID | None = None
    subcategories: list[str] | None = None
    brand_id: uuid.UUID | None = None

    @field_validator("title", "description")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("subcategories")
    @classmethod
    def valid_subcategory_ids(cls, v: list[str] | None) -> list[str] | None:
        return _uuid_strings(v)

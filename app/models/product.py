import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, JSON, event
from sqlmodel import SQLModel, Field

from app.core.text_utils import slugify


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    Inventory counters:
      - quantity: units available
      - sold: units sold
    Both move by the same amount, in one batched UPDATE, when an order
    is created (see OrderService).

    Images are stored as filenames; public URLs are derived on read.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    title: str = Field(
        max_length=100,
        index=True,
        description="Display title",
    )
    slug: str | None = Field(default=None, index=True)
    description: str

    quantity: int = Field(default=0, description="Units available")
    sold: int = Field(default=0, description="Units sold")

    price: float = Field(description="Unit price")
    price_after_discount: float | None = None

    colors: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )
    image_cover: str | None = None
    images: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )

    category_id: uuid.UUID = Field(foreign_key="categories.id", index=True)
    subcategories: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
        description="SubCategory ids (as strings)",
    )
    brand_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="brands.id",
        index=True,
    )

    ratings_average: float | None = None
    ratings_quantity: int = 0

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"onupdate": lambda: datetime.now(timezone.utc)},
    )


@event.listens_for(Product, "before_insert")
@event.listens_for(Product, "before_update")
def _product_slug(mapper, connection, target: Product) -> None:
    target.slug = slugify(target.title)

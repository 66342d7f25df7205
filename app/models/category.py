import uuid
from datetime import datetime, timezone

from sqlalchemy import event
from sqlmodel import SQLModel, Field

from app.core.text_utils import slugify


class Category(SQLModel, table=True):
    """
    Top-level catalog category. `image` holds the stored filename only;
    the public URL is derived when the row is serialized.
    """

    __tablename__ = "categories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    name: str = Field(unique=True, index=True, max_length=32)
    slug: str | None = Field(default=None, index=True)
    image: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"onupdate": lambda: datetime.now(timezone.utc)},
    )


class SubCategory(SQLModel, table=True):
    """
    Second-level category, always scoped to a parent Category.
    """

    __tablename__ = "subcategories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    name: str = Field(unique=True, index=True, max_length=32)
    slug: str | None = Field(default=None, index=True)
    category_id: uuid.UUID = Field(foreign_key="categories.id", index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"onupdate": lambda: datetime.now(timezone.utc)},
    )


@event.listens_for(Category, "before_insert")
@event.listens_for(Category, "before_update")
@event.listens_for(SubCategory, "before_insert")
@event.listens_for(SubCategory, "before_update")
def _name_slug(mapper, connection, target) -> None:
    target.slug = slugify(target.name)

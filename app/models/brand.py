import uuid
from datetime import datetime, timezone

from sqlalchemy import event
from sqlmodel import SQLModel, Field

from app.core.text_utils import slugify


class Brand(SQLModel, table=True):
    __tablename__ = "brands"

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


@event.listens_for(Brand, "before_insert")
@event.listens_for(Brand, "before_update")
def _brand_slug(mapper, connection, target: Brand) -> None:
    target.slug = slugify(target.name)

import uuid

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


class CategoryCreate(SQLModel):
    """
    Payload for creating a category. `slug` is derived from `name`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=3, max_length=32)

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _strip_required(v)


class CategoryUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=3, max_length=32)

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return v if v is None else _strip_required(v)


class SubCategoryCreate(SQLModel):
    """
    Payload for creating a subcategory.

    On the nested route (/categories/{category_id}/subcategories) the
    parent id may be omitted; it is taken from the path.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=3, max_length=32)
    category_id: uuid.UUID | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _strip_required(v)


class SubCategoryUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=3, max_length=32)
    category_id: uuid.UUID | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return v if v is None else _strip_required(v)

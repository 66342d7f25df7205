from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class CouponCreate(SQLModel):
    """
    Payload for creating a coupon.

    - name is normalized (strip + uppercase) when persisted
    - discount is a percentage in (0, 100]
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    discount: float = Field(gt=0, le=100)
    expire_at: datetime
    maximum_discount_amount: float | None = Field(default=None, gt=0)

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class CouponUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    discount: float | None = Field(default=None, gt=0, le=100)
    expire_at: datetime | None = None
    maximum_discount_amount: float | None = Field(default=None, gt=0)

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

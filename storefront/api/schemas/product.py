from pydantic import BaseModel, Field, field_validator
from typing import Optional


def _whole_cents(v):
    if v is not None and round(v, 2) != v:
        raise ValueError("price must be a whole number of cents")
    return v


class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = ""
    category_id: Optional[str] = None
    price: float = Field(0.0, ge=0)
    stock: int = Field(0, ge=0)

    @field_validator("price")
    @classmethod
    def price_in_cents(cls, v):
        return _whole_cents(v)


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category_id: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)

    @field_validator("price")
    @classmethod
    def price_in_cents(cls, v):
        return _whole_cents(v)


class ProductOut(BaseModel):
    id: Optional[str] = None
    title: str
    description: Optional[str] = ""
    category_id: Optional[str] = None
    price: float
    stock: int
    created_by: Optional[str] = None
    created_at: Optional[str] = None

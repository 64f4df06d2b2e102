from typing import List, Optional
from pydantic import BaseModel, Field

from storefront.api.schemas.product import ProductOut


class CartAdd(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)


class CartQuantity(BaseModel):
    quantity: int = Field(..., ge=0, description="0 removes the line")


class CartLineOut(BaseModel):
    id: str
    product_id: str
    quantity: int
    added_at: Optional[str] = ""
    product: Optional[ProductOut] = None
    subtotal: float


class CartOut(BaseModel):
    user_id: str
    items: List[CartLineOut] = []
    count: int
    total: float

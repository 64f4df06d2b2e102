from typing import List, Optional
from pydantic import BaseModel, Field

from storefront.api.schemas.product import ProductOut


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = ""


class CategoryOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = ""


class CategoryDetail(CategoryOut):
    products: List[ProductOut] = []

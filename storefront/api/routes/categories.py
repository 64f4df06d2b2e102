from typing import List

from fastapi import APIRouter, Depends

from storefront.api.deps import get_db, require_admin
from storefront.api.schemas.category import CategoryCreate, CategoryDetail, CategoryOut
from storefront.core.errors import NotFound
from storefront.database import FileBackedDB
from storefront.models.category import Category
from storefront.models.product import Product

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=List[CategoryOut])
def list_categories(db: FileBackedDB = Depends(get_db)):
    return [Category.from_dict(r).to_dict() for r in db.list_records("categories")]


@router.get("/{category_id}", response_model=CategoryDetail)
def get_category(category_id: str, db: FileBackedDB = Depends(get_db)):
    """
    A category together with the products filed under it.
    """
    row = db.get_record("categories", "id", category_id)
    if not row:
        raise NotFound("Category not found")
    out = Category.from_dict(row).to_dict()
    out["products"] = [Product.from_dict(p).to_dict() for p in db.find_records("products", "category_id", category_id)]
    return out


@router.post("", response_model=CategoryOut, status_code=201, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryCreate, db: FileBackedDB = Depends(get_db)):
    category = Category(name=payload.name.strip(), description=payload.description or "")
    saved = db.create_record("categories", category.to_dict(), id_field="id")
    return Category.from_dict(saved).to_dict()

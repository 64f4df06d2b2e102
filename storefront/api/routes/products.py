# storefront/api/routes/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_db, require_admin
from storefront.api.schemas.product import ProductCreate, ProductOut, ProductUpdate
from storefront.core.errors import InvalidInput, NotFound
from storefront.database import FileBackedDB
from storefront.models.product import Product
from storefront.models.user import User
from storefront.utils.timestamps import utcnow

router = APIRouter(prefix="/api/products", tags=["products"])


def _check_category(db: FileBackedDB, category_id: Optional[str]) -> None:
    if category_id and not db.get_record("categories", "id", category_id):
        raise InvalidInput(f"Unknown category: {category_id}")


@router.get("", response_model=List[ProductOut])
def list_products(
    q: Optional[str] = Query(None, description="search query (title)"),
    category_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1),
    offset: int = Query(0, ge=0),
    db: FileBackedDB = Depends(get_db),
):
    """
    List products. Supports optional title substring search via `q` and a category filter.
    """
    results = []
    for r in db.list_records("products"):
        product = Product.from_dict(r)
        if q and q.lower() not in product.title.lower():
            continue
        if category_id and product.category_id != category_id:
            continue
        results.append(product.to_dict())
    return results[offset: offset + limit]


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: FileBackedDB = Depends(get_db)):
    row = db.get_record("products", "id", product_id)
    if not row:
        raise NotFound("Product not found")
    return Product.from_dict(row).to_dict()


@router.post("", response_model=ProductOut, status_code=201)
def create_product(payload: ProductCreate, admin: User = Depends(require_admin), db: FileBackedDB = Depends(get_db)):
    """
    Create a new product (admin only). `created_by` is set to the admin's id.
    """
    _check_category(db, payload.category_id)
    product = Product(**payload.model_dump(), created_by=admin.id, created_at=utcnow())
    saved = db.create_record("products", product.to_dict(), id_field="id")
    return Product.from_dict(saved).to_dict()


@router.put("/{product_id}", response_model=ProductOut, dependencies=[Depends(require_admin)])
def update_product(product_id: str, payload: ProductUpdate, db: FileBackedDB = Depends(get_db)):
    updates = payload.model_dump(exclude_unset=True)
    if "category_id" in updates:
        _check_category(db, updates["category_id"])
    updated = db.update_record("products", "id", product_id, updates)
    if not updated:
        raise NotFound("Product not found")
    return Product.from_dict(updated).to_dict()


@router.delete("/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(product_id: str, db: FileBackedDB = Depends(get_db)):
    if not db.delete_record("products", "id", product_id):
        raise NotFound("Product not found")
    return {"ok": True}

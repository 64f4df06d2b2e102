from typing import Any, Dict

from fastapi import APIRouter, Depends

from storefront.api.deps import get_current_user, get_db
from storefront.api.schemas.cart import CartAdd, CartOut, CartQuantity
from storefront.core.errors import NotFound
from storefront.database import FileBackedDB
from storefront.models.cart import CartItem
from storefront.models.user import User
from storefront.services.orders import load_cart
from storefront.utils.timestamps import utcnow

router = APIRouter(prefix="/api/cart", tags=["cart"])


def _cart_out(db: FileBackedDB, user_id: str) -> Dict[str, Any]:
    return load_cart(db, user_id).to_out()


@router.get("", response_model=CartOut)
def get_cart(current_user: User = Depends(get_current_user), db: FileBackedDB = Depends(get_db)):
    """
    The current user's cart lines, each with its product and subtotal.
    """
    return _cart_out(db, current_user.id)


@router.post("", response_model=CartOut)
def add_to_cart(payload: CartAdd, current_user: User = Depends(get_current_user), db: FileBackedDB = Depends(get_db)):
    """
    Add a product to the cart. Adding a product that is already in the cart
    increases that line's quantity.
    """
    if not db.get_record("products", "id", payload.product_id):
        raise NotFound("Product not found")

    with db.transaction("cart_items") as tx:
        existing = [
            r for r in tx.find_records("cart_items", "user_id", current_user.id)
            if r.get("product_id") == payload.product_id
        ]
        if existing:
            line = CartItem.from_dict(existing[0])
            tx.update_record("cart_items", "id", line.id, {"quantity": line.quantity + payload.quantity})
        else:
            line = CartItem(user_id=current_user.id, product_id=payload.product_id,
                            quantity=payload.quantity, added_at=utcnow())
            tx.create_record("cart_items", line.to_dict())
    return _cart_out(db, current_user.id)


@router.put("/{product_id}", response_model=CartOut)
def set_quantity(product_id: str, payload: CartQuantity, current_user: User = Depends(get_current_user),
                 db: FileBackedDB = Depends(get_db)):
    """
    Set the quantity of a cart line. A quantity of 0 removes the line.
    """
    with db.transaction("cart_items") as tx:
        lines = [
            CartItem.from_dict(r) for r in tx.find_records("cart_items", "user_id", current_user.id)
            if r.get("product_id") == product_id
        ]
        if not lines:
            raise NotFound("Item not in cart")
        if payload.quantity == 0:
            for line in lines:
                tx.delete_records("cart_items", "id", line.id)
        else:
            tx.update_record("cart_items", "id", lines[0].id, {"quantity": payload.quantity})
    return _cart_out(db, current_user.id)


@router.delete("/{product_id}", response_model=CartOut)
def remove_from_cart(product_id: str, current_user: User = Depends(get_current_user),
                     db: FileBackedDB = Depends(get_db)):
    with db.transaction("cart_items") as tx:
        lines = [
            r for r in tx.find_records("cart_items", "user_id", current_user.id)
            if r.get("product_id") == product_id
        ]
        if not lines:
            raise NotFound("Item not in cart")
        for r in lines:
            tx.delete_records("cart_items", "id", r["id"])
    return _cart_out(db, current_user.id)


@router.delete("", response_model=CartOut)
def clear_cart(current_user: User = Depends(get_current_user), db: FileBackedDB = Depends(get_db)):
    with db.transaction("cart_items") as tx:
        tx.delete_records("cart_items", "user_id", current_user.id)
    return _cart_out(db, current_user.id)

# storefront/models/cart.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from datetime import datetime

from storefront.models.product import Product, _to_int
from storefront.utils.timestamps import format_datetime, parse_datetime


@dataclass
class CartItem:
    """One cart line: a (user, product, quantity) row of the cart_items table."""
    user_id: str
    product_id: str
    quantity: int = 1
    id: Optional[str] = None
    added_at: Optional[datetime] = None
    # joined catalog row; not persisted
    product: Optional[Product] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CartItem":
        if d is None:
            raise ValueError("Cannot construct CartItem from None")
        return cls(
            user_id=str(d.get("user_id") or ""),
            product_id=str(d.get("product_id") or ""),
            quantity=_to_int(d.get("quantity")),
            id=d.get("id") or None,
            added_at=parse_datetime(d.get("added_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id or "",
            "user_id": self.user_id,
            "product_id": self.product_id,
            "quantity": int(self.quantity),
            "added_at": format_datetime(self.added_at),
        }

    @property
    def unit_price(self) -> float:
        return float(self.product.price) if self.product else 0.0

    def line_total(self) -> float:
        return self.unit_price * int(self.quantity)


@dataclass
class Cart:
    """
    A user's cart, assembled from their cart_items rows joined with products.
    """
    user_id: str
    items: List[CartItem] = field(default_factory=list)

    @classmethod
    def from_rows(cls, user_id: str, rows: List[Dict[str, Any]], products: Dict[str, Dict[str, Any]]) -> "Cart":
        items = []
        for row in rows:
            item = CartItem.from_dict(row)
            prod_row = products.get(item.product_id)
            item.product = Product.from_dict(prod_row) if prod_row else None
            items.append(item)
        return cls(user_id=user_id, items=items)

    def is_empty(self) -> bool:
        return len(self.items) == 0

    def missing_products(self) -> List[str]:
        return [it.product_id for it in self.items if it.product is None]

    def total(self) -> float:
        # same prices that are snapshotted onto order items
        return float(sum(it.line_total() for it in self.items))

    def count_items(self) -> int:
        return int(sum(it.quantity for it in self.items))

    def quantities(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for it in self.items:
            out[it.product_id] = out.get(it.product_id, 0) + int(it.quantity)
        return out

    def to_out(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "items": [
                {
                    **it.to_dict(),
                    "product": it.product.to_dict() if it.product else None,
                    "subtotal": round(it.line_total(), 2),
                }
                for it in self.items
            ],
            "count": self.count_items(),
            "total": round(self.total(), 2),
        }

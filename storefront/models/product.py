# storefront/models/product.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any
from datetime import datetime

from storefront.utils.timestamps import format_datetime, parse_datetime


def _to_float(raw: Any) -> float:
    try:
        return float(raw) if raw not in (None, "") else 0.0
    except (TypeError, ValueError):
        return 0.0


def _to_int(raw: Any) -> int:
    try:
        return int(float(raw)) if raw not in (None, "") else 0
    except (TypeError, ValueError):
        return 0


@dataclass
class Product:
    """
    Catalog product. The CSV store keeps everything as strings,
    so these helpers convert to proper types.
    """
    id: Optional[str] = None
    title: str = ""
    description: Optional[str] = ""
    category_id: Optional[str] = None
    price: float = 0.0
    stock: int = 0
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Product":
        if d is None:
            raise ValueError("Cannot construct Product from None")
        return cls(
            id=d.get("id") or None,
            title=str(d.get("title") or ""),
            description=str(d.get("description") or ""),
            category_id=d.get("category_id") or None,
            price=_to_float(d.get("price")),
            stock=_to_int(d.get("stock")),
            created_by=d.get("created_by") or None,
            created_at=parse_datetime(d.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["created_at"] = format_datetime(self.created_at)
        out["price"] = float(self.price or 0.0)
        out["stock"] = int(self.stock or 0)
        return out

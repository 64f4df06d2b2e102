# storefront/models/category.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


@dataclass
class Category:
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Category":
        if d is None:
            raise ValueError("Cannot construct Category from None")
        return cls(
            id=d.get("id") or None,
            name=str(d.get("name") or ""),
            description=str(d.get("description") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

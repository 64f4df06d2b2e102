# storefront/models/order.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from datetime import datetime
import json

from storefront.core.state_machine import StateMachine, forward_transitions
from storefront.models.product import Product, _to_float, _to_int
from storefront.utils.timestamps import format_datetime, parse_datetime

ORDER_STATUSES = ("PLACED", "SHIPPED", "DELIVERED")
PAYMENT_MODES = ("COD", "ONLINE")
PAYMENT_STATUSES = ("PENDING", "PAID")


@dataclass
class OrderItem:
    """A line of an order. `price` is the product price at the time of ordering."""
    product_id: str
    quantity: int = 1
    price: float = 0.0
    order_id: Optional[str] = None
    id: Optional[str] = None
    # joined catalog row; not persisted
    product: Optional[Product] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=str(d.get("product_id") or ""),
            quantity=_to_int(d.get("quantity")),
            price=_to_float(d.get("price")),
            order_id=d.get("order_id") or None,
            id=d.get("id") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id or "",
            "order_id": self.order_id or "",
            "product_id": self.product_id,
            "quantity": int(self.quantity),
            "price": float(self.price),
        }

    def line_total(self) -> float:
        return float(self.price) * int(self.quantity)


@dataclass
class Order:
    """
    Order domain model. `items` are stored in their own table and only
    attached when the order is loaded for output.
    """
    id: Optional[str] = None
    user_id: Optional[str] = None
    address: str = ""
    total: float = 0.0
    payment_mode: str = "COD"
    payment_status: str = "PENDING"
    status: str = "PLACED"
    payment_tx: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    status_history: List[Dict[str, Any]] = field(default_factory=list)
    # optimistic concurrency control
    version: int = 0
    items: List[OrderItem] = field(default_factory=list)

    # forward only: PLACED -> SHIPPED -> DELIVERED
    ALLOWED_TRANSITIONS = forward_transitions(ORDER_STATUSES)

    def _make_state_machine(self) -> StateMachine:
        return StateMachine(state=self.status, allowed_transitions=self.ALLOWED_TRANSITIONS,
                            version=self.version, history=list(self.status_history),
                            ordering=ORDER_STATUSES)

    def transition_to(self, new_status: str, actor: Optional[str] = None, meta: Optional[Dict[str, Any]] = None,
                      expected_version: Optional[int] = None) -> bool:
        """
        Move to `new_status`. Raises InvalidTransition on a downgrade and OptimisticLockError
        on a stale `expected_version`. Returns False when already in `new_status`.
        """
        sm = self._make_state_machine()
        result = sm.apply(new_status, actor=actor, meta=meta, expected_version=expected_version)
        self.status = result["state"]
        self.status_history = result["history"]
        self.version = int(result["version"])
        return bool(result["changed"])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Order":
        if d is None:
            raise ValueError("Cannot construct Order from None")

        status_history_raw = d.get("status_history") or "[]"
        if isinstance(status_history_raw, str):
            try:
                status_history = json.loads(status_history_raw) or []
            except ValueError:
                status_history = []
        else:
            status_history = list(status_history_raw)

        return cls(
            id=d.get("id") or None,
            user_id=d.get("user_id") or None,
            address=str(d.get("address") or ""),
            total=_to_float(d.get("total")),
            payment_mode=str(d.get("payment_mode") or "COD"),
            payment_status=str(d.get("payment_status") or "PENDING"),
            status=str(d.get("status") or "PLACED"),
            payment_tx=d.get("payment_tx") or None,
            created_at=parse_datetime(d.get("created_at")),
            updated_at=parse_datetime(d.get("updated_at")),
            status_history=status_history,
            version=_to_int(d.get("version")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Row for the orders table. History is serialized as a JSON string; items are not included.
        """
        return {
            "id": self.id or "",
            "user_id": self.user_id or "",
            "address": self.address,
            "total": float(self.total),
            "payment_mode": self.payment_mode,
            "payment_status": self.payment_status,
            "status": self.status,
            "payment_tx": self.payment_tx or "",
            "created_at": format_datetime(self.created_at),
            "updated_at": format_datetime(self.updated_at),
            "status_history": json.dumps(self.status_history or [], ensure_ascii=False),
            "version": int(self.version or 0),
        }

    def to_out(self) -> Dict[str, Any]:
        out = self.to_dict()
        out["status_history"] = list(self.status_history or [])
        out["payment_tx"] = self.payment_tx
        out["items"] = [
            {**it.to_dict(), "product": it.product.to_dict() if it.product else None}
            for it in self.items
        ]
        return out

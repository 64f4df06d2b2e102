# storefront/api/routes/orders.py
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends

from storefront.api.deps import get_current_user, get_order_service, require_admin
from storefront.api.schemas.order import OrderCreate, OrderMessage, OrderOut, StatusUpdate
from storefront.models.user import User
from storefront.services.orders import OrderService

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("", response_model=List[OrderOut])
def list_orders(
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
) -> List[Dict[str, Any]]:
    """
    Orders of the current user, newest first, each with its items and their products.
    """
    return [o.to_out() for o in service.list_orders(current_user.id)]


@router.post("", status_code=201, response_model=OrderMessage)
def place_order(
    payload: OrderCreate = Body(...),
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    """
    Check out the current user's cart.

    Body: { "address": "...", "paymentMode": "COD" | "ONLINE", "payment": {...} }
    `payment` is required for ONLINE and is charged before the order is created.
    """
    order = service.place_order(
        current_user.id,
        payload.address,
        payload.payment_mode,
        payment=payload.payment.model_dump() if payload.payment else None,
    )
    return {"message": "Order Placed Successfully", "order": order.to_out()}


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    current_user: User = Depends(get_current_user),
    service: OrderService = Depends(get_order_service),
):
    order = service.get_order(order_id, current_user.id, is_admin=current_user.is_admin)
    return order.to_out()


@router.put("/{order_id}/status", response_model=OrderMessage)
def set_order_status(
    order_id: str,
    payload: StatusUpdate = Body(...),
    admin: User = Depends(require_admin),
    service: OrderService = Depends(get_order_service),
):
    """
    Admin-only: move order.status forward. Payload: { "status": "SHIPPED" }
    """
    order = service.update_status(
        order_id,
        payload.status,
        actor=admin.id,
        expected_version=payload.expected_version,
    )
    return {"message": "Order status updated", "order": order.to_out()}

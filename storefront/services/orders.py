# storefront/services/orders.py
"""
Order workflow: checkout from the cart, listing, and status transitions.

Checkout is all-or-nothing. Stock decrement, order and item creation and
clearing the cart happen inside one store transaction over the products,
orders, order_items and cart_items tables; if any step fails none of the
tables is written. ONLINE orders are charged through the payment gateway
before the transaction and refunded if the transaction then fails.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging
import uuid

from storefront.core.errors import (
    EmptyCart,
    Forbidden,
    InsufficientStock,
    InvalidInput,
    InvalidTotal,
    NotFound,
    PaymentDeclined,
    PaymentGatewayError,
    PersistenceFailure,
    StoreError,
    Unauthorized,
)
from storefront.database import ConstraintError, FileBackedDB
from storefront.models.cart import Cart
from storefront.models.order import ORDER_STATUSES, PAYMENT_MODES, Order, OrderItem
from storefront.models.product import Product
from storefront.services.payment import PaymentError, PaymentGateway
from storefront.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

CHECKOUT_TABLES = ("products", "orders", "order_items", "cart_items")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def load_cart(source, user_id: str) -> Cart:
    """
    Build the user's cart from `source` (the db or an open transaction),
    joining every line with its product row.
    """
    rows = source.find_records("cart_items", "user_id", user_id)
    products: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        pid = str(row.get("product_id") or "")
        if pid and pid not in products:
            prod = source.get_record("products", "id", pid)
            if prod:
                products[pid] = prod
    return Cart.from_rows(user_id, rows, products)


def _created_key(order: Order) -> datetime:
    ts = order.created_at or _EPOCH
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class OrderService:
    def __init__(self, db: FileBackedDB, gateway: PaymentGateway, allow_backorder: bool = False):
        self.db = db
        self.gateway = gateway
        self.allow_backorder = allow_backorder

    # --- checkout ---

    def place_order(self, user_id: Optional[str], address: Any, payment_mode: Any,
                    payment: Optional[Dict[str, Any]] = None) -> Order:
        if payment_mode not in PAYMENT_MODES:
            raise InvalidInput("Invalid payment mode")
        if not user_id:
            raise Unauthorized()
        if not isinstance(address, str) or not address.strip():
            raise InvalidInput("Invalid address")

        try:
            cart = load_cart(self.db, user_id)
        except Exception:
            logger.exception("failed to load cart for user %s", user_id)
            raise PersistenceFailure("Failed to place order")
        total = self._validate_cart(cart)

        payment_tx = None
        if payment_mode == "ONLINE":
            self._check_stock(cart)
            payment_tx = self._charge(total, payment)

        try:
            with self.db.transaction(*CHECKOUT_TABLES) as tx:
                order = self._materialize(tx, user_id, address.strip(), payment_mode, payment_tx,
                                          expected_total=total if payment_tx else None)
        except StoreError:
            self._refund(payment_tx, total)
            raise
        except Exception:
            logger.exception("checkout transaction failed for user %s", user_id)
            self._refund(payment_tx, total)
            raise PersistenceFailure("Failed to place order")

        logger.info("order %s placed by %s: %d item(s), total %.2f, %s",
                    order.id, user_id, len(order.items), order.total, payment_mode)
        return order

    def _validate_cart(self, cart: Cart) -> float:
        if cart.is_empty():
            raise EmptyCart()
        missing = cart.missing_products()
        if missing:
            raise InvalidInput(f"Product no longer available: {', '.join(missing)}")
        total = cart.total()
        if not total > 0:
            raise InvalidTotal()
        return total

    def _check_stock(self, cart: Cart) -> None:
        """Fail early on a shortage already visible; the transaction re-checks under lock."""
        if self.allow_backorder:
            return
        stock = {it.product_id: it.product.stock for it in cart.items}
        short = [pid for pid, qty in cart.quantities().items() if stock[pid] < qty]
        if short:
            raise InsufficientStock(f"Insufficient stock for product {', '.join(short)}")

    def _charge(self, total: float, payment: Optional[Dict[str, Any]]) -> str:
        if not payment:
            raise InvalidInput("Payment details required for ONLINE payment")
        try:
            result = self.gateway.charge(total, dict(payment))
        except PaymentError as e:
            logger.warning("payment gateway error: %s", e)
            raise PaymentGatewayError(f"Payment gateway error: {e}")
        if not result.success:
            raise PaymentDeclined("Payment declined: " + (result.message or "unknown"))
        return result.transaction_id

    def _refund(self, payment_tx: Optional[str], amount: float) -> None:
        if not payment_tx:
            return
        try:
            result = self.gateway.refund(amount, payment_tx)
        except PaymentError:
            logger.exception("refund of %s failed; manual reconciliation needed", payment_tx)
            return
        if not result.success:
            logger.error("refund of %s rejected (%s); manual reconciliation needed", payment_tx, result.message)

    def _materialize(self, tx, user_id: str, address: str, payment_mode: str,
                     payment_tx: Optional[str], expected_total: Optional[float]) -> Order:
        # the locked snapshot is authoritative: a concurrent checkout may have emptied the cart
        cart = load_cart(tx, user_id)
        total = self._validate_cart(cart)
        if expected_total is not None and total != expected_total:
            raise InvalidTotal("Cart changed during checkout")

        try:
            new_stock = tx.decrement("products", "stock", cart.quantities(),
                                     floor=None if self.allow_backorder else 0)
        except ConstraintError as e:
            raise InsufficientStock(f"Insufficient stock for product {', '.join(e.keys)}")

        now = utcnow()
        order = Order(
            id=uuid.uuid4().hex,
            user_id=user_id,
            address=address,
            total=total,
            payment_mode=payment_mode,
            payment_status="PAID",
            status="PLACED",
            payment_tx=payment_tx,
            created_at=now,
            updated_at=now,
        )
        tx.create_record("orders", order.to_dict())

        order.items = [
            OrderItem(product_id=it.product_id, quantity=it.quantity, price=it.unit_price, order_id=order.id)
            for it in cart.items
        ]
        rows = tx.create_many("order_items", [it.to_dict() for it in order.items])
        for item, row, line in zip(order.items, rows, cart.items):
            item.id = row["id"]
            item.product = line.product
            if item.product_id in new_stock:
                item.product.stock = new_stock[item.product_id]

        tx.delete_records("cart_items", "user_id", user_id)
        return order

    # --- queries ---

    def _attach_items(self, orders: List[Order]) -> None:
        if not orders:
            return
        wanted = {o.id for o in orders}
        by_order: Dict[str, List[OrderItem]] = {}
        for row in self.db.list_records("order_items"):
            if row.get("order_id") in wanted:
                by_order.setdefault(row["order_id"], []).append(OrderItem.from_dict(row))
        products = {row.get("id"): row for row in self.db.list_records("products")}
        for order in orders:
            order.items = by_order.get(order.id, [])
            for item in order.items:
                prod = products.get(item.product_id)
                item.product = Product.from_dict(prod) if prod else None

    def list_orders(self, user_id: Optional[str]) -> List[Order]:
        """Orders owned by `user_id`, newest first, with items and products attached."""
        if not user_id:
            raise Unauthorized()
        try:
            orders = [Order.from_dict(r) for r in self.db.find_records("orders", "user_id", user_id)]
            self._attach_items(orders)
        except Exception:
            logger.exception("failed to fetch orders for user %s", user_id)
            raise PersistenceFailure("Failed to fetch orders")
        orders.sort(key=_created_key, reverse=True)
        return orders

    def get_order(self, order_id: str, user_id: Optional[str], is_admin: bool = False) -> Order:
        if not user_id:
            raise Unauthorized()
        try:
            row = self.db.get_record("orders", "id", order_id)
        except Exception:
            logger.exception("failed to fetch order %s", order_id)
            raise PersistenceFailure("Failed to fetch order")
        if not row:
            raise NotFound("Order not found")
        order = Order.from_dict(row)
        if not is_admin and str(order.user_id) != str(user_id):
            raise Forbidden("Not authorized to view this order")
        self._attach_items([order])
        return order

    # --- fulfillment ---

    def update_status(self, order_id: str, new_status: Any, actor: Optional[str] = None,
                      expected_version: Optional[int] = None) -> Order:
        """
        Move an order forward along PLACED -> SHIPPED -> DELIVERED.
        Re-applying the current status succeeds without touching the record.
        """
        if new_status not in ORDER_STATUSES:
            raise InvalidInput("Invalid status")
        try:
            with self.db.transaction("orders") as tx:
                row = tx.get_record("orders", "id", order_id)
                if not row:
                    raise NotFound("Order not found")
                order = Order.from_dict(row)
                previous = order.status
                changed = order.transition_to(new_status, actor=actor, expected_version=expected_version)
                if changed:
                    order.updated_at = utcnow()
                    stored = order.to_dict()
                    tx.update_record("orders", "id", order_id, {
                        k: stored[k] for k in ("status", "status_history", "version", "updated_at")
                    })
        except StoreError:
            raise
        except Exception:
            logger.exception("failed to update status of order %s", order_id)
            raise PersistenceFailure("Failed to update order status")

        if changed:
            logger.info("order %s moved %s -> %s by %s", order_id, previous, order.status, actor)
        try:
            self._attach_items([order])
        except Exception:
            logger.exception("failed to load items of order %s", order_id)
            raise PersistenceFailure("Failed to update order status")
        return order

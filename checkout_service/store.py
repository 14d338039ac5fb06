"""
store.py — In-memory Cart Ledger and Order Store

Both stores are process-wide mappings guarded by a lock. Every
read-modify-write of a cart, and the pending -> paid check-and-set of an
order, happens while holding that lock, so interleaved requests for the same
key never observe a half-applied change. Callers always receive copies.
"""

import secrets
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .catalog import Catalog
from .errors import CartNotFound, EmptyCart, InvalidOrderState, InvalidSize, OrderNotFound
from .logging_config import get_logger
from .models import ZERO, Cart, CartItem, Order, OrderItem, OrderStatus, utcnow

log = get_logger(__name__)


def generate_id() -> str:
    return secrets.token_hex(8)


class CartLedger:
    """
    Keyed carts. A cart comes into existence on the first add and lives
    until the client clears it.
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog
        self._carts: Dict[str, Cart] = {}
        self._lock = threading.Lock()

    def get(self, cart_id: str) -> Cart:
        """Returns the cart, or an empty one if the id is unknown."""
        with self._lock:
            cart = self._carts.get(cart_id)
            if cart is None:
                return Cart(id=cart_id)
            return cart.model_copy(deep=True)

    def add(self, cart_id: str, product_id: str, size: str, quantity: int = 1) -> Cart:
        """
        Adds a product line, or increments the quantity of the existing line
        with the same product and size.

        Raises:
            ProductNotFound: If the product is not in the catalog.
            InvalidSize: If the size is not one of the product's options.
        """
        product = self.catalog.get(product_id)
        if product.sizes and size not in product.sizes:
            raise InvalidSize()

        with self._lock:
            cart = self._carts.setdefault(cart_id, Cart(id=cart_id))
            existing = next(
                (i for i in cart.items if i.productId == product_id and i.size == size),
                None,
            )
            if existing:
                existing.quantity += quantity
            else:
                cart.items.append(CartItem(
                    id=generate_id(),
                    productId=product.id,
                    name=product.name,
                    price=product.price,
                    image=product.image,
                    size=size,
                    quantity=quantity,
                ))
            return cart.model_copy(deep=True)

    def remove(self, cart_id: str, item_id: str) -> Cart:
        with self._lock:
            cart = self._carts.get(cart_id)
            if cart is None:
                raise CartNotFound()
            cart.items = [i for i in cart.items if i.id != item_id]
            return cart.model_copy(deep=True)

    def update(self, cart_id: str, item_id: str, quantity: int) -> Cart:
        """
        Sets the quantity of a line. A quantity of zero or less removes it;
        an unknown item id leaves the cart unchanged.
        """
        with self._lock:
            cart = self._carts.get(cart_id)
            if cart is None:
                raise CartNotFound()
            if quantity <= 0:
                cart.items = [i for i in cart.items if i.id != item_id]
            else:
                for item in cart.items:
                    if item.id == item_id:
                        item.quantity = quantity
            return cart.model_copy(deep=True)

    def clear(self, cart_id: str) -> Cart:
        with self._lock:
            self._carts.pop(cart_id, None)
        return Cart(id=cart_id)


class OrderStore:
    """
    Keyed orders. Orders are snapshots: their items and amounts are fixed at
    creation and the only later change is the transition to `paid`.
    """

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._lock = threading.Lock()

    def create(self, items: Iterable[OrderItem], customer: Optional[Dict[str, Any]] = None) -> Order:
        """
        Creates a pending order from the supplied items.

        The subtotal is computed from the prices carried by the items
        themselves, not re-read from the catalog.

        Raises:
            EmptyCart: If no items were supplied.
        """
        items: List[OrderItem] = [item.model_copy() for item in items]
        if not items:
            raise EmptyCart()

        subtotal = sum((item.price * item.quantity for item in items), ZERO)
        service_fee = ZERO
        order = Order(
            id=f"ORD-{generate_id()}",
            status=OrderStatus.PENDING_PAYMENT,
            items=items,
            subtotal=subtotal,
            serviceFee=service_fee,
            total=subtotal + service_fee,
            customer=dict(customer or {}),
        )
        with self._lock:
            self._orders[order.id] = order
        log.info(f"[Order: {order.id}] Created with {len(items)} line(s), total {order.total}.")
        return order.model_copy(deep=True)

    def get(self, order_id: str) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFound()
            return order.model_copy(deep=True)

    def mark_paid(
        self,
        order_id: str,
        reference_id: str,
        payment_method: Optional[str] = None,
        paid_at: Optional[datetime] = None,
    ) -> Order:
        """
        Atomically moves a pending order to `paid`.

        Raises:
            OrderNotFound: If the order does not exist.
            InvalidOrderState: If the order is no longer pending payment.
        """
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFound()
            if order.status != OrderStatus.PENDING_PAYMENT:
                raise InvalidOrderState()
            paid = order.model_copy(update={
                "status": OrderStatus.PAID,
                "paymentReferenceId": reference_id,
                "paymentMethod": payment_method,
                "paidAt": paid_at or utcnow(),
            })
            self._orders[order_id] = paid
        log.info(f"[Order: {order_id}] Marked as paid (reference {reference_id}).")
        return paid.model_copy(deep=True)

    def __len__(self):
        with self._lock:
            return len(self._orders)

"""
models.py — Data Models for the Checkout Service

This module defines the data structures used by the catalog, the cart ledger,
the order store and the checkout protocol. It uses Pydantic models to ensure
type safety and automatic validation of incoming data.

Amounts are `Decimal` values with at most two decimal places. They serialize
to JSON as strings so that a client echoing a verification tuple back sends
exactly the value that was signed.

Models:
    - Product / ProductSummary: Catalog entries.
    - CartItem / Cart: Cart lines and the cart with its derived subtotal.
    - OrderItem / Order: Order snapshot and lifecycle state.
    - CheckoutVerification / CheckoutSession: The signed checkout session.
    - EchoedVerification: The tuple as sent back on confirmation, unvalidated.
    - SecurityEvent: Audit log entry.
    - *Request / *Response: Request and response bodies of the HTTP API.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

Amount = Annotated[Decimal, Field(ge=0, decimal_places=2)]

ZERO = Decimal("0.00")
CENTS = Decimal("0.01")


def format_amount(amount) -> str:
    """Canonical two-place text form of an amount, as used in signed messages and URLs."""
    return str(Decimal(str(amount)).quantize(CENTS))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Catalog ---

class Product(BaseModel):
    """
    A catalog product. Products are fixtures and never change at runtime.

    Attributes:
        id (str): Unique product identifier (e.g. 'suit-001').
        category (str): Category slug used for filtering.
        price (Decimal): Unit price in USD.
        sizes (tuple[str]): Ordered size options a cart line may choose from.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    price: Amount
    description: str = ""
    details: Tuple[str, ...] = ()
    sizes: Tuple[str, ...] = ()
    image: str = ""
    images: Tuple[str, ...] = ()


class ProductSummary(BaseModel):
    id: str
    name: str
    category: str
    price: Amount
    image: str


# --- Cart ---

class CartItem(BaseModel):
    """
    A single line in a cart.

    Name, price and image are copied from the product when the line is added.
    There is at most one line per (productId, size) in a cart.
    """
    id: str
    productId: str
    name: str
    price: Amount
    image: str = ""
    size: str
    quantity: int = Field(..., gt=0)


class Cart(BaseModel):
    """
    A cart and its lines. The subtotal is always derived from the items.
    """
    id: str
    items: List[CartItem] = Field(default_factory=list)

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return sum((item.price * item.quantity for item in self.items), ZERO)


# --- Orders ---

class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"


class OrderItem(BaseModel):
    """
    A line of an order as supplied by the client at order creation.

    Attributes:
        productId (str): Referenced product.
        price (Decimal): Unit price as quoted to the client.
        quantity (int): Number of units. Must be greater than zero.
    """
    id: Optional[str] = None
    productId: str
    name: str
    price: Amount
    size: Optional[str] = None
    quantity: int = Field(..., gt=0)
    image: Optional[str] = None


class Order(BaseModel):
    """
    An order snapshot. Items, subtotal, fee and total are fixed when the
    order is created; only the payment fields change, once, on confirmation.
    """
    id: str
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    items: List[OrderItem]
    subtotal: Amount
    serviceFee: Amount = ZERO
    total: Amount
    customer: Dict[str, Any] = Field(default_factory=dict)
    createdAt: datetime = Field(default_factory=utcnow)
    paymentReferenceId: Optional[str] = None
    paymentMethod: Optional[str] = None
    paidAt: Optional[datetime] = None


class OrderSummary(BaseModel):
    id: str
    items: List[OrderItem]
    subtotal: Amount
    serviceFee: Amount
    total: Amount


# --- Checkout session ---

class CheckoutVerification(BaseModel):
    """
    The signed tuple handed to the client and echoed back on confirmation.

    Attributes:
        orderId (str): Order the session was minted for.
        expectedAmount (Decimal): Order total at minting time.
        expectedFee (Decimal): Service fee at minting time.
        timestamp (int): Minting time in milliseconds since the epoch.
        hash (str): Hex HMAC-SHA256 over the four fields above.
    """
    orderId: str
    expectedAmount: Amount
    expectedFee: Amount
    timestamp: int
    hash: str


class EchoedVerification(BaseModel):
    """
    The verification tuple as echoed back by a client. No range or precision
    constraints apply here: a malformed tuple is a signature failure and is
    judged by the checkout protocol, not by request validation.
    """
    orderId: Optional[str] = None
    expectedAmount: Optional[Decimal] = None
    expectedFee: Optional[Decimal] = None
    timestamp: Optional[int] = None
    hash: Optional[str] = None


class SessionInfo(BaseModel):
    expiresAt: datetime
    maxAgeSeconds: int


class CheckoutSession(BaseModel):
    processorConfig: Dict[str, Any]
    componentUrl: str
    order: OrderSummary
    verification: CheckoutVerification
    session: SessionInfo


class ConfirmationResult(BaseModel):
    success: bool = True
    orderId: str
    referenceId: str


# --- Security events ---

class SecurityEventType(str, Enum):
    CHECKOUT_SESSION_CREATED = "CHECKOUT_SESSION_CREATED"
    CHECKOUT_ORDER_NOT_FOUND = "CHECKOUT_ORDER_NOT_FOUND"
    CHECKOUT_MISSING_FIELDS = "CHECKOUT_MISSING_FIELDS"
    CHECKOUT_HASH_MISMATCH = "CHECKOUT_HASH_MISMATCH"
    CHECKOUT_SESSION_EXPIRED = "CHECKOUT_SESSION_EXPIRED"
    CHECKOUT_INVALID_ORDER = "CHECKOUT_INVALID_ORDER"
    CHECKOUT_CONFIRMED = "CHECKOUT_CONFIRMED"
    PROCESSOR_VERIFICATION_RESULT = "PROCESSOR_VERIFICATION_RESULT"
    PROCESSOR_COMMUNICATION_FAILURE = "PROCESSOR_COMMUNICATION_FAILURE"
    TRANSACTION_REVERSED = "TRANSACTION_REVERSED"


class SecurityEvent(BaseModel):
    type: SecurityEventType
    details: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)


class SecurityEventsResponse(BaseModel):
    events: List[SecurityEvent]


# --- Payment processor ---

class TransactionVerification(BaseModel):
    """
    Result of comparing a processor transaction with the expected amounts.
    """
    verified: bool
    reason: Optional[str] = None
    expected: Dict[str, Decimal] = Field(default_factory=dict)
    actual: Dict[str, Decimal] = Field(default_factory=dict)
    amountMatch: bool = False
    feeMatch: bool = False


# --- Request / response bodies ---

class AddToCartRequest(BaseModel):
    productId: str
    size: str
    quantity: int = Field(1, gt=0)


class RemoveFromCartRequest(BaseModel):
    itemId: str


class UpdateCartRequest(BaseModel):
    itemId: str
    quantity: int


class CreateOrderRequest(BaseModel):
    """
    Order creation payload. `items` is the client's cart; when it is empty
    the server-side cart named by `cartId` is used instead.
    """
    items: List[OrderItem] = Field(default_factory=list)
    customer: Dict[str, Any] = Field(default_factory=dict)
    cartId: Optional[str] = None


class CreateOrderResponse(BaseModel):
    orderId: str
    total: Amount


class ConfirmCheckoutRequest(BaseModel):
    """
    Confirmation payload. Fields are optional here so that absent values are
    reported as MISSING_FIELDS by the checkout protocol itself.
    """
    orderId: Optional[str] = None
    referenceId: Optional[str] = None
    paymentMethod: Optional[str] = None
    verification: Optional[EchoedVerification] = None


class ReverseTransactionRequest(BaseModel):
    amount: Amount = ZERO

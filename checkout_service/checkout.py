"""
checkout.py — Checkout Session Protocol

This module binds an order's charge amount to a confirmation request without
keeping any server-side session state.

Protocol Overview:
1. Mint: when the client asks for checkout configuration, the server signs
   `orderId:amount:fee:timestamp` with HMAC-SHA256 using a secret that never
   leaves the server, and returns the tuple plus the signature.
2. Pay: the processor's embedded widget takes the payment out-of-band.
3. Confirm: the client echoes the tuple back with the processor reference.
   The server re-derives the signature, compares it in constant time, checks
   the session age and moves the order from `pending_payment` to `paid`.

Every rejection is written to the security event log before the error is
raised, so the audit trail survives the terse HTTP response.
"""

import hashlib
import hmac
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Union

from .config import Settings
from .errors import (
    ConfigurationError,
    InvalidHash,
    InvalidOrder,
    InvalidOrderState,
    MissingFields,
    OrderNotFound,
    SessionExpired,
)
from .logging_config import get_logger
from .models import (
    CENTS,
    CheckoutSession,
    CheckoutVerification,
    ConfirmationResult,
    EchoedVerification,
    Order,
    OrderStatus,
    OrderSummary,
    SecurityEventType,
    SessionInfo,
    format_amount,
)
from .security_log import SecurityEventLog
from .store import OrderStore

log = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_checkout_hash(secret: bytes, order_id: str, amount, fee, timestamp: int) -> str:
    message = f"{order_id}:{format_amount(amount)}:{format_amount(fee)}:{timestamp}"
    return hmac.new(secret, message.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_checkout_hash(secret: bytes, order_id: str, amount, fee, timestamp: int, supplied_hash: str) -> bool:
    expected = generate_checkout_hash(secret, order_id, amount, fee, timestamp)
    return hmac.compare_digest(expected.encode("utf-8"), supplied_hash.encode("utf-8"))


def _is_signable_amount(amount) -> bool:
    if not isinstance(amount, Decimal) or not amount.is_finite() or amount < 0:
        return False
    return amount == amount.quantize(CENTS)


def is_well_formed(verification) -> bool:
    """
    True when every field of an echoed tuple is present and both amounts are
    non-negative with at most two decimal places.
    """
    if not verification.orderId or not verification.hash or verification.timestamp is None:
        return False
    return _is_signable_amount(verification.expectedAmount) and _is_signable_amount(verification.expectedFee)


def build_processor_config(order: Order, settings: Settings) -> Dict[str, Any]:
    """
    Builds the configuration the client needs to render the processor's
    express-checkout widget. Only the public token is exposed here.
    """
    customer = order.customer or {}
    return {
        "type": "expressCheckout",
        "rootContainer": "express-checkout-container",
        "token": settings.processor_public_token,
        "entryPoint": settings.processor_entry_point,
        "expressCheckout": {
            "amount": float(order.total),
            "fee": float(order.serviceFee),
            "currency": "USD",
            "supportedNetworks": ["visa", "masterCard", "amex", "discover"],
            "columns": 1,
            "requiredShippingContactFields": True,
            "applePay": {"enabled": True, "buttonStyle": "black", "buttonType": "buy", "language": "en-US"},
            "googlePay": {"enabled": True, "buttonStyle": "black", "buttonType": "buy", "language": "en"},
            "appearance": {"buttonHeight": 54, "buttonBorderRadius": 0, "padding": {"x": 0, "y": 0}},
        },
        "customerData": {
            "firstName": customer.get("firstName", ""),
            "lastName": customer.get("lastName", ""),
            "billingEmail": customer.get("email", ""),
        },
    }


class CheckoutSessionProtocol:
    """
    Mints and verifies checkout sessions for orders held in an `OrderStore`.

    Args:
        settings (Settings): Provides the HMAC secret and session max age.
        orders (OrderStore): Source of orders and target of the paid transition.
        events (SecurityEventLog): Audit log for every step.
        clock (callable): Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        settings: Settings,
        orders: OrderStore,
        events: SecurityEventLog,
        clock: Callable[[], int] = now_ms,
    ):
        if not settings.hash_secret:
            raise ConfigurationError("CHECKOUT_HASH_SECRET is not configured")
        self.settings = settings
        self.orders = orders
        self.events = events
        self.clock = clock
        self._secret = settings.hash_secret

    @property
    def max_session_age_ms(self) -> int:
        return self.settings.session_max_age_ms

    def create_session(self, order_id: str) -> CheckoutSession:
        """
        Mints a signed verification tuple for a pending order.

        Raises:
            OrderNotFound: If the order does not exist.
            InvalidOrderState: If the order is not pending payment.
        """
        try:
            order = self.orders.get(order_id)
        except OrderNotFound:
            self.events.record(SecurityEventType.CHECKOUT_ORDER_NOT_FOUND, {"orderId": order_id})
            raise

        if order.status != OrderStatus.PENDING_PAYMENT:
            log.warning(f"[Order: {order_id}] Checkout requested for order in state '{order.status.value}'.")
            raise InvalidOrderState()

        timestamp = self.clock()
        verification = CheckoutVerification(
            orderId=order.id,
            expectedAmount=order.total,
            expectedFee=order.serviceFee,
            timestamp=timestamp,
            hash=generate_checkout_hash(self._secret, order.id, order.total, order.serviceFee, timestamp),
        )
        expires_at = datetime.fromtimestamp((timestamp + self.max_session_age_ms) / 1000, tz=timezone.utc)

        self.events.record(
            SecurityEventType.CHECKOUT_SESSION_CREATED,
            {"orderId": order.id, "amount": format_amount(order.total), "timestamp": timestamp},
        )

        return CheckoutSession(
            processorConfig=build_processor_config(order, self.settings),
            componentUrl=self.settings.processor_component_url,
            order=OrderSummary(
                id=order.id,
                items=order.items,
                subtotal=order.subtotal,
                serviceFee=order.serviceFee,
                total=order.total,
            ),
            verification=verification,
            session=SessionInfo(expiresAt=expires_at, maxAgeSeconds=self.max_session_age_ms // 1000),
        )

    def confirm_session(
        self,
        order_id: Optional[str],
        reference_id: Optional[str],
        verification: Optional[Union[CheckoutVerification, EchoedVerification]],
        payment_method: Optional[str] = None,
    ) -> ConfirmationResult:
        """
        Validates an echoed verification tuple and marks the order as paid.

        Checks run in a fixed order and the first failure wins:
        presence of all fields, signature, session age, order state.

        Raises:
            MissingFields: If order id, reference id or verification is absent.
            InvalidHash: If the tuple is incomplete or malformed, the
                signature does not match, or the tuple was minted for a
                different order.
            SessionExpired: If the session is older than the max age.
            InvalidOrder: If the order is missing or no longer pending.
        """
        if not order_id or not reference_id or verification is None:
            self.events.record(
                SecurityEventType.CHECKOUT_MISSING_FIELDS,
                {"orderId": order_id, "referenceId": reference_id, "hasVerification": verification is not None},
            )
            raise MissingFields()

        hash_ok = is_well_formed(verification) and verify_checkout_hash(
            self._secret,
            verification.orderId,
            verification.expectedAmount,
            verification.expectedFee,
            verification.timestamp,
            verification.hash,
        )
        if not hash_ok or verification.orderId != order_id:
            self.events.record(
                SecurityEventType.CHECKOUT_HASH_MISMATCH,
                {
                    "orderId": order_id,
                    "referenceId": reference_id,
                    "verification": verification.model_dump(mode="json"),
                },
            )
            raise InvalidHash()

        age_ms = self.clock() - verification.timestamp
        if age_ms > self.max_session_age_ms:
            self.events.record(
                SecurityEventType.CHECKOUT_SESSION_EXPIRED,
                {"orderId": order_id, "referenceId": reference_id, "ageMs": age_ms},
            )
            raise SessionExpired()

        try:
            order = self.orders.mark_paid(order_id, reference_id, payment_method)
        except (OrderNotFound, InvalidOrderState) as e:
            self.events.record(
                SecurityEventType.CHECKOUT_INVALID_ORDER,
                {"orderId": order_id, "referenceId": reference_id, "reason": e.code},
            )
            raise InvalidOrder() from e

        self.events.record(
            SecurityEventType.CHECKOUT_CONFIRMED,
            {"orderId": order_id, "referenceId": reference_id, "amount": format_amount(order.total)},
        )
        return ConfirmationResult(success=True, orderId=order_id, referenceId=reference_id)

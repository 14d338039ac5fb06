"""
main.py — FastAPI Entry Point for the Checkout Service

This module provides the REST API of the shop backend: catalog, cart, orders,
the secured checkout handshake and the operator views.

Responsibilities:
    • Build every component once from the loaded settings
    • Validate request bodies at the boundary (Pydantic models)
    • Render domain errors as `{"error", "code"}` with a fitting HTTP status
    • Provide system health information
"""

from typing import List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .catalog import Catalog
from .checkout import CheckoutSessionProtocol, now_ms
from .clients import PaymentProcessorClient
from .config import Settings, load_settings
from .errors import CheckoutError, InvalidOrderState, ProcessorCommunicationFailure
from .logging_config import get_logger, setup_logging
from .models import (
    AddToCartRequest,
    Cart,
    CheckoutSession,
    ConfirmationResult,
    ConfirmCheckoutRequest,
    CreateOrderRequest,
    CreateOrderResponse,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductSummary,
    RemoveFromCartRequest,
    ReverseTransactionRequest,
    SecurityEventsResponse,
    SecurityEventType,
    TransactionVerification,
    UpdateCartRequest,
    format_amount,
    utcnow,
)
from .security_log import SecurityEventLog
from .store import CartLedger, OrderStore

log = get_logger(__name__)

router = APIRouter(prefix="/api")


# Component accessors
def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def get_carts(request: Request) -> CartLedger:
    return request.app.state.carts


def get_orders(request: Request) -> OrderStore:
    return request.app.state.orders


def get_events(request: Request) -> SecurityEventLog:
    return request.app.state.events


def get_checkout(request: Request) -> CheckoutSessionProtocol:
    return request.app.state.checkout


def get_processor(request: Request) -> PaymentProcessorClient:
    return request.app.state.processor


# --- Catalog ---

@router.get("/products", response_model=List[ProductSummary])
def list_products(category: Optional[str] = None, catalog: Catalog = Depends(get_catalog)):
    return catalog.list_products(category)


@router.get("/products/{product_id}", response_model=Product)
def get_product(product_id: str, catalog: Catalog = Depends(get_catalog)):
    return catalog.get(product_id)


@router.get("/categories", response_model=List[str])
def list_categories(catalog: Catalog = Depends(get_catalog)):
    return catalog.categories()


# --- Cart ---

@router.get("/cart/{cart_id}", response_model=Cart)
def get_cart(cart_id: str, carts: CartLedger = Depends(get_carts)):
    return carts.get(cart_id)


@router.post("/cart/{cart_id}/add", response_model=Cart)
def add_to_cart(cart_id: str, body: AddToCartRequest, carts: CartLedger = Depends(get_carts)):
    return carts.add(cart_id, body.productId, body.size, body.quantity)


@router.post("/cart/{cart_id}/remove", response_model=Cart)
def remove_from_cart(cart_id: str, body: RemoveFromCartRequest, carts: CartLedger = Depends(get_carts)):
    return carts.remove(cart_id, body.itemId)


@router.post("/cart/{cart_id}/update", response_model=Cart)
def update_cart(cart_id: str, body: UpdateCartRequest, carts: CartLedger = Depends(get_carts)):
    return carts.update(cart_id, body.itemId, body.quantity)


@router.delete("/cart/{cart_id}", response_model=Cart)
def clear_cart(cart_id: str, carts: CartLedger = Depends(get_carts)):
    return carts.clear(cart_id)


# --- Orders ---

@router.post("/orders/create", response_model=CreateOrderResponse)
def create_order(
        body: CreateOrderRequest,
        carts: CartLedger = Depends(get_carts),
        orders: OrderStore = Depends(get_orders),
):
    """
    Creates a pending order from the client's items. When no items are sent,
    the server-side cart named by `cartId` is used instead.
    """
    items = body.items
    if not items and body.cartId:
        cart = carts.get(body.cartId)
        items = [OrderItem(**item.model_dump()) for item in cart.items]

    order = orders.create(items, body.customer)
    return CreateOrderResponse(orderId=order.id, total=order.total)


@router.get("/orders/{order_id}", response_model=Order)
def get_order(order_id: str, orders: OrderStore = Depends(get_orders)):
    return orders.get(order_id)


# --- Checkout ---

@router.get("/checkout/config/{order_id}", response_model=CheckoutSession)
def checkout_config(order_id: str, checkout: CheckoutSessionProtocol = Depends(get_checkout)):
    return checkout.create_session(order_id)


@router.post("/checkout/confirm", response_model=ConfirmationResult)
def checkout_confirm(body: ConfirmCheckoutRequest, checkout: CheckoutSessionProtocol = Depends(get_checkout)):
    """
    Confirms a payment taken by the processor widget.

    The HMAC-bound verification tuple and the processor reference are trusted
    as proof of payment; the processor itself is not re-queried here.
    """
    return checkout.confirm_session(
        order_id=body.orderId,
        reference_id=body.referenceId,
        verification=body.verification,
        payment_method=body.paymentMethod,
    )


# --- Operator views ---

@router.get("/security/events", response_model=SecurityEventsResponse)
def security_events(events: SecurityEventLog = Depends(get_events)):
    return SecurityEventsResponse(events=events.recent())


def _processor_call(events: SecurityEventLog, operation: str, reference_id: str, call):
    try:
        return call()
    except ProcessorCommunicationFailure as e:
        events.record(
            SecurityEventType.PROCESSOR_COMMUNICATION_FAILURE,
            {"operation": operation, "referenceId": reference_id, "error": e.message},
        )
        raise


@router.get("/admin/transactions/{reference_id}")
def transaction_details(
        reference_id: str,
        processor: PaymentProcessorClient = Depends(get_processor),
        events: SecurityEventLog = Depends(get_events),
):
    return _processor_call(
        events, "details", reference_id,
        lambda: processor.get_transaction_details(reference_id),
    )


@router.post("/admin/transactions/{reference_id}/reverse")
def reverse_transaction(
        reference_id: str,
        body: ReverseTransactionRequest,
        processor: PaymentProcessorClient = Depends(get_processor),
        events: SecurityEventLog = Depends(get_events),
):
    """
    Reverses a processor transaction. Order state is not changed.
    """
    result = _processor_call(
        events, "reverse", reference_id,
        lambda: processor.reverse_transaction(reference_id, body.amount),
    )
    events.record(
        SecurityEventType.TRANSACTION_REVERSED,
        {"referenceId": reference_id, "amount": format_amount(body.amount), "isSuccess": result.get("isSuccess")},
    )
    return result


@router.get("/admin/orders/{order_id}/payment-verification", response_model=TransactionVerification)
def payment_verification(
        order_id: str,
        orders: OrderStore = Depends(get_orders),
        processor: PaymentProcessorClient = Depends(get_processor),
        events: SecurityEventLog = Depends(get_events),
):
    """
    Advisory check of a paid order against the processor's transaction record.
    The result is logged; the order is never modified.
    """
    order = orders.get(order_id)
    if order.status != OrderStatus.PAID or not order.paymentReferenceId:
        raise InvalidOrderState("Order has no recorded payment")

    reference_id = order.paymentReferenceId
    result = _processor_call(
        events, "verify", reference_id,
        lambda: processor.verify_transaction(reference_id, order.total, order.serviceFee),
    )
    events.record(
        SecurityEventType.PROCESSOR_VERIFICATION_RESULT,
        {"orderId": order_id, "referenceId": reference_id, **result.model_dump(mode="json")},
    )
    if not result.verified:
        log.warning(f"[Order: {order_id}] Processor verification failed: {result.reason}")
    return result


# --- Error handlers ---

async def handle_checkout_error(request: Request, exc: CheckoutError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_validation_error(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "code": "INVALID_REQUEST", "fields": fields},
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    log.critical(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Application factory
def create_app(
        settings: Optional[Settings] = None,
        processor: Optional[PaymentProcessorClient] = None,
        clock=now_ms,
) -> FastAPI:
    """
    Builds the FastAPI application and all of its components.

    Args:
        settings (Settings | None): Loaded settings; read from the environment if omitted.
        processor (PaymentProcessorClient | None): Processor client override.
        clock (callable): Millisecond clock used by the checkout protocol.

    Returns:
        FastAPI: The configured application.

    Raises:
        ConfigurationError: If required settings are missing.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_file)

    app = FastAPI(title="Secure Checkout Service")

    catalog = Catalog()
    events = SecurityEventLog()
    orders = OrderStore()
    app.state.settings = settings
    app.state.catalog = catalog
    app.state.carts = CartLedger(catalog)
    app.state.orders = orders
    app.state.events = events
    app.state.checkout = CheckoutSessionProtocol(settings, orders, events, clock=clock)
    app.state.processor = processor or PaymentProcessorClient(settings)

    app.include_router(router)
    app.add_exception_handler(CheckoutError, handle_checkout_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.get("/health")
    def health_check():
        """
        Simple health check endpoint for monitoring systems and container orchestrators.
        """
        return {"status": "healthy", "timestamp": utcnow().isoformat()}

    log.info(
        f"Checkout service configured (environment: {settings.app_env}, "
        f"processor: {settings.processor_env}, session max age: {settings.session_max_age_ms} ms)."
    )
    return app


def run():
    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()

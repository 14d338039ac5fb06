from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from checkout_service.catalog import Catalog
from checkout_service.checkout import CheckoutSessionProtocol
from checkout_service.clients import PaymentProcessorClient
from checkout_service.config import Settings
from checkout_service.main import create_app
from checkout_service.models import OrderItem
from checkout_service.security_log import SecurityEventLog
from checkout_service.store import CartLedger, OrderStore
from mock_services import mock_payment_processor

HASH_SECRET = "test-hash-secret"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        app_env="test",
        processor_env="sandbox",
        processor_public_token="pk_test_public",
        processor_api_key="sk_test_secret",
        processor_entry_point="suit-yourself",
        checkout_hash_secret=HASH_SECRET,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return Catalog()


@pytest.fixture
def carts(catalog):
    return CartLedger(catalog)


@pytest.fixture
def orders():
    return OrderStore()


@pytest.fixture
def events():
    return SecurityEventLog()


@pytest.fixture
def protocol(settings, orders, events, clock):
    return CheckoutSessionProtocol(settings, orders, events, clock=clock)


@pytest.fixture
def suit_item():
    return OrderItem(
        id="line-1",
        productId="suit-001",
        name="Navy Blue Wool Suit",
        price=Decimal("599.00"),
        size="40R",
        quantity=1,
    )


@pytest.fixture
def pending_order(orders, suit_item):
    return orders.create([suit_item], {"firstName": "Ada", "lastName": "Lovelace", "email": "ada@example.com"})


@pytest.fixture
def mock_processor():
    mock_payment_processor.reset()
    yield mock_payment_processor
    mock_payment_processor.reset()


@pytest.fixture
def processor(settings, mock_processor):
    client = PaymentProcessorClient(settings, client=TestClient(mock_processor.app))
    yield client
    client.close()


@pytest.fixture
def app(settings, processor, clock):
    return create_app(settings, processor=processor, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client

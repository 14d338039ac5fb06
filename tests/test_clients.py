from decimal import Decimal

import httpx
import pytest

from checkout_service.clients import PaymentProcessorClient
from checkout_service.errors import ProcessorCommunicationFailure


def client_with_transport(settings, handler):
    return PaymentProcessorClient(
        settings,
        client=httpx.Client(base_url="http://processor.test", transport=httpx.MockTransport(handler)),
    )


def test_default_client_uses_settings(settings):
    processor = PaymentProcessorClient(settings)
    try:
        assert str(processor.client.base_url).rstrip("/") == "https://api-sandbox.payabli.com"
        assert processor.client.headers["requestToken"] == "sk_test_secret"
        assert processor.client.timeout.read == 30.0
    finally:
        processor.close()


def test_transaction_details(processor, mock_processor):
    mock_processor.register_transaction("txn_1", "599.00")

    details = processor.get_transaction_details("txn_1")
    assert details["isSuccess"] is True
    assert details["responseData"]["PaymentData"]["paymentDetails"]["totalAmount"] == 599.0


def test_verify_transaction_matches(processor, mock_processor):
    mock_processor.register_transaction("txn_1", "599.00")

    result = processor.verify_transaction("txn_1", Decimal("599.00"), Decimal("0"))
    assert result.verified
    assert result.amountMatch and result.feeMatch
    assert result.actual == {"amount": Decimal("599.0"), "fee": Decimal("0.0")}


def test_verify_transaction_within_tolerance(processor, mock_processor):
    mock_processor.register_transaction("txn_1", "599.01")
    assert processor.verify_transaction("txn_1", Decimal("599.00"), Decimal("0")).verified

    mock_processor.register_transaction("txn_2", "599.02")
    assert not processor.verify_transaction("txn_2", Decimal("599.00"), Decimal("0")).verified


def test_verify_transaction_amount_mismatch(processor, mock_processor):
    mock_processor.register_transaction("txn_1", "5.99")

    result = processor.verify_transaction("txn_1", Decimal("599.00"), Decimal("0"))
    assert not result.verified
    assert not result.amountMatch
    assert result.feeMatch
    assert result.reason == "Amount mismatch"


def test_verify_unknown_transaction(processor):
    result = processor.verify_transaction("txn_unknown", Decimal("10.00"), Decimal("0"))
    assert not result.verified
    assert result.reason == "Transaction not found"


def test_reverse_transaction(processor, mock_processor):
    mock_processor.register_transaction("txn_1", "649.00")

    result = processor.reverse_transaction("txn_1")
    assert result["isSuccess"] is True
    assert result["responseData"]["Amount"] == 649.0
    assert mock_processor.TRANSACTIONS["txn_1"]["status"] == "Reversed"


def test_reverse_uses_two_place_amount_in_path(settings):
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json={"isSuccess": True})

    client_with_transport(settings, handler).reverse_transaction("txn_9", Decimal("12.5"))
    assert seen == ["/api/MoneyIn/reverse/txn_9/12.50"]


def test_server_error_is_communication_failure(processor):
    with pytest.raises(ProcessorCommunicationFailure) as excinfo:
        processor.get_transaction_details("txn_error_1")
    assert excinfo.value.status_code == 502
    assert "500" in excinfo.value.message


def test_timeout_is_communication_failure(settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProcessorCommunicationFailure) as excinfo:
        client_with_transport(settings, handler).get_transaction_details("txn_1")
    assert excinfo.value.message == "Payment processor timed out"


def test_connection_error_is_communication_failure(settings):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProcessorCommunicationFailure):
        client_with_transport(settings, handler).verify_transaction("txn_1", Decimal("1.00"), Decimal("0"))


def test_non_json_body_is_communication_failure(settings):
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(ProcessorCommunicationFailure):
        client_with_transport(settings, handler).get_transaction_details("txn_1")

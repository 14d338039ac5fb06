"""
This module provides the communication client for the external payment processor.

The processor takes the actual payment through its embedded widget. The
server only talks to its REST API for auxiliary operator actions:
- Transaction detail lookups
- Transaction reversals
- Advisory verification of a transaction against expected amounts

None of these calls is on the checkout confirmation path, and none of them
touches in-memory order state. Failures are logged and raised as
`ProcessorCommunicationFailure`.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from .config import Settings
from .errors import ProcessorCommunicationFailure
from .logging_config import get_logger
from .models import ZERO, TransactionVerification, format_amount

log = get_logger(__name__)


def _to_decimal(value) -> Decimal:
    try:
        return Decimal(str(value if value is not None else 0))
    except InvalidOperation:
        return ZERO


class PaymentProcessorClient:
    """
    Client for the payment processor's REST API.
    Handles transaction lookups, reversals and error responses.
    """
    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None):
        """
        Initializes the HTTP client with the processor base URL, API key and timeout.

        Args:
            settings (Settings): Processor URL, API key, timeout and amount tolerance.
            client (httpx.Client | None): Preconfigured client, e.g. for tests.
        """
        self.settings = settings
        self.client = client or httpx.Client(
            base_url=settings.processor_base_url,
            timeout=httpx.Timeout(settings.processor_timeout_seconds),
            headers={
                "requestToken": settings.processor_api_key or "",
                "Content-Type": "application/json",
            },
        )

    def close(self):
        """Closes the HTTP client session."""
        self.client.close()

    def _get(self, path: str, reference_id: str) -> dict:
        try:
            response = self.client.get(path)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            log.error(f"[Txn: {reference_id}] Payment processor timeout on {path}.")
            raise ProcessorCommunicationFailure("Payment processor timed out") from e
        except httpx.HTTPStatusError as e:
            log.error(f"[Txn: {reference_id}] Payment processor answered HTTP {e.response.status_code} on {path}.")
            raise ProcessorCommunicationFailure(
                f"Payment processor returned HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            log.error(f"[Txn: {reference_id}] Payment processor unreachable: {e}")
            raise ProcessorCommunicationFailure() from e
        except ValueError as e:
            log.error(f"[Txn: {reference_id}] Payment processor sent a non-JSON body on {path}.")
            raise ProcessorCommunicationFailure("Malformed payment processor response") from e

    def get_transaction_details(self, reference_id: str) -> dict:
        """
        Fetches the processor's record of a transaction.

        Args:
            reference_id (str): Processor transaction reference.
        Returns:
            dict: JSON response with `isSuccess` and `responseData`.
        Raises:
            ProcessorCommunicationFailure: On timeout, transport error or non-2xx status.
        """
        return self._get(f"/api/MoneyIn/details/{reference_id}", reference_id)

    def reverse_transaction(self, reference_id: str, amount=ZERO) -> dict:
        """
        Asks the processor to reverse (void or refund) a transaction.
        An amount of zero reverses the full transaction.

        This is an administrative action; it does not change any order.

        Raises:
            ProcessorCommunicationFailure: On timeout, transport error or non-2xx status.
        """
        log.info(f"[Txn: {reference_id}] Requesting reversal of {format_amount(amount)}.")
        return self._get(f"/api/MoneyIn/reverse/{reference_id}/{format_amount(amount)}", reference_id)

    def verify_transaction(self, reference_id: str, expected_amount, expected_fee) -> TransactionVerification:
        """
        Compares the processor's amounts for a transaction with the expected ones,
        within the configured tolerance.

        Returns:
            TransactionVerification: `verified` is True only if both amount and fee match.
        Raises:
            ProcessorCommunicationFailure: If the processor cannot be queried.
        """
        details = self.get_transaction_details(reference_id)
        expected = {"amount": _to_decimal(expected_amount), "fee": _to_decimal(expected_fee)}

        if not details.get("isSuccess"):
            log.warning(f"[Txn: {reference_id}] Transaction not found at processor.")
            return TransactionVerification(verified=False, reason="Transaction not found", expected=expected)

        data = details.get("responseData") or {}
        payment_details = (data.get("PaymentData") or {}).get("paymentDetails") or {}
        actual = {
            "amount": _to_decimal(payment_details.get("totalAmount") or data.get("TotalAmount")),
            "fee": _to_decimal(payment_details.get("serviceFee") or data.get("FeeAmount")),
        }

        tolerance = self.settings.amount_tolerance
        amount_match = abs(actual["amount"] - expected["amount"]) <= tolerance
        fee_match = abs(actual["fee"] - expected["fee"]) <= tolerance

        return TransactionVerification(
            verified=amount_match and fee_match,
            reason=None if amount_match and fee_match else "Amount mismatch",
            expected=expected,
            actual=actual,
            amountMatch=amount_match,
            feeMatch=fee_match,
        )

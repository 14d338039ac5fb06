"""
mock_payment_processor.py — Mock Implementation of the Payment Processor (REST API)

This module provides a simulated payment processor for testing the processor
client and the operator endpoints. It exposes a small FastAPI application that
mimics the processor's transaction endpoints.

Simulation Scenarios:
    • Known transaction (seeded with `register_transaction`) → details / reversal succeed
    • Unknown reference → `isSuccess: false`
    • Reference starting with "txn_error_" → HTTP 500
    • Reference starting with "txn_timeout_" → slow answer (simulates client read timeout)

Endpoints:
    GET /api/MoneyIn/details/{referenceId}          — Transaction details.
    GET /api/MoneyIn/reverse/{referenceId}/{amount} — Transaction reversal.

Port:
    Default: 8002 (HTTP)
"""

import logging
import time
from decimal import Decimal
from typing import Dict, Optional

from fastapi import FastAPI, Header, HTTPException

app = FastAPI(title="Mock Payment Processor")
log = logging.getLogger(__name__)

TRANSACTIONS: Dict[str, dict] = {}


def register_transaction(reference_id: str, total_amount, service_fee=0, method: str = "apple_pay"):
    """
    Seeds a settled transaction the mock will report on.

    Args:
        reference_id (str): Processor reference returned to the widget.
        total_amount: Charged total.
        service_fee: Fee part of the total.
        method (str): Wallet or card method name.
    """
    TRANSACTIONS[reference_id] = {
        "totalAmount": float(Decimal(str(total_amount))),
        "serviceFee": float(Decimal(str(service_fee))),
        "method": method,
        "status": "Captured",
    }


def reset():
    TRANSACTIONS.clear()


def _simulate_failures(reference_id: str):
    if reference_id.startswith("txn_error_"):
        log.error(f"[PP] Simulated internal error for {reference_id}.")
        raise HTTPException(status_code=500, detail={"isSuccess": False, "responseText": "Internal error"})

    if reference_id.startswith("txn_timeout_"):
        log.info(f"[PP] Simulating timeout for {reference_id}...")
        time.sleep(10)


@app.get("/api/MoneyIn/details/{reference_id}")
def transaction_details(reference_id: str, request_token: Optional[str] = Header(None, alias="requestToken")):
    """
    Returns the processor's record of a transaction.

    Returns:
        dict: `isSuccess` plus `responseData` holding `PaymentData.paymentDetails`
        with `totalAmount` and `serviceFee`, or `isSuccess: false` if unknown.
    """
    log.info(f"[PP] Details request for {reference_id} (token present: {bool(request_token)})")
    _simulate_failures(reference_id)

    txn = TRANSACTIONS.get(reference_id)
    if txn is None:
        return {"isSuccess": False, "responseText": "Transaction not found", "responseData": None}

    return {
        "isSuccess": True,
        "responseText": "Success",
        "responseData": {
            "ReferenceId": reference_id,
            "TransStatus": txn["status"],
            "TotalAmount": txn["totalAmount"],
            "FeeAmount": txn["serviceFee"],
            "PaymentData": {
                "paymentDetails": {
                    "totalAmount": txn["totalAmount"],
                    "serviceFee": txn["serviceFee"],
                },
                "method": txn["method"],
            },
        },
    }


@app.get("/api/MoneyIn/reverse/{reference_id}/{amount}")
def reverse_transaction(reference_id: str, amount: Decimal):
    """
    Reverses a known transaction. An amount of zero reverses the full total.
    """
    log.info(f"[PP] Reversal request for {reference_id} ({amount}).")
    _simulate_failures(reference_id)

    txn = TRANSACTIONS.get(reference_id)
    if txn is None:
        return {"isSuccess": False, "responseText": "Transaction not found", "responseData": None}

    reversed_amount = float(amount) if amount > 0 else txn["totalAmount"]
    txn["status"] = "Reversed"
    return {
        "isSuccess": True,
        "responseText": "Success",
        "responseData": {"ReferenceId": reference_id, "Amount": reversed_amount, "ResultCode": 1},
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8002)

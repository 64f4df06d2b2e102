import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """The gateway could not process the request (as opposed to declining it)."""


@dataclass
class PaymentResult:
    success: bool
    transaction_id: Optional[str] = None
    message: str = ""


class PaymentGateway(Protocol):
    def charge(self, amount: float, details: Dict[str, Any]) -> PaymentResult:
        ...

    def refund(self, amount: float, transaction_id: str) -> PaymentResult:
        ...


class TestPaymentGateway:
    """
    Deterministic gateway for development and tests:
    - details["type"] == "test" or details["card_last4"] == "4242" -> success
    - anything else is declined
    """

    __test__ = False  # not a pytest class

    def charge(self, amount: float, details: Dict[str, Any]) -> PaymentResult:
        if amount <= 0:
            raise PaymentError("amount must be positive")
        if details.get("type") == "test" or str(details.get("card_last4") or "") == "4242":
            tx = f"tx_{os.urandom(6).hex()}"
            logger.info("test gateway charged %.2f (%s)", amount, tx)
            return PaymentResult(success=True, transaction_id=tx, message="ok")
        return PaymentResult(success=False, transaction_id=None, message="declined")

    def refund(self, amount: float, transaction_id: str) -> PaymentResult:
        if not transaction_id:
            return PaymentResult(success=False, transaction_id=None, message="missing transaction id")
        rtx = f"refund_{os.urandom(6).hex()}"
        logger.info("test gateway refunded %.2f for %s (%s)", amount, transaction_id, rtx)
        return PaymentResult(success=True, transaction_id=rtx, message="refund_ok")


class DisabledPaymentGateway:
    """Online payments switched off: every call fails without contacting anything."""

    def charge(self, amount: float, details: Dict[str, Any]) -> PaymentResult:
        raise PaymentError("online payments are not enabled")

    def refund(self, amount: float, transaction_id: str) -> PaymentResult:
        raise PaymentError("online payments are not enabled")


def build_gateway(provider: str) -> PaymentGateway:
    provider = (provider or "").strip().lower()
    if provider == "test":
        return TestPaymentGateway()
    if provider == "disabled":
        return DisabledPaymentGateway()
    raise ValueError(f"Unknown payment provider: {provider!r}")

"""
Payment processor client abstraction (domain/service).

This layer must not import infrastructure. It defines the replaceable
contract the transaction state machine and refund policy depend upon.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from domain.payment.entity import RefundConfirmation, TransactionResult
from domain.payment.money import Money


@runtime_checkable
class PaymentProcessorClient(Protocol):
    """Remote processor boundary: authorize, capture, refund.

    Calls block on network IO and never retry internally. Transport failures
    and timeouts raise ``PaymentGatewayError``; a timeout is never reported
    as a decline.
    """

    provider: str

    async def authorize(
        self,
        token: str,
        amount: Money,
        *,
        timeout: Optional[float] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResult: ...

    async def capture(
        self,
        token_or_id: str,
        amount: Optional[Money] = None,
        *,
        timeout: Optional[float] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResult: ...

    async def refund(
        self,
        transaction_id: str,
        amount: Optional[Money] = None,
        *,
        timeout: Optional[float] = None,
        idempotency_key: Optional[str] = None,
    ) -> Optional[RefundConfirmation]: ...


def is_eligible(currency: str, country: str) -> bool:
    """The gateway is only offered to US stores selling in USD."""
    return currency == "USD" and country == "US"

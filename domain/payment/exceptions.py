"""
Payment lifecycle exceptions mapped to unified BusinessException variants.

Validation failures are raised before any external call or mutation;
gateway/protocol/capture failures carry the operation, order and raw
processor payload in ``details``.
"""
from __future__ import annotations

from typing import Any, Optional

from domain.common.exceptions import BusinessException, DomainValidationException, NotFoundException
from domain.payment.money import Money
from shared.codes.payment_codes import PaymentCode


class InvalidRefundAmountException(DomainValidationException):
    def __init__(self, amount: Money):
        super().__init__(
            f"Refund amount must be greater than zero: {amount}",
            code=PaymentCode.INVALID_AMOUNT,
            error_type="InvalidAmount",
            field="amount",
            details={"amount": str(amount.amount), "currency": amount.currency},
        )


class ExcessiveRefundException(DomainValidationException):
    def __init__(self, amount: Money, available: Money):
        super().__init__(
            f"Refund amount {amount} exceeds refundable amount {available}",
            code=PaymentCode.EXCESSIVE_REFUND,
            error_type="ExcessiveRefund",
            field="amount",
            details={"amount": str(amount.amount), "available": str(available.amount), "currency": amount.currency},
        )


class MissingTransactionIdException(DomainValidationException):
    def __init__(self, order_id: str, operation: str):
        super().__init__(
            f"{operation.capitalize()} failed: no transaction ID on order {order_id}",
            code=PaymentCode.NO_TRANSACTION_ID,
            error_type="NoTransactionID",
            field="transaction_id",
            details={"order_id": order_id, "operation": operation},
        )


class AlreadyCapturedException(DomainValidationException):
    def __init__(self, order_id: str):
        super().__init__(
            f"Order {order_id} has already been captured",
            code=PaymentCode.ALREADY_CAPTURED,
            error_type="AlreadyCaptured",
            details={"order_id": order_id},
        )


class InvalidOrderStateException(DomainValidationException):
    def __init__(self, order_id: str, status: Any, operation: str):
        super().__init__(
            f"Cannot {operation} order {order_id} in status {status}",
            code=PaymentCode.INVALID_ORDER_STATE,
            error_type="InvalidOrderState",
            field="status",
            details={"order_id": order_id, "status": str(status), "operation": operation},
        )


class ReconciliationRequiredException(BusinessException):
    def __init__(self, order_id: str, operation: str):
        super().__init__(
            code=PaymentCode.RECONCILIATION_REQUIRED,
            message=(
                f"Order {order_id} has an unreconciled {operation}; "
                "confirm its outcome before issuing another call"
            ),
            error_type="ReconciliationRequired",
            details={"order_id": order_id, "operation": operation},
        )


class OrderNotFoundException(NotFoundException):
    def __init__(self, order_id: str):
        super().__init__("Order", order_id, code=PaymentCode.ORDER_NOT_FOUND)


class PaymentGatewayError(BusinessException):
    """Transport failure or timeout talking to the processor.

    ``retryable`` is only true when the request never reached the processor;
    ``outcome_unknown`` marks timeouts, whose result must be reconciled.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        operation: str,
        retryable: bool = False,
        outcome_unknown: bool = False,
        status_code: int | None = None,
        raw_response: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.provider = provider
        self.operation = operation
        self.retryable = retryable
        self.outcome_unknown = outcome_unknown
        full_details = {
            "provider": provider,
            "operation": operation,
            "retryable": retryable,
            "outcome_unknown": outcome_unknown,
            "status_code": status_code,
            "raw_response": raw_response,
        }
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.TIMEOUT if outcome_unknown else PaymentCode.PROVIDER_RECOVERABLE,
            message=message,
            error_type="GatewayError",
            details=full_details,
        )


class PaymentProtocolError(BusinessException):
    def __init__(self, provider_status: Any, *, provider: str, operation: str, order_id: str, raw: Optional[dict] = None):
        self.provider_status = provider_status
        super().__init__(
            code=PaymentCode.PROTOCOL_ERROR,
            message=f"Unrecognized {provider} status for {operation}: {provider_status!r}",
            error_type="ProtocolError",
            details={
                "provider": provider,
                "operation": operation,
                "order_id": order_id,
                "provider_status": provider_status,
                "raw_response": raw,
            },
        )


class CaptureFailedException(BusinessException):
    def __init__(self, order_id: str, *, provider: str, raw: Optional[dict] = None):
        super().__init__(
            code=PaymentCode.CAPTURE_FAILED,
            message="Could not generate a captured payment transaction ID.",
            error_type="CaptureFailed",
            details={"order_id": order_id, "provider": provider, "raw_response": raw},
        )

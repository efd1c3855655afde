"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from domain.payment.entity import (
    OrderField,
    OrderStatus,
    ProcessResult,
    RefundMode,
    RefundOutcome,
    RefundRequest,
)
from domain.payment.money import Money
from domain.payment.repository import OrderRecord


def _upper_currency(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    u = v.upper()
    if len(u) != 3 or not u.isalpha():
        raise ValueError("currency must be ISO-4217 alpha-3")
    return u


class ProcessPayment(BaseModel):
    token: str = Field(min_length=1)
    # None means "follow the configured payment_capture mode"
    capture_now: Optional[bool] = None


class CapturePayment(BaseModel):
    transaction_id: Optional[str] = None


class RefundPayload(BaseModel):
    # Sign is checked by the refund policy so every entry point reports the same error
    amount: Decimal
    currency: Optional[str] = None
    reason: str = ""
    manual: bool = False

    @field_validator("currency")
    @classmethod
    def _validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return _upper_currency(v)

    def to_request(self, order_currency: str) -> RefundRequest:
        return RefundRequest(
            amount=Money(self.amount, self.currency or order_currency),
            reason=self.reason,
            mode=RefundMode.MANUAL if self.manual else RefundMode.GATEWAY,
        )


class ReconcilePayload(BaseModel):
    succeeded: bool
    transaction_id: Optional[str] = None
    refund_id: Optional[str] = None
    converted_amount: Optional[Decimal] = None
    currency: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def _validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return _upper_currency(v)

    def converted_money(self, order_currency: str) -> Optional[Money]:
        if self.converted_amount is None:
            return None
        return Money(self.converted_amount, self.currency or order_currency)


class OrderSummary(BaseModel):
    order_id: str
    status: str
    gateway: Optional[str] = None
    currency: str
    total_price: str
    total_refunded: str
    transaction_id: Optional[str] = None
    captured: bool = False
    pending_operation: Optional[str] = None

    @classmethod
    def from_order(cls, order: OrderRecord) -> "OrderSummary":
        total_price: Money = order.get(OrderField.TOTAL_PRICE)
        total_refunded: Money = order.get(OrderField.TOTAL_REFUNDED) or Money.zero(total_price.currency)
        status = order.get(OrderField.STATUS, OrderStatus.AWAITING_PAYMENT)
        pending = order.get(OrderField.PENDING_OPERATION)
        return cls(
            order_id=order.id,
            status=status.value if isinstance(status, OrderStatus) else str(status),
            gateway=order.get(OrderField.GATEWAY),
            currency=total_price.currency,
            total_price=str(total_price.amount),
            total_refunded=str(total_refunded.amount),
            transaction_id=order.get(OrderField.TRANSACTION_ID),
            captured=bool(order.get(OrderField.CAPTURED)),
            pending_operation=pending.operation if pending is not None else None,
        )


class ProcessResponse(BaseModel):
    order_id: str
    status: str
    transaction_id: Optional[str] = None
    captured: bool

    @classmethod
    def from_result(cls, result: ProcessResult) -> "ProcessResponse":
        return cls(
            order_id=result.order_id,
            status=result.status.value,
            transaction_id=result.transaction_id,
            captured=result.captured,
        )


class RefundResponse(BaseModel):
    success: bool
    mode: str
    amount: str
    currency: str
    total_refunded: str
    refund_id: Optional[str] = None
    processor_amount: Optional[str] = None
    message: str = ""

    @classmethod
    def from_outcome(cls, outcome: RefundOutcome) -> "RefundResponse":
        return cls(
            success=outcome.success,
            mode=outcome.mode.value,
            amount=str(outcome.amount.amount),
            currency=outcome.amount.currency,
            total_refunded=str(outcome.total_refunded.amount),
            refund_id=outcome.refund_id,
            processor_amount=str(outcome.processor_amount.amount) if outcome.processor_amount else None,
            message=outcome.message,
        )

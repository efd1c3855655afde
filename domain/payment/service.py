"""
交易状态机 - 授权/扣款/确认扣款的状态转换

职责：
1. 判断操作是否合法（订单状态、是否已扣款、是否有待对账操作）
2. 调用渠道客户端
3. 将渠道结果映射为订单状态（未知状态视为协议错误，不做默认）
4. 持久化结果并产生领域事件
"""
from __future__ import annotations

from typing import List, Optional

from domain.payment.entity import (
    OrderField,
    OrderStatus,
    PendingOperation,
    ProcessResult,
    TransactionResult,
    TransactionStatus,
)
from domain.payment.events import OperationReconciled, PaymentCaptured, PaymentProcessed
from domain.payment.exceptions import (
    AlreadyCapturedException,
    CaptureFailedException,
    InvalidOrderStateException,
    MissingTransactionIdException,
    PaymentGatewayError,
    PaymentProtocolError,
)
from domain.common.exceptions import DomainValidationException
from domain.payment.idempotency import make_idempotency_key
from domain.payment.refund import ensure_no_pending_operation
from domain.payment.repository import OrderRecord
from domain.services.payment_gateway import PaymentProcessorClient


TRANSACTION_TO_ORDER_STATUS = {
    TransactionStatus.ACCEPTED.value: OrderStatus.ACCEPTED_PAYMENT,
    TransactionStatus.PENDING.value: OrderStatus.ORDER_RECEIVED,
    TransactionStatus.DECLINED.value: OrderStatus.PAYMENT_DECLINED,
}

# A declined buyer may retry checkout with a fresh token
PROCESSABLE_STATUSES = (OrderStatus.AWAITING_PAYMENT, OrderStatus.PAYMENT_DECLINED)

# Authorized (or still settling) and not yet refunded
CAPTURABLE_STATUSES = (OrderStatus.ACCEPTED_PAYMENT, OrderStatus.ORDER_RECEIVED)


def current_status(order: OrderRecord) -> OrderStatus:
    return order.get(OrderField.STATUS) or OrderStatus.AWAITING_PAYMENT


class TransactionStateMachine:
    """
    交易状态机 - 与具体渠道无关，只依赖 PaymentProcessorClient 协议

    领域事件收集在 ``events`` 中，由应用层取走并分发。
    """

    def __init__(
        self,
        client: PaymentProcessorClient,
        *,
        gateway_name: str,
        timeout: Optional[float] = None,
    ) -> None:
        self.client = client
        self.gateway_name = gateway_name
        self.timeout = timeout
        self.events: List = []

    def map_status(self, result: TransactionResult, *, order: OrderRecord, operation: str) -> OrderStatus:
        status = result.status.value if isinstance(result.status, TransactionStatus) else result.status
        try:
            return TRANSACTION_TO_ORDER_STATUS[status]
        except (KeyError, TypeError):
            raise PaymentProtocolError(
                result.status,
                provider=self.client.provider,
                operation=operation,
                order_id=order.id,
                raw=result.raw,
            ) from None

    async def process(self, order: OrderRecord, token: str, capture_now: bool) -> ProcessResult:
        """
        处理结账支付

        业务规则：
        1. 只有待支付（或被拒后重试）的订单可以处理
        2. capture_now 为真时直接扣款，否则仅授权
        3. 状态与令牌/交易ID分两次保存，均完成后才返回
        """
        status = current_status(order)
        if status not in PROCESSABLE_STATUSES:
            raise InvalidOrderStateException(order.id, status.value, "process")
        if not token:
            raise DomainValidationException("Payment token is required", field="token")

        amount = order.get(OrderField.TOTAL_PRICE)
        operation = "capture" if capture_now else "authorize"
        key = make_idempotency_key(operation, order.id, token, amount)

        if capture_now:
            result = await self.client.capture(token, amount, timeout=self.timeout, idempotency_key=key)
        else:
            result = await self.client.authorize(token, amount, timeout=self.timeout, idempotency_key=key)

        new_status = self.map_status(result, order=order, operation=operation)

        order.set(OrderField.STATUS, new_status)
        await order.save()

        order.set(OrderField.TOKEN, token)
        if new_status != OrderStatus.PAYMENT_DECLINED and result.transaction_id:
            order.set(OrderField.TRANSACTION_ID, result.transaction_id)
        captured = capture_now and new_status == OrderStatus.ACCEPTED_PAYMENT
        if captured:
            order.set(OrderField.CAPTURED, True)
        await order.save()

        transaction_id = order.get(OrderField.TRANSACTION_ID)
        self.events.append(PaymentProcessed(
            order_id=order.id,
            provider=self.gateway_name,
            transaction_id=transaction_id,
            status=new_status.value,
            captured=captured,
        ))
        return ProcessResult(
            order_id=order.id,
            status=new_status,
            transaction_id=transaction_id,
            captured=captured,
        )

    async def capture(self, order: OrderRecord, transaction_id: Optional[str]) -> bool:
        """
        扣款（仅适用于本渠道授权过的订单）

        Returns False when the order belongs to another gateway, and when the
        processor answers ``pending`` or ``declined``; the order is left as it
        was in both cases. Only an ``accepted`` answer marks the order captured.
        An accepted capture without a transaction id raises
        CaptureFailedException and also leaves the order unchanged.
        """
        if order.get(OrderField.GATEWAY) != self.gateway_name:
            return False

        transaction_id = transaction_id or order.get(OrderField.TRANSACTION_ID)
        if not transaction_id:
            raise MissingTransactionIdException(order.id, "capture")
        if order.get(OrderField.CAPTURED):
            raise AlreadyCapturedException(order.id)
        status = current_status(order)
        if status not in CAPTURABLE_STATUSES:
            raise InvalidOrderStateException(order.id, status.value, "capture")
        ensure_no_pending_operation(order)

        amount = order.get(OrderField.TOTAL_PRICE)
        key = make_idempotency_key("capture", order.id, transaction_id, amount)
        order.set(OrderField.PENDING_OPERATION, PendingOperation("capture", key, amount))
        await order.save()

        try:
            result = await self.client.capture(transaction_id, amount, timeout=self.timeout, idempotency_key=key)
        except PaymentGatewayError as exc:
            if not exc.outcome_unknown:
                await self._clear_pending(order)
            raise

        await self._clear_pending(order)
        if result is None:
            raise CaptureFailedException(order.id, provider=self.client.provider)
        new_status = self.map_status(result, order=order, operation="capture")
        if new_status != OrderStatus.ACCEPTED_PAYMENT:
            return False
        if not result.transaction_id:
            raise CaptureFailedException(order.id, provider=self.client.provider, raw=result.raw)

        await self._apply_capture(order, result.transaction_id)
        return True

    async def reconcile(
        self,
        order: OrderRecord,
        pending: PendingOperation,
        succeeded: bool,
        *,
        transaction_id: Optional[str] = None,
    ) -> bool:
        """Settle a timed-out capture once the caller has confirmed its outcome."""
        if succeeded and not transaction_id:
            raise CaptureFailedException(order.id, provider=self.client.provider)
        await self._clear_pending(order)
        if succeeded:
            await self._apply_capture(order, transaction_id)
        self.events.append(OperationReconciled(
            order_id=order.id,
            provider=self.gateway_name,
            transaction_id=order.get(OrderField.TRANSACTION_ID),
            operation="capture",
            succeeded=succeeded,
        ))
        return succeeded

    async def _apply_capture(self, order: OrderRecord, captured_id: str) -> None:
        order.set(OrderField.STATUS, OrderStatus.ACCEPTED_PAYMENT)
        await order.save()
        order.set(OrderField.TRANSACTION_ID, captured_id)
        await order.save()
        order.set(OrderField.CAPTURED, True)
        await order.save()

        amount = order.get(OrderField.TOTAL_PRICE)
        self.events.append(PaymentCaptured(
            order_id=order.id,
            provider=self.gateway_name,
            transaction_id=captured_id,
            amount=str(amount.amount) if amount is not None else "",
        ))

    @staticmethod
    async def _clear_pending(order: OrderRecord) -> None:
        order.set(OrderField.PENDING_OPERATION, None)
        await order.save()

    def clear_events(self) -> List:
        """清空并返回领域事件"""
        events = self.events.copy()
        self.events.clear()
        return events

"""
退款策略 - 校验退款金额并记录手工/渠道退款

业务规则：
1. 退款金额必须大于0
2. 必须已有渠道交易ID（授权或扣款成功之后）
3. 退款金额不能超过 订单总额 - 已退款总额（恰好相等允许）
4. 手工退款只记账，不调用渠道接口
5. 渠道退款未确认时不修改订单，返回失败结果供调用方重试
"""
from __future__ import annotations

from typing import List, Optional

from domain.payment.entity import (
    OrderField,
    OrderStatus,
    PendingOperation,
    RefundMode,
    RefundOutcome,
    RefundRequest,
)
from domain.payment.events import OperationReconciled, PaymentRefunded, RefundFailed
from domain.payment.exceptions import (
    ExcessiveRefundException,
    InvalidRefundAmountException,
    MissingTransactionIdException,
    PaymentGatewayError,
    ReconciliationRequiredException,
)
from domain.payment.idempotency import make_idempotency_key
from domain.payment.money import Money
from domain.payment.repository import OrderRecord
from domain.services.payment_gateway import PaymentProcessorClient


def refunded_total(order: OrderRecord) -> Money:
    total_price: Money = order.get(OrderField.TOTAL_PRICE)
    return order.get(OrderField.TOTAL_REFUNDED) or Money.zero(total_price.currency)


def refundable_amount(order: OrderRecord) -> Money:
    return order.get(OrderField.TOTAL_PRICE) - refunded_total(order)


def ensure_no_pending_operation(order: OrderRecord) -> None:
    pending: Optional[PendingOperation] = order.get(OrderField.PENDING_OPERATION)
    if pending is not None:
        raise ReconciliationRequiredException(order.id, pending.operation)


async def record_refund(order: OrderRecord, amount: Money) -> Money:
    """Add ``amount`` to the refunded total and move the order status along."""
    new_total = refunded_total(order) + amount
    order.set(OrderField.TOTAL_REFUNDED, new_total)
    await order.save()

    fully_refunded = new_total >= order.get(OrderField.TOTAL_PRICE)
    order.set(OrderField.STATUS, OrderStatus.REFUNDED if fully_refunded else OrderStatus.PARTIALLY_REFUNDED)
    await order.save()
    return new_total


def gateway_refund_note(processor_amount: Money, refund_id: str) -> str:
    return f"Refunded {processor_amount} - Refund ID: {refund_id}"


class RefundPolicy:
    """
    退款策略 - 全额/部分退款，手工或渠道

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

    def validate(self, order: OrderRecord, request: RefundRequest) -> str:
        """Reject the request before anything is mutated; returns the transaction id."""
        if not request.amount.is_positive():
            raise InvalidRefundAmountException(request.amount)

        transaction_id = order.get(OrderField.TRANSACTION_ID)
        if not transaction_id:
            raise MissingTransactionIdException(order.id, "refund")

        max_refund = refundable_amount(order)
        if request.amount > max_refund:
            raise ExcessiveRefundException(request.amount, max_refund)

        ensure_no_pending_operation(order)
        return transaction_id

    async def refund(self, order: OrderRecord, request: RefundRequest) -> RefundOutcome:
        transaction_id = self.validate(order, request)

        if request.is_manual:
            return await self._manual_refund(order, request, transaction_id)
        return await self._gateway_refund(order, request, transaction_id)

    async def _manual_refund(self, order: OrderRecord, request: RefundRequest, transaction_id: str) -> RefundOutcome:
        new_total = await record_refund(order, request.amount)
        await order.add_note(f"Refunded {request.amount} via Manual Refund", request.reason)

        self.events.append(PaymentRefunded(
            order_id=order.id,
            provider=self.gateway_name,
            transaction_id=transaction_id,
            amount=str(request.amount.amount),
            manual=True,
        ))
        return RefundOutcome(
            success=True,
            mode=RefundMode.MANUAL,
            amount=request.amount,
            total_refunded=new_total,
            message="manual refund recorded",
        )

    async def _gateway_refund(self, order: OrderRecord, request: RefundRequest, transaction_id: str) -> RefundOutcome:
        key = make_idempotency_key(
            "refund", order.id, transaction_id, request.amount, refunded_total(order).amount
        )
        # A timed-out call leaves this marker behind until the caller reconciles it
        order.set(
            OrderField.PENDING_OPERATION,
            PendingOperation("refund", key, request.amount, request.reason),
        )
        await order.save()

        try:
            confirmation = await self.client.refund(
                transaction_id,
                request.amount,
                timeout=self.timeout,
                idempotency_key=key,
            )
        except PaymentGatewayError as exc:
            if not exc.outcome_unknown:
                await self._clear_pending(order)
            raise

        await self._clear_pending(order)

        if confirmation is None:
            self.events.append(RefundFailed(
                order_id=order.id,
                provider=self.gateway_name,
                transaction_id=transaction_id,
                amount=str(request.amount.amount),
                reason=request.reason,
            ))
            return RefundOutcome(
                success=False,
                mode=RefundMode.GATEWAY,
                amount=request.amount,
                total_refunded=refunded_total(order),
                message="processor did not confirm the refund",
            )

        return await self.apply_confirmed_refund(
            order,
            request.amount,
            transaction_id=transaction_id,
            refund_id=confirmation.refund_id,
            processor_amount=confirmation.converted_amount,
            reason=request.reason,
        )

    async def apply_confirmed_refund(
        self,
        order: OrderRecord,
        amount: Money,
        *,
        transaction_id: Optional[str],
        refund_id: str,
        processor_amount: Optional[Money],
        reason: str = "",
    ) -> RefundOutcome:
        # The ledger records the requested amount; the processor's (possibly
        # currency-converted) amount is only reported in the note.
        new_total = await record_refund(order, amount)
        reported = processor_amount or amount
        await order.add_note(gateway_refund_note(reported, refund_id), reason)

        self.events.append(PaymentRefunded(
            order_id=order.id,
            provider=self.gateway_name,
            transaction_id=transaction_id,
            refund_id=refund_id,
            amount=str(amount.amount),
            processor_amount=str(reported.amount),
            manual=False,
        ))
        return RefundOutcome(
            success=True,
            mode=RefundMode.GATEWAY,
            amount=amount,
            total_refunded=new_total,
            refund_id=refund_id,
            processor_amount=processor_amount,
            message="refund confirmed by processor",
        )

    async def reconcile(
        self,
        order: OrderRecord,
        pending: PendingOperation,
        succeeded: bool,
        *,
        refund_id: Optional[str] = None,
        converted_amount: Optional[Money] = None,
    ) -> Optional[RefundOutcome]:
        """Settle a timed-out refund once the caller has confirmed its outcome."""
        outcome = None
        if succeeded:
            outcome = await self.apply_confirmed_refund(
                order,
                pending.amount,
                transaction_id=order.get(OrderField.TRANSACTION_ID),
                refund_id=refund_id or "unknown",
                processor_amount=converted_amount,
                reason=pending.reason,
            )
        await self._clear_pending(order)
        self.events.append(OperationReconciled(
            order_id=order.id,
            provider=self.gateway_name,
            transaction_id=order.get(OrderField.TRANSACTION_ID),
            operation="refund",
            succeeded=succeeded,
        ))
        return outcome

    @staticmethod
    async def _clear_pending(order: OrderRecord) -> None:
        order.set(OrderField.PENDING_OPERATION, None)
        await order.save()

    def clear_events(self) -> List:
        """清空并返回领域事件"""
        events = self.events.copy()
        self.events.clear()
        return events

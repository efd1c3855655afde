"""
Application service orchestrating payment use-cases.

PaymentService is the PaymentGateway implementation for one processor
integration. It depends only on the domain client port, the order lock port
and the event sink port; concrete adapters are injected by
`api.dependencies.build_payment_service`.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from application.ports.events import PaymentEventSink
from application.ports.locks import OrderLockManager
from application.ports.payment_gateway import EligibilityProvider
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from domain.payment.entity import (
    GatewayConfig,
    OrderField,
    ProcessResult,
    RefundOutcome,
    RefundRequest,
)
from domain.payment.exceptions import InvalidOrderStateException, PaymentGatewayError
from domain.payment.money import Money
from domain.payment.refund import RefundPolicy
from domain.payment.repository import OrderRecord
from domain.payment.service import TransactionStateMachine, current_status
from domain.services.payment_gateway import PaymentProcessorClient, is_eligible


logger = get_logger(__name__)

T = TypeVar("T")


def _is_retryable(exc: BaseException) -> bool:
    # Only failures where the processor never saw the request
    return isinstance(exc, PaymentGatewayError) and exc.retryable


class PaymentService:
    def __init__(
        self,
        client: PaymentProcessorClient,
        config: GatewayConfig,
        *,
        locks: OrderLockManager,
        sink: PaymentEventSink,
        eligibility: Optional[EligibilityProvider] = None,
        gateway_name: str = "sample",
        timeout: Optional[float] = None,
        retry: Optional[dict[str, Any]] = None,
    ) -> None:
        self.client = client
        self.config = config
        self.locks = locks
        self.sink = sink
        self.eligibility = eligibility
        self.name = gateway_name
        self.timeout = timeout
        self._retry_cfg = retry or {"max": 0, "base": 0.2}

    def _state_machine(self) -> TransactionStateMachine:
        return TransactionStateMachine(self.client, gateway_name=self.name, timeout=self.timeout)

    def _refund_policy(self) -> RefundPolicy:
        return RefundPolicy(self.client, gateway_name=self.name, timeout=self.timeout)

    def is_eligible(self) -> bool:
        if self.eligibility is None:
            return False
        return is_eligible(self.eligibility.current_currency(), self.eligibility.current_country())

    async def _retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(int(self._retry_cfg["max"]) + 1),
            wait=wait_exponential(multiplier=self._retry_cfg["base"], min=0.1, max=2.0),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                return await fn()
        raise AssertionError("unreachable")  # pragma: no cover

    async def _run(self, operation: str, order: OrderRecord, fn: Callable[[], Awaitable[T]], *components) -> T:
        """Run one operation under the order lock, then dispatch the events it produced."""
        try:
            async with self.locks.lock(order.id):
                result = await self._retry(fn)
        except BusinessException as exc:
            log = logger.error if not exc.code or exc.code >= 60000 else logger.warning
            log(
                f"payment_{operation}_failed",
                order_id=order.id,
                provider=self.name,
                error_type=exc.error_type,
                error=exc.message,
                details=exc.details,
            )
            raise
        finally:
            events = [e for c in components for e in c.clear_events()]
        for event in events:
            await self.sink.publish(event)
        return result

    async def process(self, order: OrderRecord, token: str, capture_now: Optional[bool] = None) -> ProcessResult:
        if capture_now is None:
            capture_now = self.config.capture_immediately
        logger.info(
            "payment_process_request",
            order_id=order.id,
            provider=self.name,
            capture_now=capture_now,
            sandbox=self.config.sandbox_mode,
        )
        machine = self._state_machine()
        result = await self._run(
            "process", order, lambda: machine.process(order, token, capture_now), machine
        )
        logger.info(
            "payment_process_response",
            order_id=order.id,
            provider=self.name,
            status=result.status.value,
            transaction_id=result.transaction_id,
        )
        return result

    async def capture(self, order: OrderRecord, transaction_id: Optional[str] = None) -> bool:
        logger.info("payment_capture_request", order_id=order.id, provider=self.name)
        machine = self._state_machine()
        captured = await self._run(
            "capture", order, lambda: machine.capture(order, transaction_id), machine
        )
        log = logger.info if captured else logger.warning
        log(
            "payment_capture_response",
            order_id=order.id,
            provider=self.name,
            captured=captured,
            transaction_id=order.get(OrderField.TRANSACTION_ID),
        )
        return captured

    async def refund(self, order: OrderRecord, request: RefundRequest) -> RefundOutcome:
        logger.info(
            "payment_refund_request",
            order_id=order.id,
            provider=self.name,
            amount=str(request.amount),
            mode=request.mode.value,
        )
        policy = self._refund_policy()
        outcome = await self._run("refund", order, lambda: policy.refund(order, request), policy)
        log = logger.info if outcome.success else logger.warning
        log(
            "payment_refund_response",
            order_id=order.id,
            provider=self.name,
            success=outcome.success,
            refund_id=outcome.refund_id,
            total_refunded=str(outcome.total_refunded),
        )
        return outcome

    async def reconcile(
        self,
        order: OrderRecord,
        succeeded: bool,
        *,
        transaction_id: Optional[str] = None,
        refund_id: Optional[str] = None,
        converted_amount: Optional[Money] = None,
    ) -> None:
        """Resolve a capture/refund left pending by a timeout, after the caller confirmed its outcome."""
        machine = self._state_machine()
        policy = self._refund_policy()

        async def _reconcile() -> None:
            pending = order.get(OrderField.PENDING_OPERATION)
            if pending is None:
                raise InvalidOrderStateException(order.id, current_status(order).value, "reconcile")
            logger.info(
                "payment_reconcile_request",
                order_id=order.id,
                provider=self.name,
                operation=pending.operation,
                succeeded=succeeded,
            )
            if pending.operation == "capture":
                await machine.reconcile(order, pending, succeeded, transaction_id=transaction_id)
            else:
                await policy.reconcile(
                    order, pending, succeeded, refund_id=refund_id, converted_amount=converted_amount
                )

        await self._run("reconcile", order, _reconcile, machine, policy)

    async def aclose(self) -> None:
        # Best-effort close underlying resources
        close = getattr(self.client, "aclose", None)
        if callable(close):
            await close()

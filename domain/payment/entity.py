"""
支付领域实体 - 订单状态、交易结果与退款值对象

订单本身由外部系统持有，领域层只定义读写订单所需的字段名与值类型。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException
from domain.payment.money import Money


class OrderStatus(str, Enum):
    """订单状态枚举"""
    AWAITING_PAYMENT = "awaiting_payment"      # 待支付
    ORDER_RECEIVED = "order_received"          # 已受理（渠道待定）
    ACCEPTED_PAYMENT = "accepted_payment"      # 支付成功
    PAYMENT_DECLINED = "payment_declined"      # 支付被拒
    PARTIALLY_REFUNDED = "partially_refunded"  # 部分退款
    REFUNDED = "refunded"                      # 已退款


class OrderField:
    """Field names the core reads from and writes to an order record."""
    ID = "id"
    STATUS = "status"
    GATEWAY = "gateway"
    TOTAL_PRICE = "total_price"
    TOTAL_REFUNDED = "total_refunded"
    TRANSACTION_ID = "transaction_id"
    TOKEN = "token"
    CAPTURED = "captured"
    PENDING_OPERATION = "pending_operation"


class TransactionStatus(str, Enum):
    """Statuses a processor may report for authorize/capture."""
    ACCEPTED = "accepted"
    PENDING = "pending"
    DECLINED = "declined"
    FAILED = "failed"


class PaymentCaptureMode(str, Enum):
    IMMEDIATE = ""          # authorize and capture when the order is placed
    AUTHORIZE = "authorize"  # authorize only, capture later


class RefundMode(str, Enum):
    MANUAL = "manual"
    GATEWAY = "gateway"


@dataclass(frozen=True)
class GatewayConfig:
    """Explicit gateway configuration handed to the core at construction."""
    account_number: str
    sandbox_mode: bool = False
    payment_capture_mode: PaymentCaptureMode = PaymentCaptureMode.IMMEDIATE

    @property
    def capture_immediately(self) -> bool:
        return self.payment_capture_mode == PaymentCaptureMode.IMMEDIATE


@dataclass(frozen=True)
class TransactionResult:
    """Outcome of an authorize or capture call.

    ``status`` is the raw processor string; mapping it to an order status is
    the state machine's job, so unknown values survive until then.
    """
    status: str
    transaction_id: Optional[str] = None
    amount: Optional[Money] = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RefundConfirmation:
    refund_id: str
    converted_amount: Optional[Money] = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RefundRequest:
    """
    退款请求

    业务规则：金额必须大于0（在退款策略中校验，保证校验先于任何变更）
    """
    amount: Money
    reason: str = ""
    mode: RefundMode = RefundMode.GATEWAY

    @property
    def is_manual(self) -> bool:
        return self.mode == RefundMode.MANUAL


@dataclass(frozen=True)
class RefundOutcome:
    success: bool
    mode: RefundMode
    amount: Money
    total_refunded: Money
    refund_id: Optional[str] = None
    processor_amount: Optional[Money] = None
    message: str = ""


@dataclass(frozen=True)
class ProcessResult:
    order_id: str
    status: OrderStatus
    transaction_id: Optional[str]
    captured: bool


@dataclass(frozen=True)
class OrderNote:
    text: str
    reason: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class PendingOperation:
    """Reconciliation marker for a capture/refund whose outcome is unknown."""
    operation: str  # "capture" | "refund"
    idempotency_key: str
    amount: Money
    reason: str = ""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.operation not in ("capture", "refund"):
            raise DomainValidationException(
                f"Unknown pending operation: {self.operation}",
                field="operation",
            )

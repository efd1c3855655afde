"""
API依赖项 - 订单加载与支付网关装配
"""
from typing import Optional

from fastapi import Depends, Request

from application.ports.events import PaymentEventSink
from application.ports.locks import OrderLockManager
from application.ports.payment_gateway import PaymentGateway, StoreLocale
from application.services.payment_service import PaymentService
from core.settings import GatewaySettings, gateway_settings
from domain.payment.exceptions import OrderNotFoundException
from domain.payment.repository import OrderRecord, OrderRepository
from domain.services.payment_gateway import PaymentProcessorClient
from infrastructure.events import LoggingEventSink
from infrastructure.external.payments import get_processor_client
from infrastructure.locks import get_order_locks


def build_payment_service(
    settings: Optional[GatewaySettings] = None,
    *,
    client: Optional[PaymentProcessorClient] = None,
    locks: Optional[OrderLockManager] = None,
    sink: Optional[PaymentEventSink] = None,
) -> PaymentService:
    """组装网关：配置、渠道客户端、订单锁与事件出口"""
    settings = settings or gateway_settings
    return PaymentService(
        client or get_processor_client(settings.name),
        settings.to_config(),
        locks=locks or get_order_locks(),
        sink=sink or LoggingEventSink(),
        eligibility=StoreLocale(settings.store.currency, settings.store.country),
        gateway_name=settings.name,
        timeout=settings.timeouts.total,
        retry={"max": settings.retry.max, "base": settings.retry.base_backoff},
    )


def get_order_repository(request: Request) -> OrderRepository:
    return request.app.state.order_repository


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway


async def get_order(
    order_id: str,
    orders: OrderRepository = Depends(get_order_repository),
) -> OrderRecord:
    """按路径参数加载订单，不存在时抛出 OrderNotFoundException"""
    order = await orders.get_by_id(order_id)
    if order is None:
        raise OrderNotFoundException(order_id)
    return order

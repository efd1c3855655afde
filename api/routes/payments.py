"""
Payments API routes.

Thin layer over the PaymentGateway: load the order, translate the payload,
call the gateway, wrap the result. No processor details here.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_order, get_payment_gateway
from application.dtos.payments import (
    CapturePayment,
    OrderSummary,
    ProcessPayment,
    ProcessResponse,
    ReconcilePayload,
    RefundPayload,
    RefundResponse,
)
from application.ports.payment_gateway import PaymentGateway
from core.response import success_response
from domain.payment.entity import OrderField
from domain.payment.repository import OrderRecord


router = APIRouter(prefix="/payments", tags=["Payments"])


def _order_currency(order: OrderRecord) -> str:
    return order.get(OrderField.TOTAL_PRICE).currency


@router.post("/orders/{order_id}/process", summary="Process checkout payment")
async def process_payment(
    payload: ProcessPayment,
    order: OrderRecord = Depends(get_order),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    result = await gateway.process(order, payload.token, payload.capture_now)
    return success_response(
        data=ProcessResponse.from_result(result).model_dump(mode="json"),
        message="Payment processed",
    )


@router.post("/orders/{order_id}/capture", summary="Capture authorized payment")
async def capture_payment(
    payload: CapturePayment,
    order: OrderRecord = Depends(get_order),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    captured = await gateway.capture(order, payload.transaction_id)
    return success_response(
        data={"captured": captured, "order": OrderSummary.from_order(order).model_dump(mode="json")},
        message="Payment captured" if captured else "Payment was not captured",
    )


@router.post("/orders/{order_id}/refunds", summary="Refund payment")
async def refund_payment(
    payload: RefundPayload,
    order: OrderRecord = Depends(get_order),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    outcome = await gateway.refund(order, payload.to_request(_order_currency(order)))
    return success_response(
        data=RefundResponse.from_outcome(outcome).model_dump(mode="json"),
        message="Refund recorded" if outcome.success else "Refund was not confirmed by the processor",
    )


@router.post("/orders/{order_id}/reconcile", summary="Resolve a timed-out capture or refund")
async def reconcile_payment(
    payload: ReconcilePayload,
    order: OrderRecord = Depends(get_order),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    await gateway.reconcile(
        order,
        payload.succeeded,
        transaction_id=payload.transaction_id,
        refund_id=payload.refund_id,
        converted_amount=payload.converted_money(_order_currency(order)),
    )
    return success_response(
        data=OrderSummary.from_order(order).model_dump(mode="json"),
        message="Order reconciled",
    )


@router.get("/availability", summary="Gateway availability for the store locale")
async def payment_availability(gateway: PaymentGateway = Depends(get_payment_gateway)):
    return success_response(data={"gateway": gateway.name, "eligible": gateway.is_eligible()})

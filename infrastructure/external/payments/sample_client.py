"""
Sample processor adapter over its JSON/HTTP API.

Endpoints (relative to the sandbox or live base URL):

- ``POST /v1/authorizations``  {account_number, token, amount, currency}
- ``POST /v1/captures``        {account_number, transaction_id, amount?, currency?}
- ``POST /v1/refunds``         {account_number, transaction_id, amount?, currency?}

Amounts travel in minor units. Authorize/capture answer
``{"status", "transaction_id", "amount", "currency"}``; refunds answer
``{"refund_id", "currency_converted_amount", "currency"}``.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from core.settings import GatewaySettings, gateway_settings
from domain.common.exceptions import DomainValidationException
from domain.payment.entity import RefundConfirmation, TransactionResult
from domain.payment.exceptions import PaymentGatewayError
from domain.payment.money import Money
from infrastructure.external.payments.base import BasePaymentClient


# Refund responses the processor uses to refuse (not fail) a refund
REFUND_DECLINE_STATUS_CODES = {402, 409, 422}


class SampleProcessorClient(BasePaymentClient):
    provider = "sample"

    def __init__(
        self,
        settings: Optional[GatewaySettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = settings or gateway_settings
        super().__init__(
            base_url=settings.endpoint,
            timeouts=settings.timeouts.model_dump(),
            transport=transport,
        )
        self.provider = settings.name
        self.account_number = settings.account_number

    def _payload(self, amount: Optional[Money], **fields: Any) -> dict[str, Any]:
        payload = {"account_number": self.account_number, **fields}
        if amount is not None:
            payload["amount"] = amount.to_minor()
            payload["currency"] = amount.currency
        return payload

    def _minor_amount(
        self,
        operation: str,
        response: httpx.Response,
        data: dict[str, Any],
        key: str,
        currency: str,
    ) -> Money:
        value = data[key]
        try:
            # Minor units are whole numbers
            if isinstance(value, (bool, float)):
                raise TypeError(f"{type(value).__name__} is not a minor-unit amount")
            return Money.from_minor(int(value), currency)
        except (TypeError, ValueError, DomainValidationException) as exc:
            raise PaymentGatewayError(
                f"{self.provider} {operation} returned an invalid {key}: {value!r} {currency}",
                provider=self.provider,
                operation=operation,
                outcome_unknown=True,
                status_code=response.status_code,
                raw_response=response.text,
            ) from exc

    def _transaction_result(
        self,
        operation: str,
        response: httpx.Response,
        fallback_currency: Optional[str],
    ) -> TransactionResult:
        data = self._json(operation, response)
        amount = None
        currency = data.get("currency") or fallback_currency
        if data.get("amount") is not None and currency:
            amount = self._minor_amount(operation, response, data, "amount", currency)
        return TransactionResult(
            status=self._map_status(str(data.get("status", ""))),
            transaction_id=str(data["transaction_id"]) if data.get("transaction_id") else None,
            amount=amount,
            raw=data,
        )

    async def authorize(
        self,
        token: str,
        amount: Money,
        *,
        timeout: Optional[float] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResult:
        response = await self._post(
            "authorize",
            "/v1/authorizations",
            self._payload(amount, token=token),
            timeout=timeout,
            idempotency_key=idempotency_key,
        )
        self._raise_for_status("authorize", response)
        return self._transaction_result("authorize", response, amount.currency)

    async def capture(
        self,
        token_or_id: str,
        amount: Optional[Money] = None,
        *,
        timeout: Optional[float] = None,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResult:
        response = await self._post(
            "capture",
            "/v1/captures",
            self._payload(amount, transaction_id=token_or_id),
            timeout=timeout,
            idempotency_key=idempotency_key,
        )
        self._raise_for_status("capture", response)
        return self._transaction_result(
            "capture",
            response,
            amount.currency if amount is not None else None,
        )

    async def refund(
        self,
        transaction_id: str,
        amount: Optional[Money] = None,
        *,
        timeout: Optional[float] = None,
        idempotency_key: Optional[str] = None,
    ) -> Optional[RefundConfirmation]:
        response = await self._post(
            "refund",
            "/v1/refunds",
            self._payload(amount, transaction_id=transaction_id),
            timeout=timeout,
            idempotency_key=idempotency_key,
        )
        if response.status_code in REFUND_DECLINE_STATUS_CODES:
            self._log("payment_refund_declined", status_code=response.status_code, body=response.text)
            return None
        self._raise_for_status("refund", response)

        data = self._json("refund", response)
        refund_id = data.get("refund_id")
        if not refund_id:
            self._log("payment_refund_unconfirmed", body=data)
            return None

        converted = None
        currency = data.get("currency") or (amount.currency if amount is not None else None)
        if data.get("currency_converted_amount") is not None and currency:
            converted = self._minor_amount("refund", response, data, "currency_converted_amount", currency)
        return RefundConfirmation(refund_id=str(refund_id), converted_amount=converted, raw=data)

"""
Base payment client implementing shared concerns: http, error mapping, logging, status mapping.

Concrete providers should subclass and implement provider-specific logic.
Clients never retry: a timed-out call may already have been applied by the
processor, so deciding what happens next belongs to the caller.
"""
from __future__ import annotations

from typing import Any, Optional
from contextlib import asynccontextmanager

import httpx

from core.logging_config import get_logger
from domain.payment.exceptions import PaymentGatewayError
from shared.codes.payment_codes import PROVIDER_STATUS_TO_INTERNAL


logger = get_logger(__name__)

# Failures where the request provably never reached the processor
_NOT_SENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str,
        timeouts: Optional[dict[str, float]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeouts_cfg = timeouts or {"connect": 1.0, "read": 10.0, "write": 10.0, "total": 15.0}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            timeout=self._timeouts_cfg["total"],
        )

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeouts,
                transport=self._transport,
            )
        try:
            yield self._client
        finally:
            # Keep open for reuse; explicit aclose() will close.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _post(
        self,
        operation: str,
        path: str,
        payload: dict[str, Any],
        *,
        timeout: Optional[float] = None,
        idempotency_key: Optional[str] = None,
    ) -> httpx.Response:
        """POST to the processor, translating transport failures into PaymentGatewayError."""
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        request_timeout = httpx.Timeout(timeout) if timeout is not None else self.timeouts
        self._log("payment_client_request", operation=operation, path=path, idempotency_key=idempotency_key)
        try:
            async with self.client() as http:
                response = await http.post(path, json=payload, headers=headers, timeout=request_timeout)
        except _NOT_SENT_ERRORS as exc:
            raise PaymentGatewayError(
                f"Could not reach {self.provider} for {operation}: {exc}",
                provider=self.provider,
                operation=operation,
                retryable=True,
            ) from exc
        except httpx.TimeoutException as exc:
            raise PaymentGatewayError(
                f"{self.provider} {operation} timed out; outcome unknown",
                provider=self.provider,
                operation=operation,
                outcome_unknown=True,
            ) from exc
        except httpx.TransportError as exc:
            raise PaymentGatewayError(
                f"Transport error during {self.provider} {operation}: {exc}",
                provider=self.provider,
                operation=operation,
                outcome_unknown=True,
            ) from exc
        self._log("payment_client_response", operation=operation, status_code=response.status_code)
        return response

    def _raise_for_status(self, operation: str, response: httpx.Response) -> None:
        if response.is_success:
            return
        raise PaymentGatewayError(
            f"{self.provider} {operation} failed with HTTP {response.status_code}",
            provider=self.provider,
            operation=operation,
            # 5xx may have been applied before the processor failed
            outcome_unknown=response.status_code >= 500,
            status_code=response.status_code,
            raw_response=response.text,
        )

    def _json(self, operation: str, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise PaymentGatewayError(
                f"{self.provider} {operation} returned a non-JSON body",
                provider=self.provider,
                operation=operation,
                outcome_unknown=True,
                status_code=response.status_code,
                raw_response=response.text,
            ) from exc
        if not isinstance(data, dict):
            raise PaymentGatewayError(
                f"{self.provider} {operation} returned an unexpected payload",
                provider=self.provider,
                operation=operation,
                outcome_unknown=True,
                status_code=response.status_code,
                raw_response=response.text,
            )
        return data

    # Helpers
    def _map_status(self, provider_status: str) -> str:
        mapping = PROVIDER_STATUS_TO_INTERNAL.get(self.provider, {})
        return mapping.get(provider_status, provider_status)

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )

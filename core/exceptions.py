"""
业务码到 HTTP 状态的映射与全局异常处理器

支付错误按可恢复性映射：校验失败 422/409，渠道错误 502，结果未知的超时 504。
"""
import traceback
import uuid
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status

from .response import error_response
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


logger = get_logger(__name__)

_CODE_TO_HTTP_STATUS = {
    BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.NETWORK_ERROR: http_status.HTTP_502_BAD_GATEWAY,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,

    PaymentCode.INVALID_AMOUNT: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    PaymentCode.EXCESSIVE_REFUND: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    PaymentCode.NO_TRANSACTION_ID: http_status.HTTP_409_CONFLICT,
    PaymentCode.ALREADY_CAPTURED: http_status.HTTP_409_CONFLICT,
    PaymentCode.INVALID_ORDER_STATE: http_status.HTTP_409_CONFLICT,
    PaymentCode.RECONCILIATION_REQUIRED: http_status.HTTP_409_CONFLICT,
    PaymentCode.ORDER_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,

    PaymentCode.PROVIDER_ERROR: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.PROVIDER_RECOVERABLE: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.PROTOCOL_ERROR: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.CAPTURE_FAILED: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.TIMEOUT: http_status.HTTP_504_GATEWAY_TIMEOUT,
}

_HTTP_STATUS_TO_CODE = {
    404: BusinessCode.NOT_FOUND,
    500: BusinessCode.SYSTEM_ERROR,
    503: BusinessCode.SERVICE_UNAVAILABLE,
}


def business_code_to_http_status(code: int) -> int:
    """根据业务码映射HTTP状态码（默认400）。"""
    return _CODE_TO_HTTP_STATUS.get(code, http_status.HTTP_400_BAD_REQUEST)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _error(
    request: Request,
    status_code: int,
    *,
    code: int,
    message: str,
    error_type: str,
    details: Optional[dict] = None,
    field: Optional[str] = None,
    headers: Optional[Any] = None,
) -> JSONResponse:
    body = error_response(
        code=code,
        message=message,
        error_type=error_type,
        details=details,
        field=field,
        request_id=_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


def register_exception_handlers(app: FastAPI):
    """注册全局异常处理器，统一输出 Response 错误包"""

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        status_code = business_code_to_http_status(exc.code)
        log = logger.error if status_code >= 500 else logger.warning
        log("business_exception", error_type=exc.error_type, code=int(exc.code), error=exc.message, details=exc.details)
        return _error(
            request,
            status_code,
            code=exc.code,
            message=exc.message,
            error_type=exc.error_type,
            details=exc.details,
            field=exc.field,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        return _error(
            request,
            http_status.HTTP_422_UNPROCESSABLE_ENTITY,
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=f"Validation failed: {first_error.get('msg', 'unknown')}",
            error_type="ValidationError",
            details={"errors": [{k: str(v) for k, v in e.items()} for e in errors]},
            # 去掉 body/query 前缀
            field=".".join(str(loc) for loc in first_error.get("loc", [])[1:]),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error(
            request,
            exc.status_code,
            code=_HTTP_STATUS_TO_CODE.get(exc.status_code, BusinessCode.BUSINESS_ERROR),
            message=str(exc.detail),
            error_type="HTTPError",
            details={"status_code": exc.status_code},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("unhandled_exception", error=str(exc), exc_info=True)
        details = {"exception": str(exc), "traceback": traceback.format_exc()} if app.debug else None
        return _error(
            request,
            http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=BusinessCode.SYSTEM_ERROR,
            message="Internal server error",
            error_type="SystemError",
            details=details,
        )

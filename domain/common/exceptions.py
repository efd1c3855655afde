"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        code: int = BusinessCode.PARAM_VALIDATION_ERROR,
        error_type: str = "DomainValidationError",
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=code,
            message=message,
            error_type=error_type,
            details=details,
            field=field,
        )


class NotFoundException(BusinessException):
    def __init__(self, resource: str, identifier: str, *, code: int = BusinessCode.NOT_FOUND):
        super().__init__(
            code=code,
            message=f"{resource} not found: {identifier}",
            error_type=f"{resource}NotFound",
            details={"id": identifier},
        )

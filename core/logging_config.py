"""
Structlog 日志配置模块

支付日志约定：事件名为 snake_case（payment_refund_request 等），上下文以关键字参数传入；
支付令牌与商户账号在任何渲染器之前被遮盖。
"""
import json
import logging
from typing import Any, List, MutableMapping, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from core.config import settings


SENSITIVE_KEYS = frozenset({"token", "account_number", "card_number", "cvv"})
MASK = "***"


def mask_sensitive(data: Any) -> Any:
    """递归遮盖敏感字段（dict/list），其它值原样返回"""
    if isinstance(data, dict):
        return {
            k: MASK if str(k).lower() in SENSITIVE_KEYS and v is not None else mask_sensitive(v)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [mask_sensitive(v) for v in data]
    return data


def _mask_processor(logger: Any, method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    return mask_sensitive(dict(event_dict))


def get_renderer() -> Any:
    """DEBUG 下输出彩色控制台日志，否则输出 JSON（Money/Decimal 以 str 序列化）"""
    if settings.DEBUG:
        return ConsoleRenderer(colors=True)

    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default or str, **kwargs)
    return JSONRenderer(serializer=_dumps)


def configure_logging(level: Optional[int] = None) -> None:
    """配置 structlog，并让标准库 logging（uvicorn、httpx 等）走同一条处理链。"""
    shared_pre_chain: List[Any] = [
        merge_contextvars,
        add_log_level,
        structlog.stdlib.add_logger_name,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        _mask_processor,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared_pre_chain, ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(ProcessorFormatter(
        foreign_pre_chain=shared_pre_chain,
        processors=[ProcessorFormatter.remove_processors_meta, get_renderer()],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if level is None:
        level = logging.DEBUG if settings.DEBUG else logging.INFO
    root.setLevel(level)
    # 网关客户端自己记录请求日志
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """获取 structlog logger 实例。"""
    return structlog.get_logger(name)

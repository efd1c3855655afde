"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import build_payment_service
from api.middleware import LoggingMiddleware, RequestIDMiddleware
from api.routes import payments as payments_routes
from application.ports.payment_gateway import PaymentGateway
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import configure_logging, get_logger
from core.response import success_response
from domain.payment.repository import OrderRepository
from infrastructure.repositories.order_repository import InMemoryOrderRepository


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    gateway = app.state.payment_gateway
    logger.info(
        "application_startup",
        gateway=gateway.name,
        eligible=gateway.is_eligible(),
        environment=settings.ENVIRONMENT,
    )
    yield
    close = getattr(gateway, "aclose", None)
    if callable(close):
        await close()
    logger.info("application_shutdown", message="Application shutdown")


def create_app(
    *,
    orders: Optional[OrderRepository] = None,
    gateway: Optional[PaymentGateway] = None,
) -> FastAPI:
    """创建应用；订单仓储与支付网关可注入（测试或宿主系统）"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        description="Authorize, capture and refund orders against the sample processor",
    )
    app.state.order_repository = orders or InMemoryOrderRepository()
    app.state.payment_gateway = gateway or build_payment_service()

    # 中间件注意顺序：后添加的先执行，RequestID 最先执行，为日志提供 request_id
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(payments_routes.router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        return success_response(
            data={
                "name": settings.PROJECT_NAME,
                "version": settings.VERSION,
                "docs": "/docs",
            },
        )

    @app.get("/health", tags=["Health"])
    async def health_check():
        return success_response(data={"status": "healthy"})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )

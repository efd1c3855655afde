"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from typing import Optional


class RedisSettings(BaseModel):
    url: Optional[str] = None
    max_connections: int = 10
    namespace: str = "sample-gateway"


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Sample Payment Gateway")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=True)
    ENVIRONMENT: str = Field(default="development")
    API_PREFIX: str = Field(default="/api/v1")

    # Redis 仅用于跨进程的订单锁；未配置时使用进程内锁
    redis: RedisSettings = Field(default_factory=RedisSettings)

    # 请求日志：是否记录请求体（DEBUG 下生效，可用 X-Log-Body 头覆盖）
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=False)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    # CORS配置
    CORS_ORIGINS: list = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """允许逗号分隔字符串格式。"""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


settings = Settings()

"""
MetaBridge Configuration Management
遵循约束：环境变量前缀 MB__
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """全局配置类"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MB__",
        case_sensitive=False
    )

    # Database
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_name: str = Field(default="metabridge")
    db_user: str = Field(default="metabridge")
    db_password: str = Field(default="")
    db_pool_size: int = Field(default=10)
    db_max_overflow: int = Field(default=20)
    db_echo: bool = Field(default=False)
    # 显式指定连接串时优先使用（测试中使用 sqlite+aiosqlite）
    db_url_override: Optional[str] = Field(default=None)

    # Redis
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379)
    redis_db: int = Field(default=0)
    redis_password: Optional[str] = Field(default=None)

    # Monitoring
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text

    # Meta Graph API
    graph_base_url: str = Field(default="https://graph.facebook.com")
    graph_api_version: str = Field(default="v21.0")
    graph_access_token: Optional[str] = Field(default=None)
    graph_catalog_id: Optional[str] = Field(default=None)
    graph_timeout: float = Field(default=30.0)
    graph_retry_max: int = Field(default=3)
    graph_retry_backoff_base: float = Field(default=1.0)
    graph_rate_limit: float = Field(default=20)  # req/s
    graph_allow_live_product_set_deletion: bool = Field(default=True)

    # 商品集同步
    product_sets_sync_enabled: bool = Field(default=True)
    sync_all_concurrency: int = Field(default=1)
    store_base_url: str = Field(default="http://localhost")

    @field_validator("graph_api_version")
    @classmethod
    def validate_graph_api_version(cls, v):
        """确保 Graph API 版本号形如 v21.0"""
        if not v.startswith("v"):
            raise ValueError("Graph API version must start with 'v'")
        return v

    @field_validator("sync_all_concurrency")
    @classmethod
    def validate_sync_all_concurrency(cls, v):
        """并发数至少为 1"""
        if v < 1:
            raise ValueError("sync_all_concurrency must be >= 1")
        return v

    @property
    def database_url(self) -> str:
        """构建数据库连接字符串"""
        if self.db_url_override:
            return self.db_url_override
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def sync_database_url(self) -> str:
        """构建同步数据库连接字符串（用于 Alembic）"""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def redis_url(self) -> str:
        """构建 Redis 连接字符串"""
        password = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{password}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def graph_api_url(self) -> str:
        """带版本号的 Graph API 根地址"""
        return f"{self.graph_base_url.rstrip('/')}/{self.graph_api_version}"

    @property
    def is_graph_connected(self) -> bool:
        """是否已配置 Graph 连接（访问令牌 + 目录ID）"""
        return bool(self.graph_access_token and self.graph_catalog_id)


@lru_cache()
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()

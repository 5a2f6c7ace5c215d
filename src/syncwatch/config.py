"""应用配置管理."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 迁移服务端配置
    dashboard_url: str = "http://localhost:3000"
    request_timeout_seconds: float = 30.0

    # 实时更新配置
    live_updates_enabled: bool = True
    reconnect_delay_seconds: float = 5.0
    heartbeat_timeout_seconds: float = 60.0
    elapsed_tick_seconds: int = 1

    # Worker 轮询配置
    worker_poll_interval_seconds: int = 5

    # 汇总统计配置
    wall_time_parallelism: int = 10


@lru_cache
def get_settings() -> Settings:
    """获取应用配置（带缓存）."""
    return Settings()

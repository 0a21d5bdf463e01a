"""Runtime settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PROMPTGATE_", extra="ignore", protected_namespaces=())

    app_name: str = "PromptGate"
    log_level: str = "info"
    # 为空则只输出到 stderr
    log_file: str = "logs/promptgate.log"
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=5, ge=0)
    # DEBUG 下是否打印完整请求正文；False 时只打 model 与 prompt 长度
    log_full_request_body: bool = False
    host: str = "127.0.0.1"
    port: int = 11434
    # /api/version 返回的版本号
    version: str = "0.1.0"

    # 必填：启动时校验，为空则拒绝启动
    upstream_base_url: str = ""
    # 为空表示放行所有模型；不区分大小写、整串匹配
    model_filter_regex: str = ""
    upstream_timeout_seconds: float = Field(default=60.0, gt=0.0)
    upstream_max_connections: int = 100
    upstream_max_keepalive_connections: int = 20


settings = Settings()

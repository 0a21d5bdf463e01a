"""
启动时校验配置并组装网关：上游地址必须有效、模型过滤正则必须可编译，否则拒绝启动。
可在应用 startup 时调用，也可单独执行检查：python -m promptgate.init_config
"""

from __future__ import annotations

import sys

import httpx

from promptgate.adapters.openai_compat.upstream import UpstreamInvoker, _normalize_upstream_base, build_upstream_client
from promptgate.config.settings import Settings, settings as default_settings
from promptgate.core.chat_gateway import ChatGateway
from promptgate.core.errors import ConfigurationError
from promptgate.core.model_filter import ModelFilter
from promptgate.util.logger import logger


def resolve_upstream_base(settings: Settings | None = None) -> str:
    cfg = settings or default_settings
    try:
        return _normalize_upstream_base(cfg.upstream_base_url)
    except ValueError as exc:
        raise ConfigurationError(f"upstream_base_url {cfg.upstream_base_url!r} rejected: {exc}") from exc


def build_model_filter(settings: Settings | None = None) -> ModelFilter:
    cfg = settings or default_settings
    return ModelFilter.from_config(cfg.model_filter_regex)


def assert_startup_ready(settings: Settings | None = None) -> None:
    resolve_upstream_base(settings)
    build_model_filter(settings)


def build_chat_gateway(settings: Settings | None = None, client: httpx.AsyncClient | None = None) -> ChatGateway:
    """Validate settings and wire the filter and invoker into a gateway."""
    cfg = settings or default_settings
    base_url = resolve_upstream_base(cfg)
    model_filter = build_model_filter(cfg)
    invoker = UpstreamInvoker(client or build_upstream_client(cfg), base_url)
    logger.info("chat gateway ready upstream=%s model_filter=%s", base_url, model_filter.pattern)
    return ChatGateway(model_filter, invoker)


def main() -> None:
    """命令行或 one-off 容器执行时调用，仅做校验。"""
    try:
        assert_startup_ready()
    except ConfigurationError as exc:
        logger.error("init_config: %s", exc)
        sys.exit(1)
    logger.info("init_config: configuration ready")


if __name__ == "__main__":
    main()

import asyncio

import pytest

from promptgate import init_config
from promptgate.config.settings import Settings
from promptgate.core.errors import ConfigurationError


def test_build_chat_gateway_wires_filter_and_upstream():
    cfg = Settings(upstream_base_url="https://upstream.example.com/", model_filter_regex="gpt-.*")
    gateway = init_config.build_chat_gateway(cfg)
    try:
        assert gateway.invoker.base_url == "https://upstream.example.com"
        assert gateway.model_filter.pattern == "gpt-.*"
        assert gateway.model_filter.permits("GPT-4o") is True
    finally:
        asyncio.run(gateway.invoker.aclose())


def test_missing_upstream_base_url_is_fatal():
    with pytest.raises(ConfigurationError) as exc_info:
        init_config.assert_startup_ready(Settings(upstream_base_url=""))
    assert "missing_upstream_base" in str(exc_info.value)


def test_invalid_upstream_scheme_is_fatal():
    with pytest.raises(ConfigurationError):
        init_config.assert_startup_ready(Settings(upstream_base_url="ftp://upstream.example.com"))


def test_malformed_model_filter_is_fatal():
    cfg = Settings(upstream_base_url="https://upstream.example.com", model_filter_regex="(")
    with pytest.raises(ConfigurationError):
        init_config.assert_startup_ready(cfg)


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("PROMPTGATE_UPSTREAM_BASE_URL", "http://127.0.0.1:8000")
    monkeypatch.setenv("PROMPTGATE_MODEL_FILTER_REGEX", "^allowed.*$")
    cfg = Settings()
    assert cfg.upstream_base_url == "http://127.0.0.1:8000"
    assert init_config.build_model_filter(cfg).permits("allowed-x") is True
    assert init_config.resolve_upstream_base(cfg) == "http://127.0.0.1:8000"


def test_main_exits_non_zero_on_bad_config(monkeypatch):
    monkeypatch.setattr(init_config.default_settings, "upstream_base_url", "")
    with pytest.raises(SystemExit) as exc_info:
        init_config.main()
    assert exc_info.value.code == 1


def test_settings_have_no_unused_environment_name():
    assert "env" not in Settings.model_fields

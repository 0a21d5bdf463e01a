"""
上游地址校验与 HTTP 转发。调用结果以 TargetResponse / GatewayFailure 返回，不抛异常。
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlparse, urlunparse

import httpx
from pydantic import ValidationError

from promptgate.config.settings import Settings
from promptgate.core.errors import FailureKind, GatewayFailure
from promptgate.core.models import TargetRequest, TargetResponse, UpstreamModelList
from promptgate.util.logger import get_logger

logger = get_logger("upstream")

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
MODELS_PATH = "/v1/models"


def _upstream_http_limits(settings: Settings) -> httpx.Limits:
    return httpx.Limits(
        max_connections=max(10, int(settings.upstream_max_connections)),
        max_keepalive_connections=max(5, int(settings.upstream_max_keepalive_connections)),
    )


def _upstream_http_timeout(settings: Settings) -> httpx.Timeout:
    timeout = float(settings.upstream_timeout_seconds)
    return httpx.Timeout(connect=timeout, read=timeout, write=timeout, pool=timeout)


def build_upstream_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        http2=False,
        timeout=_upstream_http_timeout(settings),
        limits=_upstream_http_limits(settings),
    )


def _normalize_upstream_base(raw_base: str) -> str:
    candidate = raw_base.strip()
    if not candidate:
        raise ValueError("missing_upstream_base")
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("invalid_upstream_scheme")
    if not parsed.netloc:
        raise ValueError("invalid_upstream_host")
    if parsed.query or parsed.fragment:
        raise ValueError("invalid_upstream_query_fragment")
    cleaned_path = parsed.path.rstrip("/")
    return urlunparse((parsed.scheme, parsed.netloc, cleaned_path, "", "", ""))


def _build_forward_headers(credential: str | None) -> dict[str, str]:
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    # 原样透传，不补 "Bearer " 前缀
    if credential:
        headers["Authorization"] = credential
    return headers


def _decode_json_or_text(body: bytes) -> Any:
    text = body.decode("utf-8", errors="replace")
    if not text.strip():
        return ""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _safe_error_detail(payload: Any) -> str:
    if isinstance(payload, str):
        return payload[:600]
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"][:600]
    return json.dumps(payload, ensure_ascii=False)[:600]


def _transport_failure(url: str, exc: httpx.HTTPError) -> GatewayFailure:
    detail = (str(exc) or "").strip() or f"{type(exc).__name__}: connection_failed_or_timeout"
    logger.warning("upstream http_error url=%s error=%s", url, detail)
    return GatewayFailure(kind=FailureKind.UPSTREAM_UNAVAILABLE, message=detail)


def _status_failure(url: str, response: httpx.Response) -> GatewayFailure:
    raw_body = response.content.decode("utf-8", errors="replace")
    status_text = f"{response.status_code} {response.reason_phrase}".strip()
    logger.warning(
        "upstream status error url=%s status=%s detail=%s",
        url,
        response.status_code,
        _safe_error_detail(_decode_json_or_text(response.content)),
    )
    return GatewayFailure(
        kind=FailureKind.UPSTREAM_ERROR,
        message=status_text,
        upstream_status=response.status_code,
        upstream_body=raw_body,
    )


def _invalid_body_failure(url: str, detail: str) -> GatewayFailure:
    logger.warning("upstream invalid body url=%s detail=%s", url, detail)
    return GatewayFailure(kind=FailureKind.UPSTREAM_UNAVAILABLE, message=f"invalid upstream response body: {detail}")


class UpstreamInvoker:
    """Single OpenAI-compatible upstream, reached through a shared async client."""

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self.base_url = _normalize_upstream_base(base_url)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def invoke(self, req: TargetRequest, credential: str | None) -> TargetResponse | GatewayFailure | None:
        """POST the chat request; ``None`` means the upstream answered 2xx with an empty body."""
        url = self._url(CHAT_COMPLETIONS_PATH)
        body = json.dumps(req.model_dump(), ensure_ascii=False).encode("utf-8")
        logger.debug("invoke start url=%s model=%s payload_bytes=%d", url, req.model, len(body))
        try:
            response = await self._client.post(url, content=body, headers=_build_forward_headers(credential))
        except httpx.HTTPError as exc:
            return _transport_failure(url, exc)

        logger.debug("invoke done url=%s status=%s", url, response.status_code)
        if response.is_error:
            return _status_failure(url, response)

        # 空正文与 JSON null 都视为无响应；JSON "" 仍按非对象处理
        if not response.content.strip():
            return None
        payload = _decode_json_or_text(response.content)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            return _invalid_body_failure(url, _safe_error_detail(payload))
        try:
            return TargetResponse.model_validate(payload)
        except ValidationError as exc:
            return _invalid_body_failure(url, str(exc))

    async def list_models(self, credential: str | None) -> UpstreamModelList | GatewayFailure:
        url = self._url(MODELS_PATH)
        headers = {"Accept": "application/json"}
        if credential:
            headers["Authorization"] = credential
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            return _transport_failure(url, exc)

        if response.is_error:
            return _status_failure(url, response)

        payload = _decode_json_or_text(response.content)
        if not isinstance(payload, dict):
            return _invalid_body_failure(url, _safe_error_detail(payload))
        try:
            return UpstreamModelList.model_validate(payload)
        except ValidationError as exc:
            return _invalid_body_failure(url, str(exc))

    async def aclose(self) -> None:
        await self._client.aclose()

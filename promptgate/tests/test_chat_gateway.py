import json

import httpx
import pytest

from promptgate.adapters.openai_compat.upstream import UpstreamInvoker
from promptgate.core.chat_gateway import ChatGateway, failure_text
from promptgate.core.errors import FailureKind, GatewayFailure
from promptgate.core.model_filter import ModelFilter
from promptgate.core.models import SourceRequest


def _gateway(handler, regex: str = "^allowed.*$") -> ChatGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ChatGateway(ModelFilter.from_config(regex), UpstreamInvoker(client, "https://upstream.example.com"))


@pytest.mark.asyncio
async def test_allowed_model_is_relayed_and_translated_back():
    calls: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "id": "chatcmpl-1",
                "object": "chat.completion",
                "created": 1,
                "model": "allowed-x",
                "choices": [{"message": {"role": "assistant", "content": "hello"}, "finish_reason": "stop"}],
            },
        )

    gateway = _gateway(handler)
    outcome = await gateway.relay(SourceRequest(model="allowed-x", prompt="hi"), "Bearer t")
    await gateway.invoker.aclose()

    assert outcome.ok
    assert outcome.response.model_dump() == {"model": "allowed-x", "response": "hello"}
    assert calls == [{"model": "allowed-x", "messages": [{"role": "user", "content": "hi"}]}]


@pytest.mark.asyncio
async def test_filtered_model_never_reaches_upstream():
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    gateway = _gateway(handler)
    outcome = await gateway.relay(SourceRequest(model="blocked", prompt="hi"), None)
    await gateway.invoker.aclose()

    assert calls == []
    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.FILTERED
    assert outcome.response.model is None
    assert "is not allowed by filter" in outcome.response.response
    assert "'blocked'" in outcome.response.response
    assert "^allowed.*$" in outcome.response.response


@pytest.mark.asyncio
async def test_upstream_error_status_is_reported_with_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, content=b'{"error":"boom"}')

    gateway = _gateway(handler)
    outcome = await gateway.relay(SourceRequest(model="allowed-y", prompt="hi"), None)
    await gateway.invoker.aclose()

    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.UPSTREAM_ERROR
    assert outcome.response.model is None
    assert "500" in outcome.response.response
    assert "boom" in outcome.response.response


@pytest.mark.asyncio
async def test_missing_model_and_choices_fall_back_to_request_model():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "chatcmpl-2", "object": "chat.completion", "created": 2})

    gateway = _gateway(handler)
    outcome = await gateway.relay(SourceRequest(model="allowed-z", prompt="hi"), None)
    await gateway.invoker.aclose()

    assert outcome.ok
    assert outcome.response.model_dump() == {
        "model": "allowed-z",
        "response": "Error: No content found in OpenAI response",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"", b"null"])
async def test_empty_upstream_body_maps_to_no_response_text(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    gateway = _gateway(handler, regex="")
    outcome = await gateway.relay(SourceRequest(model="any", prompt="hi"), None)
    await gateway.invoker.aclose()

    assert outcome.ok
    assert outcome.response.model_dump() == {"model": "any", "response": "Error: No response from OpenAI provider"}


@pytest.mark.asyncio
async def test_unreachable_upstream_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = _gateway(handler, regex="")
    outcome = await gateway.relay(SourceRequest(model="any", prompt="hi"), None)
    await gateway.invoker.aclose()

    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.UPSTREAM_UNAVAILABLE
    assert "connection refused" in outcome.response.response


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_failure(monkeypatch):
    gateway = _gateway(lambda request: httpx.Response(200, json={}), regex="")

    async def broken_invoke(req, credential):
        raise KeyError("exploded")

    monkeypatch.setattr(gateway.invoker, "invoke", broken_invoke)
    outcome = await gateway.relay(SourceRequest(model="any", prompt="hi"), None)
    await gateway.invoker.aclose()

    assert outcome.failure is not None
    assert outcome.failure.kind is FailureKind.INTERNAL
    assert outcome.response.model is None
    assert outcome.response.response.startswith("An unexpected internal server error occurred:")
    assert "exploded" in outcome.response.response


@pytest.mark.asyncio
async def test_list_tags_applies_admission_filter():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": [{"id": "allowed-a"}, {"id": "other"}, {"id": "ALLOWED-b"}]})

    gateway = _gateway(handler)
    outcome = await gateway.list_tags("Bearer t")
    await gateway.invoker.aclose()

    assert outcome.failure is None
    assert [tag.name for tag in outcome.tags.models] == ["allowed-a", "ALLOWED-b"]


@pytest.mark.asyncio
async def test_list_tags_reports_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="unauthorized")

    gateway = _gateway(handler)
    outcome = await gateway.list_tags(None)
    await gateway.invoker.aclose()

    assert outcome.tags is None
    assert outcome.failure.kind is FailureKind.UPSTREAM_ERROR


def test_failure_text_per_kind():
    assert failure_text(GatewayFailure(FailureKind.FILTERED, "Requested model 'm' is not allowed by filter 'p'.")) == (
        "Error: Requested model 'm' is not allowed by filter 'p'."
    )
    assert failure_text(
        GatewayFailure(FailureKind.UPSTREAM_ERROR, "502 Bad Gateway", upstream_status=502, upstream_body="oops")
    ) == "Upstream service error: 502 - oops"
    assert failure_text(GatewayFailure(FailureKind.UPSTREAM_UNAVAILABLE, "timed out")) == (
        "Upstream service unavailable: timed out"
    )
    assert failure_text(GatewayFailure(FailureKind.INTERNAL, "boom")) == (
        "An unexpected internal server error occurred: boom"
    )

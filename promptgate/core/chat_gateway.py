"""Per-call relay: filter, translate, invoke upstream, translate back."""

from __future__ import annotations

from dataclasses import dataclass

from promptgate.adapters.openai_compat.mapper import to_source_response, to_source_tags, to_target_request
from promptgate.adapters.openai_compat.upstream import UpstreamInvoker
from promptgate.core.errors import FailureKind, GatewayFailure
from promptgate.core.model_filter import ModelFilter
from promptgate.core.models import SourceRequest, SourceResponse, SourceTagsResponse
from promptgate.observability.logging import log_event
from promptgate.util.logger import get_logger

logger = get_logger("chat_gateway")


@dataclass(slots=True)
class RelayOutcome:
    response: SourceResponse
    failure: GatewayFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(slots=True)
class TagsOutcome:
    tags: SourceTagsResponse | None
    failure: GatewayFailure | None = None


def failure_text(failure: GatewayFailure) -> str:
    """Render a failure as the ``response`` text of a source-shape body."""
    if failure.kind is FailureKind.FILTERED:
        return f"Error: {failure.message}"
    if failure.kind is FailureKind.UPSTREAM_ERROR:
        status = failure.upstream_status if failure.upstream_status is not None else failure.message
        return f"Upstream service error: {status} - {failure.upstream_body}"
    if failure.kind is FailureKind.UPSTREAM_UNAVAILABLE:
        return f"Upstream service unavailable: {failure.message}"
    return f"An unexpected internal server error occurred: {failure.message}"


def failure_response(failure: GatewayFailure) -> SourceResponse:
    # 错误响应不回填 model，保持与成功响应区分
    return SourceResponse(model=None, response=failure_text(failure))


class ChatGateway:
    """Composes admission filter, translators and upstream invoker for one call at a time.

    Both collaborators are injected at startup and never mutated afterwards, so
    one instance serves all concurrent requests.
    """

    def __init__(self, model_filter: ModelFilter, invoker: UpstreamInvoker) -> None:
        self.model_filter = model_filter
        self.invoker = invoker

    def _filtered(self, model: str) -> GatewayFailure:
        return GatewayFailure(
            kind=FailureKind.FILTERED,
            message=f"Requested model '{model}' is not allowed by filter '{self.model_filter.pattern}'.",
        )

    def _fail(self, failure: GatewayFailure, model: str) -> RelayOutcome:
        log_event("chat_relay", model=model, outcome=failure.kind.value, upstream_status=failure.upstream_status)
        return RelayOutcome(response=failure_response(failure), failure=failure)

    async def relay(self, req: SourceRequest, credential: str | None) -> RelayOutcome:
        if not self.model_filter.permits(req.model):
            logger.info("model filtered model=%s pattern=%s", req.model, self.model_filter.pattern)
            return self._fail(self._filtered(req.model), req.model)

        try:
            target_req = to_target_request(req)
            result = await self.invoker.invoke(target_req, credential)
            if isinstance(result, GatewayFailure):
                return self._fail(result, req.model)
            response = to_source_response(result, req)
        except Exception as exc:
            logger.exception("chat relay internal error model=%s", req.model)
            return self._fail(GatewayFailure(kind=FailureKind.INTERNAL, message=str(exc) or type(exc).__name__), req.model)

        log_event("chat_relay", model=req.model, outcome="completed", resolved_model=response.model)
        return RelayOutcome(response=response)

    async def list_tags(self, credential: str | None) -> TagsOutcome:
        try:
            result = await self.invoker.list_models(credential)
            if isinstance(result, GatewayFailure):
                log_event("list_tags", outcome=result.kind.value, upstream_status=result.upstream_status)
                return TagsOutcome(tags=None, failure=result)
            tags = to_source_tags(result, self.model_filter)
        except Exception as exc:
            logger.exception("list tags internal error")
            failure = GatewayFailure(kind=FailureKind.INTERNAL, message=str(exc) or type(exc).__name__)
            return TagsOutcome(tags=None, failure=failure)

        log_event("list_tags", outcome="completed", upstream_models=len(result.data), listed=len(tags.models))
        return TagsOutcome(tags=tags)

"""Source (prompt) <-> OpenAI chat completion mapping."""

from __future__ import annotations

from datetime import datetime, timezone

from promptgate.core.model_filter import ModelFilter
from promptgate.core.models import (
    SourceModelTag,
    SourceRequest,
    SourceResponse,
    SourceTagsResponse,
    TargetMessage,
    TargetRequest,
    TargetResponse,
    UpstreamModelList,
)


NO_RESPONSE_TEXT = "Error: No response from OpenAI provider"
NO_CONTENT_TEXT = "Error: No content found in OpenAI response"


def to_target_request(req: SourceRequest) -> TargetRequest:
    return TargetRequest(
        model=req.model,
        messages=[TargetMessage(role="user", content=req.prompt)],
    )


def _first_choice_content(resp: TargetResponse) -> str:
    # 只看第一个 choice，其余忽略
    if not resp.choices:
        return NO_CONTENT_TEXT
    first = resp.choices[0]
    if first is None or first.message is None:
        return NO_CONTENT_TEXT
    content = first.message.content
    if not content:
        return NO_CONTENT_TEXT
    return content


def to_source_response(resp: TargetResponse | None, original: SourceRequest) -> SourceResponse:
    if resp is None:
        return SourceResponse(model=original.model, response=NO_RESPONSE_TEXT)

    model = resp.model or original.model
    return SourceResponse(model=model, response=_first_choice_content(resp))


def _iso_from_unix(created: int) -> str:
    return datetime.fromtimestamp(max(0, created), tz=timezone.utc).isoformat().replace("+00:00", "Z")


def to_source_tags(models: UpstreamModelList, model_filter: ModelFilter) -> SourceTagsResponse:
    tags = [
        SourceModelTag(name=item.id, model=item.id, modified_at=_iso_from_unix(item.created or 0))
        for item in models.data
        if model_filter.permits(item.id)
    ]
    return SourceTagsResponse(models=tags)

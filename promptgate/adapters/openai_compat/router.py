"""Source-shape routes backed by an OpenAI-compatible upstream."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from promptgate.config.settings import settings
from promptgate.core.chat_gateway import ChatGateway, failure_response
from promptgate.core.errors import FailureKind
from promptgate.core.models import SourceRequest, SourceResponse
from promptgate.util.logger import get_logger
from promptgate.util.masking import describe_credential, mask_credential

logger = get_logger("router")

router = APIRouter()

_NOT_IMPLEMENTED_PATHS = (
    "/generate",
    "/pull",
    "/push",
    "/create",
    "/ps",
    "/copy",
    "/delete",
    "/show",
    "/embed",
    "/embeddings",
)

_STATUS_BY_KIND = {
    FailureKind.FILTERED: 400,
    FailureKind.UPSTREAM_ERROR: 503,
    FailureKind.UPSTREAM_UNAVAILABLE: 503,
    FailureKind.INTERNAL: 500,
}


def _status_code_for(kind: FailureKind) -> int:
    return _STATUS_BY_KIND.get(kind, 500)


def _chat_gateway(request: Request) -> ChatGateway:
    return request.app.state.chat_gateway


def _credential(request: Request) -> str | None:
    value = request.headers.get("authorization")
    return value if value else None


def _source_error(status_code: int, text: str) -> JSONResponse:
    body = SourceResponse(model=None, response=text)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "body"
        parts.append(f"{location}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)


def _log_request_if_debug(source: SourceRequest, credential: str | None) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    if settings.log_full_request_body:
        logger.debug("chat request model=%s prompt=%r auth=%s", source.model, source.prompt, mask_credential(credential))
        return
    logger.debug(
        "chat request model=%s prompt_chars=%d auth=%s",
        source.model,
        len(source.prompt),
        describe_credential(credential),
    )


async def _parse_source_request(request: Request) -> SourceRequest | JSONResponse:
    try:
        body: Any = await request.json()
    except ValueError:
        return _source_error(400, "Error: invalid request body: malformed JSON")
    if not isinstance(body, dict):
        return _source_error(400, "Error: invalid request body: expected a JSON object")
    try:
        return SourceRequest.model_validate(body)
    except ValidationError as exc:
        return _source_error(400, f"Error: invalid request body: {_describe_validation_error(exc)}")


@router.post("/chat")
async def chat(request: Request) -> JSONResponse:
    parsed = await _parse_source_request(request)
    if isinstance(parsed, JSONResponse):
        logger.warning("chat request rejected: unparseable body")
        return parsed

    credential = _credential(request)
    _log_request_if_debug(parsed, credential)
    outcome = await _chat_gateway(request).relay(parsed, credential)
    if outcome.failure is not None:
        status_code = _status_code_for(outcome.failure.kind)
        logger.info("chat relay failed model=%s kind=%s status=%s", parsed.model, outcome.failure.kind.value, status_code)
        return JSONResponse(status_code=status_code, content=outcome.response.model_dump())
    return JSONResponse(status_code=200, content=outcome.response.model_dump())


@router.get("/tags")
async def tags(request: Request) -> JSONResponse:
    outcome = await _chat_gateway(request).list_tags(_credential(request))
    if outcome.failure is not None:
        status_code = _status_code_for(outcome.failure.kind)
        return JSONResponse(status_code=status_code, content=failure_response(outcome.failure).model_dump())
    return JSONResponse(status_code=200, content=outcome.tags.model_dump())


@router.get("/version")
async def version() -> dict:
    return {"version": settings.version}


async def not_implemented(request: Request) -> JSONResponse:
    logger.info("not implemented path=%s method=%s", request.url.path, request.method)
    return _source_error(501, f"Error: {request.url.path} is not implemented by this gateway")


for _path in _NOT_IMPLEMENTED_PATHS:
    router.add_api_route(_path, not_implemented, methods=["GET", "POST", "DELETE"], include_in_schema=False)

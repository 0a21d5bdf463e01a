"""FastAPI app entry."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from promptgate.adapters.openai_compat.router import router as chat_router
from promptgate.config.settings import settings
from promptgate.core.models import SourceResponse
from promptgate.init_config import build_chat_gateway
from promptgate.util.logger import logger
from promptgate.util.masking import describe_credential


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        app.state.chat_gateway = build_chat_gateway(settings)
    except Exception as exc:
        logger.error("startup configuration invalid: %s", exc)
        raise
    try:
        yield
    finally:
        await app.state.chat_gateway.invoker.aclose()
        logger.info("upstream client closed")


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
app.include_router(chat_router, prefix="/api")


def _internal_error_response(detail: str) -> JSONResponse:
    body = SourceResponse(model=None, response=f"An unexpected internal server error occurred: {detail}")
    return JSONResponse(status_code=500, content=body.model_dump())


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started = time.perf_counter()
    logger.info(
        "request start method=%s path=%s client=%s auth=%s",
        request.method,
        request.url.path,
        request.client.host if request.client else "",
        describe_credential(request.headers.get("authorization")),
    )
    try:
        response = await call_next(request)
    except Exception as exc:  # pragma: no cover - fail-safe
        logger.exception("gateway unhandled exception path=%s", request.url.path)
        return _internal_error_response(str(exc))
    logger.info(
        "request done method=%s path=%s status=%s duration_ms=%.1f",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
    )
    return response


@app.head("/")
def root_head() -> Response:
    return Response(status_code=200)


@app.get("/health")
def health() -> dict:
    logger.debug("health check")
    return {"status": "ok"}


def main() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()

"""
Server entry point — FastAPI app setup and route configuration.

Exposes one operation, "extract cookies for URL", in three shapes:

- ``POST /api/getCookies`` — cached result as JSON, otherwise an
  SSE progress stream ending with the cookies or an error
- ``POST /api/getCookies/sync`` — always a single JSON response
- ``GET /api/getCookies/stream`` — always an SSE stream, for
  EventSource clients
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator, Sequence
from typing import Any

import dotenv
import fastapi
import pydantic
import uvicorn
from fastapi import exceptions as fastapi_exceptions
from fastapi.middleware import cors
from starlette import responses

from cookie_harvester import config
from cookie_harvester.browser import engine
from cookie_harvester.models import cookies, progress
from cookie_harvester.pipeline import channel as channel_mod
from cookie_harvester.pipeline import orchestrator as orchestrator_mod
from cookie_harvester.pipeline import sse_helpers
from cookie_harvester.utils import cache as cache_mod
from cookie_harvester.utils import logger

dotenv.load_dotenv()

log = logger.create_logger("Server")

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

router = fastapi.APIRouter()


# ============================================================================
# Dependencies & helpers
# ============================================================================


def get_orchestrator(request: fastapi.Request) -> orchestrator_mod.CookieOrchestrator:
    """Return the orchestrator owned by the running app."""
    return request.app.state.orchestrator


def _event_stream(
    orchestrator: orchestrator_mod.CookieOrchestrator,
    url: str,
    ch: channel_mod.ProgressChannel,
) -> responses.StreamingResponse:
    """Wrap a progress channel in an SSE response.

    If the client goes away mid-stream the channel is detached; the
    extraction itself carries on and still cleans up its browser.
    """

    async def event_generator() -> AsyncGenerator[str]:
        try:
            async for chunk in sse_helpers.stream_channel(ch):
                yield chunk
        finally:
            if not ch.closed:
                orchestrator.detach(url, ch)

    return responses.StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


def _single_event_stream(event: progress.ProgressEvent) -> responses.StreamingResponse:
    async def event_generator() -> AsyncGenerator[str]:
        yield sse_helpers.format_progress_event(event)

    return responses.StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


def _describe_validation_errors(errors: Sequence[Any]) -> str:
    """Join pydantic error messages into one human-readable line."""
    return "; ".join(str(err.get("msg", "")).removeprefix("Value error, ") for err in errors)


def _invalid_input_response(detail: str) -> responses.JSONResponse:
    log.warn("Rejected invalid request", {"detail": detail})
    error = cookies.ExtractionError.invalid_input(detail or "Invalid request")
    return responses.JSONResponse(error.to_payload(), status_code=400)


async def _invalid_input_handler(
    _request: fastapi.Request, exc: Exception
) -> responses.JSONResponse:
    """Reject malformed requests before any browser session starts."""
    if isinstance(exc, fastapi_exceptions.RequestValidationError):
        return _invalid_input_response(_describe_validation_errors(exc.errors()))
    return _invalid_input_response(str(exc))


# ============================================================================
# API Routes
# ============================================================================


@router.post("/api/getCookies")
async def get_cookies(
    payload: cookies.ExtractionRequest,
    orchestrator: orchestrator_mod.CookieOrchestrator = fastapi.Depends(get_orchestrator),
) -> responses.Response:
    """Extract cookies for a URL, streaming progress unless the result is cached."""
    log.info("Incoming extraction request", {"url": payload.url})
    outcome = orchestrator.handle(payload)
    if isinstance(outcome, cookies.CookieExtraction):
        return responses.JSONResponse(outcome.to_payload())
    return _event_stream(orchestrator, payload.url, outcome)


@router.post("/api/getCookies/sync")
async def get_cookies_sync(
    payload: cookies.ExtractionRequest,
    orchestrator: orchestrator_mod.CookieOrchestrator = fastapi.Depends(get_orchestrator),
) -> responses.JSONResponse:
    """Extract cookies for a URL and answer with one JSON document."""
    log.info("Incoming synchronous extraction request", {"url": payload.url})
    result = await orchestrator.extract(payload)
    status_code = 500 if isinstance(result, cookies.ExtractionError) else 200
    return responses.JSONResponse(result.to_payload(), status_code=status_code)


@router.get("/api/getCookies/stream")
async def get_cookies_stream(
    url: str = fastapi.Query(..., description="The URL to load"),
    orchestrator: orchestrator_mod.CookieOrchestrator = fastapi.Depends(get_orchestrator),
) -> responses.Response:
    """Extract cookies for a URL as an SSE stream.

    A cached result is sent as a lone terminal event.
    """
    try:
        request = cookies.ExtractionRequest(url=url)
    except pydantic.ValidationError as exc:
        return _invalid_input_response(_describe_validation_errors(exc.errors()))

    log.info("Incoming streaming extraction request", {"url": request.url})
    outcome = orchestrator.handle(request)
    if isinstance(outcome, cookies.CookieExtraction):
        return _single_event_stream(progress.ProgressEvent.complete(outcome))
    return _event_stream(orchestrator, request.url, outcome)


# ============================================================================
# App factory
# ============================================================================


def create_app(
    settings: config.Settings | None = None,
    browser_engine: engine.BrowserEngine | None = None,
    cache: orchestrator_mod.CookieCache | None = None,
) -> fastapi.FastAPI:
    """Build the FastAPI app around a fresh orchestrator.

    Every collaborator can be injected; defaults are the environment
    settings, a Playwright engine and an in-memory TTL cache.
    """
    settings = settings or config.get_settings()
    orchestrator = orchestrator_mod.CookieOrchestrator(
        browser_engine if browser_engine is not None else engine.PlaywrightEngine(),
        cache if cache is not None else cache_mod.TTLCache(settings.cache_ttl_seconds),
        settings,
    )

    @contextlib.asynccontextmanager
    async def lifespan(_app: fastapi.FastAPI) -> AsyncGenerator[None]:
        log.section("Cookie Harvester Started")
        log.info(
            "Environment",
            {
                "env": settings.environment,
                "navigationTimeoutMs": settings.navigation_timeout_ms,
                "cacheTtlSeconds": settings.cache_ttl_seconds,
            },
        )
        yield
        await orchestrator.shutdown()
        log.info("Cookie Harvester stopped")

    application = fastapi.FastAPI(title="Cookie Harvester", lifespan=lifespan)
    application.state.orchestrator = orchestrator

    application.add_middleware(
        cors.CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(fastapi_exceptions.RequestValidationError, _invalid_input_handler)
    application.include_router(router)
    return application


app = create_app()


# ============================================================================
# Start Server
# ============================================================================


def main() -> None:
    """Entry point for running the server."""
    settings = config.get_settings()
    log.success(f"Server listening on {settings.host}:{settings.port}")
    uvicorn.run(
        "cookie_harvester.app:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )


if __name__ == "__main__":
    main()

"""FastAPI application for the chat proxy.

Provides a single /api/chat endpoint that rate-limits and validates the
caller's message, forwards it to the Gemini backend and relays the text
reply. Also serves a health check and the static frontend. Every error
response is a JSON object with an ``error`` field.
"""

import json
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from chat_proxy import __version__
from chat_proxy.backend import GeminiBackend
from chat_proxy.chat import ChatHandler, TextBackend
from chat_proxy.config import ChatProxyConfig, load_config
from chat_proxy.limiter import Clock, RateLimiter
from chat_proxy.models import ErrorResponse, HealthResponse
from chat_proxy.telemetry import logger, setup_logging


def _error_response(status: int, message: str) -> JSONResponse:
    """Build a consistent JSON error response."""
    return JSONResponse(
        status_code=status, content=ErrorResponse(error=message).model_dump()
    )


def client_identity(request: Request, trust_forwarded_for: bool = False) -> str:
    """Return the rate-limit identity for a request.

    The socket peer address is used unless ``trust_forwarded_for`` is set, in
    which case the first X-Forwarded-For hop (then X-Real-IP) wins.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def create_app(
    config: Optional[ChatProxyConfig] = None,
    backend: Optional[TextBackend] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Build the application.

    Args:
        config: Loaded configuration; read from file/environment when omitted.
        backend: Text backend; a GeminiBackend for ``config.backend`` when omitted.
        clock: Millisecond clock for the rate limiter; wall time when omitted.
    """
    cfg = config or load_config()
    limiter = RateLimiter(
        window_ms=cfg.rate_limit.window_ms,
        max_requests=cfg.rate_limit.max_requests,
        clock=clock,
    )
    handler = ChatHandler(cfg, limiter, backend or GeminiBackend(cfg.backend))
    static_dir = Path(cfg.static_dir)

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        """Initialize logging and report configuration on startup."""
        setup_logging(cfg.log_file)
        logger.info("Starting chat proxy on port %d", cfg.port)
        logger.info("Static files served from %s", static_dir.resolve())
        logger.info("API endpoint at http://localhost:%d/api/chat", cfg.port)
        if cfg.backend.api_key:
            logger.info("%s configured (model %s)", cfg.backend.api_key_env, cfg.backend.model)
        else:
            logger.warning(
                "%s environment variable is not set; chat requests will fail",
                cfg.backend.api_key_env,
            )
        yield
        logger.info("Chat proxy shutting down")

    app = FastAPI(title="Chat Proxy", version=__version__, lifespan=lifespan)
    app.state.config = cfg
    app.state.limiter = limiter
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def catch_unhandled(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return _error_response(500, "Internal server error")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        # Unknown paths and unsupported methods are both "not found".
        if exc.status_code in (404, 405):
            return _error_response(404, "Endpoint not found")
        return _error_response(exc.status_code, str(exc.detail))

    @app.post("/api/chat", response_model=None)
    async def chat(request: Request) -> JSONResponse:
        """Relay a chat message to the backend."""
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        status, payload = await handler.handle(
            body, client_identity(request, cfg.trust_forwarded_for)
        )
        return JSONResponse(status_code=status, content=payload)

    @app.get("/api/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        """Report liveness and uptime."""
        return HealthResponse(
            status="OK",
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime=max(0.0, time.monotonic() - request.app.state.started_at),
        )

    @app.get("/", response_model=None)
    async def index() -> Response:
        """Serve the frontend entry page."""
        index_file = static_dir / "index.html"
        if not index_file.is_file():
            return _error_response(404, "Endpoint not found")
        return FileResponse(index_file)

    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir), name="static")

    return app

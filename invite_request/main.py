"""
FastAPI application main module.
Builds the app (sessions, rate limiting, templates, static files, error handling)
and provides the process entry point.

Run:
    invite-request                                     # reads env, exits 1 if incomplete
    uvicorn invite_request.main:create_app --factory   # same, under an external uvicorn
"""
from fastapi import FastAPI, Request, Response
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from invite_request.api import api_router
from invite_request.config import PACKAGE_DIR, Settings, load_settings
from invite_request.exceptions import ConfigurationError, RateLimitExceeded, RelocationError, SignInRequired
from invite_request.services.notifier import SlackNotifier
from invite_request.services.pages import PageStrings, load_strings
from invite_request.session import SessionStore, create_session_store, session_middleware
from invite_request.utils import setup_logging, get_logger
from invite_request.utils.observability import REQUEST_ID_HEADER, client_key, ensure_request_id
from invite_request.utils.ratelimiter import RateLimiter, create_rate_limiter

logger = get_logger(__name__)

TEMPLATES_DIR = PACKAGE_DIR / "templates"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Connects the session store on startup and closes backends on shutdown.
    """
    logger.info("Application startup initiated")
    settings: Settings = app.state.settings
    owns_store = getattr(app.state, "session_store", None) is None
    try:
        if owns_store:
            app.state.session_store = await create_session_store(settings)
        settings.images_dir.mkdir(parents=True, exist_ok=True)
        logger.info(
            "Application startup completed successfully",
            session_store=type(app.state.session_store).__name__,
            rate_limiter=type(app.state.rate_limiter).__name__,
            public_dir=str(settings.public_dir),
        )
        yield
    finally:
        logger.info("Application shutdown initiated")
        if owns_store and getattr(app.state, "session_store", None) is not None:
            await app.state.session_store.close()
        await app.state.rate_limiter.close()
        logger.info("Application shutdown completed")


def _register_middleware(app: FastAPI) -> None:
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Registered before the request context middleware so it runs inside it.
    app.middleware("http")(session_middleware)

    @app.middleware("http")
    async def add_request_context_and_logging(request: Request, call_next):
        """
        Add request ID, timing, and request/response logging.
        """
        request_id = ensure_request_id(request.headers)
        request.state.request_id = request_id
        start_time = time.time()

        logger.debug(
            "Request started",
            method=request.method,
            url=str(request.url),
            user_agent=request.headers.get("User-Agent"),
            remote_addr=client_key(request.client.host if request.client else None),
            request_id=request_id
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time_ms=round(process_time * 1000, 2),
            request_id=request_id
        )
        return response


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SignInRequired)
    async def sign_in_required_handler(request: Request, exc: SignInRequired):
        return RedirectResponse("/signin", status_code=302)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        meta = exc.meta
        retry_after = max(0, int(meta["reset_epoch"] - time.time()))
        return PlainTextResponse(
            "Too Many Requests",
            status_code=429,
            headers={
                "X-RateLimit-Limit": str(meta["limit"]),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(meta["reset_epoch"]),
                "Retry-After": str(retry_after),
            },
        )

    @app.exception_handler(RelocationError)
    async def relocation_error_handler(request: Request, exc: RelocationError):
        logger.error(
            "Upload relocation failed; application rejected",
            error=str(exc),
            field_name=exc.field_name,
            request_id=getattr(request.state, "request_id", "unknown"),
            exc_info=exc,
        )
        return PlainTextResponse("Internal Server Error", status_code=500)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            "Request validation failed",
            errors=exc.errors(),
            request_id=request_id,
            url=str(request.url),
            method=request.method
        )
        return JSONResponse(
            status_code=422,
            content={"success": False, "message": "Request validation failed", "request_id": request_id},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            request_id=getattr(request.state, "request_id", "unknown"),
            url=str(request.url),
            method=request.method
        )
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            request_id=getattr(request.state, "request_id", "unknown"),
            url=str(request.url),
            method=request.method,
            exc_info=exc,
        )
        return PlainTextResponse("Internal Server Error", status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_store: Optional[SessionStore] = None,
    rate_limiter: Optional[RateLimiter] = None,
    notifier: Optional[SlackNotifier] = None,
) -> FastAPI:
    """
    Build the application.

    Without ``settings`` the environment is read (and logging configured), so
    this also works as a ``uvicorn --factory`` target. Passing ``session_store``
    skips the store connection in lifespan; tests use that to run without it.
    """
    if settings is None:
        settings = load_settings()
        setup_logging(log_level=settings.log_level, log_file=settings.log_file)

    app = FastAPI(
        title="Slack Invite Request",
        description="Sign in, fill out a short application and have it relayed to Slack.",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.strings = PageStrings(load_strings(), settings)
    app.state.templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    if rate_limiter is None:
        rate_limiter = create_rate_limiter(settings)
    if notifier is None:
        notifier = SlackNotifier(settings.slack_webhook_url, timeout_seconds=settings.slack_timeout_seconds)
    app.state.rate_limiter = rate_limiter
    app.state.notifier = notifier
    if session_store is not None:
        app.state.session_store = session_store

    _register_middleware(app)
    _register_exception_handlers(app)

    @app.get("/health", tags=["health"], summary="Basic health check")
    async def health_check():
        """Basic health check endpoint for load balancers."""
        return {
            "status": "healthy",
            "service": "slack-invite-request",
            "version": "1.0.0",
            "timestamp": time.time(),
            "session_store": type(getattr(app.state, "session_store", None)).__name__,
        }

    app.include_router(api_router)

    # Public directory (uploaded images, css). Mounted last so routes win.
    app.mount("/", StaticFiles(directory=settings.public_dir, check_dir=False), name="public")
    return app


def main() -> None:
    """Console entry point: load configuration, then serve with uvicorn."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.error("Configuration error, aborting startup", error=str(e))
        sys.exit(1)

    setup_logging(log_level=settings.log_level, log_file=settings.log_file)
    if settings.uses_dev_session_secret:
        logger.warning("SESSION_SECRET is not set; using the development secret")

    import uvicorn

    app = create_app(settings)
    logger.info("Slack Invite Request listening", host=settings.host, port=settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()

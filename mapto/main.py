"""
MapTo API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .errors import MaptoError
from .geo import GeoPurgeEngine
from .limiter import limiter
from .logging_config import api_logger, worker_logger
from .middleware import BodySizeLimitMiddleware, RequestLoggingMiddleware, SecurityHeadersMiddleware
from .responses import api_exception_handler, not_found
from .routes import health_router, posts_router
from .store import build_repository
from .worker.periodic import start_periodic_task, stop_periodic_tasks

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the post store for the life of the process and run the purge loop"""
    repository = build_repository(settings)
    app.state.repository = repository
    api_logger.info("Post store ready", backend=repository.name)

    engine = GeoPurgeEngine(repository)
    await run_in_threadpool(engine.purge)

    async def purge_expired_posts() -> None:
        await run_in_threadpool(engine.purge)

    start_periodic_task(
        app,
        name="purge-expired-posts",
        interval_seconds=settings.purge_interval_seconds,
        func=purge_expired_posts,
        logger=worker_logger,
    )

    yield  # App is running

    await stop_periodic_tasks(app, logger=worker_logger)
    repository.close()
    app.state.repository = None


app = FastAPI(
    title="MapTo API",
    description="Ephemeral geolocated posts",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, api_exception_handler)
app.add_exception_handler(MaptoError, api_exception_handler)
app.add_exception_handler(RequestValidationError, api_exception_handler)
app.add_exception_handler(Exception, api_exception_handler)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)

# Request logging middleware (only in debug mode)
if settings.debug:
    app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin"],
    max_age=3600,
)

# Routes
app.include_router(health_router)
app.include_router(posts_router)


@app.get("/{full_path:path}", include_in_schema=False)
def client_app(full_path: str):
    """Serve client assets, falling back to the entry document (SPA-style)."""
    if not settings.static_dir:
        not_found("Page")

    root = Path(settings.static_dir).resolve()
    candidate = (root / full_path).resolve()
    if full_path and candidate.is_file() and root in candidate.parents:
        return FileResponse(candidate)

    index = root / "index.html"
    if not index.is_file():
        not_found("Page")
    return FileResponse(index)

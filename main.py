import json
import logging
import os
import sys
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

import click
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from feeds.core.config import settings
from feeds.core.decorator import FeedsAPIException, FeedsException
from feeds.core.limiter import custom_rate_limit_exceeded_handler, limiter
from feeds.routers import routes
from feeds.schemas.feeds import Post
from feeds.services.visibility import descendant_counts, visible_layout

# ============================================================================
# Directory Setup
# ============================================================================
BASE_DIR = Path(__file__).parent
LOGS_DIR = BASE_DIR / "logs"

LOGS_DIR.mkdir(parents=True, exist_ok=True)
os.chmod(LOGS_DIR, 0o755)


# ============================================================================
# Logging Configuration
# ============================================================================
def setup_logging():
    """Configure logging for the application."""
    if settings.debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    log_format = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] %(message)s"

    handlers = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(
            LOGS_DIR / Path(settings.log_file).name,
            mode="a",
            encoding="utf-8",
        ),
    ]

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    # Suppress verbose third-party logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return logging.getLogger(__name__)


logger = setup_logging()


# ============================================================================
# Application Lifespan
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    logger.info("=" * 80)
    logger.info("Starting application...")
    logger.info("=" * 80)
    logger.info(f"Feeds service: {settings.feeds_api_url}")
    logger.info("✓ Application startup completed successfully")

    yield  # Application is running

    logger.info("=" * 80)
    logger.info("Shutting down application...")
    logger.info("=" * 80)
    logger.info("✓ Application shutdown completed")


# ============================================================================
# FastAPI Application
# ============================================================================
app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    debug=settings.debug,
    lifespan=lifespan,
)

# ============================================================================
# Middleware Configuration
# ============================================================================
app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Tracing headers: caller-supplied request id is echoed, otherwise one is minted
@app.middleware("http")
async def add_trace_headers(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.debug(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code}")
    return response


# ============================================================================
# Exception Handlers
# ============================================================================
@app.exception_handler(FeedsException)
async def feeds_exception_handler(request: Request, exc: FeedsException):
    if isinstance(exc, FeedsAPIException):
        logger.error(f"Feeds service error: {exc.message}")
        error_type = "upstream_error"
    else:
        logger.warning(f"Rejected request: {exc.message}")
        error_type = "validation_error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "type": error_type},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    logger.warning(f"Invalid request to {request.url.path}: {len(details)} error(s)")
    return JSONResponse(
        status_code=422,
        content={"error": "Validation error", "type": "request_error", "details": details},
    )


app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)


# ============================================================================
# Health Check Endpoints
# ============================================================================
@app.get("/")
async def root():
    """Root endpoint with basic application info."""
    return {
        "app_name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "environment": "production" if settings.production else "development",
    }


@app.get("/health")
@limiter.limit("10/minute")
async def health_check(request: Request):
    """Detailed health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": "production" if settings.production else "development",
        "logs": "healthy" if LOGS_DIR.exists() else "unhealthy",
    }


# ============================================================================
# Routes
# ============================================================================
for router in routes:
    app.include_router(router)

logger.info(f"✓ Registered {len(routes)} routers")


# ============================================================================
# CLI Commands
# ============================================================================
@click.group()
def cli():
    """Feeds engine management CLI."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--reload", is_flag=True, help="Enable auto-reload (development only)")
def dev(host: str, port: int, reload: bool):
    """Run development server with Uvicorn."""
    logger.info("Starting development server...")
    logger.info(f"  - Host: {host}")
    logger.info(f"  - Port: {port}")
    logger.info(f"  - Reload: {reload}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="debug",
        access_log=True,
    )


@cli.command()
@click.argument("post_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--collapse", "collapsed", multiple=True, help="Comment id to collapse")
def layout(post_file: str, collapsed):
    """Print the visible discussion rows of a post JSON file, one per line."""
    try:
        post = Post.model_validate_json(Path(post_file).read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.ClickException(f"Invalid post file: {e}")

    counts = descendant_counts(post.comments)
    for record in visible_layout(post.comments, frozenset(collapsed)):
        click.echo(
            json.dumps(
                {
                    "id": record.comment.id,
                    "depth": record.depth,
                    "ancestor_has_more_siblings": record.ancestor_has_more_siblings,
                    "is_last_sibling": record.is_last_sibling,
                    "parent_id": record.parent_id,
                    "collapsed": record.comment.id in collapsed,
                    "descendants": counts[record.comment.id],
                }
            )
        )


@cli.command()
def info():
    """Display application information."""
    click.echo(f"Application: {settings.app_name}")
    click.echo(f"Version: {settings.app_version}")
    click.echo(f"Debug Mode: {settings.debug}")
    click.echo(f"Feeds API: {settings.feeds_api_url}")
    click.echo(f"Logs Directory: {LOGS_DIR.absolute()}")


if __name__ == "__main__":
    cli()

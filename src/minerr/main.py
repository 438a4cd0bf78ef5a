"""Minerr FastAPI application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from minerr import __version__
from minerr.api.auth import init_auth, reset_auth
from minerr.api.dependencies import close_runtime, init_runtime
from minerr.api.errors import MinerrError
from minerr.api.v1 import health_router, me_router, servers_router
from minerr.config import get_config
from minerr.infra import close_docker
from minerr.logging import setup_logging
from minerr.logging_schema import LogEvent

_config = get_config()
setup_logging(_config.logging)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(
        "Starting Minerr",
        extra={
            "event": LogEvent.APP_STARTED,
            "version": __version__,
            "docker_host": _config.docker.host,
        },
    )

    # Fails fast without a signing secret
    init_auth(_config.auth)
    init_runtime()

    yield
    logger.info("Shutting down Minerr", extra={"event": LogEvent.APP_STOPPED})
    await close_runtime()
    await close_docker()
    reset_auth()


app = FastAPI(
    title="Minerr",
    description="Minecraft server instance manager",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_config.server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MinerrError)
async def minerr_error_handler(request: Request, exc: MinerrError) -> JSONResponse:
    """Handle MinerrError exceptions."""
    logger.warning(
        "API error",
        extra={
            "event": LogEvent.API_ERROR,
            "error_code": exc.code.value,
            "error_message": exc.message,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions with logging."""
    logger.exception(
        "Unhandled exception",
        extra={
            "event": LogEvent.UNHANDLED_EXCEPTION,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# /health endpoint without prefix (for health checks)
app.include_router(health_router)


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose Prometheus metrics."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


app.include_router(servers_router, prefix="/api")
app.include_router(me_router, prefix="/api")


def main() -> None:
    """Run the Minerr server."""
    config = get_config()
    uvicorn.run(
        "minerr.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
    )


if __name__ == "__main__":
    main()

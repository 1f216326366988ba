"""Atlas HTTP Server.

FastAPI-based server exposing project, task and knowledge listings as a
JSON/text dashboard API and as MCP tools via Streamable HTTP transport.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .config import Config
from .listing import service
from .listing.errors import ListingError
from .listing.models import EncodedResponse
from .listing.storage import RecordStore
from .listing.storage.factory import create_record_store, get_record_store, set_record_store
from .models import HealthResponse

logger = logging.getLogger(__name__)

VERSION = "0.3.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Initializes the record store and MCP session manager on startup.
    Stores state in app.state instead of global variables.
    """
    # Use monotonic time for uptime (not affected by system clock changes)
    app.state.start_time = time.monotonic()

    if not hasattr(app.state, "config") or app.state.config is None:
        app.state.config = Config.from_yaml(Path("config/server.yaml"))
    config: Config = app.state.config

    store = create_record_store(config.storage.backend, config.storage.seed_path)
    await store.initialize()
    set_record_store(store)
    app.state.record_store = store
    logger.info("Record store initialized (backend=%s)", config.storage.backend)

    from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

    from .mcp_server import mcp_app

    session_manager = StreamableHTTPSessionManager(
        app=mcp_app,
        json_response=True,
    )
    app.state.mcp_session_manager = session_manager

    try:
        async with session_manager.run():
            logger.info("MCP Streamable HTTP transport available at /mcp")
            yield
    finally:
        app.state.mcp_session_manager = None
        await store.close()
        set_record_store(None)


def create_app(config: Config | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Optional configuration (uses default if not provided).

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Atlas Listing Server",
        description="Project, task and knowledge listings for dashboards and agents",
        version=VERSION,
        lifespan=lifespan,
    )

    if config:
        app.state.config = config

    cors_origins = config.server.cors_origins if config else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ListingError)
    async def listing_error_handler(request: Request, exc: ListingError) -> JSONResponse:
        return JSONResponse(content=exc.to_dict(), status_code=exc.status_code)

    _register_routes(app)
    _mount_mcp(app)

    return app


def _mount_mcp(app: FastAPI) -> None:
    """Mount the MCP Streamable HTTP handler at /mcp."""
    from starlette.types import Receive, Scope, Send

    async def handle_mcp(scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI handler that delegates to the MCP session manager."""
        session_manager = getattr(app.state, "mcp_session_manager", None)
        if session_manager is None:
            response = JSONResponse(
                {"error": "MCP transport not available"},
                status_code=503,
            )
            await response(scope, receive, send)
            return

        await session_manager.handle_request(scope, receive, send)

    # Raw ASGI mount; MCP handles its own dispatch
    app.mount("/mcp", handle_mcp)


def _query_params(request: Request) -> dict[str, Any]:
    """Flatten query params; repeated keys become lists."""
    params: dict[str, Any] = {}
    for key in request.query_params:
        values = request.query_params.getlist(key)
        params[key] = values if len(values) > 1 else values[0]
    return params


def _store(request: Request) -> RecordStore:
    store = getattr(request.app.state, "record_store", None)
    return store if store is not None else get_record_store()


def _default_format(request: Request) -> str:
    config: Config | None = getattr(request.app.state, "config", None)
    return config.listing.default_format if config else "structured"


def _encoded(encoded: EncodedResponse) -> Response:
    return Response(content=encoded.body, media_type=encoded.media_type)


def _register_routes(app: FastAPI) -> None:
    """Register all API routes.

    Args:
        app: FastAPI application.
    """

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """Health check endpoint."""
        start_time = getattr(request.app.state, "start_time", 0.0)
        uptime = time.monotonic() - start_time if start_time else 0.0
        config: Config | None = getattr(request.app.state, "config", None)
        config = config or Config()
        response = HealthResponse(
            status="healthy",
            service=config.service.name,
            version=config.service.version,
            storage=config.storage.backend,
            uptime_seconds=uptime,
            timestamp=datetime.now(UTC),
        )
        return JSONResponse(content=response.to_dict())

    @app.get("/api/projects")
    async def list_projects(request: Request) -> Response:
        """Paginated project listing."""
        encoded = await service.list_projects(
            _query_params(request),
            store=_store(request),
            default_format=_default_format(request),
        )
        return _encoded(encoded)

    @app.get("/api/projects/{project_id}")
    async def get_project(project_id: str, request: Request) -> Response:
        """Single project, optionally with embedded tasks and knowledge."""
        encoded = await service.get_project(
            project_id,
            _query_params(request),
            store=_store(request),
            default_format=_default_format(request),
        )
        return _encoded(encoded)

    @app.get("/api/projects/{project_id}/metrics")
    async def project_metrics(project_id: str, request: Request) -> JSONResponse:
        """Task and knowledge statistics for one project."""
        metrics = await service.get_project_metrics(project_id, store=_store(request))
        return JSONResponse(content=metrics)

    @app.get("/api/projects/{project_id}/tasks")
    async def list_tasks(project_id: str, request: Request) -> Response:
        """Paginated task listing for one project."""
        encoded = await service.list_tasks(
            project_id,
            _query_params(request),
            store=_store(request),
            default_format=_default_format(request),
        )
        return _encoded(encoded)

    @app.get("/api/projects/{project_id}/knowledge")
    async def list_knowledge(project_id: str, request: Request) -> Response:
        """Paginated knowledge listing for one project."""
        encoded = await service.list_knowledge(
            project_id,
            _query_params(request),
            store=_store(request),
            default_format=_default_format(request),
        )
        return _encoded(encoded)

    @app.get("/api/metrics")
    async def dashboard_metrics(request: Request) -> JSONResponse:
        """Store-wide dashboard metrics."""
        metrics = await service.get_dashboard_metrics(store=_store(request))
        return JSONResponse(content=metrics)


def run_server(
    host: str = "0.0.0.0",
    port: int = 8300,
    config_path: str | None = None,
) -> None:
    """Run the Atlas server.

    Args:
        host: Bind address.
        port: Bind port.
        config_path: Path to configuration file.
    """
    import uvicorn

    # Explicit yaml file wins over environment variables
    if config_path:
        config = Config.from_yaml(Path(config_path))
    else:
        config = Config.from_env()

    config.server.host = host
    config.server.port = port

    app = create_app(config)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    import argparse
    import os

    parser = argparse.ArgumentParser(description="Atlas Listing Server")
    parser.add_argument(
        "--host",
        default=os.getenv("ATLAS_HOST", "0.0.0.0"),
        help="Bind address (default: $ATLAS_HOST or 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("ATLAS_PORT", "8300")),
        help="Bind port (default: $ATLAS_PORT or 8300)",
    )
    parser.add_argument(
        "--config",
        help="Path to YAML config file (overrides env vars)",
    )

    args = parser.parse_args()
    run_server(host=args.host, port=args.port, config_path=args.config)

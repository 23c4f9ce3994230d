"""
HTTP transport for the SimpleJson datasource.

Endpoints:
- GET/POST / - connection test, always 200 with an empty body
- POST /search - names of the available metrics
- POST /query - buffered samples as time series or tables

Every protocol error is answered with ``{"error": "<context>: <detail>"}``
and the status code of the error class.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from .. import __version__
from ..config import DashboardConfig
from ..errors import DashboardError, QueryCancelled, SerializationFailure
from ..feeds.feed import FeedSupervisor
from ..protocol.adapter import SimpleJsonAdapter
from ..storage.metrics_store import MetricRegistry


logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"


def create_app(
    registry: MetricRegistry,
    config: Optional[DashboardConfig] = None,
    supervisor: Optional[FeedSupervisor] = None,
) -> FastAPI:
    """
    Create the FastAPI application serving `registry`.

    If a supervisor is given, its feeds run for the lifetime of the app.
    """
    config = config or DashboardConfig()
    adapter = SimpleJsonAdapter(registry)
    timeout = config.server.request_timeout
    log_requests = config.logging.log_requests

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Serving %d metric(s): %s", len(registry), ", ".join(registry.names()))
        if supervisor is not None:
            supervisor.start()

        try:
            yield
        finally:
            if supervisor is not None:
                supervisor.stop()
                logger.info("Feeds stopped")

    app = FastAPI(
        title="Signal Dashboard",
        description="Grafana SimpleJson datasource for in-process metrics",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.state.registry = registry
    app.state.adapter = adapter

    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
        if isinstance(exc, SerializationFailure):
            logger.error("Failed to encode response for %s: %s", request.url.path, exc)
        else:
            logger.info("Rejected %s request: %s", request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    async def read_body(request: Request) -> bytes:
        try:
            body = await request.body()
        except ClientDisconnect:
            raise QueryCancelled("client disconnected")

        if log_requests:
            logger.info("%s body (%d bytes read): %s", request.url.path, len(body), body.decode("utf-8", "replace"))
        return body

    # Grafana expects a "200 OK" status for "/" when testing the connection
    @app.api_route("/", methods=["GET", "POST"])
    async def connection_test(request: Request) -> Response:
        await read_body(request)
        return Response(status_code=200)

    @app.post("/search")
    async def search(request: Request) -> Response:
        body = await read_body(request)
        names = adapter.search(adapter.parse_search(body))
        return Response(content=adapter.render(names), media_type=JSON_MEDIA_TYPE)

    @app.post("/query")
    async def query(request: Request) -> Response:
        deadline = time.monotonic() + timeout if timeout > 0 else None

        body = await read_body(request)
        parsed = adapter.parse_query(body)
        payload = await run_in_threadpool(adapter.query, parsed, deadline)

        if await request.is_disconnected():
            raise QueryCancelled("client disconnected")

        return Response(content=adapter.render(payload), media_type=JSON_MEDIA_TYPE)

    return app

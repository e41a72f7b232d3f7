# main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import ORJSONResponse

# Imported first so the logging configuration is in place before other
# modules emit messages.
from erply_client.logging_config import logger
import json
import time

from erply_client.clients.api_client import ApiClient
from erply_client.core.config import get_settings
from erply_client.routes.calls import router as calls_router
from erply_client.routes.session import router as session_router


def create_app(client: Optional[ApiClient] = None) -> FastAPI:
    """Build the FastAPI application.

    The lifespan owns one :class:`ApiClient` shared by every request.
    Passing ``client`` replaces the one built from the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.api_client = client or ApiClient.from_settings(get_settings())
        try:
            yield
        finally:
            app.state.api_client.close()

    app = FastAPI(default_response_class=ORJSONResponse, lifespan=lifespan)

    app.include_router(calls_router)
    app.include_router(session_router)

    # -----------------------------------------------------------------
    # Request logging middleware
    # -----------------------------------------------------------------
    @app.middleware("http")  # type: ignore[misc]
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000
        logger.info(json.dumps({
            "event": "http_request",
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }))
        return response

    return app


app = create_app()

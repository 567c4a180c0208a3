"""HTTP transport (FastAPI).

A thin layer over ConversationService: request bodies are passed through
as dictionaries and validated by the service, domain errors are mapped
to status codes here.

Run with:
    uvicorn milinea.api:create_app --factory --port 3000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Body, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .container import Container
from .domain.errors import InvalidRequestError, MilineaError, SpatialStoreError
from .logging_setup import configure_logging
from .services import ConversationService

logger = logging.getLogger(__name__)

SERVICE_NAME = "milinea-backend"


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Build the FastAPI application around a container.

    Args:
        container: Wired container. When omitted, logging is configured
            and the default production container is built.

    Returns:
        The FastAPI application. Its lifespan starts the maintenance tasks
        and stops them (with a final flush) on shutdown.
    """
    if container is None:
        configure_logging()
        container = Container.create_default()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        container.start_maintenance()
        try:
            yield
        finally:
            container.shutdown()

    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.container = container

    def service() -> ConversationService:
        return container.resolve(ConversationService)

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"ok": False, "error": exc.message})

    @app.exception_handler(SpatialStoreError)
    async def spatial_store_handler(request: Request, exc: SpatialStoreError) -> JSONResponse:
        logger.error(
            "Spatial store failure",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return JSONResponse(status_code=500, content={"ok": False, "error": exc.message})

    @app.exception_handler(MilineaError)
    async def domain_error_handler(request: Request, exc: MilineaError) -> JSONResponse:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return JSONResponse(status_code=500, content={"ok": False, "error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled exception",
            extra={"method": request.method, "path": request.url.path},
        )
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})

    @app.get("/")
    def root() -> Dict[str, Any]:
        return {"ok": True, "service": SERVICE_NAME}

    @app.get("/health")
    def health() -> JSONResponse:
        report = service().health()
        return JSONResponse(status_code=200 if report["ok"] else 503, content=report)

    @app.post("/chat")
    def chat(payload: Any = Body(None)) -> Dict[str, Any]:
        return service().handle(payload)

    @app.post("/routes/fastest")
    def fastest(payload: Any = Body(None)) -> Dict[str, Any]:
        return service().fastest(payload)

    @app.get("/admin/unresolved")
    def admin_unresolved(min_hits: int = Query(2, ge=1)) -> Dict[str, Any]:
        return service().list_unresolved(min_hits=min_hits)

    return app


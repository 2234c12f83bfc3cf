"""
Main application module for the campus walkway backend.

This file sets up the FastAPI application, configures CORS so the map
frontend can make cross-origin requests, maps domain errors onto HTTP
status codes and exposes a simple health check endpoint.

Routers for walkways, features and routing are included under the
`/api` namespace.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes_features import router as features_router
from .api.routes_route import router as route_router
from .api.routes_walkways import router as walkways_router
from .services.validation import WalkwayValidationError
from .services.walkway_store import StoreError, init_db

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Factory to create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(title="Campus walkway network")

    # The schema is created before any request is served; init_db is
    # idempotent.
    @app.on_event("startup")  # type: ignore[misc]
    async def startup_event() -> None:
        init_db()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WalkwayValidationError)
    async def validation_error_handler(request: Request, exc: WalkwayValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Walkway store unavailable"})

    # Health check endpoint for monitoring.
    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(walkways_router, prefix="/api", tags=["walkways"])
    app.include_router(features_router, prefix="/api", tags=["features"])
    app.include_router(route_router, prefix="/api", tags=["route"])

    return app


app = create_app()

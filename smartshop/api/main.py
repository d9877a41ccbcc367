"""FastAPI application main module.

This module defines the application factory and core API endpoints for the
SmartShop recommendation service. It provides health, status and metrics
endpoints and serves as the entry point for the API server.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from smartshop import __version__
from smartshop.api.exceptions import SmartShopException
from smartshop.api.logging_config import RequestLoggingMiddleware, setup_logging
from smartshop.api.routes import recommend
from smartshop.config import RecommenderConfig
from smartshop.recommender.service import RecommendationService, create_recommendation_service
from smartshop.recommender.utils import load_stores

# Configure module logger
logger = logging.getLogger(__name__)


def build_default_service(config: Optional[RecommenderConfig] = None) -> RecommendationService:
    """Build a service over the CSV files in the configured data directory."""
    config = config or RecommenderConfig.from_env()
    interaction_store, product_store, user_store = load_stores(config.data_dir)
    return create_recommendation_service(interaction_store, product_store, user_store, config)


def create_app(service: Optional[RecommendationService] = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        service: Recommendation service to serve. Built from the environment
            and the data directory when omitted.

    Returns:
        Configured FastAPI application.
    """
    if service is None:
        config = RecommenderConfig.from_env()
        setup_logging(config.log_level)
        service = build_default_service(config)

    app = FastAPI(
        title="SmartShop API",
        description="Hybrid product recommendation service",
        version=__version__,
    )
    app.state.service = service

    app.add_middleware(RequestLoggingMiddleware)

    # Include routers
    app.include_router(recommend.router)

    @app.exception_handler(SmartShopException)
    async def smartshop_exception_handler(request: Request, exc: SmartShopException) -> JSONResponse:
        logger.warning(
            f"{type(exc).__name__}: {exc.message}",
            extra={"path": str(request.url.path), "status_code": exc.status_code},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": type(exc).__name__,
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": "ValueError", "message": str(exc), "details": {}},
        )

    @app.get("/ping")
    def ping() -> Dict[str, str]:
        """Health check endpoint.

        Returns:
            Dictionary with status key set to "ok".

        Example:
            >>> response = client.get("/ping")
            >>> assert response.json() == {"status": "ok"}
        """
        return {"status": "ok"}

    @app.get("/status")
    def service_status(request: Request) -> Dict[str, Any]:
        """Report store sizes and the cache backend."""
        current: RecommendationService = request.app.state.service
        return {
            "status": "ok",
            "version": __version__,
            "users": current.user_store.count(),
            "products": current.product_store.count(),
            "interactions": current.interaction_store.count(),
            "cache_backend": current.cache.backend,
        }

    @app.get("/metrics")
    def metrics(request: Request) -> Dict[str, Any]:
        """Return recommendation metrics."""
        return request.app.state.service.metrics.get_metrics()

    return app


app = create_app()


if __name__ == "__main__":
    import sys
    from pathlib import Path

    import uvicorn

    # Add project root to Python path for imports
    project_root = Path(__file__).parent.parent.parent
    sys.path.insert(0, str(project_root))

    uvicorn.run(
        "smartshop.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )

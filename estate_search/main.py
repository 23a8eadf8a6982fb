import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config.logging_config import configure_logging
from .config.settings import settings
from .exceptions import EstateSearchError, QueryValidationError, RebuildError, UserNotFoundError
from .routes import analytics_routes, health_routes, indexing_routes, recommendation_routes, search_routes
from .services.container import get_container

logger = logging.getLogger(__name__)


def _resolve_container(app: FastAPI):
    return app.dependency_overrides.get(get_container, get_container)()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and make sure the property index exists"""
    configure_logging()
    container = _resolve_container(app)
    logger.info("Starting %s v%s", settings.api_title, settings.api_version)
    logger.info("Document store: %s, index: %s", settings.document_store, settings.index_name)
    try:
        await container.indexer.ensure_index()
    except Exception:
        logger.exception("Could not ensure the property index exists")
        raise
    yield
    logger.info("Shutting down %s", settings.api_title)
    await container.close()


# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
)

# Include routers with API prefix
app.include_router(search_routes.router, prefix="/api", tags=["search"])
app.include_router(analytics_routes.router, prefix="/api", tags=["analytics"])
app.include_router(recommendation_routes.router, prefix="/api", tags=["recommendations"])
app.include_router(indexing_routes.router, prefix="/api", tags=["indexing"])
app.include_router(health_routes.router, prefix="/api", tags=["health"])


def _error_body(error: EstateSearchError) -> dict:
    return {"error": error.error_code, "message": error.message, "details": error.details}


@app.exception_handler(QueryValidationError)
async def query_validation_handler(request: Request, exc: QueryValidationError):
    return JSONResponse(status_code=422, content=_error_body(exc))


@app.exception_handler(UserNotFoundError)
async def user_not_found_handler(request: Request, exc: UserNotFoundError):
    return JSONResponse(status_code=404, content=_error_body(exc))


@app.exception_handler(RebuildError)
async def rebuild_error_handler(request: Request, exc: RebuildError):
    logger.error("Index rebuild failed: %s", exc.message)
    return JSONResponse(status_code=500, content=_error_body(exc))


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": settings.api_title,
        "version": settings.api_version,
        "description": settings.api_description,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/api/health",
        "endpoints": {
            "search": "/api/search",
            "analytics": "/api/analytics",
            "trends": "/api/analytics/trends",
            "recommendations": "/api/recommendations/{user_id}",
            "rebuild": "/api/index/rebuild",
            "health": "/api/health",
        },
        "index": settings.index_name,
    }

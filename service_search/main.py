"""Search service main application."""

import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .api.routes import router as api_router
from .retrievers.embedding_client import EmbeddingClient
from .runtime.metrics import get_metrics_collector
from libs.common.config import SearchConfig
from libs.common.logging import configure_logging
from libs.vector_store.factory import create_vector_store_from_config

logger = structlog.get_logger("search_service")

SERVICE_NAME = "search-service"
SERVICE_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    config = SearchConfig()
    configure_logging(SERVICE_NAME, config.ml_log_level, config.ml_log_format)

    logger.info("Starting search service", env=config.ml_env)

    app.state.config = config
    app.state.vector_store = create_vector_store_from_config(config)
    await app.state.vector_store.initialize()
    app.state.embedding_client = EmbeddingClient(
        config.ml_embedding_service_url,
        model=config.ml_embedding_model,
    )
    app.state.metrics_collector = get_metrics_collector(SERVICE_NAME)

    logger.info("Search service started successfully")

    yield

    # Shutdown
    logger.info("Shutting down search service")
    await app.state.embedding_client.close()
    await app.state.vector_store.close()
    logger.info("Search service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Search Service",
    description="Declarative search over a vector store: KNN, RRF fusion, grouping and projection",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Collect metrics for HTTP requests."""
    start_time = time.time()

    try:
        response = await call_next(request)
        status_code = response.status_code
    except Exception as e:
        logger.exception("Unhandled error", path=request.url.path)
        status_code = 500
        response = JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(e)}
        )

    duration = time.time() - start_time

    if hasattr(app.state, 'metrics_collector'):
        route = request.scope.get("route")
        app.state.metrics_collector.record_http_request(
            method=request.method,
            endpoint=getattr(route, "path", request.url.path),
            status=status_code,
            duration=duration
        )

    return response


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    if not hasattr(app.state, 'vector_store'):
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": SERVICE_NAME}
        )

    if await app.state.vector_store.health_check():
        return {"status": "healthy", "service": SERVICE_NAME}

    logger.warning("Vector store health check failed")
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "service": SERVICE_NAME}
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    if hasattr(app.state, 'metrics_collector'):
        metrics_data = app.state.metrics_collector.get_metrics()
        return Response(content=metrics_data, media_type="text/plain")
    else:
        return Response(content="# No metrics available\n", media_type="text/plain")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "metrics": "/metrics",
            "search": "/api/v1/collections/{name}/search",
            "batch": "/api/v1/collections/{name}/search/batch"
        }
    }


def run() -> None:
    """Console entrypoint: serve the app with uvicorn."""
    config = SearchConfig()
    uvicorn.run(
        "service_search.main:app",
        host=config.ml_search_host,
        port=config.ml_search_port,
        log_level=config.ml_log_level.lower()
    )


if __name__ == "__main__":
    run()

"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from church_finance.api.errors import register_error_handlers
from church_finance.api.middleware import RequestIDMiddleware, MetricsMiddleware
from church_finance.api.v1 import financial_requests, finance_config
from church_finance.infrastructure.database.models import Base
from church_finance.infrastructure.database.session import get_engine
from church_finance.infrastructure.observability.logging import setup_logging
from church_finance.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        Base.metadata.create_all(bind=get_engine())
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Church Finance API",
        description="Financial request approval workflow",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(financial_requests.router, tags=["financial-requests"])
    app.include_router(finance_config.router, tags=["finance-config"])

    return app


app = create_app()

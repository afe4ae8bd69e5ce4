"""FastAPI application factory"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cashwise_engine.api.dependencies import get_notifier
from cashwise_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from cashwise_engine.api.v1 import forecast, installments, reminders
from cashwise_engine.infrastructure.database.models import Base
from cashwise_engine.infrastructure.database.session import engine
from cashwise_engine.infrastructure.observability.logging import setup_logging
from cashwise_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    notifier = get_notifier()
    notifier.start()
    yield
    notifier.shutdown()


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="CashWise Obligation Engine",
        description="Installment grouping, subscription projection, forecasts and reminders",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(installments.router, prefix="/v1", tags=["installments"])
    app.include_router(forecast.router, prefix="/v1", tags=["forecast"])
    app.include_router(reminders.router, prefix="/v1", tags=["reminders"])

    return app


app = create_app()

"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from house_risk.api.middleware import RequestIDMiddleware, MetricsMiddleware
from house_risk.api.v1 import advance, hsi, maintenance
from house_risk.config import Settings, settings as default_settings
from house_risk.infrastructure.clients.notifications import HouseNotifier
from house_risk.infrastructure.database.session import SessionFactory, SessionLocal
from house_risk.infrastructure.observability.logging import setup_logging
from house_risk.services.advance_service import AdvanceService
from house_risk.services.hsi_engine import HSIEngine
from house_risk.services.risk_history import RiskHistoryService
from house_risk.worker.scheduler import RiskScheduler


def create_app(
    session_factory: SessionFactory = SessionLocal,
    notifier: Optional[HouseNotifier] = None,
    config: Settings = default_settings,
) -> FastAPI:
    """Create and configure FastAPI application"""
    setup_logging(config.log_level)

    hsi_engine = HSIEngine(session_factory=session_factory, notifier=notifier)
    advance_service = AdvanceService(session_factory=session_factory, base_allowance=config.base_advance_allowance)
    history_service = RiskHistoryService(session_factory=session_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if config.scheduler_enabled:
            scheduler = RiskScheduler(hsi_engine, history_service, config)
            scheduler.start()
        app.state.scheduler = scheduler
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown()

    app = FastAPI(
        title="House Risk Engine",
        description="House Status Index scoring and advance allowance service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.hsi_engine = hsi_engine
    app.state.advance_service = advance_service
    app.state.history_service = history_service

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": config.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(hsi.router, prefix="/v1", tags=["hsi"])
    app.include_router(advance.router, prefix="/v1", tags=["advances"])
    app.include_router(maintenance.router, prefix="/v1", tags=["maintenance"])

    return app


app = create_app()

"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from mca_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from mca_ledger.api.v1 import portfolio, validation
from mca_ledger.config import settings
from mca_ledger.domain.constants import COLUMN_MAP_VERSION
from mca_ledger.domain.exceptions import DomainException
from mca_ledger.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level)


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Render a domain error raised by an endpoint as a 422"""
    logging.warning(
        f"Domain error: {exc}",
        extra={"request_id": getattr(request.state, "request_id", "unknown")},
    )
    return JSONResponse(status_code=422, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="MCA Ledger Engine",
        description="Merchant cash-advance ledger reconciliation, delinquency and risk scoring",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(DomainException, domain_exception_handler)

    @app.get("/health")
    def health_check():
        return {
            "status": "ok",
            "service": settings.service_name,
            "column_map_version": COLUMN_MAP_VERSION,
        }

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(portfolio.router, prefix="/v1", tags=["portfolio"])
    app.include_router(validation.router, prefix="/v1", tags=["validation"])

    return app


app = create_app()

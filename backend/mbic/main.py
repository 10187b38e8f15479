"""
MBIC Sales Insights - Main FastAPI Application
"""
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import logging

from mbic.api.rate_limit import limiter
from mbic.config import settings
from mbic.config.log import init_logging
from mbic.services.reconciliation import ReconciliationError, load_expectation, resolve_severity

logger = logging.getLogger(__name__)
from mbic.api.v1 import dashboard, sales, ops, forms, dealers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    init_logging()
    app.state.reconciliation_severity = resolve_severity(settings)
    app.state.reconciliation_expectation = load_expectation(settings.RECONCILIATION_FIXTURE)
    logger.info(
        "Starting MBIC Sales Insights (%s); reconciliation for %s runs in %s mode",
        settings.ENVIRONMENT,
        app.state.reconciliation_expectation.account_name,
        app.state.reconciliation_severity.value,
    )
    yield
    # Shutdown
    logger.info("Shutting down...")


app = FastAPI(
    title="MBIC Sales Insights API",
    description="Flooring distributor sales dashboard: organization metrics, rep performance and sales-ops forms",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(ReconciliationError)
async def reconciliation_error_handler(request: Request, exc: ReconciliationError):
    logger.error("Sales reconciliation failed for %s: %s", exc.account_name, "; ".join(exc.issues))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"{exc.account_name} reconciliation failed", "issues": exc.issues},
    )


app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# Include routers
app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["Dashboard"])
app.include_router(sales.router, prefix="/api/v1/sales", tags=["Sales"])
app.include_router(ops.router, prefix="/api/v1/ops", tags=["Sales Ops"])
app.include_router(forms.router, prefix="/api/v1/forms", tags=["Forms"])
app.include_router(dealers.router, prefix="/api/v1/dealers", tags=["Dealers"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": settings.APP_VERSION}

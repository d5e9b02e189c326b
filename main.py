from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import os
import time

from app.routers.auth import router as auth_router
from app.routers.baskets import router as baskets_router
from app.routers.orders import router as orders_router
from app.routers.me import router as me_router
from app.routers.admin import router as admin_router
from app.core.config import LOG_LEVEL
from app.core.logging import get_logger, set_trace_id, setup_logging

setup_logging(level=LOG_LEVEL)
logger = get_logger(__name__)

# =============================================================================
# APP CONFIGURATION
# =============================================================================

API_VERSION = "1.0.0"
API_TITLE = "EcoPanier API"

app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description="Paniers anti-gaspillage étudiants: catalogue, commandes, fidélité",
    docs_url="/docs",
    redoc_url="/redoc",
)

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://ecopanier.fr,https://www.ecopanier.fr,http://localhost:5173,http://localhost:3000",
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)


# =============================================================================
# MIDDLEWARE - Request tracking & timing
# =============================================================================

@app.middleware("http")
async def add_request_context(request: Request, call_next):
    """Add trace_id and timing to all requests."""
    trace_id = set_trace_id(request.headers.get("X-Request-ID"))
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    response.headers["X-Request-ID"] = trace_id
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    # Log request (skip health checks)
    if request.url.path != "/health":
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

    return response


# =============================================================================
# SYSTEM ENDPOINTS - Health & Info
# =============================================================================

@app.get("/health")
def health():
    """Health check endpoint for load balancers & monitoring."""
    return {"status": "ok"}


@app.get("/v1/info")
def api_info():
    """API version and status information."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "status": "operational",
    }


# =============================================================================
# ROUTERS - Versioned API (v1)
# =============================================================================

app.include_router(auth_router)       # /v1/me
app.include_router(baskets_router)    # /v1/baskets/*
app.include_router(orders_router)     # /v1/orders/*
app.include_router(me_router)         # /v1/me/*
app.include_router(admin_router)      # /v1/admin/*

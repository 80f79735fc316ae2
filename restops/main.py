from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from restops.core.config import get_settings
from restops.db.session import init_db
from restops.routers.health import router as health_router

logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(
    title=settings.APP_NAME,
    description="Restaurant operations tracker API - KPIs, inventory reconciliation, alerts and action items.",
    version="0.1.0",
)


@app.on_event("startup")
def create_tables():
    init_db()


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected server errors with structured response."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request.headers.get("X-Request-ID"),
        }
    )

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for now
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from restops.routers.collections import router as collections_router
from restops.routers.kpis import router as kpis_router
from restops.routers.reconciliation import router as reconciliation_router
from restops.routers.alerts import router as alerts_router

app.include_router(health_router)
app.include_router(collections_router, prefix="/api")
app.include_router(kpis_router, prefix="/api")
app.include_router(reconciliation_router, prefix="/api")
app.include_router(alerts_router, prefix="/api")

@app.get("/")
def read_root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "docs": "/docs",
        "health": "/health"
    }

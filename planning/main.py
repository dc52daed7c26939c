import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logfire

from planning.config import settings
from planning.database import AsyncSessionLocal, init_db, close_db
from planning.api import api_router
from planning.api.deps import get_dispatcher
from planning.exceptions import PlanningError
from planning.services.reminder_scheduler import ReminderScheduler

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Logfire - auto-instruments FastAPI
if settings.logfire_token:
    logfire.configure(
        token=settings.logfire_token,
        service_name="planning-service",
        environment=settings.app_env,
        console=False,  # Disable console logging (too verbose)
    )
    logger.info("✅ Logfire initialized")
else:
    logger.warning("⚠️ Logfire token not set - observability disabled")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("🚀 Starting Planning API...")
    await init_db()
    logger.info("✅ Database initialized")

    if settings.scheduler_enabled:
        app.state.scheduler.start()

    yield

    # Shutdown
    logger.info("👋 Shutting down...")
    await app.state.scheduler.stop()
    await close_db()
    logger.info("✅ Database connections closed")


app = FastAPI(
    title=settings.app_name,
    description="Availability, booking and reminder scheduling",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.scheduler = ReminderScheduler(AsyncSessionLocal, get_dispatcher(), settings)

# Instrument FastAPI with Logfire
if settings.logfire_token:
    logfire.instrument_fastapi(app)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PlanningError)
async def planning_error_handler(request: Request, exc: PlanningError):
    """Map planning error kinds to HTTP status codes."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected",
        "scheduler": "running" if app.state.scheduler.is_running else "stopped",
        "email": "configured" if settings.resend_api_key else "not_configured",
    }

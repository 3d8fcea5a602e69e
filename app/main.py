"""
FastAPI application: passenger, driver and admin route groups with optional
New Relic APM, CORS, lifespan and error-taxonomy handlers.
"""
import logging
import os

# New Relic must be initialized BEFORE any other imports that it instruments.
if os.getenv("NEW_RELIC_LICENSE_KEY"):
    import newrelic.agent
    newrelic.agent.initialize("newrelic.ini")

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.config import get_settings
from app.database import engine
from app.errors import RideHailingError
from app.redis_client import get_redis, close_redis
from app.routers import admin, auth, drivers, passengers, realtime, rides

settings = get_settings()
logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s [%s]", settings.app_name, settings.env)
    await get_redis()          # build the connection pool
    yield
    await close_redis()
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Charide ride-hailing backend: passenger, driver and admin portals",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RideHailingError)
async def ride_hailing_error_handler(request: Request, exc: RideHailingError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    message = str(getattr(exc, "orig", None) or exc)
    logger.error("Store error on %s: %s", request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": message},
    )


# Global error handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s: %s", request.url, exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Health check (no auth)
@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}


@app.get("/", tags=["Health"])
async def index():
    return {
        "status": "ok",
        "apps": {
            "passenger": "/passenger/index.html",
            "driver": "/driver/index.html",
            "admin": "/admin/login.html",
        },
        "poll_interval_seconds": settings.requests_poll_seconds,
    }


# Register routers
app.include_router(auth.router)
app.include_router(auth.driver_router)
app.include_router(auth.admin_router)
app.include_router(passengers.router)
app.include_router(rides.router)
app.include_router(drivers.router)
app.include_router(admin.router)
app.include_router(realtime.router)

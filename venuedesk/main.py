import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from . import models  # noqa: F401
from .cache_headers import CacheDefeatMiddleware
from .config import FRONTEND_ORIGINS
from .database import Base, engine
from .domain.bookings.router import router as bookings_router
from .domain.facilities.router import router as facilities_router
from .exceptions import VenueDeskError
from .routes.revalidate import router as revalidate_router
from .status_updates import error_response

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="VenueDesk API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(VenueDeskError)
async def venuedesk_exception_handler(request: Request, exc: VenueDeskError):
    """Domain errors that escape a route become the usual JSON error body"""
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"⚠️ {request.method} {request.url.path}: {exc.message}")
    return error_response(exc)


app.add_middleware(CacheDefeatMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in FRONTEND_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Cache-Control", "Pragma"],
)

app.include_router(bookings_router)
app.include_router(facilities_router)
app.include_router(revalidate_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("venuedesk.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))

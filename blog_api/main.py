import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_api.config import settings
from blog_api.database import build_database
from blog_api.errors import ConflictError, InvalidReferenceError, InvalidSlugError
from blog_api.logging_config import configure_logging
from blog_api.middleware import RequestLoggingMiddleware
from blog_api.routers import posts, stats, tags, users
from blog_api.schemas import error_envelope

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting blog API (%s)", settings.APP_ENV)
    database = build_database(settings)
    database.connect()
    app.state.db = database
    yield
    logger.info("Stopping blog API")
    await database.disconnect()


app = FastAPI(
    title="Blog API",
    description="Users, posts, tags and threaded comments",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(tags.router)
app.include_router(stats.router)


# ---------------------------------------------------------------------------
# Error envelopes
# ---------------------------------------------------------------------------

@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_envelope(str(exc.detail)))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=error_envelope("Validation error", details=jsonable_encoder(exc.errors())),
    )


@app.exception_handler(ConflictError)
async def conflict_error(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content=error_envelope(str(exc)))


@app.exception_handler(InvalidReferenceError)
async def invalid_reference_error(request: Request, exc: InvalidReferenceError):
    return JSONResponse(status_code=400, content=error_envelope(str(exc)))


@app.exception_handler(InvalidSlugError)
async def invalid_slug_error(request: Request, exc: InvalidSlugError):
    return JSONResponse(status_code=400, content=error_envelope(str(exc)))


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    # Logged where it was raised (@logged) and re-raised by Starlette afterwards.
    # Never echo storage text to the client.
    return JSONResponse(status_code=500, content=error_envelope("Internal server error"))


# ---------------------------------------------------------------------------
# Service endpoints
# ---------------------------------------------------------------------------

@app.get("/")
async def root():
    return {
        "message": "Welcome to the Blog API",
        "version": VERSION,
        "endpoints": {
            "users": users.router.prefix,
            "posts": posts.router.prefix,
            "tags": tags.router.prefix,
            "stats": stats.router.prefix,
            "health": "/health",
        },
    }


@app.get("/health")
async def health(request: Request):
    healthy = await request.app.state.db.health_check()
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "database": "connected" if healthy else "disconnected",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(time.monotonic() - STARTED_AT, 1),
            "environment": settings.APP_ENV,
            "version": VERSION,
        },
    )

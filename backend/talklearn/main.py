import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .api.routes import create_router
from .core.config import get_config
from .core.db import init_db
from .core.logger import setup_logging

logger = logging.getLogger(__name__)

setup_logging()
config = get_config()

_start_time = time.time()

limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="Talk-to-Learn API",
    version="1.0.0",
    description="Voice quiz with spaced-repetition review scheduling.",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"error": "rate_limited", "detail": "Too many requests, please try again later"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "internal_error", "detail": "An unexpected error occurred"})


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.security.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(create_router(limiter))


@app.get("/health")
async def healthcheck() -> dict:
    return {
        "status": "ok",
        "version": app.version,
        "uptime_seconds": int(time.time() - _start_time),
    }


@app.on_event("startup")
async def on_startup() -> None:
    init_db()
    logger.info("Serving question decks from %s", config.data.questions_dir)

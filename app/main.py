"""
Newspaper Backend - Main FastAPI Application
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import articles, publishers, users
from app.config import settings
from app.services.firebase_service import FirebaseService, InvalidStoreInput

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# Define lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared Firestore handle on startup and release it on shutdown"""
    logger.info("Starting %s v%s", settings.APP_NAME, settings.APP_VERSION)

    firebase = FirebaseService()
    app.state.firebase = firebase
    # The server keeps running even if the store is unreachable right now
    app.state.store_connected = await firebase.ping()

    yield

    logger.info("Shutting down %s", settings.APP_NAME)
    firebase.close()
    app.state.firebase = None


# Create FastAPI application with lifespan
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Newspaper Backend API - users, publishers and article moderation",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials="*" not in settings.allowed_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time to response headers"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed query parameters or bodies are client errors (400)"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(InvalidStoreInput)
async def invalid_store_input_handler(request: Request, exc: InvalidStoreInput):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": str(exc)},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.exception("Error in %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "message": "Server error",
            "error": str(exc) if settings.DEBUG else "Internal server error",
        },
    )


app.include_router(users.router)
app.include_router(publishers.router)
app.include_router(articles.router)


# Liveness endpoint
@app.get("/", tags=["Health"], response_class=PlainTextResponse)
async def root():
    return "📰 Newspaper server is running"


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Detailed health check endpoint"""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "store_connected": getattr(request.app.state, "store_connected", False),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG
    )

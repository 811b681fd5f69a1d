import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import firebase_admin
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from firebase_admin import credentials
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware

from config import settings
from middleware import RequestLoggingMiddleware
from routes.posts import envelope, router as posts_router
from services.firestore import FirestoreDB
from services.posts import PostService
from utils.errors import log_api_error
from utils.logger import setup_logging

setup_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize Firebase Admin SDK
    try:
        cred = credentials.Certificate(settings.firebase_credentials)
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        firebase_app = firebase_admin.initialize_app(cred, options)
    except (ValueError, OSError) as e:
        logger.error(f"Error initializing Firebase: {e}")
        raise
    logger.info("Connected to Firestore successfully")

    # Initialize dependencies
    firestore = FirestoreDB(firebase_app)
    app.state.firestore = firestore
    app.state.post_service = PostService(firestore)

    yield
    # Cleanup resources
    firebase_admin.delete_app(firebase_app)


app = FastAPI(title=settings.project_name, version=settings.api_version, lifespan=lifespan)

# log every incoming request
app.add_middleware(RequestLoggingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return envelope(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return envelope(status.HTTP_400_BAD_REQUEST, "Invalid request body")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    error_id = log_api_error(request, exc)
    return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Internal server error (Error ID: {error_id})")


# Include routers
app.include_router(posts_router, prefix="/api/posts", tags=["posts"])


@app.get("/health")
async def health():
    """Health check endpoint - returns service status"""
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


def run() -> None:
    """Serve the API with uvicorn; host and port come from HOST and PORT"""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()

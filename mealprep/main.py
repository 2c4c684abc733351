# main.py
# Main application file for the meal planning service.

import logging.config
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

# Import the CORS middleware
from fastapi.middleware.cors import CORSMiddleware

# Rate limiting
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Import local modules
from mealprep.db.session import engine
from mealprep.db.init_db import init_db
from mealprep.api import ai, collections, favorites, meal_plans, recipes
from mealprep.core.config import settings
from mealprep.core.errors import ConflictError, DomainError
from mealprep.core.logging_middleware import StructuredLoggingMiddleware
from mealprep.core.rate_limit import limiter

# Load logging configuration
if os.path.exists(settings.LOGGING_CONFIG):
    logging.config.fileConfig(settings.LOGGING_CONFIG, disable_existing_loggers=False)

# Get the logger instance
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Schema step runs once per process, never per request.
    init_db(engine)
    yield


# Initialize the FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for recipes, weekly meal plans, favorites and collections.",
    version="1.0.0",
    root_path=settings.ROOT_PATH,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state and register exception handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# --- Domain error handling ---

@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """
    Render every taxonomy error as {detail, code, errors}. Conflicts also
    carry cascade_available.
    """
    request.state.error_code = exc.code
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    elif isinstance(exc, ConflictError):
        logger.warning(f"{request.method} {request.url.path} conflict: {exc.message}")
    else:
        logger.debug(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# --- End of domain error handling ---

# --- Add Structured Logging Middleware ---
app.add_middleware(StructuredLoggingMiddleware)
# --- End of Structured Logging Middleware ---

# --- Add CORS Middleware ---
# Origins loaded from settings

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # Allows specified origins
    allow_credentials=True,  # Allows cookies to be included in requests
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],  # Explicit HTTP methods
    allow_headers=["Authorization", "Content-Type", "Accept"],  # Explicit headers
    expose_headers=["X-Total-Count"],  # Expose custom headers
)

# --- End of CORS Middleware Section ---

# --- Security Headers Middleware ---


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.ENVIRONMENT in ["development", "testing"]:
            # Relaxed to allow FastAPI Swagger UI assets
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "img-src 'self' data: https://fastapi.tiangolo.com; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net"
            )
        else:
            response.headers["Content-Security-Policy"] = "default-src 'self'"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# --- End of Security Headers Middleware ---

# Include API routers
app.include_router(recipes.router, prefix="/recipes", tags=["Recipes"])
app.include_router(meal_plans.router, prefix="/meal-plans", tags=["Meal Plans"])
app.include_router(favorites.router, prefix="/favorites", tags=["Favorites"])
app.include_router(collections.router, prefix="/collections", tags=["Collections"])
app.include_router(ai.router, prefix="/ai", tags=["AI Generation"])


@app.get("/", tags=["Root"])
async def read_root():
    """
    Root endpoint to check if the API is running.
    """
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Meal Planner API!"}


if __name__ == "__main__":
    # Development entry point; production runs uvicorn behind a process manager.
    uvicorn.run("mealprep.main:app", host="0.0.0.0", port=8000, reload=True)

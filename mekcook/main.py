from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from mekcook.core.blacklist import TokenBlacklist
from mekcook.core.config import get_settings
from mekcook.core.exceptions import AppException, AuthError, NotFoundException
from mekcook.core.security import TokenCodec
from mekcook.routers.auth import router as auth_router
from mekcook.routers.health import router as health_router
from mekcook.routers.recipes import router as recipes_router
from mekcook.routers.schedules import router as schedules_router

logger = logging.getLogger(__name__)

settings = get_settings()

# Expected outcomes that are not worth a log line
IGNORED_EXCEPTIONS = (NotFoundException,)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the token blacklist and codec once per process.

    A missing or unusable JWT secret raises here, so the service refuses
    to start instead of failing on the first login.
    """
    blacklist = TokenBlacklist(settings.TOKEN_BLACKLIST_PATH, settings.TOKEN_BLACKLIST_MAX_SIZE)
    app.state.token_blacklist = blacklist
    app.state.token_codec = TokenCodec.from_settings(settings, blacklist)
    logger.info(f"Token blacklist at {blacklist.path} (max_size={blacklist.max_size})")
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Recipe management API - Recipes, meal schedules, and token-based authentication.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Render application exceptions with their code; credential failures all look alike."""
    if isinstance(exc, AuthError):
        logger.info(f"Rejected credential on {request.method} {request.url.path}: {exc.reason.value}")
    elif not isinstance(exc, IGNORED_EXCEPTIONS):
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(debug=settings.DEBUG),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "status_code": 422,
            "code": "VALIDATION_ERROR",
            "detail": "Invalid input",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes and framework-level HTTP errors."""
    if exc.status_code == 404:
        code = "NOT_FOUND"
        detail = f"The requested URL {request.url.path} was not found on this server."
    else:
        code = "HTTP_ERROR"
        detail = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error",
            "status_code": exc.status_code,
            "code": code,
            "detail": detail,
        },
        headers=getattr(exc, "headers", None),
    )


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
app.include_router(health_router)
app.include_router(auth_router, prefix="/api")
app.include_router(recipes_router, prefix="/api")
app.include_router(schedules_router, prefix="/api")


@app.get("/")
def read_root():
    return {
        "message": "Welcome to MekCook API",
        "docs": "/docs",
        "health": "/health"
    }

"""
FastAPI main application.

Entry point for the Alphalert trading simulator.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.core.responses import app_exception_response, error_json_response
from app.shared.exceptions import AppException
from app.utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    The service holds no connections between requests; every request
    builds and closes its own clients.
    """
    logger.info("Starting application...")
    if settings and not settings.TELEGRAM_BOT_TOKEN:
        logger.warning("TELEGRAM_BOT_TOKEN is not set; simulator endpoints will fail")
    logger.info("Application started successfully")

    yield

    logger.info("Application shut down successfully")


# API Description
API_DESCRIPTION = """
## 📈 Alphalert Trading Simulator API

Paper-trades upstream signals with a trailing-stop / hard-stop exit model.
State lives in a single JSON document pinned in a Telegram channel.

### 📮 Response Format

**Success Response:**
```json
{
  "status_code": 200,
  "message": "Operation successful",
  "data": { ... },
  "error": null
}
```

**Error Response:**
```json
{
  "status_code": 409,
  "message": "Operation failed",
  "data": null,
  "error": {
    "code": "CONCURRENT_MODIFICATION",
    "message": "Detailed error message"
  }
}
```
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME if settings else "Alphalert Trading Simulator",
    version=settings.APP_VERSION if settings else "1.0.0",
    description=API_DESCRIPTION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if settings else ["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Errors raised outside route bodies (e.g. while building dependencies)."""
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return app_exception_response(exc, "Request failed")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    )
    return error_json_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation failed",
        error_code="VALIDATION_ERROR",
        error_message=details or "Invalid request"
    )


# Include routers
from app.modules.positions.router import router as simulator_router

app.include_router(simulator_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.APP_NAME if settings else "Alphalert Trading Simulator",
        "version": settings.APP_VERSION if settings else "1.0.0",
        "status": "running",
        "endpoints": [
            "POST /api/new-signal",
            "GET /api/check-positions",
            "GET /api/stats",
            "POST /api/reset",
            "POST /api/restore-db",
        ],
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME if settings else "Alphalert Trading Simulator",
        "version": settings.APP_VERSION if settings else "1.0.0"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST if settings else "0.0.0.0",
        port=settings.PORT if settings else 8000,
        reload=bool(settings and settings.DEBUG),
    )

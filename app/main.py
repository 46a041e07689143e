"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import download_router, router
from app.config import settings
from app.services.container import build_container
from app.utils.logger import logger

UPLOAD_HINT = (
    "Use Content-Type: multipart/form-data with fields 'phoneNumber' and 'pdf'. "
    "Example: curl -X POST ... -F 'phoneNumber=9876543210' -F 'pdf=@receipt.pdf'"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    settings.ensure_directories()

    container = getattr(app.state, "container", None) or build_container(settings)
    app.state.container = container
    container.scheduler.start()

    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Storage Type: {settings.storage_type}")
    logger.info(f"Health Check: {settings.public_base_url}/api/health")
    logger.info("Application startup complete")
    yield
    # Shutdown
    container.scheduler.shutdown()
    logger.info("Application shutdown")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Upload a PDF and deliver it to a WhatsApp number through the Exotel API.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(download_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return the pipeline's 400 shape instead of FastAPI's 422 detail list."""
    detail = exc.errors()
    logger.warning("Validation error on %s: %s", request.url.path, detail)
    payload: dict[str, object] = {"success": False, "message": "Invalid request"}
    if request.url.path.startswith("/api/upload/"):
        payload["message"] = "Invalid upload request"
        payload["hint"] = UPLOAD_HINT
    return JSONResponse(status_code=400, content=payload)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal Server Error"},
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
    }

"""API routes: upload a PDF and deliver it via WhatsApp, serve temporary downloads."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse, Response, StreamingResponse

from app.api.dependencies import get_container
from app.models.delivery import UploadRequest
from app.services.container import ServiceContainer
from app.services.whatsapp_service import DeliveryError, sanitize_filename
from app.storage import S3StorageBackend, StorageError
from app.utils.logger import logger
from app.utils.validators import ValidationError, validate_extension, validate_phone_number

router = APIRouter(prefix="/api", tags=["delivery"])
download_router = APIRouter(tags=["downloads"])

PDF_CONTENT_TYPE = "application/pdf"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _failure(status_code: int, message: str, error: str | None = None) -> JSONResponse:
    payload: dict[str, object] = {"success": False, "message": message}
    if error is not None:
        payload["error"] = error
    return JSONResponse(status_code=status_code, content=payload)


async def _read_upload(file: UploadFile, limit: int) -> bytes:
    """Read at most ``limit + 1`` bytes; anything longer is over the limit anyway."""
    try:
        return await file.read(limit + 1)
    finally:
        await file.close()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/upload/send-pdf", status_code=status.HTTP_200_OK)
async def send_pdf(
        phone_number: str | None = Form(None, alias="phoneNumber", description="Destination WhatsApp number"),
        pdf: UploadFile | None = File(None, description="PDF document to deliver"),
        container: ServiceContainer = Depends(get_container),
) -> JSONResponse:
    """Store the uploaded PDF and send it to the number as a WhatsApp document."""
    try:
        if pdf is None or not pdf.filename:
            logger.warning("No file provided in request")
            raise ValidationError("No PDF file provided")
        validate_extension(pdf.filename, container.config.allowed_extensions)

        if not validate_phone_number(phone_number):
            logger.warning(f"Invalid phone number attempted: {phone_number}")
            raise ValidationError("Invalid WhatsApp number format. Please enter 10-15 digits.")

        content = await _read_upload(pdf, container.config.max_upload_bytes)
        request = UploadRequest.from_bytes(
            phone_number=phone_number,
            content=content,
            original_name=pdf.filename,
            mime_type=pdf.content_type or "",
        )
        receipt = await container.pipeline.run(request)

    except ValidationError as exc:
        return _failure(status.HTTP_400_BAD_REQUEST, exc.reason)
    except StorageError as exc:
        logger.error(f"Storage error: {exc}")
        return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to store PDF file")
    except DeliveryError as exc:
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to send WhatsApp message",
            error=exc.message,
        )
    except Exception as exc:
        logger.error(f"Unexpected error in send-pdf: {exc}", exc_info=True)
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            error=str(exc),
        )

    return JSONResponse(
        content={
            "success": True,
            "message": "PDF sent successfully via WhatsApp",
            "messageId": receipt.message_id,
            "phoneNumber": receipt.phone_number,
            "fileName": receipt.file_name,
            "timestamp": receipt.timestamp.isoformat(),
        }
    )


@router.get("/health")
async def health(container: ServiceContainer = Depends(get_container)) -> dict:
    """Health check endpoint."""
    return {
        "status": "OK",
        "timestamp": datetime.now(UTC).isoformat(),
        "storage": container.config.storage_type,
        "environment": container.config.environment,
    }


@download_router.api_route("/download/{grant_id}", methods=["GET", "HEAD"])
async def download_document(grant_id: str, container: ServiceContainer = Depends(get_container)):
    """Serve a locally stored document while its access grant is live."""
    target = container.grants.resolve(grant_id)
    if target is None:
        logger.warning(f"Invalid or expired download request: {grant_id}")
        return _failure(status.HTTP_404_NOT_FOUND, "File not found or link has expired")

    path = Path(target)
    loop = asyncio.get_running_loop()
    if not await loop.run_in_executor(None, path.is_file):
        logger.error(f"File not found on disk: {path}")
        return _failure(status.HTTP_404_NOT_FOUND, "File not found")

    logger.info(f"File served: {path}")
    return FileResponse(
        path,
        media_type=PDF_CONTENT_TYPE,
        filename=path.name,
        content_disposition_type="inline",
    )


@download_router.api_route("/download-object", methods=["GET", "HEAD"])
async def download_object(
        request: Request,
        file_id: str = Query("", alias="fileId"),
        container: ServiceContainer = Depends(get_container),
):
    """Stream an object-storage document for deployments using the proxy URL profile."""
    storage = container.storage
    if not isinstance(storage, S3StorageBackend) or storage.url_mode != "proxy":
        return Response(status_code=status.HTTP_404_NOT_FOUND, media_type="text/plain", content="Not Found")

    key = file_id.strip()
    if not key:
        return Response(status_code=status.HTTP_400_BAD_REQUEST, media_type="text/plain", content="Missing fileId")
    if ".." in key or key.startswith("/"):
        return Response(status_code=status.HTTP_400_BAD_REQUEST, media_type="text/plain", content="Invalid fileId")
    if not storage.owns_key(key):
        return Response(status_code=status.HTTP_400_BAD_REQUEST, media_type="text/plain", content="Invalid fileId path")

    try:
        if not await storage.exists(key):
            logger.warning(f"download-object: file not found, fileId={key}")
            return Response(status_code=status.HTTP_404_NOT_FOUND, media_type="text/plain", content="File not found")

        headers = {"Content-Disposition": f'attachment; filename="{sanitize_filename(PurePosixPath(key).name)}"'}
        if request.method == "HEAD":
            return Response(status_code=status.HTTP_200_OK, media_type=PDF_CONTENT_TYPE, headers=headers)

        body = await storage.open_stream(key)
    except StorageError as exc:
        logger.error(f"download-object error: {exc}")
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, media_type="text/plain", content="Internal error")

    return StreamingResponse(body.iter_chunks(), media_type=PDF_CONTENT_TYPE, headers=headers)

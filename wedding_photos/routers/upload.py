import asyncio
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile as FormFile

from ..core.config import settings
from ..core.errors import BadRequestError, NoFileError, NotConfiguredError
from ..core.logging_config import get_logger
from ..core.models import BulkUploadResponse, ErrorResponse, UploadResponse, UploadResult
from ..pipeline import (
    BULK_FALLBACK_ERROR,
    MAX_FILES_PER_REQUEST,
    process_upload,
    publish_photo,
    require_folder,
    resolve_content_type,
    sanitize_guest_name,
    validate_upload,
)

router = APIRouter(prefix="/api/upload", tags=["upload"])
logger = get_logger(__name__)

UPLOAD_FAILED = "Error al subir la foto. Intenta de nuevo."
BULK_FAILED = "Error al procesar las fotos"


@router.post(
    "",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Upload one photo",
    description=(
        "Multipart form-data.\n\n"
        "Fields:\n"
        "- `photo` (required): JPEG, PNG, WebP or HEIC, at most 10MB.\n"
        "- `guestName` (optional): shown as the uploader in the gallery.\n\n"
        "The photo is auto-rotated, fitted within 2000x2000 and stored as JPEG."
    ),
)
async def upload_photo(
    photo: Optional[UploadFile] = File(None),
    guestName: Optional[str] = Form(None),
):
    try:
        folder_id = require_folder(settings.gallery_folder_id)
        if photo is None:
            raise NoFileError()
        data = await photo.read()
        validate_upload(resolve_content_type(photo.content_type, photo.filename), len(data))

        uploaded = await run_in_threadpool(
            publish_photo,
            data_bytes=data,
            guest_name=sanitize_guest_name(guestName),
            folder_id=folder_id,
        )
        return UploadResponse(photo=uploaded)
    except BadRequestError as e:
        logger.warning("upload_rejected", reason=type(e).__name__)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except NotConfiguredError as e:
        logger.error("upload_not_configured")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        logger.exception("upload_failed")
        raise HTTPException(status_code=500, detail=UPLOAD_FAILED)


async def _upload_one(form_file: FormFile, guest_name: str, folder_id: str) -> UploadResult:
    data = await form_file.read()
    return await run_in_threadpool(
        process_upload,
        original_name=form_file.filename or "",
        content_type=resolve_content_type(form_file.content_type, form_file.filename),
        data_bytes=data,
        guest_name=guest_name,
        folder_id=folder_id,
    )


@router.post(
    "/bulk",
    response_model=BulkUploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    response_model_exclude_none=True,
    summary="Upload up to 10 photos",
    description=(
        "Multipart form-data with the files in `photo0` .. `photo9` and an optional `guestName`.\n\n"
        "Files are processed concurrently and independently: a bad file is reported in "
        "`results` without failing the others."
    ),
)
async def upload_bulk(request: Request):
    try:
        folder_id = require_folder(settings.gallery_folder_id)
        form = await request.form()
        guest_field = form.get("guestName")
        guest_name = sanitize_guest_name(guest_field if isinstance(guest_field, str) else None)

        files: List[FormFile] = [
            value for key, value in form.multi_items()
            if key.startswith("photo") and isinstance(value, FormFile)
        ]
        if not files:
            raise BadRequestError("No se enviaron fotos")
        if len(files) > MAX_FILES_PER_REQUEST:
            raise BadRequestError(f"Máximo {MAX_FILES_PER_REQUEST} fotos por solicitud")

        outcomes = await asyncio.gather(
            *(_upload_one(f, guest_name, folder_id) for f in files),
            return_exceptions=True,
        )
    except BadRequestError as e:
        logger.warning("bulk_upload_rejected", reason=e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except NotConfiguredError as e:
        logger.error("bulk_upload_not_configured")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        logger.exception("bulk_upload_failed")
        raise HTTPException(status_code=500, detail=BULK_FAILED)

    # Unexpected per-file errors stay isolated to that file
    results: List[UploadResult] = []
    for form_file, outcome in zip(files, outcomes):
        if isinstance(outcome, BaseException):
            logger.error(
                "bulk_file_crashed",
                original_name=form_file.filename,
                exc_info=(type(outcome), outcome, outcome.__traceback__),
            )
            outcome = UploadResult(originalName=form_file.filename or "", success=False, error=BULK_FALLBACK_ERROR)
        results.append(outcome)

    uploaded = sum(1 for r in results if r.success)
    logger.info("bulk_upload_done", total=len(results), uploaded=uploaded, failed=len(results) - uploaded)
    return BulkUploadResponse(
        total=len(results),
        uploaded=uploaded,
        failed=len(results) - uploaded,
        results=results,
    )

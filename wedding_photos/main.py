from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .core.errors import BadRequestError
from .core.logging_config import configure_logging, get_logger
from .routers.image import router as image_router
from .routers.pages import router as pages_router
from .routers.photos import router as photos_router
from .routers.upload import router as upload_router

STATIC_DIR = Path(__file__).resolve().parent / "static"

configure_logging()
logger = get_logger(__name__)

tags_metadata = [
    {
        "name": "upload",
        "description": (
            "Guests upload photos here.\n\n"
            "- JPEG/PNG/WebP/HEIC, 10MB per file.\n"
            "- Photos are auto-rotated, fitted within 2000x2000 and stored as JPEG.\n"
            "- Bulk upload takes up to 10 files and reports each one separately."
        ),
    },
    {"name": "photos", "description": "Paginated gallery listing, newest first."},
    {"name": "image", "description": "Photo bytes, optionally scaled down, cached forever."},
]

app = FastAPI(
    title="Wedding Photos",
    description=(
        "How to Use:\n\n"
        "1) Upload: POST /api/upload with `photo` and optional `guestName`, or POST /api/upload/bulk "
        "with `photo0`..`photo9`.\n"
        "2) List: GET /api/photos with optional `pageSize` (max 50) and `pageToken`.\n"
        "3) View: GET /api/image/{id}, add `?w=400` for a thumbnail.\n\n"
        "The browser pages live at / , /galeria and /subir."
    ),
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


@app.exception_handler(HTTPException)
async def error_body(request: Request, exc: HTTPException):
    # Browser code reads `error`, not FastAPI's default `detail`
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def invalid_request(request: Request, exc: RequestValidationError):
    # A malformed field is a caller mistake like any other
    logger.warning("request_invalid", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse({"error": BadRequestError.default_message}, status_code=400)


app.include_router(upload_router)
app.include_router(photos_router)
app.include_router(image_router)
app.include_router(pages_router)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response, StreamingResponse

from ..aws.storage import get_image_stream
from ..core.errors import PhotoNotFoundError, TransformError
from ..core.logging_config import get_logger
from ..core.models import ErrorResponse
from ..imaging import make_thumbnail, wants_thumbnail

router = APIRouter(prefix="/api/image", tags=["image"])
logger = get_logger(__name__)

# Photo ids never get new bytes, so caches may keep them forever
CACHE_CONTROL = "public, max-age=31536000, immutable"
IMAGE_FAILED = "Error al cargar la imagen"


def _width(raw: Optional[str]) -> int:
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0


@router.get(
    "/{image_id}",
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Fetch a photo",
    description=(
        "Streams the stored JPEG.\n\n"
        "With `w` between 1 and 800 the photo is scaled down to that width "
        "(never up) and re-encoded; any other value returns the original bytes."
    ),
)
def get_image(
    image_id: str,
    w: Optional[str] = Query(None, description="Target width in pixels, 0 disables resizing"),
):
    if not image_id.strip():
        raise HTTPException(status_code=400, detail="ID de imagen requerido")

    width = _width(w)
    headers = {"Cache-Control": CACHE_CONTROL}
    try:
        info = get_image_stream(image_id)

        if wants_thumbnail(width):
            thumb = make_thumbnail(info["body"].read(), width)
            return Response(content=thumb, media_type="image/jpeg", headers=headers)

        def _iter():
            stream = info["body"]
            while True:
                chunk = stream.read(8192)
                if not chunk:
                    break
                yield chunk

        if info.get("content_length") is not None:
            headers["Content-Length"] = str(info["content_length"])
        return StreamingResponse(_iter(), media_type=info["content_type"], headers=headers)
    except PhotoNotFoundError as e:
        logger.warning("image_not_found", image_id=image_id)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except TransformError:
        logger.error("image_transform_failed", image_id=image_id, width=width)
        raise HTTPException(status_code=500, detail=IMAGE_FAILED)
    except Exception:
        logger.exception("image_fetch_failed", image_id=image_id)
        raise HTTPException(status_code=500, detail=IMAGE_FAILED)

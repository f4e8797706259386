from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from starlette.concurrency import run_in_threadpool

from ..aws.storage import list_photos as list_store
from ..core.config import settings
from ..core.errors import BadRequestError, NotConfiguredError
from ..core.logging_config import get_logger
from ..core.models import ErrorResponse, ListResponse
from ..pipeline import require_folder, to_photo_out

router = APIRouter(prefix="/api/photos", tags=["photos"])
logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50
LIST_FAILED = "Error al cargar las fotos"


def clamp_page_size(raw: Optional[str]) -> int:
    """Parse `pageSize` leniently: junk means the default, and it stays within 1..50."""
    try:
        size = int(raw) if raw not in (None, "") else DEFAULT_PAGE_SIZE
    except ValueError:
        size = DEFAULT_PAGE_SIZE
    return max(1, min(size, MAX_PAGE_SIZE))


@router.get(
    "",
    response_model=ListResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="List photos",
    description=(
        "Newest photos first.\n\n"
        "Query params:\n"
        "- `pageSize`: photos per page, default 20, at most 50.\n"
        "- `pageToken`: the `nextPageToken` of the previous page.\n\n"
        "`hasMore` is false on the last page and `nextPageToken` is then null."
    ),
)
async def list_photos(
    pageToken: Optional[str] = Query(None, description="Opaque cursor from the previous page"),
    pageSize: Optional[str] = Query(None, description="Photos per page (max 50)"),
):
    try:
        folder_id = require_folder(settings.gallery_folder_id)
        items, next_token = await run_in_threadpool(
            list_store, folder_id, clamp_page_size(pageSize), pageToken or None
        )
        return ListResponse(
            photos=[to_photo_out(item) for item in items],
            nextPageToken=next_token,
            hasMore=bool(next_token),
        )
    except BadRequestError as e:
        logger.warning("list_rejected", reason=e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except NotConfiguredError as e:
        logger.error("list_not_configured")
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        logger.exception("list_failed", page_token=pageToken)
        raise HTTPException(status_code=500, detail=LIST_FAILED)

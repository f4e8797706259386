from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

PAGES_DIR = Path(__file__).resolve().parent.parent / "pages"

router = APIRouter(tags=["pages"], include_in_schema=False)


def _page(name: str) -> FileResponse:
    return FileResponse(PAGES_DIR / name, media_type="text/html")


@router.get("/")
def home():
    return _page("index.html")


@router.get("/galeria")
def gallery():
    return _page("galeria.html")


@router.get("/subir")
def upload():
    return _page("subir.html")

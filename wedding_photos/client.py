"""HTTP client side of the gallery: the same flows the browser pages run.

``UploadQueue`` mirrors the upload page (intake filter, batches of ten sent
one after another, per-file status) and ``GalleryPager`` mirrors the gallery's
infinite scroll (one page request at a time, stop when no cursor comes back).
Both take an ``httpx.Client`` pointed at a running service.
"""

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import httpx

from .core.logging_config import get_logger
from .pipeline import (
    ALLOWED_IMAGE_CONTENT_TYPES,
    CONTENT_TYPES_BY_EXTENSION,
    MAX_FILE_SIZE,
    MAX_FILES_PER_REQUEST,
)

logger = get_logger(__name__)

PENDING = "pending"
UPLOADING = "uploading"
SUCCESS = "success"
ERROR = "error"

DOWNLOAD_DELAY = 0.3


@dataclass
class QueuedFile:
    path: Path
    content_type: str
    status: str = PENDING
    photo_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name


class UploadQueue:
    def __init__(self, guest_name: Optional[str] = None, batch_size: int = MAX_FILES_PER_REQUEST):
        self.guest_name = guest_name
        self.batch_size = min(batch_size, MAX_FILES_PER_REQUEST)
        self.files: List[QueuedFile] = []
        self.rejected: List[Path] = []

    def add(self, path) -> bool:
        """Queue `path` if it is an allowed image of at most 10MB."""
        path = Path(path)
        content_type = CONTENT_TYPES_BY_EXTENSION.get(path.suffix.lower())
        if (
            content_type not in ALLOWED_IMAGE_CONTENT_TYPES
            or not path.is_file()
            or path.stat().st_size > MAX_FILE_SIZE
        ):
            logger.info("file_rejected", path=str(path))
            self.rejected.append(path)
            return False
        self.files.append(QueuedFile(path=path, content_type=content_type))
        return True

    def add_many(self, paths: Iterable) -> int:
        return sum(1 for p in paths if self.add(p))

    def remove(self, path) -> None:
        path = Path(path)
        self.files = [f for f in self.files if not (f.path == path and f.status == PENDING)]

    @property
    def pending(self) -> List[QueuedFile]:
        return [f for f in self.files if f.status != SUCCESS]

    def batches(self) -> List[List[QueuedFile]]:
        todo = self.pending
        return [todo[i:i + self.batch_size] for i in range(0, len(todo), self.batch_size)]

    def _submit(self, client: httpx.Client, batch: List[QueuedFile]) -> None:
        for f in batch:
            f.status = UPLOADING
        files = [
            (f"photo{index}", (f.name, f.path.read_bytes(), f.content_type))
            for index, f in enumerate(batch)
        ]
        try:
            resp = client.post(
                "/api/upload/bulk",
                data={"guestName": self.guest_name or "Invitado"},
                files=files,
            )
            resp.raise_for_status()
            results = resp.json().get("results", [])
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("batch_failed", files=[f.name for f in batch], error=str(e))
            for f in batch:
                f.status = ERROR
                f.error = "Error al subir"
            return

        # Results come back in request order; names can repeat across folders
        for index, f in enumerate(batch):
            result = results[index] if index < len(results) else None
            if result and result.get("success"):
                f.status = SUCCESS
                f.photo_id = result.get("id")
                f.error = None
            else:
                f.status = ERROR
                f.error = (result or {}).get("error", "Sin respuesta del servidor")

    def upload(self, client: httpx.Client) -> Dict[str, int]:
        """Send every non-uploaded file, one batch after another."""
        for batch in self.batches():
            self._submit(client, batch)
        summary = {
            "uploaded": sum(1 for f in self.files if f.status == SUCCESS),
            "failed": sum(1 for f in self.files if f.status == ERROR),
        }
        logger.info("queue_uploaded", **summary)
        return summary


class GalleryPager:
    def __init__(self, client: httpx.Client, page_size: int = 20):
        self.client = client
        self.page_size = page_size
        self.photos: List[dict] = []
        self.next_page_token: Optional[str] = None
        self.has_more = True
        self._started = False
        self._in_flight = threading.Lock()

    def load_more(self) -> List[dict]:
        """Fetch the next page; returns [] when exhausted or a fetch is already running."""
        if not self.has_more:
            return []
        if self._started and not self.next_page_token:
            return []
        if not self._in_flight.acquire(blocking=False):
            return []
        try:
            params = {"pageSize": self.page_size}
            if self.next_page_token:
                params["pageToken"] = self.next_page_token
            resp = self.client.get("/api/photos", params=params)
            resp.raise_for_status()
            data = resp.json()
        finally:
            self._in_flight.release()

        self._started = True
        page = data.get("photos", [])
        self.photos.extend(page)
        self.next_page_token = data.get("nextPageToken") or None
        self.has_more = bool(data.get("hasMore", self.next_page_token))
        return page

    def __iter__(self) -> Iterator[dict]:
        yield from self.photos
        while True:
            page = self.load_more()
            if not page:
                return
            yield from page


def download_photos(
    client: httpx.Client,
    photos: Iterable[dict],
    dest,
    delay: float = DOWNLOAD_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Path]:
    """Save each photo's full-size bytes into `dest`, pausing between downloads."""
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    saved: List[Path] = []
    for photo in photos:
        target = dest / (photo.get("name") or f"foto-{photo['id']}.jpg")
        try:
            resp = client.get(photo["fullSize"])
            resp.raise_for_status()
            target.write_bytes(resp.content)
            saved.append(target)
        except httpx.HTTPError as e:
            logger.warning("download_failed", photo_id=photo.get("id"), error=str(e))
        sleep(delay)
    return saved

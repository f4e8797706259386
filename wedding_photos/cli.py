"""Operator tasks, exposed as the ``wedding-photos`` command.

    wedding-photos bootstrap
    wedding-photos upload --directory ./fotos --guest-name "Tía Carmen"
    wedding-photos download --dest ./copia
"""

import os

import httpx
from invoke import Collection, Program, task
from dotenv import load_dotenv

from .aws.storage import ensure_resources
from .client import CONTENT_TYPES_BY_EXTENSION, GalleryPager, UploadQueue, download_photos
from .core.config import reload_settings
from .core.logging_config import configure_logging, get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"


def _http_client(base_url: str) -> httpx.Client:
    return httpx.Client(base_url=base_url)


def _load_env(env_file: str) -> None:
    if os.path.exists(env_file):
        load_dotenv(dotenv_path=env_file)
    reload_settings()
    configure_logging(force=True)


@task
def bootstrap(c, env_file=".env"):
    """Create the photo bucket and catalog table if they do not exist yet."""
    _load_env(env_file)
    created = ensure_resources()
    print(f"bucket created: {created['bucket']}, table created: {created['table']}")


@task(help={"directory": "Folder with the photos", "recursive": "Also look in subfolders"})
def upload(c, directory, guest_name="", base_url=DEFAULT_BASE_URL, recursive=False, env_file=".env"):
    """Upload every supported image in a folder through the bulk endpoint."""
    _load_env(env_file)
    if not os.path.isdir(directory):
        logger.error("directory_not_found", directory=directory)
        return

    paths = []
    if recursive:
        for root, _, names in os.walk(directory):
            paths.extend(os.path.join(root, n) for n in sorted(names))
    else:
        paths = [os.path.join(directory, n) for n in sorted(os.listdir(directory))]
    paths = [p for p in paths if os.path.splitext(p)[1].lower() in CONTENT_TYPES_BY_EXTENSION]

    queue = UploadQueue(guest_name=guest_name or None)
    queue.add_many(paths)
    if not queue.files:
        logger.warning("nothing_to_upload", directory=directory, rejected=len(queue.rejected))
        return

    with _http_client(base_url) as client:
        summary = queue.upload(client)
    for f in queue.files:
        print(f"{f.status:>8}  {f.name}" + (f"  ({f.error})" if f.error else ""))
    print(f"{summary['uploaded']} uploaded, {summary['failed']} failed, {len(queue.rejected)} skipped")


@task
def download(c, dest, base_url=DEFAULT_BASE_URL, page_size=50, env_file=".env"):
    """Download the whole gallery into `dest`, newest first."""
    _load_env(env_file)
    with _http_client(base_url) as client:
        pager = GalleryPager(client, page_size=int(page_size))
        saved = download_photos(client, pager, dest)
    print(f"{len(saved)} photos saved to {dest}")


namespace = Collection(bootstrap, upload, download)
program = Program(namespace=namespace, name="wedding-photos", version="0.1.0")

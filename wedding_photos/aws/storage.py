"""Storage helpers for creating, publishing, listing and fetching photos.

A photo lives in two places: the JPEG bytes in S3 and a catalog item in
DynamoDB that the gallery pages through. Writing one is a three-phase
operation and is NOT atomic:

1. ``put_object`` creates the object, private;
2. ``put_object_acl`` grants public read;
3. ``put_item`` records it in the catalog.

Listings only read the catalog, so a photo shows up only once it is public.
Between phase 1 and phase 3 the object exists but nobody can find it. If
phase 2 or 3 fails the object is deleted again on a best-effort basis; a
failed cleanup leaves an orphan object that no listing will ever return.
"""

import base64
import binascii
import json
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import settings
from ..core.errors import BadRequestError, PhotoNotFoundError, StorageError
from ..core.logging_config import get_logger
from .clients import dynamodb as dynamodb_client_factory
from .clients import dynamodb_table as dynamodb_table_factory
from .clients import s3 as s3_client_factory

FOLDER_INDEX = "by_folder_created"
PROVIDER_ERRORS = (BotoCoreError, ClientError)

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _create_object(s3, *, object_key: str, data_bytes: bytes, content_type: str) -> None:
    s3.put_object(
        Bucket=settings.bucket_name,
        Key=object_key,
        Body=data_bytes,
        ContentType=content_type,
    )


def _grant_public_read(s3, *, object_key: str) -> None:
    s3.put_object_acl(Bucket=settings.bucket_name, Key=object_key, ACL="public-read")


def _discard_object(s3, *, object_key: str) -> None:
    try:
        s3.delete_object(Bucket=settings.bucket_name, Key=object_key)
        logger.info("orphan_object_deleted", object_key=object_key)
    except PROVIDER_ERRORS:
        logger.exception("orphan_object_cleanup_failed", object_key=object_key)


def store_photo(
    *,
    data_bytes: bytes,
    folder_id: str,
    name: str,
    description: str,
    content_type: str = "image/jpeg",
) -> Dict[str, Any]:
    """Create the object, make it public, then add it to the catalog.

    Returns the catalog item. Raises StorageError when any phase fails.
    """
    image_id = uuid.uuid4().hex
    object_key = f"{folder_id}/{image_id}/{name}"
    s3 = s3_client_factory()

    try:
        _create_object(s3, object_key=object_key, data_bytes=data_bytes, content_type=content_type)
    except PROVIDER_ERRORS as e:
        logger.exception("object_create_failed", object_key=object_key)
        raise StorageError() from e

    item: Dict[str, Any] = {
        "image_id": image_id,
        "folder_id": folder_id,
        "created_at": _now_ms(),
        "name": name,
        "description": description,
        "content_type": content_type,
        "size": len(data_bytes),
        "bucket_name": settings.bucket_name,
        "object_key": object_key,
    }
    try:
        _grant_public_read(s3, object_key=object_key)
        dynamodb_table_factory().put_item(Item=item)
    except PROVIDER_ERRORS as e:
        logger.exception("photo_publish_failed", image_id=image_id, object_key=object_key)
        _discard_object(s3, object_key=object_key)
        raise StorageError() from e

    logger.info("photo_stored", image_id=image_id, object_key=object_key, size=item["size"])
    return item


def encode_cursor(item: Dict[str, Any]) -> str:
    """Build an opaque resume token from the last item of a page."""
    key = {
        "image_id": item["image_id"],
        "folder_id": item["folder_id"],
        "created_at": int(item["created_at"]),
    }
    raw = json.dumps(key, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> Dict[str, Any]:
    padded = token + "=" * (-len(token) % 4)
    try:
        key = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError) as e:
        raise BadRequestError("Token de página no válido") from e
    if not isinstance(key, dict) or set(key) != {"image_id", "folder_id", "created_at"}:
        raise BadRequestError("Token de página no válido")
    if not isinstance(key["created_at"], int):
        raise BadRequestError("Token de página no válido")
    return key


def list_photos(
    folder_id: str,
    page_size: int,
    page_token: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], Optional[str]]:
    """Return one page of catalog items, newest first, plus the next cursor.

    One item beyond the page is requested so the cursor is only issued when
    something actually follows.
    """
    exclusive_start_key = decode_cursor(page_token) if page_token else None
    if exclusive_start_key is not None and exclusive_start_key["folder_id"] != folder_id:
        raise BadRequestError("Token de página no válido")

    table = dynamodb_table_factory()
    items: List[Dict[str, Any]] = []
    try:
        while True:
            params: Dict[str, Any] = {
                "IndexName": FOLDER_INDEX,
                "KeyConditionExpression": Key("folder_id").eq(folder_id),
                "FilterExpression": Attr("content_type").begins_with("image/"),
                "ScanIndexForward": False,
                "Limit": page_size + 1 - len(items),
            }
            if exclusive_start_key is not None:
                params["ExclusiveStartKey"] = exclusive_start_key

            resp = table.query(**params)
            items.extend(resp.get("Items", []))
            exclusive_start_key = resp.get("LastEvaluatedKey")
            if len(items) > page_size or not exclusive_start_key:
                break
    except PROVIDER_ERRORS as e:
        logger.exception("photo_list_failed", folder_id=folder_id)
        raise StorageError() from e

    next_token = None
    if len(items) > page_size:
        items = items[:page_size]
        next_token = encode_cursor(items[-1])
    return items, next_token


def get_photo_record(image_id: str) -> Dict[str, Any]:
    try:
        resp = dynamodb_table_factory().get_item(Key={"image_id": image_id})
    except PROVIDER_ERRORS as e:
        logger.exception("photo_lookup_failed", image_id=image_id)
        raise StorageError() from e
    item = resp.get("Item")
    if not item:
        raise PhotoNotFoundError()
    return item


def get_image_stream(image_id: str) -> Dict[str, Any]:
    """Fetch S3 object stream and basic headers for an image by id.

    Returns a dict with keys: body (StreamingBody), content_type, filename,
    content_length.
    """
    item = get_photo_record(image_id)
    try:
        obj = s3_client_factory().get_object(Bucket=item["bucket_name"], Key=item["object_key"])
    except PROVIDER_ERRORS as e:
        logger.exception("object_fetch_failed", image_id=image_id, object_key=item["object_key"])
        raise StorageError() from e

    return {
        "body": obj["Body"],
        "content_type": obj.get("ContentType") or item.get("content_type") or "image/jpeg",
        "content_length": obj.get("ContentLength"),
        "filename": item.get("name", "foto.jpg"),
    }


def created_at_iso(created_at: Any) -> str:
    """Epoch milliseconds as an RFC 3339 UTC timestamp."""
    moment = datetime.fromtimestamp(int(created_at) / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _bucket_exists(s3) -> bool:
    try:
        s3.head_bucket(Bucket=settings.bucket_name)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") in ("404", "NoSuchBucket", "NotFound"):
            return False
        raise
    return True


def ensure_resources() -> Dict[str, bool]:
    """Create the bucket and the catalog table when missing.

    The bucket is set up so per-object ACLs are honoured, which the publish
    phase of ``store_photo`` relies on. Returns which resources were created.
    """
    s3 = s3_client_factory()
    ddb = dynamodb_client_factory()
    created = {"bucket": False, "table": False}

    if not _bucket_exists(s3):
        params: Dict[str, Any] = {"Bucket": settings.bucket_name}
        if settings.aws_region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": settings.aws_region}
        s3.create_bucket(**params)
        created["bucket"] = True
    s3.put_bucket_ownership_controls(
        Bucket=settings.bucket_name,
        OwnershipControls={"Rules": [{"ObjectOwnership": "ObjectWriter"}]},
    )
    s3.delete_public_access_block(Bucket=settings.bucket_name)

    try:
        ddb.create_table(
            TableName=settings.table_name,
            AttributeDefinitions=[
                {"AttributeName": "image_id", "AttributeType": "S"},
                {"AttributeName": "folder_id", "AttributeType": "S"},
                {"AttributeName": "created_at", "AttributeType": "N"},
            ],
            KeySchema=[{"AttributeName": "image_id", "KeyType": "HASH"}],
            BillingMode="PAY_PER_REQUEST",
            GlobalSecondaryIndexes=[
                {
                    "IndexName": FOLDER_INDEX,
                    "KeySchema": [
                        {"AttributeName": "folder_id", "KeyType": "HASH"},
                        {"AttributeName": "created_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
        )
        created["table"] = True
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") != "ResourceInUseException":
            raise

    logger.info("resources_ready", bucket=settings.bucket_name, table=settings.table_name, **created)
    return created

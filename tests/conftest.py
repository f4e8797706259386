import os, sys
from io import BytesIO

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
from PIL import Image

# Ensure project root on sys.path so `import wedding_photos...` works
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from wedding_photos.core.config import settings
from wedding_photos.aws import storage

REGION = "us-east-1"
BUCKET = "test-bucket"
TABLE = "Photos"
FOLDER = "boda-test"


def _patch_settings(monkeypatch, folder=FOLDER):
    # Restored after the test even when something reloads settings
    for name in type(settings).model_fields:
        monkeypatch.setattr(settings, name, getattr(settings, name))

    # Same values in the environment, so a settings reload keeps them
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    monkeypatch.setenv("AWS_REGION", REGION)
    monkeypatch.setenv("BUCKET_NAME", BUCKET)
    monkeypatch.setenv("TABLE_NAME", TABLE)
    monkeypatch.setenv("GALLERY_FOLDER_ID", folder)

    # Route boto3 to moto (no endpoint), use test resources
    monkeypatch.setattr(settings, "aws_endpoint_url", None)
    monkeypatch.setattr(settings, "aws_region", REGION)
    monkeypatch.setattr(settings, "bucket_name", BUCKET)
    monkeypatch.setattr(settings, "table_name", TABLE)
    monkeypatch.setattr(settings, "gallery_folder_id", folder)


@pytest.fixture
def bare_aws(monkeypatch):
    """Mocked AWS with settings pointing at it, but no bucket or table yet."""
    with mock_aws():
        _patch_settings(monkeypatch)
        yield


@pytest.fixture
def aws(monkeypatch):
    with mock_aws():
        _patch_settings(monkeypatch)

        s3 = boto3.client("s3", region_name=REGION)
        s3.create_bucket(Bucket=BUCKET)
        s3.put_bucket_ownership_controls(
            Bucket=BUCKET,
            OwnershipControls={"Rules": [{"ObjectOwnership": "ObjectWriter"}]},
        )

        dynamodb = boto3.client("dynamodb", region_name=REGION)
        dynamodb.create_table(
            TableName=TABLE,
            AttributeDefinitions=[
                {"AttributeName": "image_id", "AttributeType": "S"},
                {"AttributeName": "folder_id", "AttributeType": "S"},
                {"AttributeName": "created_at", "AttributeType": "N"},
            ],
            KeySchema=[{"AttributeName": "image_id", "KeyType": "HASH"}],
            BillingMode="PAY_PER_REQUEST",
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "by_folder_created",
                    "KeySchema": [
                        {"AttributeName": "folder_id", "KeyType": "HASH"},
                        {"AttributeName": "created_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
        )
        yield s3


@pytest.fixture
def client(aws):
    from wedding_photos.main import app
    return TestClient(app)


@pytest.fixture
def ticking_clock(monkeypatch):
    """Make catalog timestamps strictly increasing: 1000, 2000, 3000..."""
    counter = {"t": 0}

    def fake_now_ms():
        counter["t"] += 1000
        return counter["t"]

    monkeypatch.setattr(storage, "_now_ms", fake_now_ms)
    return counter


@pytest.fixture
def make_image():
    def _make(size=(4, 3), fmt="JPEG", color=(200, 120, 40), mode="RGB", exif=None):
        img = Image.new(mode, size, color=color if mode == "RGB" else color + (128,))
        buf = BytesIO()
        params = {}
        if exif is not None:
            params["exif"] = exif
        img.save(buf, format=fmt, **params)
        return buf.getvalue()
    return _make


@pytest.fixture
def count_objects(aws):
    return lambda: aws.list_objects_v2(Bucket=BUCKET).get("KeyCount", 0)

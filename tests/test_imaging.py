from io import BytesIO

import pytest
from PIL import Image

from wedding_photos.core.errors import TransformError
from wedding_photos.imaging import fit_within, make_thumbnail, prepare_upload, wants_thumbnail


def _open(data):
    img = Image.open(BytesIO(data))
    img.load()
    return img


@pytest.mark.parametrize(
    "size, bound, expected",
    [
        ((4000, 3000), (2000, 2000), (2000, 1500)),
        ((3000, 4000), (2000, 2000), (1500, 2000)),
        ((800, 600), (2000, 2000), (800, 600)),
        ((3000, 2000), (400, 2000), (400, 267)),
    ],
)
def test_fit_within_keeps_aspect_and_never_upscales_success(size, bound, expected):
    assert fit_within(size, bound) == expected


def test_prepare_upload_shrinks_large_photos_success(make_image):
    out = _open(prepare_upload(make_image(size=(4000, 3000))))
    assert out.format == "JPEG"
    assert out.size == (2000, 1500)


def test_prepare_upload_keeps_small_photos_success(make_image):
    out = _open(prepare_upload(make_image(size=(640, 480))))
    assert out.size == (640, 480)


def test_prepare_upload_applies_exif_orientation_success(make_image):
    exif = Image.Exif()
    exif[0x0112] = 6  # rotated 90 degrees clockwise
    out = _open(prepare_upload(make_image(size=(40, 20), exif=exif.tobytes())))
    assert out.size == (20, 40)


def test_prepare_upload_flattens_transparency_success(make_image):
    out = _open(prepare_upload(make_image(size=(8, 8), fmt="PNG", mode="RGBA", color=(0, 0, 0))))
    assert out.format == "JPEG"
    assert out.mode == "RGB"


def test_prepare_upload_rejects_garbage_failure():
    with pytest.raises(TransformError):
        prepare_upload(b"definitely not an image")


@pytest.mark.parametrize("width, expected", [(0, False), (-1, False), (1, True), (400, True), (800, True), (801, False)])
def test_wants_thumbnail_range_success(width, expected):
    assert wants_thumbnail(width) is expected


def test_make_thumbnail_width_success(make_image):
    out = _open(make_thumbnail(make_image(size=(1200, 900)), 400))
    assert out.format == "JPEG"
    assert out.size == (400, 300)


def test_make_thumbnail_rejects_garbage_failure():
    with pytest.raises(TransformError):
        make_thumbnail(b"\xff\xd8 truncated", 400)

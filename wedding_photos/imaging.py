"""Pillow transforms for uploads and for on-the-fly thumbnails."""

from io import BytesIO
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from .core.errors import TransformError
from .core.logging_config import get_logger

register_heif_opener()

logger = get_logger(__name__)

UPLOAD_BOUND = (2000, 2000)
UPLOAD_QUALITY = 85
THUMBNAIL_MAX_WIDTH = 800
THUMBNAIL_QUALITY = 80


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten alpha onto white; JPEG has no transparency."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _encode_jpeg(img: Image.Image, quality: int) -> bytes:
    buf = BytesIO()
    _to_rgb(img).save(buf, format="JPEG", quality=quality, optimize=True, progressive=True)
    return buf.getvalue()


def fit_within(size: Tuple[int, int], bound: Tuple[int, int]) -> Tuple[int, int]:
    """Largest size with the same aspect ratio inside `bound`, never larger than `size`."""
    width, height = size
    max_w, max_h = bound
    scale = min(max_w / width, max_h / height, 1.0)
    return max(1, round(width * scale)), max(1, round(height * scale))


def prepare_upload(data_bytes: bytes) -> bytes:
    """Auto-rotate from EXIF, shrink to fit 2000x2000 and re-encode as JPEG."""
    try:
        with Image.open(BytesIO(data_bytes)) as img:
            img = ImageOps.exif_transpose(img)
            target = fit_within(img.size, UPLOAD_BOUND)
            if target != img.size:
                img = img.resize(target, Image.Resampling.LANCZOS)
            out = _encode_jpeg(img, UPLOAD_QUALITY)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning("upload_transform_failed", error=str(e))
        raise TransformError() from e
    logger.debug("upload_transformed", size_in=len(data_bytes), size_out=len(out), dimensions=target)
    return out


def wants_thumbnail(width: int) -> bool:
    return 0 < width <= THUMBNAIL_MAX_WIDTH


def make_thumbnail(data_bytes: bytes, width: int) -> bytes:
    """Scale down to `width` pixels wide (height follows), JPEG quality 80.

    Sources already narrower than `width` keep their size and are only
    re-encoded.
    """
    try:
        with Image.open(BytesIO(data_bytes)) as img:
            target = fit_within(img.size, (width, img.size[1]))
            if target != img.size:
                img = img.resize(target, Image.Resampling.LANCZOS)
            return _encode_jpeg(img, THUMBNAIL_QUALITY)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning("thumbnail_transform_failed", width=width, error=str(e))
        raise TransformError() from e

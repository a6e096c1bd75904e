"""
Image compression for uploaded photographs.

Every image is re-encoded as WebP, scaled down so neither side exceeds the
configured maximum, and re-encoded at lower quality until it fits the size
limit (or quality bottoms out).
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from config import settings
from errors import UploadTransportError

WEBP_CONTENT_TYPE = "image/webp"
START_QUALITY = 85
MIN_QUALITY = 25
QUALITY_STEP = 15


@dataclass
class RawImage:
    filename: str
    data: bytes
    content_type: Optional[str] = None


@dataclass
class CompressedImage:
    filename: str
    data: bytes
    content_type: str = WEBP_CONTENT_TYPE


def compressed_name(filename: str) -> str:
    stem = Path(filename).stem or "image"
    return f"{stem}.webp"


def compress_image(raw: RawImage, max_dimension: Optional[int] = None,
                   max_bytes: Optional[int] = None) -> CompressedImage:
    max_dimension = max_dimension or settings.IMAGE_MAX_DIMENSION
    max_bytes = max_bytes or settings.IMAGE_MAX_BYTES

    try:
        with Image.open(BytesIO(raw.data)) as source:
            img = ImageOps.exif_transpose(source)
            img = img.convert("RGBA" if img.mode in ("RGBA", "LA", "P") else "RGB")
            img.thumbnail((max_dimension, max_dimension))

            quality = START_QUALITY
            while True:
                buffer = BytesIO()
                img.save(buffer, format="WEBP", quality=quality)
                if buffer.tell() <= max_bytes or quality <= MIN_QUALITY:
                    break
                quality = max(MIN_QUALITY, quality - QUALITY_STEP)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise UploadTransportError(f"Could not compress image '{raw.filename}'") from e

    return CompressedImage(filename=compressed_name(raw.filename), data=buffer.getvalue())

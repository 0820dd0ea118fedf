# app/services/image_processing.py
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from app.core.exceptions import ValidationError

MAX_DIMENSION = 2000
IMAGE_QUALITY = 85
THUMBNAIL_SIZE = (300, 300)
THUMBNAIL_QUALITY = 80
# Largest source accepted, checked from the header before decoding
MAX_PIXELS = 50_000_000


@dataclass
class ProcessedImage:
    data: bytes
    thumbnail: bytes
    width: int
    height: int
    mime_type: str = "image/jpeg"


def _to_jpeg(img: Image.Image, quality: int) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def process_image(data: bytes) -> ProcessedImage:
    """Normalise an upload to JPEG.

    The image is shrunk to fit inside 2000x2000 (never enlarged) and a
    300x300 center-cropped thumbnail is produced. CPU-bound: call it from a
    worker thread.
    """
    try:
        with Image.open(BytesIO(data)) as source:
            width, height = source.size
            if width * height > MAX_PIXELS:
                raise ValidationError("Image dimensions too large")
            img = ImageOps.exif_transpose(source)
            img = img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValidationError("Invalid image file") from e

    img.thumbnail((MAX_DIMENSION, MAX_DIMENSION), Image.LANCZOS)
    thumb = ImageOps.fit(img, THUMBNAIL_SIZE, Image.LANCZOS)

    return ProcessedImage(
        data=_to_jpeg(img, IMAGE_QUALITY),
        thumbnail=_to_jpeg(thumb, THUMBNAIL_QUALITY),
        width=img.width,
        height=img.height,
    )

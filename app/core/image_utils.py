import io
import time
import uuid

from PIL import Image, UnidentifiedImageError

from app.core.errors import BadRequestError
from app.core.storage_utils import upload_to_storage

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

# (width, height, jpeg quality) per storage folder
CATEGORY_IMAGE = (600, 600, 90)
BRAND_IMAGE = (600, 600, 98)
USER_IMAGE = (600, 600, 98)
PRODUCT_IMAGE = (2000, 1333, 98)


def generate_filename(prefix: str, suffix: str | None = None) -> str:
    """
    Build a unique image filename:
        <prefix>-<uuid4>-<epoch ms>[-<suffix>].jpeg
    """
    name = f"{prefix}-{uuid.uuid4()}-{int(time.time() * 1000)}"
    if suffix:
        name = f"{name}-{suffix}"
    return f"{name}.jpeg"


def validate_image_upload(content_type: str | None, file_bytes: bytes) -> None:
    if not content_type or not content_type.startswith("image"):
        raise BadRequestError("Only Images Allowed.")
    if len(file_bytes) > MAX_IMAGE_BYTES:
        raise BadRequestError("Image too large (max 5MB).")


def resize_image(
    file_bytes: bytes,
    width: int,
    height: int,
    quality: int,
    *,
    folder: str,
    prefix: str,
    suffix: str | None = None,
) -> str:
    """
    Resize an uploaded image to width x height, encode it as JPEG and store
    it under `<folder>/<filename>`.

    Returns:
        The stored filename (what the DB keeps; URLs are derived on read).

    Raises:
        BadRequestError: if the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(file_bytes)) as img:
            resized = img.convert("RGB").resize((width, height))
    except (UnidentifiedImageError, OSError):
        raise BadRequestError("Only Images Allowed.")

    buffer = io.BytesIO()
    resized.save(buffer, format="JPEG", quality=quality)

    filename = generate_filename(prefix, suffix)
    upload_to_storage(f"{folder}/{filename}", buffer.getvalue())
    return filename

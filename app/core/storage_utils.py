from app.core.config import get_settings
from app.core.supabase_client import supabase_admin

settings = get_settings()


def upload_to_storage(path: str, file_bytes: bytes, content_type: str = "image/jpeg") -> str:
    """
    Upload raw bytes to Supabase Storage.

    If a file already exists at this path, it will be overwritten
    thanks to the 'upsert' option.

    Args:
        path: Full object path inside the bucket.
              Example: "products/product-<uuid>-<ts>-cover.jpeg"
        file_bytes: File content in bytes.

    Returns:
        The object path.

    Raises:
        Any exception raised by Supabase client if upload fails.
    """
    supabase_admin().storage.from_(settings.STORAGE_BUCKET).upload(
        path,
        file_bytes,
        {"upsert": "true", "content-type": content_type},
    )
    return path


def delete_from_storage(path: str) -> None:
    """
    Delete a file from Supabase Storage by its object path.

    Example path (relative to bucket):
        'categories/category-<uuid>-<ts>.jpeg'
    """
    supabase_admin().storage.from_(settings.STORAGE_BUCKET).remove([path])


def public_url(folder: str, filename: str | None) -> str | None:
    """
    Public URL of a stored image, built from its filename.

    Example:
        public_url("products", "p.jpeg")
        -> https://<proj>.supabase.co/storage/v1/object/public/assets/products/p.jpeg

    Values that are already absolute URLs are returned unchanged.
    """
    if not filename:
        return filename
    if filename.startswith(("http://", "https://")):
        return filename
    base = (settings.SUPABASE_URL or "").rstrip("/")
    return f"{base}/storage/v1/object/public/{settings.STORAGE_BUCKET}/{folder}/{filename}"

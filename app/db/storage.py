"""Supabase Storage operations for uploaded business plans."""

import time
from uuid import UUID

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def build_plan_storage_path(user_id: UUID, file_name: str) -> str:
    """
    Build the storage path for an uploaded plan.

    The nanosecond timestamp keeps repeated uploads of the same file name
    apart inside the user's folder.
    """
    return f"{user_id}/{time.time_ns()}_{file_name}"


def upload_plan_file(
    user_id: UUID,
    file_name: str,
    file_bytes: bytes,
    content_type: str | None,
) -> str:
    """
    Store raw plan bytes in the business plan bucket.

    Args:
        user_id: Owner UUID (first path segment)
        file_name: Original filename
        file_bytes: File content
        content_type: Declared MIME type

    Returns:
        Storage path of the stored object

    Raises:
        Exception: If the storage upload fails
    """
    settings = get_settings()
    storage_path = build_plan_storage_path(user_id, file_name)

    supabase = get_supabase()
    supabase.storage.from_(settings.BUSINESS_PLAN_BUCKET).upload(
        path=storage_path,
        file=file_bytes,
        file_options={"content-type": content_type or "application/octet-stream"},
    )

    logger.info(
        f"Stored plan file {file_name}",
        extra={"user_id": str(user_id), "storage_path": storage_path},
    )
    return storage_path


def download_plan_file(storage_path: str) -> bytes:
    """
    Download a stored plan file.

    Raises:
        Exception: If the download fails
    """
    settings = get_settings()
    supabase = get_supabase()
    return supabase.storage.from_(settings.BUSINESS_PLAN_BUCKET).download(storage_path)

"""Database operations for business plan analyses."""

from datetime import datetime, timezone  # noqa: UP035
from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.core.schemas_business_plan import AnalysisStatus
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "business_plan_analyses"

SUMMARY_COLUMNS = "id, file_name, status, overall_score, created_at, updated_at"


class AnalysisNotFoundError(LookupError):
    """No business_plan_analyses row with the given id."""


def _utc_now_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()  # noqa: UP017


def create_analysis(
    user_id: UUID,
    file_name: str,
    file_path: str,
    file_size: int,
    file_type: str,
) -> dict[str, Any]:
    """
    Create a new analysis record in processing state.

    Args:
        user_id: Owner UUID
        file_name: Original filename
        file_path: Storage path of the uploaded file
        file_size: File size in bytes
        file_type: Declared MIME type

    Returns:
        Created analysis record

    Raises:
        ValueError: If no row is returned
    """
    supabase = get_supabase()

    record = {
        "user_id": str(user_id),
        "file_name": file_name,
        "file_path": file_path,
        "file_size": file_size,
        "file_type": file_type,
        "status": AnalysisStatus.PROCESSING.value,
    }

    response = supabase.table(TABLE).insert(record).execute()

    if not response.data:
        raise ValueError("Failed to create analysis record")

    analysis = response.data[0]
    logger.info(
        f"Created analysis {analysis['id']}: {file_name}",
        extra={"analysis_id": analysis["id"], "user_id": str(user_id)},
    )
    return analysis


def get_analysis(analysis_id: UUID | str, user_id: UUID | None = None) -> dict[str, Any] | None:
    """
    Get an analysis by ID.

    Args:
        analysis_id: Analysis UUID
        user_id: When given, only a row owned by this user is returned

    Returns:
        Analysis record or None
    """
    supabase = get_supabase()

    query = supabase.table(TABLE).select("*").eq("id", str(analysis_id))
    if user_id is not None:
        query = query.eq("user_id", str(user_id))

    response = query.execute()
    return response.data[0] if response.data else None


def list_user_analyses(user_id: UUID, limit: int = 50, offset: int = 0) -> dict[str, Any]:
    """
    List a user's analyses, newest first.

    Args:
        user_id: Owner UUID
        limit: Max results
        offset: Pagination offset

    Returns:
        Dict with 'analyses' list and 'total' count
    """
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .select(SUMMARY_COLUMNS, count="exact")
        .eq("user_id", str(user_id))
        .order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )

    return {
        "analyses": response.data or [],
        "total": response.count or 0,
    }


def complete_analysis(
    analysis_id: UUID | str,
    report_fields: dict[str, Any],
    full_report: dict[str, Any],
) -> dict[str, Any]:
    """
    Write a finished report onto the record and mark it completed.

    Every report column is written, so a second run fully replaces the first.

    Args:
        analysis_id: Analysis UUID
        report_fields: Validated report columns
        full_report: Raw model JSON

    Returns:
        Updated row image

    Raises:
        AnalysisNotFoundError: If no row was updated
    """
    supabase = get_supabase()

    payload = {
        **report_fields,
        "status": AnalysisStatus.COMPLETED.value,
        "full_report": full_report,
        "updated_at": _utc_now_iso(),
    }

    response = supabase.table(TABLE).update(payload).eq("id", str(analysis_id)).execute()

    if not response.data:
        raise AnalysisNotFoundError(f"Analysis {analysis_id} not found")

    logger.info(f"Completed analysis {analysis_id}", extra={"analysis_id": str(analysis_id)})
    return response.data[0]


def mark_analysis_failed(analysis_id: UUID | str) -> dict[str, Any] | None:
    """
    Mark an analysis as failed.

    Args:
        analysis_id: Analysis UUID

    Returns:
        Updated row image, or None if the row does not exist
    """
    supabase = get_supabase()

    response = (
        supabase.table(TABLE)
        .update({"status": AnalysisStatus.FAILED.value, "updated_at": _utc_now_iso()})
        .eq("id", str(analysis_id))
        .execute()
    )

    logger.info(f"Marked analysis {analysis_id} failed", extra={"analysis_id": str(analysis_id)})
    return response.data[0] if response.data else None

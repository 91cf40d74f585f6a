"""API endpoints for business plan upload and analysis viewing."""

import asyncio
import json
import logging
from typing import Any, AsyncGenerator
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from app.chains.analyze_business_plan import run_business_plan_analysis
from app.core.analysis_notifier import AnalysisNotifier, get_notifier
from app.core.analysis_view import AnalysisViewer, render_analysis
from app.core.auth_middleware import AuthContext, require_auth
from app.core.config import Settings, get_settings
from app.core.file_text import extract_text_from_upload, is_accepted_extension
from app.core.llm import ChatGateway, get_gateway
from app.core.logging import get_logger, log_with_context
from app.core.schemas_business_plan import (
    AnalysisListResponse,
    AnalysisStatus,
    AnalysisSummary,
    UploadBatchResponse,
    UploadResult,
)
from app.db.business_plan_analyses import create_analysis, get_analysis, list_user_analyses
from app.db.storage import upload_plan_file

logger = get_logger(__name__)

router = APIRouter()

# Seconds between SSE keep-alive comments while waiting for an update
KEEPALIVE_SECONDS = 15.0


def viewer_path(analysis_id: str) -> str:
    return f"/business-plan-analysis/{analysis_id}"


def _run_analysis_task(
    analysis_id: str,
    file_content: str,
    gateway: ChatGateway,
    settings: Settings,
) -> None:
    """Background entry point; the outcome reaches viewers through the notifier."""
    try:
        run_business_plan_analysis(
            analysis_id,
            file_content,
            gateway=gateway,
            settings=settings,
        )
    except Exception as e:
        # Already logged and recorded on the row by the worker
        logger.warning(f"Background analysis {analysis_id} ended with error: {e}")


async def _submit_plan_file(
    file: UploadFile,
    auth: AuthContext,
    background_tasks: BackgroundTasks,
    gateway: ChatGateway,
    settings: Settings,
) -> UploadResult:
    """Store, record and dispatch one file. Failures only affect this file."""
    file_name = file.filename or "unnamed"
    file_bytes = await file.read()

    if not file_bytes:
        return UploadResult(file_name=file_name, error="Empty file")
    if len(file_bytes) > settings.MAX_UPLOAD_BYTES:
        return UploadResult(
            file_name=file_name,
            error=f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes",
        )
    if not is_accepted_extension(file_name):
        logger.warning(f"Unexpected plan file type: {file_name}")

    try:
        storage_path = await asyncio.to_thread(
            upload_plan_file, auth.user_id, file_name, file_bytes, file.content_type
        )

        extracted = await asyncio.to_thread(
            extract_text_from_upload, file_name, file_bytes, settings.MAX_ANALYSIS_CHARS
        )
        if extracted.truncated:
            logger.info(f"Truncated {file_name} to {settings.MAX_ANALYSIS_CHARS} characters")

        analysis = await asyncio.to_thread(
            create_analysis,
            user_id=auth.user_id,
            file_name=file_name,
            file_path=storage_path,
            file_size=len(file_bytes),
            file_type=file.content_type or "",
        )
    except Exception as e:
        logger.error(f"Failed to submit {file_name}: {e}", extra={"user_id": str(auth.user_id)})
        return UploadResult(file_name=file_name, error=str(e) or "Failed to upload and analyze file")

    background_tasks.add_task(_run_analysis_task, analysis["id"], extracted.text, gateway, settings)

    log_with_context(
        logger,
        logging.INFO,
        f"Analysis started for {file_name}",
        analysis_id=analysis["id"],
        user_id=str(auth.user_id),
        truncated=extracted.truncated,
    )
    return UploadResult(
        file_name=file_name,
        analysis_id=analysis["id"],
        status=AnalysisStatus.PROCESSING,
    )


@router.post("/business-plans", response_model=UploadBatchResponse)
async def upload_business_plans(
    background_tasks: BackgroundTasks,
    files: list[UploadFile] | None = File(default=None),
    auth: AuthContext = Depends(require_auth),
    gateway: ChatGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """Upload one or more business plans for analysis.

    Files are handled one after another. Each gets its own storage object,
    its own analysis record in ``processing`` state and its own background
    analysis. A failure stops only that file; nothing is rolled back.

    Returns:
        UploadBatchResponse with one result per file. HTTP 500 (same body)
        when every file failed.

    Raises:
        HTTPException 400: If no files were sent
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files selected")

    results: list[UploadResult] = []
    for file in files:
        results.append(await _submit_plan_file(file, auth, background_tasks, gateway, settings))

    started = [r for r in results if r.analysis_id]
    response = UploadBatchResponse(
        results=results,
        succeeded=len(started),
        failed=len(results) - len(started),
        redirect_to=viewer_path(started[-1].analysis_id) if started else None,
    )

    if not started:
        return JSONResponse(content=response.model_dump(mode="json"), status_code=500)
    return response


@router.get("/business-plans", response_model=AnalysisListResponse)
async def list_business_plans(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(require_auth),
) -> AnalysisListResponse:
    """List the caller's analyses, newest first."""
    try:
        result = await asyncio.to_thread(list_user_analyses, auth.user_id, limit, offset)
    except Exception:
        logger.exception(f"Failed to list analyses for user {auth.user_id}")
        raise HTTPException(status_code=500, detail="Failed to list analyses")

    return AnalysisListResponse(
        analyses=[AnalysisSummary(**row) for row in result["analyses"]],
        total=result["total"],
    )


@router.get("/business-plans/{analysis_id}")
async def get_business_plan_analysis(
    analysis_id: UUID,
    auth: AuthContext = Depends(require_auth),
) -> dict[str, Any]:
    """Current viewer state and report sections for one analysis.

    Returns 404 with state ``not_found`` when the caller owns no analysis
    with this id.
    """
    try:
        row = await asyncio.to_thread(get_analysis, analysis_id, auth.user_id)
    except Exception:
        logger.exception(f"Failed to load analysis {analysis_id}")
        raise HTTPException(status_code=500, detail="Failed to load analysis")

    if row is None:
        return JSONResponse(
            content={"detail": "Analysis not found", **render_analysis(None)},
            status_code=404,
        )

    return render_analysis(row)


def _sse(event_type: str, payload: dict[str, Any]) -> str:
    return f"data: {json.dumps({'type': event_type, **payload}, default=str)}\n\n"


@router.get("/business-plans/{analysis_id}/events")
async def stream_business_plan_analysis(
    analysis_id: UUID,
    request: Request,
    auth: AuthContext = Depends(require_auth),
    notifier: AnalysisNotifier = Depends(get_notifier),
) -> StreamingResponse:
    """
    Stream viewer updates for one analysis as Server-Sent Events.

    SSE Event Types:
    - type: 'snapshot' - State from the initial fetch
    - type: 'update' - Row pushed by the worker's commit (replaces the snapshot)
    - type: 'error' - The initial fetch failed

    The stream ends once the analysis reaches a terminal state or the
    client disconnects.
    """

    async def generate() -> AsyncGenerator[str, None]:
        viewer = AnalysisViewer(str(analysis_id))

        # Subscribe before fetching so an update landing mid-fetch is queued
        async with notifier.subscribe(str(analysis_id)) as subscription:
            try:
                row = await asyncio.to_thread(get_analysis, analysis_id, auth.user_id)
            except Exception as e:
                logger.error(f"Failed to load analysis {analysis_id}: {e}")
                yield _sse("error", {"message": "Failed to load analysis"})
                return

            viewer.apply_snapshot(row)
            yield _sse("snapshot", viewer.render())

            while not viewer.is_terminal:
                if await request.is_disconnected():
                    break
                try:
                    event_row = await subscription.get(timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue

                viewer.apply_event(event_row)
                yield _sse("update", viewer.render())

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )

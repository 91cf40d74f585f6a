"""Function endpoints: business plan analysis and persona chat turns.

These mirror serverless function contracts: JSON in, JSON out, and every
error is returned as ``{"error": message}`` rather than FastAPI's ``detail``.
"""

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from app.chains.analyze_business_plan import MissingFieldsError, run_business_plan_analysis
from app.chains.chat_agent import run_chat_turn
from app.core.auth_middleware import AuthContext, get_current_user
from app.core.config import Settings, get_settings
from app.core.llm import ChatGateway, GatewayError, get_gateway
from app.core.logging import get_logger
from app.core.rate_limiter import RateLimitExceeded, check_chat_rate_limit
from app.core.report_parsing import ReportValidationError
from app.core.schemas_agents import ChatAgentRequest, ChatAgentResponse, resolve_agent_type
from app.core.schemas_business_plan import (
    AnalyzeBusinessPlanRequest,
    AnalyzeBusinessPlanResponse,
)
from app.db.business_plan_analyses import AnalysisNotFoundError

logger = get_logger(__name__)

router = APIRouter()

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(content={"error": message, **extra}, status_code=status_code)


def _unauthenticated() -> JSONResponse:
    return JSONResponse(
        content={"error": "Not authenticated"},
        status_code=401,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _read_json_object(request: Request) -> dict[str, Any]:
    """Request body as a dict; anything unparsable counts as empty."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post("/analyze-business-plan", response_model=AnalyzeBusinessPlanResponse)
async def analyze_business_plan(
    request: Request,
    auth: AuthContext | None = Depends(get_current_user),
    gateway: ChatGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """
    Score a business plan and store the report on its analysis record.

    Body: ``{"analysisId": str, "fileContent": str}``.

    Returns:
        200 ``{"success": true, "analysis": {...}}``; 401 without a valid
        bearer token; 400 on missing fields; 404 for an analysis the caller
        does not own; 429/402 for gateway rate limit or credits;
        500 for any other failure.
    """
    if auth is None:
        return _unauthenticated()

    try:
        payload = AnalyzeBusinessPlanRequest.model_validate(await _read_json_object(request))
    except ValidationError:
        return _error(400, "Missing required fields")

    try:
        analysis = await asyncio.to_thread(
            run_business_plan_analysis,
            payload.analysis_id,
            payload.file_content,
            gateway=gateway,
            settings=settings,
            owner_id=auth.user_id,
        )
    except MissingFieldsError as e:
        return _error(400, str(e))
    except AnalysisNotFoundError as e:
        return _error(404, str(e))
    except GatewayError as e:
        return _error(e.status_code, e.message)
    except ReportValidationError as e:
        return _error(500, str(e), details=e.errors)
    except Exception as e:
        logger.exception("Error in analyze-business-plan function")
        return _error(500, str(e) or "Unknown error")

    return AnalyzeBusinessPlanResponse(analysis=analysis)


@router.post("/chat-agent", response_model=ChatAgentResponse)
async def chat_agent(
    request: Request,
    auth: AuthContext | None = Depends(get_current_user),
    gateway: ChatGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
):
    """
    Answer one chat turn as the requested persona.

    Body: ``{"messages": [{"role", "content"}], "agentType": str}``.
    Unknown agent types are answered by the co-founder persona. Turns count
    against the caller's chat rate limit.
    """
    if auth is None:
        return _unauthenticated()

    try:
        payload = ChatAgentRequest.model_validate(await _read_json_object(request))
    except ValidationError:
        return _error(400, "Invalid messages")

    if not payload.messages:
        return _error(400, "Missing required fields")

    try:
        check_chat_rate_limit(auth.user_id)
    except RateLimitExceeded as e:
        return JSONResponse(
            content={"error": str(e)},
            status_code=429,
            headers={"Retry-After": str(e.retry_after)},
        )

    try:
        message = await asyncio.to_thread(
            run_chat_turn,
            payload.messages,
            resolve_agent_type(payload.agent_type),
            gateway=gateway,
            settings=settings,
        )
    except GatewayError as e:
        return _error(e.status_code, e.message)
    except Exception as e:
        logger.exception("Error in chat-agent function")
        return _error(500, str(e) or "Unknown error")

    return ChatAgentResponse(message=message)


@router.options("/{function_name}")
async def function_preflight(function_name: str) -> Response:
    """Answer pre-flight requests with an empty body.

    Browser pre-flights carrying CORS headers are answered, also with an
    empty body, by the CORS middleware before reaching this route.
    """
    return Response(
        status_code=200,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        },
    )

"""LLM chain for scoring an uploaded business plan."""

from typing import Any
from uuid import UUID

from app.core.analysis_notifier import AnalysisNotifier, get_notifier
from app.core.config import Settings
from app.core.llm import ChatGateway
from app.core.logging import get_logger
from app.core.report_parsing import ReportParseResult, parse_business_plan_report
from app.db.business_plan_analyses import (
    AnalysisNotFoundError,
    complete_analysis,
    get_analysis,
    mark_analysis_failed,
)

logger = get_logger(__name__)


class MissingFieldsError(ValueError):
    """analysis id or file content was not supplied."""

    def __init__(self) -> None:
        super().__init__("Missing required fields")


# ruff: noqa: E501
SYSTEM_PROMPT = """You are an expert business plan analyst and venture capital consultant with 20+ years of experience evaluating startup business plans. Your role is to provide comprehensive, actionable analysis of business plans across 15 critical dimensions.

Analyze the business plan and provide detailed feedback in JSON format with the following structure:
{
  "overall_score": <number 0-100>,
  "dimensional_scores": {
    "problem_definition": <0-10>,
    "solution_clarity": <0-10>,
    "market_sizing": <0-10>,
    "competitive_analysis": <0-10>,
    "business_model": <0-10>,
    "unit_economics": <0-10>,
    "go_to_market": <0-10>,
    "product_roadmap": <0-10>,
    "team_composition": <0-10>,
    "founder_market_fit": <0-10>,
    "financial_projections": <0-10>,
    "traction": <0-10>,
    "funding_justification": <0-10>,
    "risk_assessment": <0-10>,
    "use_of_funds": <0-10>
  },
  "strengths": [
    {
      "title": "string",
      "score": <0-10>,
      "description": "string",
      "details": "string"
    }
  ],
  "gaps": [
    {
      "title": "string",
      "severity": "critical|important|nice_to_have",
      "score": <0-10>,
      "issue": "string",
      "impact": "string",
      "missing_elements": ["string"],
      "time_to_fix": "string",
      "priority": "string"
    }
  ],
  "recommendations": {
    "this_week": ["string"],
    "next_week": ["string"],
    "following_week": ["string"]
  },
  "financial_analysis": {
    "overall_score": <0-10>,
    "strengths": ["string"],
    "concerns": [
      {
        "title": "string",
        "issue": "string",
        "impact": "string",
        "recommendation": "string"
      }
    ],
    "break_even_analysis": "string"
  },
  "market_analysis": {
    "score": <0-10>,
    "strengths": ["string"],
    "concerns": [
      {
        "title": "string",
        "issue": "string",
        "recommendation": "string"
      }
    ]
  },
  "investor_feedback_simulation": "string",
  "estimated_time_to_investor_ready": "string"
}

All scores are integers. Output ONLY the JSON object.

Be specific, actionable, and honest. Provide concrete examples and calculations where relevant."""

USER_PROMPT_PREFIX = "Analyze this business plan and provide detailed feedback:\n\n"

ANALYSIS_FAILED_MESSAGE = "AI analysis failed"


def generate_business_plan_report(
    file_content: str,
    *,
    gateway: ChatGateway,
    settings: Settings,
) -> ReportParseResult:
    """
    Ask the gateway for a report on the plan text and validate it.

    Makes exactly one gateway call.

    Args:
        file_content: Plan text (already truncated by the uploader)
        gateway: Chat-completion gateway
        settings: Application settings

    Returns:
        ReportParseResult (validation problems are reported, not raised)

    Raises:
        GatewayError: If the gateway call fails
    """
    logger.info(f"Calling {settings.ANALYSIS_MODEL} for business plan analysis")

    raw_output = gateway.complete(
        model=settings.ANALYSIS_MODEL,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": USER_PROMPT_PREFIX + file_content},
        ],
        json_response=True,
        failure_message=ANALYSIS_FAILED_MESSAGE,
    )

    result = parse_business_plan_report(raw_output)
    if not result.ok:
        # Do NOT log raw model output
        logger.warning(
            "Business plan report failed validation",
            extra={"error_count": len(result.errors)},
        )
    return result


def run_business_plan_analysis(
    analysis_id: str | None,
    file_content: str | None,
    *,
    gateway: ChatGateway,
    settings: Settings,
    notifier: AnalysisNotifier | None = None,
    owner_id: UUID | None = None,
) -> dict[str, Any]:
    """
    Score one plan and commit the report onto its analysis record.

    The record update is the single commit point. Running again for the same
    id re-runs the model and replaces every report column.

    On failure the record is set to failed when
    settings.ANALYSIS_MARK_FAILED_ON_ERROR is on, otherwise it is left in
    processing. The error is re-raised either way.

    Args:
        analysis_id: Analysis UUID
        file_content: Plan text
        gateway: Chat-completion gateway
        settings: Application settings
        notifier: Status notifier (defaults to the process-wide one)
        owner_id: When given, only a record owned by this user is analyzed

    Returns:
        The raw report JSON as returned by the model

    Raises:
        MissingFieldsError: If analysis_id or file_content is empty
        AnalysisNotFoundError: If no record has this id (for owner_id, when given)
        GatewayError: If the gateway call fails
        ReportValidationError: If the model output does not match the schema
    """
    if not analysis_id or not file_content:
        raise MissingFieldsError()

    notifier = notifier or get_notifier()

    if get_analysis(analysis_id, owner_id) is None:
        raise AnalysisNotFoundError(f"Analysis {analysis_id} not found")

    logger.info(
        f"Analyzing business plan {analysis_id}",
        extra={"analysis_id": analysis_id, "content_chars": len(file_content)},
    )

    try:
        result = generate_business_plan_report(file_content, gateway=gateway, settings=settings)
        report = result.unwrap()
        row = complete_analysis(analysis_id, report.to_record_fields(), full_report=result.raw)
    except Exception:
        logger.exception(f"Business plan analysis {analysis_id} failed")
        if settings.ANALYSIS_MARK_FAILED_ON_ERROR:
            _mark_failed(analysis_id, notifier)
        raise

    notifier.publish(row)
    return result.raw


def _mark_failed(analysis_id: str, notifier: AnalysisNotifier) -> None:
    """Flip the record to failed without masking the original error."""
    try:
        failed_row = mark_analysis_failed(analysis_id)
    except Exception as e:
        logger.error(f"Could not mark analysis {analysis_id} failed: {e}")
        return
    if failed_row is not None:
        notifier.publish(failed_row)

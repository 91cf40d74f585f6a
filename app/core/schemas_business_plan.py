"""Pydantic schemas for business plan analysis."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AnalysisStatus(str, Enum):
    """Lifecycle status of a business_plan_analyses row."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# The 15 scored dimensions, in display order
DIMENSION_KEYS: tuple[str, ...] = (
    "problem_definition",
    "solution_clarity",
    "market_sizing",
    "competitive_analysis",
    "business_model",
    "unit_economics",
    "go_to_market",
    "product_roadmap",
    "team_composition",
    "founder_market_fit",
    "financial_projections",
    "traction",
    "funding_justification",
    "risk_assessment",
    "use_of_funds",
)

# Columns written by the analysis worker; null while processing
REPORT_COLUMNS: tuple[str, ...] = (
    "overall_score",
    "dimensional_scores",
    "strengths",
    "gaps",
    "recommendations",
    "financial_analysis",
    "market_analysis",
    "full_report",
)

GapSeverity = Literal["critical", "important", "nice_to_have"]


# ============================================================================
# Report schema (model output)
# ============================================================================


class _ReportModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _null_as_default(cls, data: Any) -> Any:
        """An explicit null on an optional field reads as the field's default."""
        if not isinstance(data, dict):
            return data
        return {
            key: value
            for key, value in data.items()
            if value is not None
            or key not in cls.model_fields
            or cls.model_fields[key].is_required()
        }


class Strength(_ReportModel):
    """A strength the plan demonstrates."""

    title: str
    score: int = Field(..., ge=0, le=10)
    description: str = ""
    details: str = ""


class Gap(_ReportModel):
    """A gap to close before the plan is investor-ready."""

    title: str
    severity: GapSeverity
    score: int = Field(..., ge=0, le=10)
    issue: str = ""
    impact: str = ""
    missing_elements: list[str] = Field(default_factory=list)
    time_to_fix: str = ""
    priority: str = ""


class Recommendations(_ReportModel):
    """Three-week, time-boxed action plan."""

    this_week: list[str] = Field(default_factory=list)
    next_week: list[str] = Field(default_factory=list)
    following_week: list[str] = Field(default_factory=list)


class FinancialConcern(_ReportModel):
    title: str
    issue: str = ""
    impact: str = ""
    recommendation: str = ""


class FinancialAnalysis(_ReportModel):
    """Financial model sub-report."""

    overall_score: int | None = Field(default=None, ge=0, le=10)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[FinancialConcern] = Field(default_factory=list)
    break_even_analysis: str | None = None


class MarketConcern(_ReportModel):
    title: str
    issue: str = ""
    recommendation: str = ""


class MarketAnalysis(_ReportModel):
    """Market sub-report."""

    score: int | None = Field(default=None, ge=0, le=10)
    strengths: list[str] = Field(default_factory=list)
    concerns: list[MarketConcern] = Field(default_factory=list)


class BusinessPlanReport(_ReportModel):
    """Complete scoring report returned by the analysis model.

    overall_score and dimensional_scores are required; every other section
    defaults to an empty, well-formed value so readers can iterate without
    additional checks.
    """

    overall_score: int = Field(..., ge=0, le=100)
    dimensional_scores: dict[str, int]
    strengths: list[Strength] = Field(default_factory=list)
    gaps: list[Gap] = Field(default_factory=list)
    recommendations: Recommendations = Field(default_factory=Recommendations)
    financial_analysis: FinancialAnalysis = Field(default_factory=FinancialAnalysis)
    market_analysis: MarketAnalysis = Field(default_factory=MarketAnalysis)
    investor_feedback_simulation: str | None = None
    estimated_time_to_investor_ready: str | None = None

    @field_validator("dimensional_scores")
    @classmethod
    def _check_dimensions(cls, value: dict[str, int]) -> dict[str, int]:
        missing = [key for key in DIMENSION_KEYS if key not in value]
        if missing:
            raise ValueError(f"missing dimensions: {', '.join(missing)}")
        unknown = [key for key in value if key not in DIMENSION_KEYS]
        if unknown:
            raise ValueError(f"unknown dimensions: {', '.join(unknown)}")
        out_of_range = [key for key, score in value.items() if not 0 <= score <= 10]
        if out_of_range:
            raise ValueError(f"dimension scores out of range 0-10: {', '.join(out_of_range)}")
        # Canonical order
        return {key: value[key] for key in DIMENSION_KEYS}

    def to_record_fields(self) -> dict[str, Any]:
        """Column values for the business_plan_analyses row (minus full_report)."""
        data = self.model_dump(mode="json")
        return {
            "overall_score": data["overall_score"],
            "dimensional_scores": data["dimensional_scores"],
            "strengths": data["strengths"],
            "gaps": data["gaps"],
            "recommendations": data["recommendations"],
            "financial_analysis": data["financial_analysis"],
            "market_analysis": data["market_analysis"],
        }


# ============================================================================
# Function endpoint wire models
# ============================================================================


class AnalyzeBusinessPlanRequest(BaseModel):
    """Body of the analyze-business-plan function.

    Both fields are optional at the model level so that missing values map to
    the documented 400 response instead of a framework validation error.
    """

    analysis_id: str | None = Field(default=None, alias="analysisId")
    file_content: str | None = Field(default=None, alias="fileContent")

    model_config = ConfigDict(populate_by_name=True)


class AnalyzeBusinessPlanResponse(BaseModel):
    success: bool = True
    analysis: dict[str, Any]


# ============================================================================
# Upload / viewer API models
# ============================================================================


class UploadResult(BaseModel):
    """Outcome for one file of an upload batch."""

    file_name: str
    analysis_id: str | None = None
    status: AnalysisStatus | None = None
    error: str | None = None


class UploadBatchResponse(BaseModel):
    """Response for a business plan upload batch."""

    results: list[UploadResult]
    succeeded: int
    failed: int
    redirect_to: str | None = Field(
        default=None, description="Viewer path for the last analysis started"
    )


class AnalysisSummary(BaseModel):
    """Row summary for the dashboard list."""

    id: str
    file_name: str
    status: AnalysisStatus
    overall_score: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


class AnalysisListResponse(BaseModel):
    analyses: list[AnalysisSummary]
    total: int

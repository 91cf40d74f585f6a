"""Viewer state machine and report projection for business plan analyses."""

from enum import Enum
from typing import Any

from app.core.schemas_business_plan import AnalysisStatus


class ViewerState(str, Enum):
    """What the analysis page is showing."""

    LOADING = "loading"
    NOT_FOUND = "not_found"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ViewerState.NOT_FOUND, ViewerState.COMPLETED, ViewerState.FAILED})


class ScoreTier(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


# Presentation classes kept identical to the web client
TIER_COLORS = {
    ScoreTier.STRONG: "text-green-500",
    ScoreTier.MODERATE: "text-yellow-500",
    ScoreTier.WEAK: "text-red-500",
}
TIER_BADGES = {
    ScoreTier.STRONG: "default",
    ScoreTier.MODERATE: "secondary",
    ScoreTier.WEAK: "destructive",
}

SEVERITY_COLORS = {
    "critical": "text-red-500",
    "important": "text-yellow-500",
}

ACTION_PLAN_TIERS = (
    ("this_week", "This Week", "HIGH"),
    ("next_week", "Next Week", "MEDIUM"),
    ("following_week", "Following Week", "LOW"),
)

SECTION_KEYS = ("overview", "strengths", "gaps", "financial", "action")

INVESTOR_READY_TARGET = 80


def score_tier(score: float | None) -> ScoreTier:
    """Map a 0-10 score onto its display tier (missing scores count as 0)."""
    score = score or 0
    if score >= 8:
        return ScoreTier.STRONG
    if score >= 6:
        return ScoreTier.MODERATE
    return ScoreTier.WEAK


def score_color(score: float | None) -> str:
    return TIER_COLORS[score_tier(score)]


def score_badge(score: float | None) -> str:
    return TIER_BADGES[score_tier(score)]


def overall_verdict(overall_score: int | None) -> str | None:
    """Headline under the 0-100 readiness score."""
    if overall_score is None:
        return None
    if overall_score >= 80:
        return "Investor-ready with minor refinements"
    if overall_score >= 60:
        return "Solid foundation, needs improvement"
    return "Requires significant development"


def resolve_view_state(row: dict[str, Any] | None) -> ViewerState:
    """Viewer state for a fetched row (None means the fetch found nothing)."""
    if row is None:
        return ViewerState.NOT_FOUND
    status = row.get("status")
    if status == AnalysisStatus.COMPLETED.value:
        return ViewerState.COMPLETED
    if status == AnalysisStatus.FAILED.value:
        return ViewerState.FAILED
    return ViewerState.PROCESSING


class AnalysisViewer:
    """Local copy of one analysis row.

    The initial snapshot and every pushed event replace the row wholesale,
    in arrival order, so whichever lands last wins.
    """

    def __init__(self, analysis_id: str):
        self.analysis_id = str(analysis_id)
        self.row: dict[str, Any] | None = None
        self.state = ViewerState.LOADING

    def apply_snapshot(self, row: dict[str, Any] | None) -> ViewerState:
        self.row = dict(row) if row is not None else None
        self.state = resolve_view_state(self.row)
        return self.state

    def apply_event(self, row: dict[str, Any]) -> ViewerState:
        if str(row.get("id")) != self.analysis_id:
            return self.state
        self.row = dict(row)
        self.state = resolve_view_state(self.row)
        return self.state

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def render(self) -> dict[str, Any]:
        return render_analysis(self.row, self.state)


# ============================================================================
# Section projections
# ============================================================================


def _dimension_label(key: str) -> str:
    return key.replace("_", " ").capitalize()


def _overview_section(row: dict[str, Any]) -> dict[str, Any]:
    dimensional_scores = row.get("dimensional_scores") or {}
    return {
        "dimensions": [
            {
                "key": key,
                "label": _dimension_label(key),
                "score": score,
                "percent": (score or 0) * 10,
                "tier": score_tier(score).value,
                "color": score_color(score),
            }
            for key, score in dimensional_scores.items()
        ]
    }


def _strengths_section(row: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "title": strength.get("title"),
            "score": strength.get("score"),
            "badge": score_badge(strength.get("score")),
            "tier": score_tier(strength.get("score")).value,
            "description": strength.get("description"),
            "details": strength.get("details"),
        }
        for strength in row.get("strengths") or []
    ]


def _gaps_section(row: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "title": gap.get("title"),
            "severity": gap.get("severity"),
            "severity_color": SEVERITY_COLORS.get(gap.get("severity"), "text-blue-500"),
            "severity_badge": "destructive" if gap.get("severity") == "critical" else "secondary",
            "score": gap.get("score"),
            "issue": gap.get("issue"),
            "impact": gap.get("impact"),
            "missing_elements": gap.get("missing_elements") or [],
            "time_to_fix": gap.get("time_to_fix"),
            "priority": gap.get("priority"),
        }
        for gap in row.get("gaps") or []
    ]


def _financial_section(row: dict[str, Any]) -> dict[str, Any]:
    financial = row.get("financial_analysis") or {}
    market = row.get("market_analysis") or {}
    return {
        "overall_score": financial.get("overall_score"),
        "badge": score_badge(financial.get("overall_score")),
        "strengths": financial.get("strengths") or [],
        "concerns": financial.get("concerns") or [],
        "break_even_analysis": financial.get("break_even_analysis"),
        "market": {
            "score": market.get("score"),
            "badge": score_badge(market.get("score")),
            "strengths": market.get("strengths") or [],
            "concerns": market.get("concerns") or [],
        },
    }


def _action_section(row: dict[str, Any]) -> list[dict[str, Any]]:
    recommendations = row.get("recommendations") or {}
    return [
        {
            "key": key,
            "label": label,
            "priority": priority,
            "actions": list(recommendations.get(key) or []),
        }
        for key, label, priority in ACTION_PLAN_TIERS
    ]


def build_report_sections(row: dict[str, Any]) -> dict[str, Any]:
    """Project a completed row onto the five report tabs, in stored order."""
    return {
        "overview": _overview_section(row),
        "strengths": _strengths_section(row),
        "gaps": _gaps_section(row),
        "financial": _financial_section(row),
        "action": _action_section(row),
    }


def render_analysis(row: dict[str, Any] | None, state: ViewerState | None = None) -> dict[str, Any]:
    """
    Build the viewer payload for a row.

    Returns:
        Dict with 'state', 'analysis' (the row) and 'report' (None unless completed)
    """
    state = state or resolve_view_state(row)
    payload: dict[str, Any] = {"state": state.value, "analysis": row, "report": None}

    if state == ViewerState.PROCESSING:
        payload["placeholder"] = {
            "title": "Analyzing Your Business Plan",
            "message": "Our AI is conducting a comprehensive analysis across 15 critical dimensions...",
            "eta": "This usually takes 1-2 minutes",
        }
    elif state == ViewerState.FAILED:
        payload["message"] = "Analysis failed. Please upload your business plan again."
    elif state == ViewerState.COMPLETED and row is not None:
        full_report = row.get("full_report") or {}
        payload["report"] = {
            "file_name": row.get("file_name"),
            "overall_score": row.get("overall_score"),
            "verdict": overall_verdict(row.get("overall_score")),
            "target": INVESTOR_READY_TARGET,
            "investor_feedback_simulation": full_report.get("investor_feedback_simulation"),
            "estimated_time_to_investor_ready": full_report.get("estimated_time_to_investor_ready"),
            "sections": build_report_sections(row),
        }
    return payload

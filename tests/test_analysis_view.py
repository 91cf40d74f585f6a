"""Tests for the analysis viewer state machine and report projection."""

import pytest

from app.core.analysis_view import (
    AnalysisViewer,
    ScoreTier,
    ViewerState,
    build_report_sections,
    overall_verdict,
    render_analysis,
    resolve_view_state,
    score_badge,
    score_color,
    score_tier,
)
from app.core.schemas_business_plan import DIMENSION_KEYS

ANALYSIS_ID = "9b2f7c1e-0000-4000-8000-000000000001"


def _completed_row(**overrides) -> dict:
    row = {
        "id": ANALYSIS_ID,
        "file_name": "plan.pdf",
        "status": "completed",
        "overall_score": 72,
        "dimensional_scores": {key: 7 for key in DIMENSION_KEYS},
        "strengths": [{"title": "Clear problem", "score": 9, "description": "d", "details": "x"}],
        "gaps": [
            {"title": "No traction", "severity": "critical", "score": 3},
            {"title": "Thin team", "severity": "important", "score": 5},
            {"title": "Branding", "severity": "nice_to_have", "score": 6},
        ],
        "recommendations": {
            "this_week": ["Interview customers"],
            "next_week": ["Pricing page"],
            "following_week": ["Paid pilot"],
        },
        "financial_analysis": {"overall_score": 6, "strengths": [], "concerns": []},
        "market_analysis": {"score": 4, "strengths": ["TAM"], "concerns": []},
        "full_report": {
            "investor_feedback_simulation": "Promising but early.",
            "estimated_time_to_investor_ready": "6-8 weeks",
        },
    }
    row.update(overrides)
    return row


# ============================================================================
# Score tiers
# ============================================================================


@pytest.mark.parametrize(
    "score,tier,color,badge",
    [
        (10, ScoreTier.STRONG, "text-green-500", "default"),
        (9, ScoreTier.STRONG, "text-green-500", "default"),
        (8, ScoreTier.STRONG, "text-green-500", "default"),
        (7, ScoreTier.MODERATE, "text-yellow-500", "secondary"),
        (6, ScoreTier.MODERATE, "text-yellow-500", "secondary"),
        (5, ScoreTier.WEAK, "text-red-500", "destructive"),
        (4, ScoreTier.WEAK, "text-red-500", "destructive"),
        (0, ScoreTier.WEAK, "text-red-500", "destructive"),
        (None, ScoreTier.WEAK, "text-red-500", "destructive"),
    ],
)
def test_score_tiers(score, tier, color, badge):
    assert score_tier(score) == tier
    assert score_color(score) == color
    assert score_badge(score) == badge


def test_overall_verdict():
    assert overall_verdict(85) == "Investor-ready with minor refinements"
    assert overall_verdict(60) == "Solid foundation, needs improvement"
    assert overall_verdict(59) == "Requires significant development"
    assert overall_verdict(None) is None


# ============================================================================
# State machine
# ============================================================================


def test_resolve_view_state():
    assert resolve_view_state(None) == ViewerState.NOT_FOUND
    assert resolve_view_state({"status": "processing"}) == ViewerState.PROCESSING
    assert resolve_view_state({"status": "completed"}) == ViewerState.COMPLETED
    assert resolve_view_state({"status": "failed"}) == ViewerState.FAILED


def test_viewer_starts_loading():
    viewer = AnalysisViewer(ANALYSIS_ID)

    assert viewer.state == ViewerState.LOADING
    assert not viewer.is_terminal


def test_viewer_processing_then_completed_event():
    viewer = AnalysisViewer(ANALYSIS_ID)
    viewer.apply_snapshot({"id": ANALYSIS_ID, "status": "processing"})
    assert viewer.state == ViewerState.PROCESSING
    assert not viewer.is_terminal

    viewer.apply_event(_completed_row())

    assert viewer.state == ViewerState.COMPLETED
    assert viewer.is_terminal
    assert viewer.render()["report"]["overall_score"] == 72


def test_viewer_not_found_is_terminal():
    viewer = AnalysisViewer(ANALYSIS_ID)
    viewer.apply_snapshot(None)

    assert viewer.state == ViewerState.NOT_FOUND
    assert viewer.is_terminal


def test_viewer_ignores_events_for_other_ids():
    viewer = AnalysisViewer(ANALYSIS_ID)
    viewer.apply_snapshot({"id": ANALYSIS_ID, "status": "processing"})

    viewer.apply_event(_completed_row(id="another-id"))

    assert viewer.state == ViewerState.PROCESSING


def test_viewer_last_writer_wins():
    """An older snapshot landing after a newer event replaces it."""
    viewer = AnalysisViewer(ANALYSIS_ID)
    viewer.apply_event(_completed_row())
    viewer.apply_snapshot({"id": ANALYSIS_ID, "status": "processing"})

    assert viewer.state == ViewerState.PROCESSING
    assert viewer.row == {"id": ANALYSIS_ID, "status": "processing"}


# ============================================================================
# Rendering
# ============================================================================


def test_render_processing_has_placeholder_without_percentage():
    payload = render_analysis({"id": ANALYSIS_ID, "status": "processing"})

    assert payload["state"] == "processing"
    assert payload["report"] is None
    assert "Analyzing Your Business Plan" == payload["placeholder"]["title"]
    assert "%" not in payload["placeholder"]["eta"]


def test_render_failed_has_message():
    payload = render_analysis({"id": ANALYSIS_ID, "status": "failed"})

    assert payload["state"] == "failed"
    assert payload["report"] is None
    assert "upload" in payload["message"]


def test_render_not_found():
    payload = render_analysis(None)

    assert payload == {"state": "not_found", "analysis": None, "report": None}


def test_render_completed_headline():
    report = render_analysis(_completed_row())["report"]

    assert report["file_name"] == "plan.pdf"
    assert report["overall_score"] == 72
    assert report["target"] == 80
    assert report["verdict"] == "Solid foundation, needs improvement"
    assert report["investor_feedback_simulation"] == "Promising but early."
    assert report["estimated_time_to_investor_ready"] == "6-8 weeks"


def test_overview_lists_all_dimensions_in_order():
    sections = build_report_sections(_completed_row())

    dimensions = sections["overview"]["dimensions"]
    assert [d["key"] for d in dimensions] == list(DIMENSION_KEYS)
    assert dimensions[0]["label"] == "Problem definition"
    assert dimensions[0]["percent"] == 70
    assert dimensions[0]["tier"] == "moderate"


def test_strength_badges():
    strengths = build_report_sections(_completed_row())["strengths"]

    assert strengths[0]["badge"] == "default"
    assert strengths[0]["tier"] == "strong"


def test_gap_severity_colors():
    gaps = build_report_sections(_completed_row())["gaps"]

    assert [g["severity_color"] for g in gaps] == ["text-red-500", "text-yellow-500", "text-blue-500"]
    assert [g["severity_badge"] for g in gaps] == ["destructive", "secondary", "secondary"]
    assert gaps[0]["missing_elements"] == []


def test_financial_section_includes_market():
    financial = build_report_sections(_completed_row())["financial"]

    assert financial["overall_score"] == 6
    assert financial["badge"] == "secondary"
    assert financial["market"]["score"] == 4
    assert financial["market"]["badge"] == "destructive"
    assert financial["market"]["strengths"] == ["TAM"]


def test_action_plan_tiers():
    action = build_report_sections(_completed_row())["action"]

    assert [(a["key"], a["priority"]) for a in action] == [
        ("this_week", "HIGH"),
        ("next_week", "MEDIUM"),
        ("following_week", "LOW"),
    ]
    assert action[2]["actions"] == ["Paid pilot"]


def test_sections_tolerate_missing_subreports():
    row = _completed_row(financial_analysis=None, market_analysis=None, recommendations=None)

    sections = build_report_sections(row)

    assert sections["financial"]["concerns"] == []
    assert sections["financial"]["market"]["score"] is None
    assert all(a["actions"] == [] for a in sections["action"])

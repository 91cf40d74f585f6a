"""Tests for business plan report parsing and validation."""

import json

import pytest

from app.core.report_parsing import ReportValidationError, parse_business_plan_report
from app.core.schemas_business_plan import DIMENSION_KEYS
from tests.fakes.fake_llm import minimal_report


def _full_report() -> dict:
    report = minimal_report(overall_score=72)
    report["dimensional_scores"]["traction"] = 4
    report["strengths"] = [
        {"title": "Clear problem", "score": 9, "description": "d", "details": "x"},
    ]
    report["gaps"] = [
        {
            "title": "No traction",
            "severity": "critical",
            "score": 3,
            "issue": "No users",
            "impact": "Hard to raise",
            "missing_elements": ["pilot data"],
            "time_to_fix": "4 weeks",
            "priority": "high",
        }
    ]
    report["recommendations"] = {
        "this_week": ["Interview 10 customers"],
        "next_week": ["Build pricing page"],
        "following_week": ["Run paid pilot"],
    }
    report["financial_analysis"] = {
        "overall_score": 6,
        "strengths": ["Lean burn"],
        "concerns": [{"title": "CAC", "issue": "unknown", "impact": "i", "recommendation": "r"}],
        "break_even_analysis": "Month 18",
    }
    report["market_analysis"] = {
        "score": 7,
        "strengths": ["Large TAM"],
        "concerns": [{"title": "Crowded", "issue": "many players", "recommendation": "niche"}],
    }
    report["investor_feedback_simulation"] = "Promising but early."
    report["estimated_time_to_investor_ready"] = "6-8 weeks"
    return report


def test_parse_valid_report():
    result = parse_business_plan_report(json.dumps(_full_report()))

    assert result.ok
    assert result.errors == []
    assert result.report.overall_score == 72
    assert result.report.dimensional_scores["traction"] == 4
    assert result.report.gaps[0].severity == "critical"
    assert result.raw["investor_feedback_simulation"] == "Promising but early."


def test_parse_fenced_report():
    """Models sometimes wrap JSON in markdown fences."""
    raw = "```json\n" + json.dumps(minimal_report()) + "\n```"

    result = parse_business_plan_report(raw)

    assert result.ok


def test_optional_sections_default_to_empty():
    result = parse_business_plan_report(json.dumps(minimal_report()))

    report = result.unwrap()
    assert report.financial_analysis.concerns == []
    assert report.market_analysis.score is None
    assert report.recommendations.following_week == []


def test_dimensions_reordered_canonically():
    report = minimal_report()
    report["dimensional_scores"] = dict(reversed(list(report["dimensional_scores"].items())))

    result = parse_business_plan_report(json.dumps(report))

    assert tuple(result.report.dimensional_scores) == DIMENSION_KEYS


def test_to_record_fields_has_report_columns():
    fields = parse_business_plan_report(json.dumps(_full_report())).report.to_record_fields()

    assert set(fields) == {
        "overall_score",
        "dimensional_scores",
        "strengths",
        "gaps",
        "recommendations",
        "financial_analysis",
        "market_analysis",
    }
    assert fields["strengths"][0]["title"] == "Clear problem"


def test_invalid_json_returns_errors_without_raising():
    result = parse_business_plan_report("I'm sorry, I cannot analyze this.")

    assert not result.ok
    assert result.raw is None
    assert result.errors[0]["loc"] == "(root)"
    assert "invalid JSON" in result.errors[0]["msg"]


def test_json_array_is_rejected():
    result = parse_business_plan_report("[1, 2, 3]")

    assert not result.ok


def test_missing_dimension_is_rejected():
    report = minimal_report()
    del report["dimensional_scores"]["use_of_funds"]

    result = parse_business_plan_report(json.dumps(report))

    assert not result.ok
    assert result.raw == report
    assert any("use_of_funds" in err["msg"] for err in result.errors)


def test_unknown_dimension_is_rejected():
    report = minimal_report()
    report["dimensional_scores"]["vibes"] = 10

    result = parse_business_plan_report(json.dumps(report))

    assert not result.ok
    assert any("vibes" in err["msg"] for err in result.errors)


@pytest.mark.parametrize("score", [-1, 11])
def test_dimension_score_out_of_range(score):
    report = minimal_report()
    report["dimensional_scores"]["traction"] = score

    result = parse_business_plan_report(json.dumps(report))

    assert not result.ok


def test_overall_score_out_of_range():
    result = parse_business_plan_report(json.dumps(minimal_report(overall_score=101)))

    assert not result.ok
    assert result.errors[0]["loc"] == "overall_score"


def test_bad_gap_severity():
    report = minimal_report()
    report["gaps"] = [{"title": "t", "severity": "urgent", "score": 2}]

    result = parse_business_plan_report(json.dumps(report))

    assert not result.ok
    assert result.errors[0]["loc"].startswith("gaps.0.severity")


def test_unwrap_raises_with_errors():
    result = parse_business_plan_report("{}")

    with pytest.raises(ReportValidationError) as exc_info:
        result.unwrap()

    assert str(exc_info.value) == "Model output could not be validated to schema"
    locs = {err["loc"] for err in exc_info.value.errors}
    assert {"overall_score", "dimensional_scores"} <= locs


def test_fence_inside_string_value_is_kept():
    report = minimal_report()
    report["investor_feedback_simulation"] = (
        "Use this formula:\n```\nLTV = ARPU / churn\n```\nthen compare with CAC."
    )

    result = parse_business_plan_report(json.dumps(report))

    assert result.ok
    assert "LTV = ARPU / churn" in result.report.investor_feedback_simulation
    assert result.raw == report


def test_null_sections_read_as_empty():
    report = minimal_report()
    report["strengths"] = None
    report["gaps"] = None
    report["recommendations"] = None
    report["financial_analysis"] = None
    report["market_analysis"] = None

    result = parse_business_plan_report(json.dumps(report))

    assert result.ok
    fields = result.report.to_record_fields()
    assert fields["strengths"] == []
    assert fields["gaps"] == []
    assert fields["recommendations"] == {"this_week": [], "next_week": [], "following_week": []}
    assert fields["financial_analysis"]["concerns"] == []
    assert fields["market_analysis"]["score"] is None


def test_null_nested_lists_read_as_empty():
    report = minimal_report()
    report["recommendations"] = {"this_week": ["Call 5 bakeries"], "next_week": None}
    report["financial_analysis"] = {"overall_score": None, "strengths": None, "concerns": None}
    report["gaps"] = [{"title": "Team", "severity": "important", "score": 5, "missing_elements": None}]

    report_model = parse_business_plan_report(json.dumps(report)).unwrap()

    assert report_model.recommendations.next_week == []
    assert report_model.financial_analysis.strengths == []
    assert report_model.gaps[0].missing_elements == []


def test_null_required_field_is_still_rejected():
    report = minimal_report()
    report["gaps"] = [{"title": None, "severity": "critical", "score": 2}]

    result = parse_business_plan_report(json.dumps(report))

    assert not result.ok
    assert result.errors[0]["loc"] == "gaps.0.title"

"""Validation of model output against the business plan report schema."""

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from app.core.llm import parse_llm_json_dict
from app.core.schemas_business_plan import BusinessPlanReport


class ReportValidationError(Exception):
    """Model output could not be validated to the report schema."""

    def __init__(self, errors: list[dict[str, str]]):
        super().__init__("Model output could not be validated to schema")
        self.errors = errors


@dataclass
class ReportParseResult:
    """Outcome of parsing one model response.

    Exactly one of ``report`` or ``errors`` is meaningful: ``ok`` tells which.
    ``raw`` holds the decoded JSON whenever decoding succeeded.
    """

    report: BusinessPlanReport | None = None
    raw: dict[str, Any] | None = None
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.report is not None

    def unwrap(self) -> BusinessPlanReport:
        """Return the report or raise ReportValidationError."""
        if self.report is None:
            raise ReportValidationError(self.errors)
        return self.report


def _format_errors(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {
            "loc": ".".join(str(part) for part in err["loc"]) or "(root)",
            "msg": err["msg"],
        }
        for err in exc.errors()
    ]


def parse_business_plan_report(raw_output: str) -> ReportParseResult:
    """
    Parse and validate the analysis model's message content.

    Never raises for bad model output; problems are returned as structured
    errors on the result.

    Args:
        raw_output: Assistant message content

    Returns:
        ReportParseResult
    """
    try:
        data = parse_llm_json_dict(raw_output)
    except (json.JSONDecodeError, ValueError) as e:
        return ReportParseResult(errors=[{"loc": "(root)", "msg": f"invalid JSON: {e}"}])

    try:
        report = BusinessPlanReport.model_validate(data)
    except ValidationError as e:
        return ReportParseResult(raw=data, errors=_format_errors(e))

    return ReportParseResult(report=report, raw=data)

"""Rerun business plan analysis on an existing record.

Downloads the stored plan file, extracts its text the same way the upload
endpoint does, and scores it again. The new report replaces the old one.

Usage:
    uv run python scripts/rerun_analysis.py <analysis_id> [--dry-run] [--dump <path>]

Examples:
    # Rescore and overwrite the stored report
    uv run python scripts/rerun_analysis.py 5929b7e7-d036-45e2-b71f-5ff8e49e6b7e

    # Score without writing anything back
    uv run python scripts/rerun_analysis.py 5929b7e7-d036-45e2-b71f-5ff8e49e6b7e \
        --dry-run --dump /tmp/report.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Ensure app is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def rerun(analysis_id: str, dry_run: bool, dump_path: str | None) -> int:
    from app.chains.analyze_business_plan import (
        generate_business_plan_report,
        run_business_plan_analysis,
    )
    from app.core.config import get_settings
    from app.core.file_text import extract_text_from_upload
    from app.core.llm import get_gateway
    from app.db.business_plan_analyses import get_analysis
    from app.db.storage import download_plan_file

    settings = get_settings()
    gateway = get_gateway()

    print(f"\n{'='*60}")
    print(f"Loading analysis {analysis_id}...")
    analysis = get_analysis(analysis_id)
    if analysis is None:
        print("ERROR: Analysis not found")
        return 1
    print(f"  File: {analysis['file_name']} ({analysis['file_size']} bytes)")
    print(f"  Status: {analysis['status']}")

    print("\nDownloading plan file...")
    raw_bytes = download_plan_file(analysis["file_path"])
    extracted = extract_text_from_upload(
        analysis["file_name"], raw_bytes, settings.MAX_ANALYSIS_CHARS
    )
    print(f"  Encoding: {extracted.detected_encoding}")
    print(f"  Characters: {len(extracted.text)}{' (truncated)' if extracted.truncated else ''}")

    print(f"\nScoring with {settings.ANALYSIS_MODEL}{' (dry run)' if dry_run else ''}...")
    if dry_run:
        result = generate_business_plan_report(extracted.text, gateway=gateway, settings=settings)
        if not result.ok:
            print("Model output failed validation:")
            for err in result.errors:
                print(f"  {err['loc']}: {err['msg']}")
        report = result.raw
    else:
        report = run_business_plan_analysis(
            analysis_id, extracted.text, gateway=gateway, settings=settings
        )

    if report is not None:
        print(f"\n  Overall score: {report.get('overall_score')}")
        for key, score in (report.get("dimensional_scores") or {}).items():
            print(f"    {key}: {score}")

    if dump_path and report is not None:
        Path(dump_path).write_text(json.dumps(report, indent=2))
        print(f"\nReport written to {dump_path}")

    print(f"{'='*60}\n")
    return 0 if report is not None else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Rerun business plan analysis")
    parser.add_argument("analysis_id", help="business_plan_analyses row id")
    parser.add_argument("--dry-run", action="store_true", help="Score without updating the record")
    parser.add_argument("--dump", default=None, help="Write the raw report JSON to this path")
    args = parser.parse_args()

    sys.exit(rerun(args.analysis_id, args.dry_run, args.dump))


if __name__ == "__main__":
    main()

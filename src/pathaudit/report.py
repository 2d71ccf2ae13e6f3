"""Render audit reports and derive the process exit code."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from typing import Any

from .models import AuditReport, ValidationResult

logger = logging.getLogger(__name__)

WriteFn = Callable[[str], None]

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_FATAL = 2

FORMAT_TEXT = "text"
FORMAT_JSON = "json"
FORMATS = (FORMAT_TEXT, FORMAT_JSON)


def exit_code_for(report: AuditReport) -> int:
    """Return 0 iff there are no blocking invalid references."""
    return EXIT_OK if report.invalid_count == 0 else EXIT_INVALID


def emit_report(
    report: AuditReport,
    write: WriteFn = print,
    *,
    fmt: str = FORMAT_TEXT,
    error_write: WriteFn | None = None,
) -> int:
    """Write the report through ``write`` and return the exit code.

    Output is rendered completely before anything is written, so a rendering
    failure never leaves a partial report that looks successful. Failures are
    reported through ``error_write`` and map to exit code 2.
    """
    if error_write is None:
        error_write = _stderr
    try:
        if fmt == FORMAT_JSON:
            lines = [render_json(report)]
        elif fmt == FORMAT_TEXT:
            lines = render_text(report)
        else:
            raise ValueError(f"Unknown report format: {fmt}")
        code = exit_code_for(report)
        for line in lines:
            write(line)
    except Exception as exc:
        logger.debug("Report generation failed", exc_info=True)
        error_write(f"Report generation failed: {exc}")
        return EXIT_FATAL
    return code


def render_text(report: AuditReport) -> list[str]:
    """Render the human-readable report as output lines."""
    lines: list[str] = []
    lines.extend(_summary_lines(report))
    lines.extend(_path_table_lines(report))
    lines.extend(_result_lines("Blocking failures", report.blocking_results))
    lines.extend(_result_lines("Optional gaps (informational)", report.optional_gaps))
    lines.extend(_metadata_lines(report))
    lines.extend(_warning_lines(report))
    lines.append("")
    if report.passed:
        lines.append("PASS: no blocking invalid references")
    else:
        lines.append(f"FAIL: {report.invalid_count} blocking invalid reference(s)")
    return lines


def _summary_lines(report: AuditReport) -> list[str]:
    fully_valid = sum(1 for item in report.per_path if item.fully_valid)
    title = "Content Audit Report"
    return [
        title,
        "=" * len(title),
        f"Learning paths: {report.total_paths} ({fully_valid} of {report.total_paths} are 100% valid)",
        f"Steps: {report.total_steps}",
        f"Valid: {report.valid_count}",
        f"Blocking invalid: {report.invalid_count}",
        f"Optional gaps: {report.optional_gap_count}",
        f"Unreferenced pages: {len(report.unreferenced_pages)} (may be intentional)",
    ]


def _path_table_lines(report: AuditReport) -> list[str]:
    if not report.per_path:
        return []
    rows = report.per_path
    path_width = max(len("Path"), max(len(item.path_id) for item in rows))
    category_width = max(len("Category"), max(len(item.category) for item in rows))
    steps_width = max(len("Steps"), max(len(str(item.total)) for item in rows))
    valid_width = max(len("Valid"), max(len(str(item.valid)) for item in rows))
    blocking_width = max(len("Blocking"), max(len(str(item.blocking)) for item in rows))
    optional_width = max(len("Optional"), max(len(str(item.optional_gaps)) for item in rows))
    header = (
        f"{'Path':<{path_width}} "
        f"{'Category':<{category_width}} "
        f"{'Steps':>{steps_width}} "
        f"{'Valid':>{valid_width}} "
        f"{'Blocking':>{blocking_width}} "
        f"{'Optional':>{optional_width}} "
        "%"
    )
    lines = ["", "By learning path:", header, "-" * len(header)]
    for item in rows:
        lines.append(
            f"{item.path_id:<{path_width}} "
            f"{item.category:<{category_width}} "
            f"{item.total:>{steps_width}} "
            f"{item.valid:>{valid_width}} "
            f"{item.blocking:>{blocking_width}} "
            f"{item.optional_gaps:>{optional_width}} "
            f"{item.percent_valid:.1f}"
        )
    return lines


def _result_lines(title: str, results: tuple[ValidationResult, ...]) -> list[str]:
    if not results:
        return []
    lines = ["", f"{title} ({len(results)}):"]
    for item in results:
        lines.append(
            f"- {item.path_id} step {item.step.index + 1}: "
            f"{item.step.topic}/{item.step.depth} [{item.status}] {item.reason}"
        )
    return lines


def _metadata_lines(report: AuditReport) -> list[str]:
    if not report.missing_metadata:
        return []
    lines = ["", f"Missing metadata, by reference count ({len(report.missing_metadata)}):"]
    rank_width = len(str(len(report.missing_metadata)))
    for rank, gap in enumerate(report.missing_metadata, start=1):
        lines.append(
            f"{rank:>{rank_width}}) {gap.topic}.json "
            f"({gap.references} reference(s); used by: {', '.join(gap.referenced_by)})"
        )
    return lines


def _warning_lines(report: AuditReport) -> list[str]:
    if not report.has_warnings:
        return []
    count = len(report.load_errors) + len(report.step_errors) + len(report.scan_warnings)
    lines = ["", f"Warnings ({count}):"]
    for error in report.load_errors:
        lines.append(f"- load error: {error.source}: {error.message}")
    for step_error in report.step_errors:
        lines.append(
            f"- manifest error: {step_error.path_id} step {step_error.index + 1} ({step_error.topic}): "
            f"{step_error.message}"
        )
    for warning in report.scan_warnings:
        lines.append(f"- scan warning: {warning.path}: {warning.message}")
    return lines


def build_payload(report: AuditReport) -> dict[str, Any]:
    """Return a JSON-serializable view of the report."""
    return {
        "summary": {
            "total_paths": report.total_paths,
            "total_steps": report.total_steps,
            "valid": report.valid_count,
            "invalid": report.invalid_count,
            "optional_gaps": report.optional_gap_count,
            "fully_valid_paths": sum(1 for item in report.per_path if item.fully_valid),
            "passed": report.passed,
            "exit_code": exit_code_for(report),
        },
        "paths": [
            {
                "id": item.path_id,
                "category": item.category,
                "total": item.total,
                "valid": item.valid,
                "blocking": item.blocking,
                "optional_gaps": item.optional_gaps,
                "percent_valid": round(item.percent_valid, 1),
            }
            for item in report.per_path
        ],
        "failures": [_result_payload(item) for item in report.blocking_results],
        "optional_gaps": [_result_payload(item) for item in report.optional_gaps],
        "missing_metadata": [
            {"topic": gap.topic, "references": gap.references, "referenced_by": list(gap.referenced_by)}
            for gap in report.missing_metadata
        ],
        "topic_reference_frequency": [
            {"topic": topic, "count": count} for topic, count in report.topic_reference_frequency.items()
        ],
        "unreferenced_pages": [{"topic": topic, "depth": depth} for topic, depth in report.unreferenced_pages],
        "warnings": {
            "load_errors": [
                {"path_id": error.path_id, "source": str(error.source), "message": error.message}
                for error in report.load_errors
            ],
            "step_errors": [
                {"path_id": error.path_id, "step": error.index + 1, "topic": error.topic, "message": error.message}
                for error in report.step_errors
            ],
            "scan_warnings": [
                {"path": str(warning.path), "message": warning.message} for warning in report.scan_warnings
            ],
        },
    }


def _result_payload(item: ValidationResult) -> dict[str, Any]:
    return {
        "path_id": item.path_id,
        "step": item.step.index + 1,
        "topic": item.step.topic,
        "depth": item.step.depth,
        "required": item.step.required,
        "status": item.status,
        "severity": item.severity,
    }


def render_json(report: AuditReport) -> str:
    """Render the report as one deterministic JSON document."""
    return json.dumps(build_payload(report), indent=2, sort_keys=True)


def _stderr(message: str) -> None:
    print(message, file=sys.stderr)

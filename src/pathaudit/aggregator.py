"""Roll validation results up into an audit report."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from .inventory import Inventory
from .models import (
    SEVERITY_BLOCKING,
    STATUS_MISSING_BOTH,
    STATUS_MISSING_METADATA,
    AuditReport,
    LearningPath,
    LoadError,
    MetadataGap,
    PathBreakdown,
    ScanWarning,
    ValidationResult,
)


def build_report(
    paths: Sequence[LearningPath],
    results: Sequence[ValidationResult],
    *,
    load_errors: Iterable[LoadError] = (),
    scan_warnings: Iterable[ScanWarning] = (),
    inventory: Inventory | None = None,
) -> AuditReport:
    """Build the immutable audit report from resolved results."""
    results_by_path: dict[str, list[ValidationResult]] = {path.id: [] for path in paths}
    for result in results:
        results_by_path.setdefault(result.path_id, []).append(result)

    per_path = tuple(_breakdown(path, results_by_path[path.id]) for path in paths)

    valid_count = sum(1 for item in results if item.is_valid)
    invalid_count = sum(1 for item in results if item.severity == SEVERITY_BLOCKING)
    optional_gap_count = len(results) - valid_count - invalid_count

    frequency = Counter(item.step.topic for item in results)
    ranked_frequency = dict(sorted(frequency.items(), key=lambda pair: (-pair[1], pair[0])))

    return AuditReport(
        total_paths=len(paths),
        total_steps=len(results),
        valid_count=valid_count,
        invalid_count=invalid_count,
        optional_gap_count=optional_gap_count,
        topic_reference_frequency=ranked_frequency,
        per_path=per_path,
        results=tuple(results),
        missing_metadata=_missing_metadata(results, ranked_frequency, inventory),
        unreferenced_pages=_unreferenced_pages(results, inventory),
        load_errors=tuple(load_errors),
        step_errors=tuple(error for path in paths for error in path.step_errors),
        scan_warnings=tuple(scan_warnings),
    )


def _breakdown(path: LearningPath, results: Sequence[ValidationResult]) -> PathBreakdown:
    valid = sum(1 for item in results if item.is_valid)
    blocking = sum(1 for item in results if item.severity == SEVERITY_BLOCKING)
    return PathBreakdown(
        path_id=path.id,
        category=path.category,
        total=len(results),
        valid=valid,
        blocking=blocking,
        optional_gaps=len(results) - valid - blocking,
    )


def _missing_metadata(
    results: Sequence[ValidationResult],
    frequency: dict[str, int],
    inventory: Inventory | None,
) -> tuple[MetadataGap, ...]:
    """Rank referenced topics lacking metadata by raw reference count."""
    referenced_by: dict[str, set[str]] = {}
    for result in results:
        if _lacks_metadata(result, inventory):
            referenced_by.setdefault(result.step.topic, set()).add(result.path_id)

    # frequency is already ordered by count descending, then slug
    return tuple(
        MetadataGap(topic=slug, references=count, referenced_by=tuple(sorted(referenced_by[slug])))
        for slug, count in frequency.items()
        if slug in referenced_by
    )


def _lacks_metadata(result: ValidationResult, inventory: Inventory | None) -> bool:
    if inventory is None:
        # Without an inventory only the status can tell; a missing-content step hides metadata state.
        return result.status in (STATUS_MISSING_METADATA, STATUS_MISSING_BOTH)
    topic = inventory.topics.get(result.step.topic)
    return topic is None or not topic.has_metadata


def _unreferenced_pages(
    results: Sequence[ValidationResult], inventory: Inventory | None
) -> tuple[tuple[str, str], ...]:
    if inventory is None:
        return ()
    referenced = {(item.step.topic, item.step.depth) for item in results}
    return tuple(page for page in inventory.pages() if page not in referenced)

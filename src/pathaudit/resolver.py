"""Resolve learning-path steps against the topic inventory."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .models import (
    STATUS_MISSING_BOTH,
    STATUS_MISSING_CONTENT,
    STATUS_MISSING_METADATA,
    STATUS_VALID,
    LearningPath,
    Step,
    Topic,
    ValidationResult,
)


def classify(step: Step, topics: Mapping[str, Topic]) -> str:
    """Return the status of one step.

    Content is checked before metadata: a dead link outranks a page that
    merely lacks its related-topics sidebar.
    """
    topic = topics.get(step.topic)
    if topic is None:
        return STATUS_MISSING_BOTH
    if step.depth not in topic.existing_depths:
        return STATUS_MISSING_CONTENT
    if not topic.has_metadata:
        return STATUS_MISSING_METADATA
    return STATUS_VALID


def resolve_step(step: Step, topics: Mapping[str, Topic], path_id: str = "") -> ValidationResult:
    """Resolve one step into a validation result."""
    return ValidationResult(path_id=path_id, step=step, status=classify(step, topics))


def resolve_path(path: LearningPath, topics: Mapping[str, Topic]) -> list[ValidationResult]:
    """Resolve every step of one learning path in manifest order."""
    return [resolve_step(step, topics, path.id) for step in path.steps]


def resolve_paths(paths: Iterable[LearningPath], topics: Mapping[str, Topic]) -> list[ValidationResult]:
    """Resolve all paths, preserving path then step order."""
    results: list[ValidationResult] = []
    for path in paths:
        results.extend(resolve_path(path, topics))
    return results

"""Core domain models for learning-path reference auditing."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEPTH_LEVELS: tuple[str, ...] = ("surface", "mid-depth", "deep-water")

STATUS_VALID = "valid"
STATUS_MISSING_CONTENT = "missing-content"
STATUS_MISSING_METADATA = "missing-metadata"
STATUS_MISSING_BOTH = "missing-both"

SEVERITY_BLOCKING = "blocking"
SEVERITY_INFORMATIONAL = "informational"

STATUS_REASONS: dict[str, str] = {
    STATUS_VALID: "ok",
    STATUS_MISSING_CONTENT: "content page missing",
    STATUS_MISSING_METADATA: "metadata file missing",
    STATUS_MISSING_BOTH: "topic has no content or metadata",
}


class FatalAuditError(Exception):
    """Unrecoverable audit failure (exit code 2)."""


@dataclass(frozen=True)
class Topic:
    """One content topic discovered on disk."""

    slug: str
    existing_depths: frozenset[str]
    has_metadata: bool
    phases: tuple[str, ...] = ()


@dataclass(frozen=True)
class Step:
    """One topic reference inside a learning path."""

    topic: str
    depth: str
    index: int
    required: bool = True
    phase: str | None = None


@dataclass(frozen=True)
class StepError:
    """Manifest step with an unknown depth value (an authoring bug)."""

    path_id: str
    index: int
    topic: str
    message: str


@dataclass(frozen=True)
class LearningPath:
    """Ordered learning path manifest."""

    id: str
    category: str
    steps: tuple[Step, ...]
    source: Path | None = None
    title: str = ""
    description: str = ""
    step_errors: tuple[StepError, ...] = ()


@dataclass(frozen=True)
class LoadError:
    """Manifest file that could not be parsed."""

    path_id: str
    source: Path
    message: str


@dataclass(frozen=True)
class ScanWarning:
    """Directory that could not be read during inventory scan."""

    path: Path
    message: str


@dataclass(frozen=True)
class ValidationResult:
    """Resolution outcome for one step."""

    path_id: str
    step: Step
    status: str

    @property
    def severity(self) -> str:
        if self.step.required and self.status != STATUS_VALID:
            return SEVERITY_BLOCKING
        return SEVERITY_INFORMATIONAL

    @property
    def is_valid(self) -> bool:
        return self.status == STATUS_VALID

    @property
    def reason(self) -> str:
        return STATUS_REASONS[self.status]


@dataclass(frozen=True)
class PathBreakdown:
    """Per-path totals."""

    path_id: str
    category: str
    total: int
    valid: int
    blocking: int
    optional_gaps: int

    @property
    def percent_valid(self) -> float:
        return 100.0 if self.total == 0 else (100.0 * self.valid / self.total)

    @property
    def fully_valid(self) -> bool:
        return self.valid == self.total


@dataclass(frozen=True)
class MetadataGap:
    """Referenced topic without a metadata file."""

    topic: str
    references: int
    referenced_by: tuple[str, ...]


@dataclass(frozen=True)
class AuditReport:
    """Aggregate result of one validation run."""

    total_paths: int
    total_steps: int
    valid_count: int
    invalid_count: int
    optional_gap_count: int
    topic_reference_frequency: dict[str, int]
    per_path: tuple[PathBreakdown, ...]
    results: tuple[ValidationResult, ...]
    missing_metadata: tuple[MetadataGap, ...] = ()
    unreferenced_pages: tuple[tuple[str, str], ...] = ()
    load_errors: tuple[LoadError, ...] = ()
    step_errors: tuple[StepError, ...] = ()
    scan_warnings: tuple[ScanWarning, ...] = ()

    @property
    def blocking_results(self) -> tuple[ValidationResult, ...]:
        return tuple(item for item in self.results if item.severity == SEVERITY_BLOCKING)

    @property
    def optional_gaps(self) -> tuple[ValidationResult, ...]:
        return tuple(
            item for item in self.results if item.severity == SEVERITY_INFORMATIONAL and not item.is_valid
        )

    @property
    def has_warnings(self) -> bool:
        return bool(self.load_errors or self.step_errors or self.scan_warnings)

    @property
    def passed(self) -> bool:
        return self.invalid_count == 0

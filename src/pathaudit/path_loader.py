"""Load learning-path JSON manifests from a directory tree."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from .models import DEPTH_LEVELS, FatalAuditError, LearningPath, LoadError, Step, StepError

logger = logging.getLogger(__name__)

MANIFEST_GLOB = "*.json"
DEFAULT_CATEGORY = "uncategorized"
DYNAMIC_STEP_FIELDS = ("note", "problem")


@dataclass(frozen=True)
class PathLoadResult:
    """Successfully loaded paths plus per-file load errors."""

    paths: tuple[LearningPath, ...]
    errors: tuple[LoadError, ...]

    @property
    def step_errors(self) -> tuple[StepError, ...]:
        return tuple(error for path in self.paths for error in path.step_errors)


def load_learning_paths(paths_root: Path | str) -> PathLoadResult:
    """Load every manifest under ``paths_root``.

    A broken manifest is recorded as a ``LoadError`` and never stops the
    remaining files from loading. Only a missing or unreadable root is fatal.
    """
    root = Path(paths_root)
    if not root.is_dir():
        raise FatalAuditError(f"Learning paths root not found: {root}")
    try:
        files = sorted(path for path in root.rglob(MANIFEST_GLOB) if path.is_file())
    except OSError as exc:
        raise FatalAuditError(f"Learning paths root is unreadable: {root} ({exc})") from exc

    paths: list[LearningPath] = []
    errors: list[LoadError] = []
    seen: dict[str, Path] = {}
    for file_path in files:
        parsed = parse_manifest(file_path, root)
        if isinstance(parsed, LearningPath):
            previous = seen.get(parsed.id)
            if previous is not None:
                parsed = LoadError(
                    path_id=file_path.stem,
                    source=file_path,
                    message=f"Duplicate learning path id: {parsed.id} (already defined in {previous.name})",
                )
            else:
                seen[parsed.id] = file_path
                paths.append(parsed)
                continue
        logger.warning("Skipping manifest %s: %s", parsed.source, parsed.message)
        errors.append(parsed)

    logger.debug("Loaded %d learning paths, %d load errors", len(paths), len(errors))
    return PathLoadResult(paths=tuple(paths), errors=tuple(errors))


def parse_manifest(file_path: Path, paths_root: Path | None = None) -> LearningPath | LoadError:
    """Parse one manifest file into a path, or a load error describing why it failed."""
    try:
        raw: object = json.loads(file_path.read_text(encoding="utf-8-sig"))
        return _path_from_dict(raw, file_path, paths_root)
    except (OSError, ValueError) as exc:
        return LoadError(path_id=file_path.stem, source=file_path, message=str(exc))


def _path_from_dict(raw: object, file_path: Path, paths_root: Path | None) -> LearningPath:
    """Build a learning path from raw JSON content."""
    if not isinstance(raw, dict):
        raise ValueError("Manifest root must be a JSON object.")
    manifest = cast(dict[str, Any], raw)

    path_id = manifest.get("id")
    if path_id is None:
        path_id = file_path.stem
    elif not isinstance(path_id, str) or not path_id.strip():
        raise ValueError("Field 'id' must be a non-empty string.")
    path_id = path_id.strip()
    category = str(manifest.get("category") or _category_from_location(file_path, paths_root))

    steps: list[Step] = []
    step_errors: list[StepError] = []
    for index, raw_step in enumerate(collect_raw_steps(manifest)):
        step = _step_from_dict(index, raw_step)
        if step is None:
            continue
        # Unknown depths stay in the path so they resolve as missing content.
        steps.append(step)
        if step.depth not in DEPTH_LEVELS:
            step_errors.append(
                StepError(
                    path_id=path_id,
                    index=index,
                    topic=step.topic,
                    message=f"unknown depth '{step.depth}' (expected one of: {', '.join(DEPTH_LEVELS)})",
                )
            )

    return LearningPath(
        id=path_id,
        category=category,
        steps=tuple(steps),
        source=file_path,
        title=str(manifest.get("title") or ""),
        description=str(manifest.get("description") or ""),
        step_errors=tuple(step_errors),
    )


def collect_raw_steps(manifest: dict[str, Any]) -> list[Any]:
    """Return raw step objects from ``steps``, ``milestones[].steps`` and ``journey_steps``."""
    collected: list[Any] = []
    collected.extend(_step_list(manifest, "steps"))

    milestones = manifest.get("milestones")
    if milestones is not None:
        if not isinstance(milestones, list):
            raise ValueError("Field 'milestones' must be a list.")
        for milestone in milestones:
            if not isinstance(milestone, dict):
                raise ValueError("Each milestone must be a JSON object.")
            collected.extend(_step_list(milestone, "steps"))

    collected.extend(_step_list(manifest, "journey_steps"))
    return collected


def _step_list(container: dict[str, Any], key: str) -> list[Any]:
    value = container.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Field '{key}' must be a list.")
    return value


def _step_from_dict(index: int, raw: object) -> Step | None:
    """Build a step; ``None`` marks a dynamic step that carries no topic reference."""
    if not isinstance(raw, dict):
        raise ValueError(f"Step {index + 1} must be a JSON object.")

    topic = raw.get("topic")
    depth = raw.get("depth")
    if (topic is None or depth is None) and any(key in raw for key in DYNAMIC_STEP_FIELDS):
        return None

    if not isinstance(topic, str) or not topic.strip():
        raise ValueError(f"Step {index + 1} has no valid 'topic'.")
    if not isinstance(depth, str):
        raise ValueError(f"Step {index + 1} ({topic}) has no valid 'depth'.")

    required = raw.get("required")
    if required is None:
        required = True
    elif not isinstance(required, bool):
        raise ValueError(f"Step {index + 1} ({topic}) has non-boolean 'required'.")

    phase = raw.get("phase")
    return Step(
        topic=topic.strip(),
        depth=depth.strip(),
        index=index,
        required=required,
        phase=phase if isinstance(phase, str) else None,
    )


def _category_from_location(file_path: Path, paths_root: Path | None) -> str:
    """Infer category from the first directory below the paths root."""
    if paths_root is None:
        return DEFAULT_CATEGORY
    try:
        relative = file_path.relative_to(paths_root)
    except ValueError:
        return DEFAULT_CATEGORY
    if len(relative.parts) > 1:
        return relative.parts[0]
    return DEFAULT_CATEGORY

"""Apply topic renames to learning-path manifests.

Renames operate on the parsed manifest structure, never on raw text, so a
mapping for ``unit-testing`` can never touch ``unit-integration-testing``.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

from .models import FatalAuditError
from .path_loader import MANIFEST_GLOB

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepChange:
    """One edit made to one manifest step."""

    index: int
    old_topic: str
    new_topic: str
    marked_optional: bool


@dataclass(frozen=True)
class FileChange:
    """Edits for one manifest file."""

    source: Path
    changes: tuple[StepChange, ...]
    written: bool = False
    error: str | None = None


def parse_rename(text: str) -> tuple[str, str]:
    """Parse ``old=new`` into a rename pair."""
    old, sep, new = text.partition("=")
    old = old.strip()
    new = new.strip()
    if not sep or not old or not new:
        raise ValueError(f"Invalid rename {text!r}. Expected OLD=NEW.")
    if old == new:
        raise ValueError(f"Rename {text!r} maps a topic to itself.")
    return old, new


def build_mapping(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Build a rename mapping, rejecting conflicting targets for one source."""
    mapping: dict[str, str] = {}
    for old, new in pairs:
        existing = mapping.get(old)
        if existing is not None and existing != new:
            raise ValueError(f"Conflicting renames for '{old}': '{existing}' and '{new}'.")
        mapping[old] = new
    return mapping


def apply_renames(
    manifest: Mapping[str, Any],
    mapping: Mapping[str, str],
    mark_optional: Collection[str] = (),
) -> tuple[dict[str, Any], list[StepChange]]:
    """Return a renamed copy of ``manifest`` plus the list of step edits.

    Each step topic is looked up once (no chained renames). Optional marking
    matches the topic after renaming.
    """
    updated = cast(dict[str, Any], copy.deepcopy(dict(manifest)))
    changes: list[StepChange] = []
    for index, step in enumerate(_iter_step_dicts(updated)):
        topic = step.get("topic")
        if not isinstance(topic, str):
            continue
        new_topic = mapping.get(topic, topic)
        mark = new_topic in mark_optional and step.get("required", True) is not False
        if new_topic == topic and not mark:
            continue
        step["topic"] = new_topic
        if mark:
            step["required"] = False
        changes.append(StepChange(index=index, old_topic=topic, new_topic=new_topic, marked_optional=mark))
    return updated, changes


def _iter_step_dicts(manifest: dict[str, Any]) -> list[dict[str, Any]]:
    """Return step dicts in the same order the loader collects them."""
    found: list[dict[str, Any]] = []
    containers: list[Any] = [manifest.get("steps")]
    milestones = manifest.get("milestones")
    if isinstance(milestones, list):
        containers.extend(item.get("steps") for item in milestones if isinstance(item, dict))
    containers.append(manifest.get("journey_steps"))
    for container in containers:
        if isinstance(container, list):
            found.extend(item for item in container if isinstance(item, dict))
    return found


def fix_directory(
    paths_root: Path | str,
    mapping: Mapping[str, str],
    mark_optional: Collection[str] = (),
    *,
    write: bool = False,
) -> list[FileChange]:
    """Apply renames to every manifest under ``paths_root``.

    Files are rewritten only when ``write`` is true and something changed.
    Manifests that fail to parse are reported and left untouched. A failed
    rewrite keeps its pending edits alongside the error.
    """
    root = Path(paths_root)
    if not root.is_dir():
        raise FatalAuditError(f"Learning paths root not found: {root}")

    results: list[FileChange] = []
    for file_path in sorted(path for path in root.rglob(MANIFEST_GLOB) if path.is_file()):
        try:
            raw: object = json.loads(file_path.read_text(encoding="utf-8-sig"))
        except (OSError, ValueError) as exc:
            results.append(FileChange(source=file_path, changes=(), error=str(exc)))
            continue
        if not isinstance(raw, dict):
            results.append(FileChange(source=file_path, changes=(), error="Manifest root must be a JSON object."))
            continue

        updated, changes = apply_renames(cast(dict[str, Any], raw), mapping, mark_optional)
        if not changes:
            continue
        if write:
            try:
                file_path.write_text(json.dumps(updated, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
            except OSError as exc:
                logger.error("Could not rewrite %s: %s", file_path, exc)
                results.append(FileChange(source=file_path, changes=tuple(changes), error=str(exc)))
                continue
            logger.debug("Rewrote %s (%d step edits)", file_path, len(changes))
        results.append(FileChange(source=file_path, changes=tuple(changes), written=write))
    return results

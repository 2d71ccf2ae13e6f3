"""Scan content and metadata trees into a topic inventory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .models import DEPTH_LEVELS, ScanWarning, Topic

logger = logging.getLogger(__name__)

INDEX_STEM = "index"
METADATA_SUFFIX = ".json"


@dataclass(frozen=True)
class Inventory:
    """Topics found on disk plus any warnings raised while scanning."""

    topics: dict[str, Topic]
    warnings: tuple[ScanWarning, ...] = ()

    def pages(self) -> list[tuple[str, str]]:
        """Return every existing (topic, depth) page in stable order."""
        return [
            (slug, depth)
            for slug in sorted(self.topics)
            for depth in DEPTH_LEVELS
            if depth in self.topics[slug].existing_depths
        ]


def scan_inventory(content_root: Path | str, metadata_root: Path | str) -> Inventory:
    """Build the topic inventory from the content and metadata roots.

    Content pages are expected at ``{content_root}/{phase}/{topic}/{depth}/index.*``.
    A directory directly under the content root that already holds depth
    directories is taken as a phase-less topic. If either root is missing the
    inventory is empty, and unreadable directories become warnings instead of
    errors.
    """
    content_root = Path(content_root)
    metadata_root = Path(metadata_root)
    warnings: list[ScanWarning] = []

    if not content_root.is_dir():
        _warn(warnings, content_root, "content root not found")
    if not metadata_root.is_dir():
        _warn(warnings, metadata_root, "metadata root not found")
    if warnings:
        return Inventory(topics={}, warnings=tuple(warnings))

    depths_by_slug: dict[str, set[str]] = {}
    phases_by_slug: dict[str, set[str]] = {}
    for topic_dir, phase in _topic_dirs(content_root, warnings):
        depths = _existing_depths(topic_dir, warnings)
        if not depths:
            continue
        depths_by_slug.setdefault(topic_dir.name, set()).update(depths)
        if phase is not None:
            phases_by_slug.setdefault(topic_dir.name, set()).add(phase)

    metadata_slugs = _metadata_slugs(metadata_root, warnings)

    topics: dict[str, Topic] = {}
    for slug in sorted(set(depths_by_slug) | metadata_slugs):
        topics[slug] = Topic(
            slug=slug,
            existing_depths=frozenset(depths_by_slug.get(slug, set())),
            has_metadata=slug in metadata_slugs,
            phases=tuple(sorted(phases_by_slug.get(slug, set()))),
        )
    logger.debug("Scanned %d topics (%d with metadata)", len(topics), len(metadata_slugs))
    return Inventory(topics=topics, warnings=tuple(warnings))


def _topic_dirs(content_root: Path, warnings: list[ScanWarning]) -> list[tuple[Path, str | None]]:
    """Return (topic directory, phase name) pairs under the content root."""
    found: list[tuple[Path, str | None]] = []
    for child in _child_dirs(content_root, warnings):
        grandchildren = _child_dirs(child, warnings)
        if any(entry.name in DEPTH_LEVELS for entry in grandchildren):
            # Phase-less layout: content/{topic}/{depth}/
            found.append((child, None))
        else:
            found.extend((topic_dir, child.name) for topic_dir in grandchildren)
    return found


def _existing_depths(topic_dir: Path, warnings: list[ScanWarning]) -> set[str]:
    """Return depth levels of a topic that contain an index page."""
    depths: set[str] = set()
    for depth_dir in _child_dirs(topic_dir, warnings):
        if depth_dir.name not in DEPTH_LEVELS:
            continue
        try:
            has_index = any(_is_index_file(entry) for entry in depth_dir.iterdir())
        except OSError as exc:
            _warn(warnings, depth_dir, _describe(exc))
            continue
        if has_index:
            depths.add(depth_dir.name)
    return depths


def _metadata_slugs(metadata_root: Path, warnings: list[ScanWarning]) -> set[str]:
    """Return topic slugs that have a metadata file."""
    try:
        return {
            entry.stem for entry in metadata_root.iterdir() if entry.is_file() and entry.suffix == METADATA_SUFFIX
        }
    except OSError as exc:
        _warn(warnings, metadata_root, _describe(exc))
        return set()


def _is_index_file(entry: Path) -> bool:
    return entry.stem == INDEX_STEM and bool(entry.suffix) and entry.is_file()


def _child_dirs(path: Path, warnings: list[ScanWarning]) -> list[Path]:
    try:
        return sorted(entry for entry in path.iterdir() if entry.is_dir())
    except OSError as exc:
        _warn(warnings, path, _describe(exc))
        return []


def _describe(exc: OSError) -> str:
    return exc.strerror or exc.__class__.__name__


def _warn(warnings: list[ScanWarning], path: Path, message: str) -> None:
    logger.warning("Scan warning for %s: %s", path, message)
    warnings.append(ScanWarning(path=path, message=message))

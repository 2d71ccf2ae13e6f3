from __future__ import annotations

import json
import shutil
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def _tmp_path_fixture() -> Iterator[Path]:
    """Provide per-test temporary directory path inside the workspace.

    This overrides pytest's builtin ``tmp_path`` fixture for this repository so
    that corpora built by tests live under ``.tmp_pytest/`` in the project
    directory rather than in system temp locations.
    """
    base = ROOT / ".tmp_pytest"
    base.mkdir(parents=True, exist_ok=True)
    path = base / str(uuid4())
    path.mkdir(parents=True, exist_ok=False)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        try:
            next(base.iterdir())
        except StopIteration:
            base.rmdir()
        except FileNotFoundError:
            pass


tmp_path = pytest.fixture(name="tmp_path")(_tmp_path_fixture)


class Corpus:
    """Builds a content/metadata/learning-paths tree on disk for tests."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.content_root = root / "content"
        self.metadata_root = root / "metadata" / "topics"
        self.paths_root = root / "learning-paths"
        self.content_root.mkdir(parents=True)
        self.metadata_root.mkdir(parents=True)
        self.paths_root.mkdir(parents=True)

    def add_page(self, topic: str, depth: str, phase: str | None = "01-discovery", suffix: str = ".md") -> Path:
        base = self.content_root / phase if phase is not None else self.content_root
        page_dir = base / topic / depth
        page_dir.mkdir(parents=True, exist_ok=True)
        page = page_dir / f"index{suffix}"
        page.write_text(f"# {topic} ({depth})\n", encoding="utf-8")
        return page

    def add_metadata(self, topic: str) -> Path:
        path = self.metadata_root / f"{topic}.json"
        path.write_text(json.dumps({"id": topic, "slug": topic}), encoding="utf-8")
        return path

    def add_topic(self, topic: str, *depths: str, metadata: bool = True, phase: str | None = "01-discovery") -> None:
        for depth in depths:
            self.add_page(topic, depth, phase=phase)
        if metadata:
            self.add_metadata(topic)

    def add_path(self, name: str, payload: dict[str, Any], category_dir: str | None = None) -> Path:
        directory = self.paths_root / category_dir if category_dir else self.paths_root
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{name}.json"
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path

    def add_raw_path(self, name: str, text: str) -> Path:
        path = self.paths_root / f"{name}.json"
        path.write_text(text, encoding="utf-8")
        return path


@pytest.fixture
def corpus(tmp_path: Path) -> Corpus:
    return Corpus(tmp_path / "corpus")

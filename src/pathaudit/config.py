"""Audit configuration from defaults, environment, and CLI flags."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from .report import FORMAT_TEXT, FORMATS

DEFAULT_CONTENT_ROOT = "content/"
DEFAULT_METADATA_ROOT = "metadata/topics/"
DEFAULT_PATHS_ROOT = "learning-paths/"

ENV_CONTENT_ROOT = "PATHAUDIT_CONTENT_ROOT"
ENV_METADATA_ROOT = "PATHAUDIT_METADATA_ROOT"
ENV_PATHS_ROOT = "PATHAUDIT_PATHS_ROOT"
ENV_FORMAT = "PATHAUDIT_FORMAT"
ENV_PARALLEL = "PATHAUDIT_PARALLEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class AuditConfig:
    """Resolved settings for one audit run."""

    content_root: Path = Path(DEFAULT_CONTENT_ROOT)
    metadata_root: Path = Path(DEFAULT_METADATA_ROOT)
    paths_root: Path = Path(DEFAULT_PATHS_ROOT)
    fmt: str = FORMAT_TEXT
    parallel: bool = False
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.fmt not in FORMATS:
            raise ValueError(f"Invalid format {self.fmt!r}. Expected one of: {', '.join(FORMATS)}.")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AuditConfig:
        """Build config from ``PATHAUDIT_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        parallel_raw = env.get(ENV_PARALLEL, "").strip()
        return cls(
            content_root=Path(env.get(ENV_CONTENT_ROOT) or DEFAULT_CONTENT_ROOT),
            metadata_root=Path(env.get(ENV_METADATA_ROOT) or DEFAULT_METADATA_ROOT),
            paths_root=Path(env.get(ENV_PATHS_ROOT) or DEFAULT_PATHS_ROOT),
            fmt=(env.get(ENV_FORMAT) or FORMAT_TEXT).strip().lower(),
            parallel=parse_bool(parallel_raw, name=ENV_PARALLEL) if parallel_raw else False,
        )

    def with_overrides(self, **overrides: object) -> AuditConfig:
        """Return a copy with every non-``None`` override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        for key in ("content_root", "metadata_root", "paths_root"):
            if key in values:
                values[key] = Path(str(values[key]))
        return replace(self, **values)


def parse_bool(value: str, *, name: str) -> bool:
    """Parse a boolean flag value."""
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid value for {name}: {value!r}. Expected a boolean (1/0, true/false, yes/no, on/off).")

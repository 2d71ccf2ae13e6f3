"""Application service that wires scanning, loading, resolution and aggregation."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from .aggregator import build_report
from .config import AuditConfig
from .inventory import Inventory, scan_inventory
from .models import AuditReport, ValidationResult
from .path_loader import PathLoadResult, load_learning_paths
from .resolver import resolve_paths

logger = logging.getLogger(__name__)


class AuditService:
    """Runs one read-only audit pass over a corpus.

    Nothing is cached between runs: every ``run()`` rescans the filesystem.
    The corpus is assumed not to change while a run is in progress.
    """

    def __init__(self, config: AuditConfig | None = None) -> None:
        """Initialize service with resolved configuration."""
        self.config = config if config is not None else AuditConfig()

    def scan(self) -> Inventory:
        """Scan content and metadata roots."""
        return scan_inventory(self.config.content_root, self.config.metadata_root)

    def load(self) -> PathLoadResult:
        """Load learning-path manifests. Raises ``FatalAuditError`` if the root is missing."""
        return load_learning_paths(self.config.paths_root)

    def gather(self) -> tuple[Inventory, PathLoadResult]:
        """Scan and load, concurrently when configured.

        The two inputs read disjoint trees and share no state, so they can
        overlap; both are joined before resolution starts.
        """
        if not self.config.parallel:
            return self.scan(), self.load()
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="pathaudit") as executor:
            inventory_future = executor.submit(self.scan)
            loaded_future = executor.submit(self.load)
            return inventory_future.result(), loaded_future.result()

    def resolve(self, inventory: Inventory, loaded: PathLoadResult) -> list[ValidationResult]:
        """Resolve every loaded step against the inventory."""
        return resolve_paths(loaded.paths, inventory.topics)

    def run(self) -> AuditReport:
        """Run one full audit and return the report."""
        inventory, loaded = self.gather()
        results = self.resolve(inventory, loaded)
        report = build_report(
            loaded.paths,
            results,
            load_errors=loaded.errors,
            scan_warnings=inventory.warnings,
            inventory=inventory,
        )
        logger.debug(
            "Audit finished: %d steps, %d blocking, %d optional gaps",
            report.total_steps,
            report.invalid_count,
            report.optional_gap_count,
        )
        return report

"""CLI entrypoint for learning-path reference auditing."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Mapping

from .config import AuditConfig
from .logging_utils import configure_logging
from .models import FatalAuditError
from .renamer import FileChange, build_mapping, fix_directory, parse_rename
from .report import EXIT_FATAL, EXIT_OK, FORMATS, emit_report
from .service import AuditService

PrintFn = Callable[[str], None]


def _print_error(message: str) -> None:
    print(message, file=sys.stderr)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pathaudit",
        description="Validate that learning paths reference existing content and metadata",
    )
    parser.add_argument("command", nargs="?", default="audit", choices=["audit", "fix"])
    parser.add_argument("--content-root", help="content tree (default: content/)")
    parser.add_argument("--metadata-root", help="topic metadata directory (default: metadata/topics/)")
    parser.add_argument("--paths-root", help="learning path manifests (default: learning-paths/)")
    parser.add_argument("--format", choices=FORMATS, help="report format (default: text)")
    parser.add_argument(
        "--parallel", action="store_true", default=None, help="scan content and load manifests concurrently"
    )
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="debug logging to stderr")
    fix_group = parser.add_argument_group("fix options")
    fix_group.add_argument(
        "--rename", action="append", default=[], metavar="OLD=NEW", help="rename a topic slug in every manifest"
    )
    fix_group.add_argument(
        "--mark-optional", action="append", default=[], metavar="TOPIC", help="set required=false for a topic"
    )
    fix_group.add_argument("--write", action="store_true", help="write changes (default is a dry run)")
    return parser


def run(
    argv: list[str] | None = None,
    print_fn: PrintFn = print,
    error_fn: PrintFn = _print_error,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Run the CLI application."""
    args = _build_parser().parse_args(argv)
    try:
        config = AuditConfig.from_env(environ).with_overrides(
            content_root=args.content_root,
            metadata_root=args.metadata_root,
            paths_root=args.paths_root,
            fmt=args.format,
            parallel=args.parallel,
            verbose=args.verbose,
        )
    except ValueError as exc:
        error_fn(f"Configuration error: {exc}")
        return EXIT_FATAL

    configure_logging(config.verbose)
    if args.command == "fix":
        return fix_command(config, args.rename, args.mark_optional, args.write, print_fn, error_fn)
    return audit_command(config, print_fn, error_fn)


def audit_command(config: AuditConfig, print_fn: PrintFn = print, error_fn: PrintFn = _print_error) -> int:
    """Run the audit and emit its report; returns the process exit code."""
    try:
        report = AuditService(config).run()
    except FatalAuditError as exc:
        error_fn(f"Fatal: {exc}")
        return EXIT_FATAL
    except Exception as exc:
        error_fn(f"Audit failed: {exc}")
        return EXIT_FATAL
    return emit_report(report, print_fn, fmt=config.fmt, error_write=error_fn)


def fix_command(
    config: AuditConfig,
    renames: list[str],
    mark_optional: list[str],
    write: bool,
    print_fn: PrintFn = print,
    error_fn: PrintFn = _print_error,
) -> int:
    """Apply topic renames and optional-marking to manifests."""
    if not renames and not mark_optional:
        error_fn("Nothing to do: pass --rename OLD=NEW and/or --mark-optional TOPIC.")
        return EXIT_FATAL
    try:
        mapping = build_mapping(parse_rename(item) for item in renames)
    except ValueError as exc:
        error_fn(str(exc))
        return EXIT_FATAL

    try:
        results = fix_directory(config.paths_root, mapping, set(mark_optional), write=write)
    except FatalAuditError as exc:
        error_fn(f"Fatal: {exc}")
        return EXIT_FATAL

    changed = [item for item in results if item.error is None]
    for item in changed:
        _print_file_change(item, print_fn)
    failed_writes = [item for item in results if item.error is not None and item.changes]
    for item in results:
        if item.error is not None and not item.changes:
            print_fn(f"Skipped {item.source}: {item.error}")
    for item in failed_writes:
        error_fn(f"Could not write {item.source}: {item.error}")

    step_count = sum(len(item.changes) for item in changed)
    if write:
        print_fn(f"Updated {len(changed)} file(s), {step_count} step(s).")
    else:
        print_fn(f"Would update {len(changed)} file(s), {step_count} step(s). Re-run with --write to apply.")
    return EXIT_FATAL if failed_writes else EXIT_OK


def _print_file_change(item: FileChange, print_fn: PrintFn) -> None:
    print_fn(f"{item.source}:")
    for change in item.changes:
        parts: list[str] = []
        if change.old_topic != change.new_topic:
            parts.append(f"{change.old_topic} -> {change.new_topic}")
        else:
            parts.append(change.new_topic)
        if change.marked_optional:
            parts.append("(marked optional)")
        print_fn(f"  step {change.index + 1}: {' '.join(parts)}")


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()

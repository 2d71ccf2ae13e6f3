import json
import logging
from io import StringIO
from pathlib import Path
from typing import Any

from conftest import Corpus

import pathaudit.main as main
from pathaudit.logging_utils import configure_logging


def _args(corpus: Corpus, *extra: str) -> list[str]:
    return [
        *extra,
        "--content-root",
        str(corpus.content_root),
        "--metadata-root",
        str(corpus.metadata_root),
        "--paths-root",
        str(corpus.paths_root),
    ]


def _capture(argv: list[str], environ: dict[str, str] | None = None) -> tuple[int, list[str], list[str]]:
    outputs: list[str] = []
    errors: list[str] = []
    code = main.run(argv, outputs.append, errors.append, environ=environ or {})
    return code, outputs, errors


def test_audit_is_default_command(corpus: Corpus) -> None:
    corpus.add_topic("threat-modeling", "surface")
    corpus.add_path("p", {"steps": [{"topic": "threat-modeling", "depth": "surface"}]})

    code, outputs, errors = _capture(_args(corpus))

    assert code == 0
    assert outputs[0] == "Content Audit Report"
    assert outputs[-1] == "PASS: no blocking invalid references"
    assert errors == []


def test_audit_fails_on_blocking_reference(corpus: Corpus) -> None:
    corpus.add_path("p", {"steps": [{"topic": "ghost", "depth": "surface"}]})

    code, outputs, _ = _capture(_args(corpus, "audit"))

    assert code == 1
    assert outputs[-1] == "FAIL: 1 blocking invalid reference(s)"


def test_audit_fails_on_unknown_required_depth(corpus: Corpus) -> None:
    corpus.add_topic("threat-modeling", "surface")
    corpus.add_path("p", {"steps": [{"topic": "threat-modeling", "depth": "mid_depth", "required": True}]})

    code, outputs, _ = _capture(_args(corpus))

    assert code == 1
    assert outputs[-1] == "FAIL: 1 blocking invalid reference(s)"


def test_audit_json_format(corpus: Corpus) -> None:
    corpus.add_path("p", {"steps": [{"topic": "ghost", "depth": "surface", "required": False}]})

    code, outputs, _ = _capture(_args(corpus, "--format", "json"))

    assert code == 0
    payload = json.loads("\n".join(outputs))
    assert payload["summary"]["optional_gaps"] == 1


def test_environment_supplies_roots(corpus: Corpus) -> None:
    corpus.add_path("p", {"steps": []})
    environ = {
        "PATHAUDIT_CONTENT_ROOT": str(corpus.content_root),
        "PATHAUDIT_METADATA_ROOT": str(corpus.metadata_root),
        "PATHAUDIT_PATHS_ROOT": str(corpus.paths_root),
        "PATHAUDIT_PARALLEL": "1",
    }

    code, outputs, _ = _capture([], environ)

    assert code == 0
    assert "Learning paths: 1 (1 of 1 are 100% valid)" in outputs


def test_missing_paths_root_exits_2(tmp_path: Path) -> None:
    code, outputs, errors = _capture(["--paths-root", str(tmp_path / "missing")])

    assert code == 2
    assert outputs == []
    assert errors[0].startswith("Fatal: Learning paths root not found")


def test_bad_environment_config_exits_2() -> None:
    code, _, errors = _capture([], {"PATHAUDIT_PARALLEL": "maybe"})

    assert code == 2
    assert errors[0].startswith("Configuration error:")


def test_unexpected_audit_error_exits_2(corpus: Corpus, monkeypatch: Any) -> None:
    def explode(self: object) -> None:
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(main.AuditService, "run", explode)

    code, _, errors = _capture(_args(corpus))

    assert code == 2
    assert errors == ["Audit failed: disk on fire"]


def test_fix_dry_run_and_write(corpus: Corpus) -> None:
    target = corpus.add_path("p", {"steps": [{"topic": "unit-testing", "depth": "surface"}]})

    code, outputs, _ = _capture(_args(corpus, "fix", "--rename", "unit-testing=unit-integration-testing"))
    assert code == 0
    assert "  step 1: unit-testing -> unit-integration-testing" in outputs
    assert outputs[-1].startswith("Would update 1 file(s), 1 step(s).")
    assert "unit-testing\"" in target.read_text(encoding="utf-8")

    fix_args = [
        "fix",
        "--rename",
        "unit-testing=unit-integration-testing",
        "--mark-optional",
        "unit-integration-testing",
        "--write",
    ]
    code, outputs, _ = _capture(_args(corpus, *fix_args))
    assert code == 0
    assert "  step 1: unit-testing -> unit-integration-testing (marked optional)" in outputs
    assert outputs[-1] == "Updated 1 file(s), 1 step(s)."
    step = json.loads(target.read_text(encoding="utf-8"))["steps"][0]
    assert step == {"topic": "unit-integration-testing", "depth": "surface", "required": False}


def test_fix_reports_skipped_manifests(corpus: Corpus) -> None:
    corpus.add_raw_path("broken", "{")

    code, outputs, _ = _capture(_args(corpus, "fix", "--mark-optional", "x"))

    assert code == 0
    assert any(line.startswith("Skipped ") and "broken.json" in line for line in outputs)
    assert outputs[-1].startswith("Would update 0 file(s), 0 step(s).")


def test_fix_write_failure_exits_2(corpus: Corpus, monkeypatch: Any) -> None:
    target = corpus.add_path("p", {"steps": [{"topic": "unit-testing", "depth": "surface"}]})
    real_write_text = Path.write_text

    def write_text(self: Path, *args: Any, **kwargs: Any) -> int:
        if self == target:
            raise PermissionError(13, "Permission denied", str(self))
        return real_write_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "write_text", write_text)

    fix_args = ["fix", "--rename", "unit-testing=unit-integration-testing", "--write"]
    code, outputs, errors = _capture(_args(corpus, *fix_args))

    assert code == 2
    assert len(errors) == 1
    assert errors[0].startswith(f"Could not write {target}:")
    assert outputs[-1] == "Updated 0 file(s), 0 step(s)."


def test_fix_argument_errors_exit_2(corpus: Corpus, tmp_path: Path) -> None:
    code, _, errors = _capture(_args(corpus, "fix"))
    assert code == 2
    assert errors[0].startswith("Nothing to do")

    code, _, errors = _capture(_args(corpus, "fix", "--rename", "broken"))
    assert code == 2
    assert "Expected OLD=NEW" in errors[0]

    code, _, errors = _capture(["fix", "--rename", "a=b", "--paths-root", str(tmp_path / "missing")])
    assert code == 2
    assert errors[0].startswith("Fatal:")


def test_configure_logging_replaces_handler() -> None:
    stream = StringIO()
    logger = configure_logging(verbose=True, stream=stream)
    configure_logging(verbose=True, stream=stream)
    try:
        ours = [handler for handler in logger.handlers if getattr(handler, "_pathaudit_handler", False)]
        assert len(ours) == 1
        assert logger.level == logging.DEBUG
        logging.getLogger("pathaudit.inventory").debug("scanning")
        assert "DEBUG pathaudit.inventory: scanning" in stream.getvalue()
    finally:
        configure_logging(verbose=False)


def test_main_entry_exits(monkeypatch: Any) -> None:
    monkeypatch.setattr(main, "run", lambda argv=None: 0)
    try:
        main.main_entry()
    except SystemExit as exc:
        assert exc.code == 0

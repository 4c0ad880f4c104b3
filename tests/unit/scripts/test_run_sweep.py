from datetime import timedelta
import importlib.util
import sys
from pathlib import Path

from src.studio.pipeline.pipeline_models import PipelineStatus


PROJECT_ROOT = Path(__file__).resolve().parents[3]
MODULE_PATH = PROJECT_ROOT / "scripts" / "run_sweep.py"
MODULE_SPEC = importlib.util.spec_from_file_location("run_sweep_module", MODULE_PATH)
run_sweep = importlib.util.module_from_spec(MODULE_SPEC)
assert MODULE_SPEC and MODULE_SPEC.loader
sys.modules["run_sweep_module"] = run_sweep
MODULE_SPEC.loader.exec_module(run_sweep)


def schedule(harness, filename: str, offset: timedelta) -> str:
    item = harness.ingest(filename)
    harness.pipeline.approve(item.id, {"scheduled_at": harness.clock() + offset})
    return item.id


def test_dry_run_lists_due_items_only(harness, capsys) -> None:
    due = schedule(harness, "due.jpg", timedelta(minutes=-10))
    schedule(harness, "later.jpg", timedelta(days=1))

    exit_code = run_sweep.main(
        ["--dry-run", "--now", harness.clock().isoformat()],
        publisher=harness.publisher,
    )

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "sweep dry-run, due=1" in out
    assert due in out
    assert harness.repo.get(due).status is PipelineStatus.QUEUED


def test_sweep_publishes_and_reports(harness, capsys) -> None:
    due = schedule(harness, "due.jpg", timedelta(minutes=-10))

    exit_code = run_sweep.main(["--now", harness.clock().isoformat()], publisher=harness.publisher)

    assert exit_code == 0
    assert "published=1, failed=0" in capsys.readouterr().out
    assert harness.repo.get(due).status is PipelineStatus.PUBLISHED


def test_sweep_failure_returns_error_code(capsys) -> None:
    class Broken:
        def sweep(self, now=None):
            raise RuntimeError("db offline")

    assert run_sweep.main([], publisher=Broken()) == 2
    assert "sweep failed: db offline" in capsys.readouterr().err

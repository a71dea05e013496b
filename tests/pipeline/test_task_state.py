from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from site_build.core import (
    BuildSettings,
    FileFailure,
    InvalidTransitionError,
    StageFilesError,
    StageSkipped,
    TaskError,
    get_logger,
)
from site_build.pipeline import BuildTask, EventSink, Phase, RunContext, TaskStatus, run_task


def _ctx(tmp_path: Path) -> RunContext:
    return RunContext(
        run_id="test",
        settings=BuildSettings(output_root=tmp_path / "dist", run_root=None),
        logger=get_logger("test"),
        events=EventSink(tmp_path / "events.jsonl"),
    )


def test_legal_transitions_are_recorded() -> None:
    t = BuildTask(name="content", phase=Phase.CONTENT_ASSETS)
    t.start()
    t.complete({"documents": 3})
    assert t.status is TaskStatus.COMPLETED
    assert t.history == [TaskStatus.PENDING, TaskStatus.RUNNING, TaskStatus.COMPLETED]
    assert t.outputs == {"documents": 3}
    assert t.duration_ms is not None


def test_pending_can_be_skipped_directly() -> None:
    t = BuildTask(name="critical", phase=Phase.STYLES)
    t.skip("CSS bundle not available")
    assert t.status is TaskStatus.SKIPPED
    assert t.skip_reason == "CSS bundle not available"


@pytest.mark.parametrize(
    "drive",
    [
        lambda t: t.complete(),
        lambda t: t.fail(TaskError(exc_type="X", message="x")),
    ],
)
def test_pending_cannot_finish_without_running(drive) -> None:
    t = BuildTask(name="styles", phase=Phase.STYLES)
    with pytest.raises(InvalidTransitionError):
        drive(t)


def test_terminal_status_is_final() -> None:
    t = BuildTask(name="images", phase=Phase.CONTENT_ASSETS)
    t.start()
    t.fail(TaskError(exc_type="ImageError", message="bad png"))
    with pytest.raises(InvalidTransitionError):
        t.start()
    with pytest.raises(InvalidTransitionError):
        t.skip("late")
    assert t.status is TaskStatus.FAILED


def test_run_task_absorbs_reserved_keys(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    t = BuildTask(name="content", phase=Phase.CONTENT_ASSETS)

    def fn(_ctx: RunContext) -> dict:
        return {
            "documents": ["a.md"],
            "_warnings": ["No frontmatter found in a.md"],
            "_metrics": {"documents": 1},
        }

    asyncio.run(run_task(ctx=ctx, task=t, fn=fn))
    assert t.status is TaskStatus.COMPLETED
    assert t.outputs == {"documents": ["a.md"]}
    assert t.warnings == ["No frontmatter found in a.md"]
    assert t.metrics == {"documents": 1}


def test_run_task_async_stage(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    t = BuildTask(name="critical", phase=Phase.STYLES)

    async def fn(_ctx: RunContext) -> dict:
        await asyncio.sleep(0)
        return {"mode": "heuristic"}

    asyncio.run(run_task(ctx=ctx, task=t, fn=fn))
    assert t.status is TaskStatus.COMPLETED
    assert t.outputs["mode"] == "heuristic"


def test_run_task_never_raises_for_stage_errors(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)

    def boom(_ctx: RunContext) -> None:
        raise RuntimeError("disk on fire")

    t = BuildTask(name="images", phase=Phase.CONTENT_ASSETS)
    asyncio.run(run_task(ctx=ctx, task=t, fn=boom))
    assert t.status is TaskStatus.FAILED
    assert t.error is not None
    assert t.error.exc_type == "RuntimeError"
    assert t.error.message == "disk on fire"


def test_run_task_maps_skip_and_file_failures(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)

    def nothing(_ctx: RunContext) -> None:
        raise StageSkipped("no content found", warnings=["CSS file not found: base/reset.css"])

    skipped = BuildTask(name="styles", phase=Phase.STYLES)
    asyncio.run(run_task(ctx=ctx, task=skipped, fn=nothing))
    assert skipped.status is TaskStatus.SKIPPED
    assert skipped.skip_reason == "no content found"
    assert skipped.history == [TaskStatus.PENDING, TaskStatus.RUNNING, TaskStatus.SKIPPED]
    assert skipped.warnings == ["CSS file not found: base/reset.css"]

    def partial(_ctx: RunContext) -> None:
        raise StageFilesError(
            "documents",
            3,
            [FileFailure(path="bad.md", message="Invalid YAML")],
            metrics={"compiled": 2},
        )

    failed = BuildTask(name="content", phase=Phase.CONTENT_ASSETS)
    asyncio.run(run_task(ctx=ctx, task=failed, fn=partial))
    assert failed.status is TaskStatus.FAILED
    assert failed.metrics == {"compiled": 2}
    assert "bad.md: Invalid YAML" in failed.error.message


def test_event_log_is_json_lines(tmp_path: Path) -> None:
    ctx = _ctx(tmp_path)
    t = BuildTask(name="clean", phase=Phase.CLEAN)
    asyncio.run(run_task(ctx=ctx, task=t, fn=lambda _ctx: None))

    events = [json.loads(line) for line in (tmp_path / "events.jsonl").read_text().splitlines()]
    types = [e["type"] for e in events]
    assert types[0] == "run.env"
    assert "task.start" in types and "task.completed" in types
    assert all(e["task"] == "clean" for e in events if e["type"].startswith("task."))

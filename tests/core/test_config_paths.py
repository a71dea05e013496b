from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from site_build.core import (
    BuildSettings,
    DEFAULT_VIEWPORTS,
    OutputLayout,
    RunLayout,
    Viewport,
    errors,
    provenance,
    time,
)


def test_settings_defaults(tmp_path: Path) -> None:
    s = BuildSettings(output_root=tmp_path / "dist")
    assert s.critical_max_bytes == 14 * 1024
    assert s.image_widths == [320, 640, 1024, 1920]
    assert [vp.name for vp in s.viewports] == ["mobile", "desktop"]
    assert s.css_order[0] == "base/reset.css"
    assert s.critical_renderer == "auto"
    assert s.enabled("critical") is True
    assert s.outputs().critical_css() == tmp_path / "dist" / "css" / "critical.css"


def test_settings_env_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SITE_BUILD_ENABLE_IMAGES", "false")
    monkeypatch.setenv("SITE_BUILD_CRITICAL_MAX_BYTES", "2048")
    s = BuildSettings()
    assert s.enabled("images") is False
    assert s.critical_max_bytes == 2048


def test_settings_validation() -> None:
    s = BuildSettings(image_widths=[640, 320, 640])
    assert s.image_widths == [320, 640]

    with pytest.raises(ValidationError):
        BuildSettings(image_widths=[0, 320])
    with pytest.raises(ValidationError):
        BuildSettings(critical_max_bytes=0)
    with pytest.raises(ValidationError):
        BuildSettings(viewports=[DEFAULT_VIEWPORTS[0], DEFAULT_VIEWPORTS[0]])


def test_viewport_rejects_non_positive() -> None:
    assert Viewport(name="m", width=375, height=667).label() == "m (375x667)"
    with pytest.raises(ValueError):
        Viewport(name="bad", width=0, height=100)


def test_output_layout_fragments(tmp_path: Path) -> None:
    layout = OutputLayout(root=tmp_path)
    assert layout.html_fragments() == []
    (tmp_path / "content" / "blog").mkdir(parents=True)
    (tmp_path / "content" / "blog" / "b.html").write_text("<p>b</p>")
    (tmp_path / "content" / "a.html").write_text("<p>a</p>")
    (tmp_path / "content" / "a.json").write_text("{}")
    assert [p.name for p in layout.html_fragments()] == ["a.html", "b.html"]

    run = RunLayout(run_root=tmp_path / "runs", run_id="r1")
    assert run.report_json() == tmp_path / "runs" / "r1" / "build_report.json"


def test_task_error_and_run_id() -> None:
    try:
        raise ValueError("boom")
    except Exception as exc:
        err = errors.task_error_from_exc(exc)
    assert err.exc_type == "ValueError"
    assert "boom" in err.message
    assert "ValueError" in err.traceback

    rid1, rid2 = provenance.new_run_id(), provenance.new_run_id()
    assert rid1 != rid2 and len(rid1) == 32


def test_stage_files_error_lists_every_failure() -> None:
    e = errors.StageFilesError(
        "documents",
        3,
        [
            errors.FileFailure(path="a.md", message="bad yaml"),
            errors.FileFailure(path="b.md", message="unreadable"),
        ],
    )
    assert str(e) == "2 of 3 documents failed: a.md: bad yaml; b.md: unreadable"


def test_time_helpers_format() -> None:
    assert time.utc_now_iso().endswith("Z")
    assert time.format_bytes(2048) == "2.0 KB"
    assert time.format_duration_ms(250) == "250 ms"

    with provenance.Timer() as t:
        pass
    assert t.duration_ms is not None and t.duration_ms >= 0

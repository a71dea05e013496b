from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from site_build.build import run_build
from site_build.core import (
    BuildSettings,
    bind,
    clear_bindings,
    configure_logging,
    get_logger,
    new_run_id,
)
from site_build.pipeline.orchestrator import OPTIONAL_STAGES
from site_build.pipeline.summary import print_summary

console = Console()


@dataclass(frozen=True, slots=True)
class _BuildArgs:
    source: str | None
    output: str | None
    skip: list[str]
    renderer: str | None
    max_bytes: int | None
    no_stats: bool


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="site-build",
        description="Build the static site: content, images, CSS bundle and critical CSS.",
    )
    p.add_argument("--source", default=None, help="Source root (default: SITE_BUILD_SOURCE_ROOT or ./src)")
    p.add_argument("--output", default=None, help="Output root (default: SITE_BUILD_OUTPUT_ROOT or ./dist)")
    p.add_argument(
        "--skip",
        action="append",
        default=[],
        choices=OPTIONAL_STAGES,
        metavar="STAGE",
        help=f"Disable a stage (repeatable). One of: {', '.join(OPTIONAL_STAGES)}",
    )
    p.add_argument(
        "--renderer",
        choices=("auto", "playwright", "static"),
        default=None,
        help="Critical CSS renderer: auto (default) tries a headless browser, then static.",
    )
    p.add_argument("--max-bytes", type=int, default=None, help="Critical CSS byte ceiling")
    p.add_argument("--no-stats", action="store_true", help="Do not write build-stats.json")
    return p


def _args(ns: argparse.Namespace) -> _BuildArgs:
    return _BuildArgs(
        source=ns.source,
        output=ns.output,
        skip=list(ns.skip or []),
        renderer=ns.renderer,
        max_bytes=ns.max_bytes,
        no_stats=bool(ns.no_stats),
    )


def settings_overrides(args: _BuildArgs) -> dict[str, Any]:
    over: dict[str, Any] = {}
    if args.source:
        over["source_root"] = Path(args.source)
    if args.output:
        over["output_root"] = Path(args.output)
    for stage in args.skip:
        over[f"enable_{stage}"] = False
    if args.renderer:
        over["critical_renderer"] = args.renderer
    if args.max_bytes is not None:
        over["critical_max_bytes"] = args.max_bytes
    if args.no_stats:
        over["write_stats"] = False
    return over


def main(argv: list[str] | None = None) -> int:
    args = _args(_build_parser().parse_args(argv))

    try:
        s = BuildSettings(**settings_overrides(args))
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{e}")
        return 1

    configure_logging(level=s.log_level, fmt=s.log_format)
    log = get_logger("site_build")

    run_id = new_run_id()
    bind(run_id=run_id)

    console.print(
        Panel.fit(
            Text(
                f"site-build\nrun_id={run_id}\nsource={s.source_root}\noutput={s.output_root}",
                style="bold",
            ),
            title="Build",
        )
    )

    report = run_build(
        s,
        logger=log,
        run_id=run_id,
        meta={"skipped_by_flag": args.skip},
    )
    print_summary(report, console=console)
    clear_bindings()
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class SourceLayout:
    """
    Canonical source tree:

      {root}/content/   markdown documents with frontmatter
      {root}/images/    raster and vector images
      {root}/styles/    stylesheet partials
    """

    root: Path

    def content(self) -> Path:
        return self.root / "content"

    def images(self) -> Path:
        return self.root / "images"

    def styles(self) -> Path:
        return self.root / "styles"


@dataclass(frozen=True, slots=True)
class OutputLayout:
    """
    Canonical artifact tree:

      {root}/content/{rel}.html         html fragments
      {root}/content/{rel}.json         metadata sidecars
      {root}/images/{rel}               responsive derivatives
      {root}/css/styles.min.css(.map)   bundle + source map
      {root}/css/critical.css           above-the-fold subset
      {root}/build-stats.json           statistics snapshot
    """

    root: Path

    def content(self) -> Path:
        return self.root / "content"

    def images(self) -> Path:
        return self.root / "images"

    def css(self) -> Path:
        return self.root / "css"

    def css_bundle(self) -> Path:
        return self.css() / "styles.min.css"

    def css_source_map(self) -> Path:
        return self.css() / "styles.min.css.map"

    def critical_css(self) -> Path:
        return self.css() / "critical.css"

    def stats_json(self) -> Path:
        return self.root / "build-stats.json"

    def html_fragments(self) -> list[Path]:
        root = self.content()
        if not root.is_dir():
            return []
        return sorted(p for p in root.rglob("*.html") if p.is_file())


@dataclass(frozen=True, slots=True)
class RunLayout:
    """
    Per-run diagnostics, written but never read back:

      {run_root}/{run_id}/events.jsonl
      {run_root}/{run_id}/build_report.json
    """

    run_root: Path
    run_id: str

    def root(self) -> Path:
        return self.run_root / self.run_id

    def events_jsonl(self) -> Path:
        return self.root() / "events.jsonl"

    def report_json(self) -> Path:
        return self.root() / "build_report.json"

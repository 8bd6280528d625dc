from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from .config import RenderConfig
from .constants import INDEX_FILENAME
from .errors import DiagramError
from .scenario import build_diagram, diagram_entries, diagram_title
from .writer import write_md, write_text_md


def _diagram_id(entry: dict[str, Any]) -> Optional[str]:
    d_id = entry.get("id")
    if isinstance(d_id, str) and d_id:
        return d_id
    return None


def _preflight_suite(entries: list[dict[str, Any]]) -> None:
    """Fail fast on conditions that would cause destructive overwrites."""

    seen: dict[str, int] = {}
    for i, entry in enumerate(entries):
        d_id = _diagram_id(entry)
        if not d_id:
            raise ValueError(f"diagram at index {i} is missing a string 'id'")

        if d_id in seen:
            raise ValueError(
                f"duplicate diagram id {d_id!r} (diagrams[{seen[d_id]}] and diagrams[{i}])"
            )
        seen[d_id] = i

        # Guard: ids are used as file names.
        if "/" in d_id or "\\" in d_id or ".." in d_id:
            raise ValueError(f"diagram id {d_id!r} is not safe for use as a file name")


def _md_table_cell(text: str) -> str:
    """Escape a string for use in a Markdown table cell."""
    s = (text or "").replace("\r", " ").replace("\n", " ").strip()
    return s.replace("|", "\\|")


def render_suite(
    model: dict[str, Any],
    out_dir: Path,
    cfg: Optional[RenderConfig] = None,
    *,
    write_index: bool = True,
) -> list[Path]:
    """Write one <id>.md per diagram (sorted by id) plus an index page.

    Raises the first latched construction error (tagged with the diagram
    id) before anything is written.
    """
    cfg = cfg or RenderConfig()
    diagram_cfg = cfg.diagram_config()

    entries = diagram_entries(model)
    _preflight_suite(entries)

    # Deterministic ordering independent of YAML file order.
    entries_sorted = sorted(entries, key=lambda e: str(e.get("id") or ""))

    rendered: list[tuple[str, str, str]] = []  # (id, title, code)
    for entry in entries_sorted:
        d_id = _diagram_id(entry) or ""
        diagram = build_diagram(entry, diagram_cfg)
        try:
            diagram.check()
        except DiagramError as e:
            raise DiagramError(f"diagram {d_id!r}: {e}") from e
        rendered.append((d_id, diagram_title(entry), diagram.render()))

    written: list[Path] = []
    for d_id, title, code in rendered:
        path = out_dir / f"{d_id}.md"
        write_md(path, title, code, newline=diagram_cfg.line_separator)
        written.append(path)

    if write_index:
        lines: list[str] = []
        lines.append("This page lists the sequence diagrams generated from the scenario documents.")
        lines.append("")
        lines.append("| diagram_id | title |")
        lines.append("|---|---|")
        for d_id, title, _ in rendered:
            link = f"[{_md_table_cell(d_id)}]({d_id}.md)"
            lines.append(f"| {link} | {_md_table_cell(title)} |")

        index_path = out_dir / INDEX_FILENAME
        sep = diagram_cfg.line_separator
        write_text_md(
            index_path, title="Sequence diagrams", body_md=sep.join(lines), newline=sep
        )
        written.append(index_path)

    return written

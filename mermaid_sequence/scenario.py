# mermaid_sequence/scenario.py
from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from .config import DiagramConfig
from .constants import SCENARIO_GLOB
from .diagram import Diagram

Model = dict[str, Any]

# Scenario step operations; each names the Diagram method it calls. Steps are
# flat: blocks are opened and closed by explicit *_start / *_end steps.
STEP_OPERATIONS: tuple[str, ...] = (
    "participant",
    "actor",
    "lf",
    "sync_request",
    "sync_response",
    "async_request",
    "async_response",
    "request_error",
    "response_error",
    "note_over",
    "note_left_of",
    "note_right_of",
    "activate",
    "deactivate",
    "loop_start",
    "loop_end",
    "alt_start",
    "alt_else",
    "alt_end",
    "opt_start",
    "opt_end",
    "parallel_start",
    "parallel_and",
    "parallel_end",
    "break_start",
    "break_end",
    "critical_start",
    "critical_option",
    "critical_end",
    "group_start",
    "group_end",
)

MESSAGE_OPERATIONS: frozenset[str] = frozenset(
    {
        "sync_request",
        "sync_response",
        "async_request",
        "async_response",
        "request_error",
        "response_error",
    }
)

# Scenario authors write `from`/`to`; the builder takes `src`/`dst`.
_KWARG_ALIASES = {"from": "src", "to": "dst"}


def _sanitize_yaml_for_pyyaml(raw: str) -> tuple[str, list[tuple[int, str, str]]]:
    """Return (sanitized_yaml, changes).

    Each change is (line_number_1_based, original_line, new_line).
    """
    changes: list[tuple[int, str, str]] = []
    out_lines: list[str] = []

    for i, line in enumerate(raw.splitlines(), start=1):
        match = re.match(
            r"^(\s*(?:-\s*)?(?:message|label|title|loop_start|alt_start|alt_else|opt_start|"
            r"break_start|critical_start|critical_option|parallel_start|parallel_and|"
            r"group_start):\s*)(.+)$",
            line,
        )
        if not match:
            out_lines.append(line)
            continue

        prefix, value = match.group(1), match.group(2)

        # Already quoted, a block scalar or a flow collection.
        if value.startswith(("'", '"', "|", ">", "[", "{")):
            out_lines.append(line)
            continue

        # PyYAML rejects plain scalars containing ":" followed by whitespace or EOL.
        # Preserve any trailing inline comment (space-# ...).
        body, comment = value, ""
        m = re.match(r"^(.*?)(\s+#.*)$", value)
        if m:
            body, comment = m.group(1), m.group(2)

        if re.search(r":(?=\s|$)", body):
            escaped = body.replace("\\", "\\\\").replace('"', '\\"')
            new_line = f'{prefix}"{escaped}"{comment}'
            out_lines.append(new_line)
            if new_line != line:
                changes.append((i, line, new_line))
        else:
            out_lines.append(line)

    sanitized = "\n".join(out_lines) + ("\n" if raw.endswith("\n") else "")
    return sanitized, changes


def _load_yaml_mapping(path: Path) -> Model:
    raw = path.read_text(encoding="utf-8")

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError:
        sanitized, changes = _sanitize_yaml_for_pyyaml(raw)
        try:
            data = yaml.safe_load(sanitized)
        except yaml.YAMLError as e2:
            raise ValueError(f"Failed to parse YAML {path}: {e2}") from e2

        # Warn with specifics (cap to avoid spam)
        if changes:
            print(
                f"warning: parsed {path} after sanitizing {len(changes)} line(s); "
                "consider quoting values containing ':' followed by whitespace",
                file=sys.stderr,
            )
            for (ln, old, new) in changes[:10]:
                print(f"warning: {path}:{ln}: {old}", file=sys.stderr)
                print(f"warning: {path}:{ln}: {new}", file=sys.stderr)
            if len(changes) > 10:
                print(f"warning: (and {len(changes) - 10} more)", file=sys.stderr)

    if not isinstance(data, dict):
        raise TypeError(
            f"Top-level YAML must be a mapping in {path}, got {type(data).__name__}"
        )

    return data


def _deep_merge(dst: Model, src: Model, *, src_path: Path) -> None:
    """Deep-merge `src` into `dst`.

    Merge rules:
      - missing key -> copy
      - list + list -> concatenate (preserve file order)
      - dict + dict -> recursive merge
      - scalar conflicts -> error (unless equal)
    """
    for key, value in src.items():
        if key not in dst:
            dst[key] = value
            continue

        existing = dst[key]
        if isinstance(existing, list) and isinstance(value, list):
            dst[key] = existing + value
            continue

        if isinstance(existing, dict) and isinstance(value, dict):
            _deep_merge(existing, value, src_path=src_path)
            continue

        if existing == value:
            continue

        raise ValueError(
            f"Scenario merge conflict on key {key!r} from {src_path}: "
            f"existing type={type(existing).__name__}, new type={type(value).__name__}"
        )


def load_scenarios(path: Path) -> Model:
    """Load a scenario document, or every *.yaml under a directory merged in name order."""
    if not path.exists():
        raise FileNotFoundError(str(path))

    if path.is_dir():
        merged: Model = {}
        for part_path in sorted(path.glob(SCENARIO_GLOB)):
            part = _load_yaml_mapping(part_path)
            _deep_merge(merged, part, src_path=part_path)
        return merged

    return _load_yaml_mapping(path)


def diagram_entries(model: Model) -> list[dict[str, Any]]:
    diagrams = model.get("diagrams", []) or []
    if not isinstance(diagrams, list):
        raise TypeError("scenario.diagrams must be a list")
    return [d for d in diagrams if isinstance(d, dict)]


def get_diagram(model: Model, diagram_id: Optional[str] = None) -> dict[str, Any]:
    """Get a diagram entry by id, or deterministically fall back to the first one."""
    entries = diagram_entries(model)

    if diagram_id is not None:
        for entry in entries:
            if entry.get("id") == diagram_id:
                return entry
        raise KeyError(f"No diagram with id {diagram_id!r}")

    if entries:
        return entries[0]

    raise KeyError("No diagrams found in scenario")


def diagram_title(entry: dict[str, Any]) -> str:
    """Best-effort human label; falls back to the id."""
    entry_id = entry.get("id")
    entry_id_s = entry_id if isinstance(entry_id, str) else ""
    title = entry.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    return entry_id_s or "<unnamed diagram>"


def split_step(step: Any) -> tuple[str, Any]:
    """Return (operation, raw_args) for a scenario step.

    A bare string is an operation without arguments; a mapping must hold
    exactly one operation key.
    """
    if isinstance(step, str):
        return step, None
    if isinstance(step, dict) and len(step) == 1:
        op, args = next(iter(step.items()))
        if isinstance(op, str):
            return op, args
    raise TypeError(f"step must be an operation name or a single-key mapping, got {step!r}")


def _as_text(value: Any) -> Any:
    if isinstance(value, list):
        return [_as_text(v) for v in value]
    if value is None:
        return ""
    return str(value)


def step_call_args(raw: Any) -> tuple[list[Any], dict[str, Any]]:
    """Turn a step's raw YAML arguments into (positional, keyword) call arguments."""
    if raw is None:
        return [], {}
    if isinstance(raw, dict):
        kwargs = {_KWARG_ALIASES.get(str(k), str(k)): _as_text(v) for k, v in raw.items()}
        return [], kwargs
    if isinstance(raw, list):
        return [_as_text(v) for v in raw], {}
    return [_as_text(raw)], {}


def apply_step(diagram: Diagram, step: Any) -> Diagram:
    op, raw = split_step(step)
    if op not in STEP_OPERATIONS:
        raise ValueError(f"unknown step operation {op!r}")
    args, kwargs = step_call_args(raw)
    return getattr(diagram, op)(*args, **kwargs)


def build_diagram(entry: dict[str, Any], config: Optional[DiagramConfig] = None) -> Diagram:
    """Replay a diagram entry's steps onto a fresh Diagram."""
    steps = entry.get("steps", []) or []
    if not isinstance(steps, list):
        raise TypeError(f"diagram {entry.get('id')!r} steps must be a list")

    diagram = Diagram(config=config)
    for step in steps:
        apply_step(diagram, step)
    return diagram

# mermaid_sequence/validate.py
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Tuple

from .config import DiagramConfig
from .diagram import Diagram
from .errors import DiagramError
from .mermaid_fmt import is_mm_id
from .scenario import (
    MESSAGE_OPERATIONS,
    STEP_OPERATIONS,
    build_diagram,
    split_step,
    step_call_args,
)

Severity = Literal["error", "warning"]

_DECLARING_OPERATIONS = frozenset({"participant", "actor"})


@dataclass(frozen=True)
class ValidationIssue:
    """Structured validation issue for callers that want more than strings."""

    severity: Severity
    code: str
    message: str
    path: str = ""
    hint: Optional[str] = None


@dataclass(frozen=True)
class ValidateConfig:
    # Rule controls
    ignore: set[str] = field(default_factory=set)
    escalate: set[str] = field(default_factory=set)

    # Replay each diagram with nesting checks and report latched errors.
    check_structure: bool = True
    check_mermaid_safe_participants: bool = True


def _bind_error(op: str, args: list[Any], kwargs: dict[str, Any]) -> Optional[str]:
    sig = inspect.signature(getattr(Diagram, op))
    try:
        sig.bind(None, *args, **kwargs)
    except TypeError as e:
        return str(e)
    return None


def _name_args_error(op: str, args: list[Any], kwargs: dict[str, Any]) -> Optional[str]:
    """Reject participant arguments that are not strings (or, for note_over, a list of strings)."""
    if op in MESSAGE_OPERATIONS:
        named = {
            "src": args[0] if args else kwargs.get("src"),
            "dst": args[1] if len(args) > 1 else kwargs.get("dst"),
        }
    elif op in ("participant", "actor", "activate", "deactivate"):
        named = {"name": args[0] if args else kwargs.get("name")}
    elif op in ("note_left_of", "note_right_of"):
        named = {"participant": args[0] if args else kwargs.get("participant")}
    elif op == "note_over":
        who = args[0] if args else kwargs.get("participants")
        if isinstance(who, list) and who and all(isinstance(n, str) for n in who):
            return None
        named = {"participants": who}
    else:
        return None
    for arg, value in named.items():
        if not isinstance(value, str):
            return f"{arg!r} must be a participant name, got {value!r}"
    return None


def _strings(args: list[Any], kwargs: dict[str, Any]) -> list[str]:
    out: list[str] = []
    for v in [*args, *kwargs.values()]:
        if isinstance(v, list):
            out.extend(x for x in v if isinstance(x, str))
        elif isinstance(v, str):
            out.append(v)
    return out


def _names(op: str, args: list[Any], kwargs: dict[str, Any]) -> list[str]:
    """Participant names referenced by a (well-formed) step."""
    if op in MESSAGE_OPERATIONS:
        src = kwargs.get("src", args[0] if len(args) > 0 else None)
        dst = kwargs.get("dst", args[1] if len(args) > 1 else None)
        return [n for n in (src, dst) if isinstance(n, str)]
    if op in ("participant", "actor", "activate", "deactivate"):
        name = kwargs.get("name", args[0] if args else None)
        return [name] if isinstance(name, str) else []
    if op == "note_over":
        who = kwargs.get("participants", args[0] if args else None)
        if isinstance(who, str):
            return [who]
        return [n for n in (who or []) if isinstance(n, str)]
    if op in ("note_left_of", "note_right_of"):
        who = kwargs.get("participant", args[0] if args else None)
        return [who] if isinstance(who, str) else []
    return []


def validate_scenarios_issues(
    model: dict[str, Any], cfg: Optional[ValidateConfig] = None
) -> list[ValidationIssue]:
    """Return structured validation issues.

    This is the canonical validator. `validate_scenarios()` is the string
    wrapper used by the CLI.
    """

    cfg = cfg or ValidateConfig()
    issues: list[ValidationIssue] = []

    def emit(
        severity: Severity,
        code: str,
        message: str,
        path: str = "",
        hint: Optional[str] = None,
    ) -> None:
        if code in cfg.ignore:
            return
        final_severity: Severity = (
            "error" if (severity == "warning" and code in cfg.escalate) else severity
        )
        issues.append(
            ValidationIssue(
                severity=final_severity,
                code=code,
                message=message,
                path=path,
                hint=hint,
            )
        )

    diagrams = model.get("diagrams", []) or []
    if not isinstance(diagrams, list):
        emit("error", "E_DIAGRAMS_NOT_LIST", "scenario.diagrams must be a list")
        return issues

    ids_seen: dict[str, int] = {}
    for d_i, entry in enumerate(diagrams):
        if not isinstance(entry, dict):
            emit(
                "warning",
                "W_DIAGRAMS_ITEM_NOT_MAPPING",
                "scenario.diagrams contains a non-mapping item; skipping",
                path=f"/diagrams/{d_i}",
            )
            continue

        d_id = entry.get("id")
        if not isinstance(d_id, str) or not d_id:
            emit(
                "error",
                "E_DIAGRAM_MISSING_ID",
                "diagram is missing string `id`",
                path=f"/diagrams/{d_i}/id",
            )
        else:
            if d_id in ids_seen:
                emit(
                    "error",
                    "E_DIAGRAM_DUPLICATE_ID",
                    f"duplicate diagram id {d_id!r} (also in diagrams[{ids_seen[d_id]}])",
                    path=f"/diagrams/{d_i}/id",
                )
            else:
                ids_seen[d_id] = d_i

            if "/" in d_id or "\\" in d_id or ".." in d_id:
                emit(
                    "error",
                    "E_DIAGRAM_ID_NOT_PATH_SAFE",
                    f"diagram id {d_id!r} is used as a file name and must not contain "
                    "path separators or '..'",
                    path=f"/diagrams/{d_i}/id",
                )
            elif not is_mm_id(d_id):
                emit(
                    "warning",
                    "W_DIAGRAM_ID_NOT_MERMAID_SAFE",
                    f"diagram id {d_id!r} is not Mermaid-safe",
                    path=f"/diagrams/{d_i}/id",
                    hint="Use snake_case (A-Za-z0-9_); do not start with a digit",
                )

        steps = entry.get("steps", []) or []
        if not isinstance(steps, list):
            emit(
                "error",
                "E_DIAGRAM_STEPS_NOT_LIST",
                f"diagram {d_id!r} steps must be a list",
                path=f"/diagrams/{d_i}/steps",
            )
            continue

        declared: set[str] = set()
        referenced: list[tuple[int, str]] = []
        steps_ok = True

        for s_i, step in enumerate(steps):
            s_path = f"/diagrams/{d_i}/steps/{s_i}"
            try:
                op, raw = split_step(step)
            except TypeError as e:
                emit("error", "E_STEP_MALFORMED", f"diagram {d_id!r}: {e}", path=s_path)
                steps_ok = False
                continue

            if op not in STEP_OPERATIONS:
                emit(
                    "error",
                    "E_STEP_UNKNOWN_OPERATION",
                    f"diagram {d_id!r} uses unknown step operation {op!r}",
                    path=s_path,
                )
                steps_ok = False
                continue

            args, kwargs = step_call_args(raw)
            bind_err = _bind_error(op, args, kwargs) or _name_args_error(op, args, kwargs)
            if bind_err is not None:
                emit(
                    "error",
                    "E_STEP_BAD_ARGUMENTS",
                    f"diagram {d_id!r} step {op!r} has bad arguments: {bind_err}",
                    path=s_path,
                )
                steps_ok = False
                continue

            if any(("\n" in s or "\r" in s) for s in _strings(args, kwargs)):
                emit(
                    "warning",
                    "W_STEP_TEXT_NEWLINE",
                    f"diagram {d_id!r} step {op!r} text contains a newline; "
                    "this breaks the line-oriented diagram syntax",
                    path=s_path,
                )

            names = _names(op, args, kwargs)
            if cfg.check_mermaid_safe_participants:
                for name in names:
                    if not is_mm_id(name):
                        emit(
                            "warning",
                            "W_PARTICIPANT_NOT_MERMAID_SAFE",
                            f"diagram {d_id!r} participant {name!r} is not Mermaid-safe",
                            path=s_path,
                            hint="Use [A-Za-z0-9_] and do not start with a digit",
                        )

            if op in _DECLARING_OPERATIONS:
                declared.update(names)
            else:
                referenced.extend((s_i, n) for n in names)

        if declared:
            for s_i, name in referenced:
                if name not in declared:
                    emit(
                        "warning",
                        "W_STEP_UNDECLARED_PARTICIPANT",
                        f"diagram {d_id!r} references undeclared participant {name!r}",
                        path=f"/diagrams/{d_i}/steps/{s_i}",
                    )

        if cfg.check_structure and steps_ok:
            diagram = build_diagram(entry, DiagramConfig(check_nesting=True))
            try:
                diagram.check()
            except DiagramError as e:
                emit(
                    "error",
                    "E_DIAGRAM_STRUCTURE",
                    f"diagram {d_id!r}: {e}",
                    path=f"/diagrams/{d_i}/steps",
                )

    return issues


def validate_scenarios(
    model: dict[str, Any], cfg: Optional[ValidateConfig] = None
) -> Tuple[list[str], list[str]]:
    """Perform lightweight structural validation to keep scenarios diagram-safe."""
    issues = validate_scenarios_issues(model, cfg)
    errors = [iss.message for iss in issues if iss.severity == "error"]
    warnings = [iss.message for iss in issues if iss.severity == "warning"]
    return errors, warnings

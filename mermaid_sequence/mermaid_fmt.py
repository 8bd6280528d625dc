from __future__ import annotations

import re
from typing import Iterable, Literal

from .constants import INDENT

# Mermaid participant IDs are safest when alphanumeric/underscore and not
# starting with a digit. Only scenario validation looks at this; the builder
# passes names through untouched.
MERMAID_ID_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ArrowKind = Literal[
    "sync_request",
    "sync_response",
    "async_request",
    "async_response",
    "request_error",
    "response_error",
]

ARROWS: dict[str, str] = {
    "sync_request": "->>",
    "sync_response": "-->>",
    "async_request": "-)",
    "async_response": "--)",
    "request_error": "-x",
    "response_error": "--x",
}

NotePlacement = Literal["over", "left of", "right of"]
NOTE_PLACEMENTS: tuple[str, ...] = ("over", "left of", "right of")


def mermaid_block(code: str, newline: str = "\n") -> str:
    """Wrap Mermaid source in a Markdown Mermaid code fence."""
    return "```mermaid" + newline + code.rstrip() + newline + "```" + newline


def is_mm_id(value: str) -> bool:
    return bool(MERMAID_ID_RE.match(value))


def sq_participant(name: str) -> str:
    return f"{INDENT}participant {name}"


def sq_actor(name: str) -> str:
    return f"{INDENT}actor {name}"


def sq_message(src: str, kind: ArrowKind, dst: str, message: str) -> str:
    try:
        arrow = ARROWS[kind]
    except KeyError:
        raise ValueError(f"unknown arrow kind: {kind!r}") from None
    return f"{INDENT}{src}{arrow}{dst}: {message}"


def sq_note(placement: NotePlacement, participants: Iterable[str], message: str) -> str:
    if placement not in NOTE_PLACEMENTS:
        raise ValueError(f"unknown note placement: {placement!r}")
    names = list(participants)
    if not names:
        raise ValueError("a note needs at least one participant")
    bad = [n for n in names if not isinstance(n, str)]
    if bad:
        raise ValueError(f"note participants must be strings, got {bad!r}")
    if placement != "over" and len(names) > 1:
        raise ValueError(f"'Note {placement}' takes exactly one participant")
    return f"{INDENT}Note {placement} {','.join(names)}: {message}"


def sq_activate(name: str) -> str:
    return f"{INDENT}activate {name}"


def sq_deactivate(name: str) -> str:
    return f"{INDENT}deactivate {name}"


def sq_keyword(keyword: str, label: str = "") -> str:
    """Block opener or branch line: ``loop <label>``, ``else <label>``, ..."""
    if label:
        return f"{INDENT}{keyword} {label}"
    return f"{INDENT}{keyword}"


def sq_end() -> str:
    return f"{INDENT}end"

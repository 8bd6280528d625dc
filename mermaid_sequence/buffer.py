from __future__ import annotations

from .constants import HEADER


class LineBuffer:
    """Append-only list of diagram lines; the header is always ``lines[0]``."""

    __slots__ = ("_lines",)

    def __init__(self, header: str = HEADER) -> None:
        self._lines: list[str] = [header]

    def append(self, line: str) -> None:
        self._lines.append(line)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def render(self, separator: str = "\n") -> str:
        return separator.join(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

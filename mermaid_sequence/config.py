from __future__ import annotations

from dataclasses import dataclass

from .constants import LINE_SEPARATOR_DEFAULT, LINE_SEPARATORS


@dataclass(frozen=True)
class DiagramConfig:
    """Per-diagram build options.

    ``line_separator`` is applied to the whole document at render time; the
    host platform is never consulted. ``check_nesting`` turns on block and
    activation balance checks; with it off the builder trusts the caller's
    start/end pairing and never latches a structural error.
    """

    line_separator: str = LINE_SEPARATORS[LINE_SEPARATOR_DEFAULT]
    check_nesting: bool = True

    def __post_init__(self) -> None:
        if self.line_separator not in LINE_SEPARATORS.values():
            raise ValueError(f"unsupported line separator: {self.line_separator!r}")

    @classmethod
    def from_name(cls, separator_name: str, *, check_nesting: bool = True) -> "DiagramConfig":
        try:
            sep = LINE_SEPARATORS[separator_name]
        except KeyError:
            raise ValueError(
                f"unknown line separator name {separator_name!r} "
                f"(expected one of {sorted(LINE_SEPARATORS)})"
            ) from None
        return cls(line_separator=sep, check_nesting=check_nesting)


@dataclass(frozen=True)
class RenderConfig:
    line_separator_name: str = LINE_SEPARATOR_DEFAULT
    check_nesting: bool = True
    strict: bool = False

    def diagram_config(self) -> DiagramConfig:
        return DiagramConfig.from_name(
            self.line_separator_name, check_nesting=self.check_nesting
        )

from __future__ import annotations

from collections import Counter
from typing import Any, Optional, Sequence, TextIO, Union

from .buffer import LineBuffer
from .config import DiagramConfig
from .constants import BLOCK_BRANCHES
from .errors import (
    ActivationError,
    BlockMismatchError,
    DiagramError,
    DiagramWriteError,
    MessageFormatError,
    MisplacedBranchError,
    UnclosedBlockError,
    UnmatchedBlockEndError,
)
from .latch import ErrorLatch
from .mermaid_fmt import (
    ArrowKind,
    NotePlacement,
    sq_activate,
    sq_actor,
    sq_deactivate,
    sq_end,
    sq_keyword,
    sq_message,
    sq_note,
    sq_participant,
)


class Diagram:
    """Fluent Mermaid sequence diagram builder.

    Every emitter appends at most one line and returns the diagram, so calls
    can be chained. Construction failures never raise: the first one is
    latched and every later emitter becomes a no-op. Inspect it with
    ``last_error()`` or let ``finalize()`` raise it.

    Example::

        Diagram(sys.stdout).participant("A").participant("B").lf() \\
            .sync_request("A", "B", "hi").sync_response("B", "A", "ok") \\
            .finalize()
    """

    def __init__(
        self,
        dest: Optional[TextIO] = None,
        config: Optional[DiagramConfig] = None,
    ) -> None:
        self._buf = LineBuffer()
        self._latch = ErrorLatch()
        self._config = config or DiagramConfig()
        self._dest = dest
        self._open_blocks: list[str] = []
        self._active: Counter[str] = Counter()

    # ---------- finalization ----------

    @property
    def config(self) -> DiagramConfig:
        return self._config

    @property
    def lines(self) -> tuple[str, ...]:
        return self._buf.lines

    @property
    def open_blocks(self) -> tuple[str, ...]:
        """Keywords of blocks still open, outermost first (tracked only when checking nesting)."""
        return tuple(self._open_blocks)

    def render(self) -> str:
        """Return the diagram text accumulated so far. Never fails, never mutates."""
        return self._buf.render(self._config.line_separator)

    def __str__(self) -> str:
        return self.render()

    def last_error(self) -> Optional[BaseException]:
        return self._latch.get()

    def check(self) -> None:
        """Run the end-of-build balance checks and raise the latched error, if any.

        ``finalize()`` does the same before writing; this is for callers that
        only ``render()``. Unclosed blocks get latched, so treat the diagram
        as complete afterwards.
        """
        self._check_balanced()
        err = self._latch.get()
        if err is not None:
            raise err

    def finalize(self, dest: Optional[TextIO] = None) -> None:
        """Write the rendered diagram to ``dest`` (or the construction-time destination).

        The write is a single attempt. Any exception from the sink is wrapped in
        ``DiagramWriteError``, which carries both the write failure and any
        latched construction error. A successful write still raises the latched
        construction error, if there is one.
        """
        target = dest if dest is not None else self._dest
        if target is None:
            raise ValueError("no destination to write the diagram to")

        self._check_balanced()

        text = self.render()
        try:
            target.write(text)
        except Exception as exc:
            raise DiagramWriteError(exc, self._latch.get()) from exc

        err = self._latch.get()
        if err is not None:
            raise err

    # ---------- internals ----------

    def _emit(self, line: str) -> "Diagram":
        if not self._latch.has_failed():
            self._buf.append(line)
        return self

    def _fail(self, err: BaseException) -> "Diagram":
        self._latch.fail(err)
        return self

    def _format(self, fmt: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Optional[str]:
        try:
            return fmt.format(*args, **kwargs)
        except (IndexError, KeyError, ValueError, AttributeError, TypeError) as exc:
            err = MessageFormatError(f"cannot format message {fmt!r}: {exc}")
            err.__cause__ = exc
            self._latch.fail(err)
            return None

    def _message(self, kind: ArrowKind, src: str, dst: str, message: str) -> "Diagram":
        return self._emit(sq_message(src, kind, dst, message))

    def _messagef(
        self,
        kind: ArrowKind,
        src: str,
        dst: str,
        fmt: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> "Diagram":
        if self._latch.has_failed():
            return self
        message = self._format(fmt, args, kwargs)
        if message is None:
            return self
        return self._message(kind, src, dst, message)

    def _open(self, keyword: str, label: str) -> "Diagram":
        if self._latch.has_failed():
            return self
        if self._config.check_nesting:
            self._open_blocks.append(keyword)
        return self._emit(sq_keyword(keyword, label))

    def _branch(self, block: str, label: str) -> "Diagram":
        if self._latch.has_failed():
            return self
        keyword = BLOCK_BRANCHES.get(block)
        if keyword is None:
            raise ValueError(f"block {block!r} takes no branches")
        if self._config.check_nesting and (
            not self._open_blocks or self._open_blocks[-1] != block
        ):
            inner = self._open_blocks[-1] if self._open_blocks else None
            return self._fail(
                MisplacedBranchError(
                    f"'{keyword}' must be directly inside '{block}' "
                    f"(innermost open block: {inner!r})"
                )
            )
        return self._emit(sq_keyword(keyword, label))

    def _close(self, keyword: str) -> "Diagram":
        if self._latch.has_failed():
            return self
        if self._config.check_nesting:
            if not self._open_blocks:
                return self._fail(
                    UnmatchedBlockEndError(f"'{keyword}' end with no open block")
                )
            inner = self._open_blocks[-1]
            if inner != keyword:
                return self._fail(
                    BlockMismatchError(f"'{keyword}' end while '{inner}' is open")
                )
            self._open_blocks.pop()
        return self._emit(sq_end())

    def _check_balanced(self) -> None:
        if not self._config.check_nesting or self._latch.has_failed():
            return
        if self._open_blocks:
            self._latch.fail(
                UnclosedBlockError(
                    "unclosed block(s) at finalize: " + ", ".join(self._open_blocks)
                )
            )
            return
        still_active = sorted(name for name, n in self._active.items() if n > 0)
        if still_active:
            self._latch.fail(
                ActivationError(
                    "participant(s) still activated at finalize: " + ", ".join(still_active)
                )
            )

    # ---------- statements ----------

    def participant(self, name: str) -> "Diagram":
        return self._emit(sq_participant(name))

    def actor(self, name: str) -> "Diagram":
        return self._emit(sq_actor(name))

    def lf(self) -> "Diagram":
        """Append an empty line (no indent) for visual grouping."""
        return self._emit("")

    def sync_request(self, src: str, dst: str, message: str) -> "Diagram":
        return self._message("sync_request", src, dst, message)

    def sync_requestf(self, src: str, dst: str, fmt: str, *args: Any, **kwargs: Any) -> "Diagram":
        return self._messagef("sync_request", src, dst, fmt, args, kwargs)

    def sync_response(self, src: str, dst: str, message: str) -> "Diagram":
        return self._message("sync_response", src, dst, message)

    def sync_responsef(self, src: str, dst: str, fmt: str, *args: Any, **kwargs: Any) -> "Diagram":
        return self._messagef("sync_response", src, dst, fmt, args, kwargs)

    def async_request(self, src: str, dst: str, message: str) -> "Diagram":
        return self._message("async_request", src, dst, message)

    def async_requestf(self, src: str, dst: str, fmt: str, *args: Any, **kwargs: Any) -> "Diagram":
        return self._messagef("async_request", src, dst, fmt, args, kwargs)

    def async_response(self, src: str, dst: str, message: str) -> "Diagram":
        return self._message("async_response", src, dst, message)

    def async_responsef(self, src: str, dst: str, fmt: str, *args: Any, **kwargs: Any) -> "Diagram":
        return self._messagef("async_response", src, dst, fmt, args, kwargs)

    def request_error(self, src: str, dst: str, message: str) -> "Diagram":
        return self._message("request_error", src, dst, message)

    def request_errorf(self, src: str, dst: str, fmt: str, *args: Any, **kwargs: Any) -> "Diagram":
        return self._messagef("request_error", src, dst, fmt, args, kwargs)

    def response_error(self, src: str, dst: str, message: str) -> "Diagram":
        return self._message("response_error", src, dst, message)

    def response_errorf(self, src: str, dst: str, fmt: str, *args: Any, **kwargs: Any) -> "Diagram":
        return self._messagef("response_error", src, dst, fmt, args, kwargs)

    def _note(self, placement: NotePlacement, participants: Sequence[str], message: str) -> "Diagram":
        if self._latch.has_failed():
            return self
        try:
            line = sq_note(placement, participants, message)
        except (TypeError, ValueError) as exc:
            err = DiagramError(str(exc))
            err.__cause__ = exc
            return self._fail(err)
        return self._emit(line)

    def note_over(self, participants: Union[str, Sequence[str]], message: str) -> "Diagram":
        """``Note over A,B: message``; one name or a sequence of names."""
        if isinstance(participants, str):
            participants = [participants]
        return self._note("over", participants, message)

    def note_left_of(self, participant: str, message: str) -> "Diagram":
        return self._note("left of", [participant], message)

    def note_right_of(self, participant: str, message: str) -> "Diagram":
        return self._note("right of", [participant], message)

    def activate(self, name: str) -> "Diagram":
        if self._latch.has_failed():
            return self
        if self._config.check_nesting:
            self._active[name] += 1
        return self._emit(sq_activate(name))

    def deactivate(self, name: str) -> "Diagram":
        if self._latch.has_failed():
            return self
        if self._config.check_nesting:
            if self._active[name] <= 0:
                return self._fail(ActivationError(f"deactivate {name!r} without activate"))
            self._active[name] -= 1
        return self._emit(sq_deactivate(name))

    # ---------- blocks ----------

    def loop_start(self, label: str) -> "Diagram":
        return self._open("loop", label)

    def loop_end(self) -> "Diagram":
        return self._close("loop")

    def alt_start(self, label: str) -> "Diagram":
        return self._open("alt", label)

    def alt_else(self, label: str = "") -> "Diagram":
        return self._branch("alt", label)

    def alt_end(self) -> "Diagram":
        return self._close("alt")

    def opt_start(self, label: str = "") -> "Diagram":
        return self._open("opt", label)

    def opt_end(self) -> "Diagram":
        return self._close("opt")

    def parallel_start(self, label: str) -> "Diagram":
        return self._open("par", label)

    def parallel_and(self, label: str = "") -> "Diagram":
        return self._branch("par", label)

    def parallel_end(self) -> "Diagram":
        return self._close("par")

    def break_start(self, label: str) -> "Diagram":
        return self._open("break", label)

    def break_end(self) -> "Diagram":
        return self._close("break")

    def critical_start(self, label: str) -> "Diagram":
        return self._open("critical", label)

    def critical_option(self, label: str = "") -> "Diagram":
        return self._branch("critical", label)

    def critical_end(self) -> "Diagram":
        return self._close("critical")

    def group_start(self, label: str) -> "Diagram":
        return self._open("group", label)

    def group_end(self) -> "Diagram":
        return self._close("group")

from __future__ import annotations

from typing import Optional


class DiagramError(Exception):
    """Base class for failures latched while building a diagram."""


class MessageFormatError(DiagramError):
    """A formatted emitter could not interpolate its arguments."""


class UnmatchedBlockEndError(DiagramError):
    """A block end was emitted with no open block."""


class BlockMismatchError(DiagramError):
    """A block end does not match the innermost open block."""


class MisplacedBranchError(DiagramError):
    """A branch (else/and/option) was emitted outside its owning block."""


class UnclosedBlockError(DiagramError):
    """Blocks were still open when the diagram was finalized."""


class ActivationError(DiagramError):
    """Activation and deactivation markers are not balanced."""


class DiagramWriteError(DiagramError):
    """Writing the rendered diagram to its destination failed.

    The write failure is chained as ``__cause__`` and kept as ``write_error``;
    any construction error latched before the write is kept as
    ``construction_error`` so both causes stay observable.
    """

    def __init__(
        self,
        write_error: BaseException,
        construction_error: Optional[BaseException] = None,
    ) -> None:
        msg = f"failed to write diagram text: {write_error}"
        if construction_error is not None:
            msg += f" (construction error: {construction_error})"
        super().__init__(msg)
        self.write_error = write_error
        self.construction_error = construction_error

from __future__ import annotations

from typing import Optional


class ErrorLatch:
    """Holds the first failure reported during a chain of builder calls.

    Fluent calls cannot raise without breaking the chain, so failures are
    parked here and surfaced later by ``Diagram.last_error()`` or
    ``Diagram.finalize()``. Later failures are dropped; the latch never
    resets.
    """

    __slots__ = ("_err",)

    def __init__(self) -> None:
        self._err: Optional[BaseException] = None

    def fail(self, err: BaseException) -> bool:
        """Latch ``err`` unless a failure is already held. Returns True if latched."""
        if self._err is not None:
            return False
        self._err = err
        return True

    def has_failed(self) -> bool:
        return self._err is not None

    def get(self) -> Optional[BaseException]:
        return self._err

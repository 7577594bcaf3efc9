"""Caller-supplied cancellation and deadlines.

A Context is threaded through every public operation. It never imposes a
timeout of its own: it only reports whether the caller has cancelled or
whether the caller's deadline has passed, checked before each external call.
"""
import threading
import time
from typing import Optional

from sqlkeeper.errors import DeadlineExceeded, OperationCancelled


class Context:
    def __init__(self, deadline: Optional[float] = None):
        """
        Args:
            deadline: absolute time.monotonic() value after which operations fail
        """
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "Context":
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "Context":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self, operation: str) -> None:
        if self._cancelled.is_set():
            raise OperationCancelled(operation)
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise DeadlineExceeded(operation)


def ensure_context(ctx: Optional[Context]) -> Context:
    return ctx if ctx is not None else Context.background()

"""Per-call context carrying cancellation and an optional deadline.

The host hands one CallContext to every lifecycle invocation. Nothing in the
adapter reads process-wide state; the poller consults the context between
polls and stops when it is cancelled or past its deadline.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from wafpolicy.exceptions import RemoteCallError


@dataclass
class CallContext:
    """
    Cancellation-aware context for one adapter invocation.

    Args:
        deadline: Absolute time.monotonic() value after which work stops
        cancel_event: Set from another thread to cancel the call
    """

    deadline: Optional[float] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> "CallContext":
        """Create a context that expires ``seconds`` from now (None: never)."""
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self, operation: str) -> None:
        """Raise RemoteCallError if the call was cancelled or timed out."""
        if self.cancelled:
            raise RemoteCallError(
                f"{operation} cancelled", context={"operation": operation}
            )
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise RemoteCallError(
                f"{operation} timed out", context={"operation": operation}
            )

    def sleep(self, seconds: float, operation: str) -> None:
        """Wait up to ``seconds``, waking early on cancellation."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self.cancel_event.wait(seconds)
        self.check(operation)

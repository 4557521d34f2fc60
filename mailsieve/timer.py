"""A one-shot wall-clock timer driven by SIGALRM."""

from __future__ import annotations

import errno
import signal
from types import FrameType, TracebackType

# Oversized timeouts are halved until they are accepted, but never below this.
_MIN_RETRY_SECONDS = 30


class AlarmTimer:
    """Flag that becomes true once a timeout set with :meth:`set` elapses.

    Only one timer can be active in a process, since it uses SIGALRM.
    """

    def __init__(self) -> None:
        self._expired = False

    def _handler(self, signum: int, frame: FrameType | None) -> None:
        self._expired = True

    def set(self, seconds: float) -> None:
        """Start the timer, replacing any timer already running."""
        if seconds == 0:
            raise ValueError("zero timeout")
        self._expired = False
        signal.signal(signal.SIGALRM, self._handler)

        value = seconds
        while True:
            try:
                signal.setitimer(signal.ITIMER_REAL, value)
                return
            except signal.ItimerError as exc:
                if exc.errno != errno.EINVAL or value < _MIN_RETRY_SECONDS:
                    raise
                value = value // 2

    def expired(self) -> bool:
        """Return whether the timeout has elapsed."""
        return self._expired

    def cancel(self) -> None:
        """Stop the timer and restore the default SIGALRM handling."""
        signal.setitimer(signal.ITIMER_REAL, 0)
        signal.signal(signal.SIGALRM, signal.SIG_DFL)

    def __enter__(self) -> AlarmTimer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cancel()
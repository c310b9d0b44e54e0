import threading
import time
from dataclasses import dataclass, field

from .exceptions import UploadCancelledError


@dataclass
class UploadContext:
    """
    Cancellation and deadline carried through every uploader call.

    The context never aborts anything on its own. It only makes the uploader
    stop retrying and return, leaving the session as the store last saw it.
    """

    deadline: float | None = None
    _cancel_event: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def with_timeout(cls, timeout_sec: float) -> "UploadContext":
        return cls(deadline=time.monotonic() + timeout_sec)

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set() or self._deadline_passed()

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def raise_if_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise UploadCancelledError("Upload context cancelled")
        if self._deadline_passed():
            raise UploadCancelledError("Upload context deadline exceeded")

    def wait(self, seconds: float) -> None:
        """Sleep for `seconds`, waking up early (and raising) on cancellation."""
        if seconds <= 0:
            self.raise_if_cancelled()
            return
        remaining = self.remaining()
        capped = remaining is not None and remaining <= seconds
        if self._cancel_event.wait(remaining if capped else seconds):
            raise UploadCancelledError("Upload context cancelled")
        if capped:
            raise UploadCancelledError("Upload context deadline exceeded")

    def _deadline_passed(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

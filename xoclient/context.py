# xoclient/context.py
import logging
import threading
import time
from typing import Callable, List, Optional

from .errors import DeadlineExceeded, OperationCancelled

logger = logging.getLogger(__name__)


class CancelScope:
    """
    Cancellation signal plus optional deadline for blocking calls.

    Usage:
        scope = CancelScope(timeout=30)
        threading.Timer(5, scope.cancel).start()
        client.task().wait(task_id, scope=scope)   # raises OperationCancelled after ~5s
    """

    def __init__(self, timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._detach: Optional[Callable[[], None]] = None
        self.deadline = clock() + timeout if timeout is not None else None

    def child(self, timeout: Optional[float] = None) -> "CancelScope":
        """A scope cancelled together with this one, with the tighter of both deadlines."""
        child = CancelScope(clock=self._clock)
        deadlines = [d for d in (self.deadline, self._clock() + timeout if timeout is not None else None)
                     if d is not None]
        child.deadline = min(deadlines) if deadlines else None
        child._detach = self.on_cancel(child.cancel)
        return child

    def close(self):
        """Detach a child scope from its parent once it is no longer needed."""
        detach, self._detach = self._detach, None
        if detach is not None:
            detach()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def remaining(self, default: Optional[float] = None) -> Optional[float]:
        """Seconds left before the deadline, capped at ``default``."""
        if self.deadline is None:
            return default
        left = max(0.0, self.deadline - self._clock())
        return left if default is None else min(left, default)

    def cancel(self):
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("cancel callback failed")

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation (immediately if already cancelled). Returns an unregister function."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)

                def unregister():
                    with self._lock:
                        if callback in self._callbacks:
                            self._callbacks.remove(callback)
                return unregister
        callback()
        return lambda: None

    def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds`` (never past the deadline). Returns True if cancelled meanwhile."""
        wait_for = self.remaining(max(0.0, seconds))
        return self._event.wait(wait_for)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def check(self):
        if self._event.is_set():
            raise OperationCancelled("operation cancelled")
        if self.expired:
            raise DeadlineExceeded("deadline exceeded")

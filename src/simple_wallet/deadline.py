"""Bounded execution of blocking wallet calls."""

import logging
import threading
import time
from typing import Callable, Generic, Optional, TypeVar, cast

from .errors import OperationTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CallContext:
    """Deadline and cancellation signal handed to a single wallet call.

    Handles doing long work should check `cancelled` and give up early. A
    fresh context is created for every call.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self.deadline = time.monotonic() + timeout
        self._cancelled = threading.Event()

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or time.monotonic() >= self.deadline

    def cancel(self) -> None:
        self._cancelled.set()


class _Outcome(Generic[T]):
    def __init__(self):
        self.value: Optional[T] = None
        self.error: Optional[Exception] = None
        self.finished = False
        self.abandoned = False


def call_with_timeout(
    description: str,
    fn: Callable[[CallContext], T],
    timeout: float,
    on_abandoned: Optional[Callable[[T], None]] = None,
) -> T:
    """Run ``fn(ctx)`` and give up after ``timeout`` seconds.

    Exceptions raised by ``fn`` propagate unchanged. Expiry raises
    `OperationTimeout` and cancels the context. The call keeps running on a
    daemon thread, so it never holds up interpreter exit; if it later
    succeeds, its result is handed to ``on_abandoned``.
    """
    ctx = CallContext(timeout)
    outcome: _Outcome[T] = _Outcome()
    done = threading.Event()
    guard = threading.Lock()

    def run() -> None:
        try:
            value = fn(ctx)
        except Exception as exc:
            with guard:
                outcome.error = exc
                outcome.finished = True
            done.set()
            return
        with guard:
            late = outcome.abandoned
            if not late:
                outcome.value = value
                outcome.finished = True
        done.set()
        if late and on_abandoned is not None:
            logger.debug(f"'{description}' completed after being abandoned")
            try:
                on_abandoned(value)
            except Exception as exc:
                logger.warning(f"Failed to undo late '{description}': {exc}")

    worker = threading.Thread(target=run, name="wallet-call", daemon=True)
    worker.start()
    done.wait(ctx.remaining())
    with guard:
        if not outcome.finished:
            outcome.abandoned = True
    if outcome.abandoned:
        ctx.cancel()
        logger.debug(f"Gave up on '{description}' after {timeout}s")
        raise OperationTimeout(f"Timed out after {timeout:g}s trying to {description}")
    if outcome.error is not None:
        raise outcome.error
    return cast(T, outcome.value)

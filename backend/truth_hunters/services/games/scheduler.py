import heapq
import itertools
import logging
import time
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ScheduledCall:
    """Handle for a callback registered with a scheduler."""

    def __init__(self, due: float, callback: Callable[[], Any]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def run(self) -> None:
        if not self.pending:
            return
        self.fired = True
        self.callback()


class Scheduler:
    """Minimal event-source interface used by timers and debouncers."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        raise NotImplementedError


class SocketIOScheduler(Scheduler):
    """Runs delayed callbacks as Flask-SocketIO background tasks.

    Callbacks run under ``lock`` when one is given, so ticks never interleave
    with request handlers touching the same timer.
    """

    def __init__(self, socketio, lock=None):
        self.socketio = socketio
        self.lock = lock

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        call = ScheduledCall(self.now() + delay, callback)

        def _runner():
            self.socketio.sleep(max(0.0, delay))
            try:
                if self.lock is not None:
                    with self.lock:
                        call.run()
                else:
                    call.run()
            except Exception:
                logger.exception('[scheduler] delayed callback failed')

        self.socketio.start_background_task(_runner)
        return call


class ManualScheduler(Scheduler):
    """Virtual clock; callbacks only run when ``advance`` moves time past them."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledCall:
        call = ScheduledCall(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (call.due, next(self._seq), call))
        return call

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            call.run()
        self._now = target

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, call in self._queue if call.pending)


class Debouncer:
    """Last-event-wins: only the final value pushed within ``delay_ms`` is delivered."""

    def __init__(self, scheduler: Scheduler, delay_ms: float, callback: Callable[[Any], Any]):
        self.scheduler = scheduler
        self.delay = max(0.0, float(delay_ms)) / 1000.0
        self.callback = callback
        self._pending: Optional[ScheduledCall] = None

    def __call__(self, value: Any) -> None:
        self.cancel()
        self._pending = self.scheduler.call_later(self.delay, lambda: self._deliver(value))

    def _deliver(self, value: Any) -> None:
        self._pending = None
        self.callback(value)

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and self._pending.pending

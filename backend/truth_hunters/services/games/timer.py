import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .scheduler import Debouncer, ManualScheduler, ScheduledCall, Scheduler

logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0


@dataclass(frozen=True)
class TimerState:
    time: int
    is_active: bool
    is_paused: bool

    def to_dict(self):
        return {'time': self.time, 'is_active': self.is_active, 'is_paused': self.is_paused}


class RoundTimer:
    """Countdown for one round that pauses while the team's tab is hidden.

    - Decrements once per second only while active and not paused
    - Visibility changes are debounced and applied only when the value changes
    - At most one tick is ever scheduled
    - ``on_complete`` fires once when the countdown reaches zero
    """

    def __init__(
        self,
        initial_time: int,
        on_complete: Optional[Callable[[], Any]] = None,
        scheduler: Optional[Scheduler] = None,
        debounce_ms: float = 100,
    ):
        self.initial_time = max(0, int(initial_time))
        self.on_complete = on_complete
        self.scheduler = scheduler or ManualScheduler()
        self.time = self.initial_time
        self.is_active = False
        self.is_paused = False
        self._tick: Optional[ScheduledCall] = None
        self._applied_hidden = False
        self._visibility = Debouncer(self.scheduler, debounce_ms, self._apply_visibility)

    @property
    def state(self) -> TimerState:
        return TimerState(time=self.time, is_active=self.is_active, is_paused=self.is_paused)

    @property
    def is_expired(self) -> bool:
        return self.time <= 0

    def start(self) -> None:
        if self.is_expired:
            return
        self.is_active = True
        self._ensure_ticking()

    def pause(self) -> None:
        self.is_active = False
        self._cancel_tick()

    def reset(self, new_time: Optional[int] = None) -> None:
        self.time = max(0, int(new_time)) if new_time is not None else self.initial_time
        self.is_active = False
        self._cancel_tick()

    def set_visibility(self, hidden: bool) -> None:
        self._visibility(bool(hidden))

    def dispose(self) -> None:
        self._visibility.cancel()
        self._cancel_tick()
        self.is_active = False

    def _apply_visibility(self, hidden: bool) -> None:
        if hidden == self._applied_hidden:
            return
        self._applied_hidden = hidden
        self.is_paused = hidden
        if hidden:
            self._cancel_tick()
        else:
            self._ensure_ticking()

    def _ensure_ticking(self) -> None:
        if not self.is_active or self.is_paused:
            return
        if self._tick is not None and self._tick.pending:
            return
        self._tick = self.scheduler.call_later(TICK_SECONDS, self._on_tick)

    def _cancel_tick(self) -> None:
        if self._tick is not None:
            self._tick.cancel()
            self._tick = None

    def _on_tick(self) -> None:
        self._tick = None
        if not self.is_active or self.is_paused:
            return
        if self.time <= 1:
            self.time = 0
            self.is_active = False
            if self.on_complete is not None:
                try:
                    self.on_complete()
                except Exception:
                    logger.exception('[timer-complete] completion callback failed')
            return
        self.time -= 1
        self._ensure_ticking()

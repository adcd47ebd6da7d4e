import logging
import threading
from typing import Any, Callable, Dict, Optional

from flask import has_app_context

from .integrity import IntegrityConfig, IntegrityMonitor
from .scheduler import Scheduler
from .timer import RoundTimer

logger = logging.getLogger(__name__)


class RoundRuntime:
    """The one timer and one integrity monitor owned by a game session."""

    def __init__(self, game_code: str, timer: RoundTimer, monitor: IntegrityMonitor):
        self.game_code = game_code
        self.timer = timer
        self.monitor = monitor

    def begin_round(self, duration: int) -> None:
        self.timer.reset(duration)
        self.monitor.reset()
        self.monitor.activate()
        self.timer.start()

    def end_round(self) -> None:
        self.timer.pause()
        self.monitor.deactivate()

    def handle_visibility(self, hidden: bool) -> None:
        self.timer.set_visibility(hidden)
        self.monitor.handle_visibility_change(hidden)

    def dispose(self) -> None:
        self.timer.dispose()
        self.monitor.deactivate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timer': self.timer.state.to_dict(),
            'integrity': self.monitor.state.to_dict(),
        }


class RuntimeRegistry:
    """Per-app map of game code -> RoundRuntime.

    Round-closing callbacks (timeout, forfeit) and tab-switch notices are
    injected so this module stays free of persistence concerns.
    """

    def __init__(
        self,
        app,
        scheduler: Scheduler,
        on_timeout: Callable[[str], Any],
        on_forfeit: Callable[[str], Any],
        on_tab_switch: Optional[Callable[[str, int], Any]] = None,
        lock: Optional[threading.RLock] = None,
    ):
        self.app = app
        self.scheduler = scheduler
        self.on_timeout = on_timeout
        self.on_forfeit = on_forfeit
        self.on_tab_switch = on_tab_switch
        self.lock = lock or threading.RLock()
        self._runtimes: Dict[str, RoundRuntime] = {}

    def _in_app(self, fn: Callable[..., Any], *args) -> Callable[[], Any]:
        def _call():
            if has_app_context():
                return fn(*args)
            with self.app.app_context():
                return fn(*args)
        return _call

    def get(self, game_code: str) -> Optional[RoundRuntime]:
        return self._runtimes.get(game_code)

    def ensure(self, game_code: str) -> RoundRuntime:
        with self.lock:
            runtime = self._runtimes.get(game_code)
            if runtime is not None:
                return runtime

            cfg = self.app.config
            timer = RoundTimer(
                int(cfg.get('ROUND_DURATION_SEC', 60)),
                on_complete=self._in_app(self.on_timeout, game_code),
                scheduler=self.scheduler,
                debounce_ms=float(cfg.get('VISIBILITY_DEBOUNCE_MS', 100)),
            )
            monitor = IntegrityMonitor(
                IntegrityConfig.from_mapping(cfg),
                on_tab_switch=(lambda count: self._in_app(self.on_tab_switch, game_code, count)())
                if self.on_tab_switch else None,
                on_forfeit=self._in_app(self.on_forfeit, game_code),
                clock=self.scheduler.now,
            )
            runtime = RoundRuntime(game_code, timer, monitor)
            self._runtimes[game_code] = runtime
            self.app.logger.info(f"[runtime-create] game={game_code}")
            return runtime

    def discard(self, game_code: str) -> None:
        with self.lock:
            runtime = self._runtimes.pop(game_code, None)
            if runtime is None:
                return
            runtime.dispose()
            self.app.logger.info(f"[runtime-dispose] game={game_code}")

    def dispose_all(self) -> None:
        with self.lock:
            for code in list(self._runtimes):
                self.discard(code)

    def __contains__(self, game_code: str) -> bool:
        return game_code in self._runtimes

    def __len__(self) -> int:
        return len(self._runtimes)

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntegrityConfig:
    max_switches_per_round: Optional[int] = 2
    tab_switch_penalty: int = 1
    forfeit_penalty: int = 5
    enabled: bool = True

    @property
    def is_enabled(self) -> bool:
        return bool(self.enabled) and self.max_switches_per_round is not None

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> 'IntegrityConfig':
        """Build from a Flask config; anything malformed disables the feature."""
        try:
            raw_max = cfg.get('MAX_TAB_SWITCHES_PER_ROUND')
            max_switches = int(raw_max) if raw_max is not None else None
            return cls(
                max_switches_per_round=max_switches,
                tab_switch_penalty=int(cfg.get('TAB_SWITCH_PENALTY', 1)),
                forfeit_penalty=int(cfg.get('FORFEIT_PENALTY', 5)),
                enabled=bool(cfg.get('ANTI_CHEAT_ENABLED', True)),
            )
        except (TypeError, ValueError):
            logger.warning('[integrity-config] malformed anti-cheat settings, tracking disabled')
            return cls(max_switches_per_round=None, enabled=False)


@dataclass(frozen=True)
class IntegrityState:
    tab_switches: int
    is_tab_visible: bool
    is_forfeit: bool
    total_time_hidden: int
    has_warning: bool
    is_near_forfeit: bool
    penalty: int

    def to_dict(self):
        return {
            'tab_switches': self.tab_switches,
            'is_tab_visible': self.is_tab_visible,
            'is_forfeit': self.is_forfeit,
            'total_time_hidden': self.total_time_hidden,
            'has_warning': self.has_warning,
            'is_near_forfeit': self.is_near_forfeit,
            'penalty': self.penalty,
        }


class IntegrityMonitor:
    """Counts tab switches during an active round and flags a forfeit.

    Only tab visibility is observed. Window blur/focus also fires for dev
    tools, iframes and the address bar, so it is never fed in here.
    """

    def __init__(
        self,
        config: Optional[IntegrityConfig] = None,
        on_tab_switch: Optional[Callable[[int], Any]] = None,
        on_forfeit: Optional[Callable[[], Any]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or IntegrityConfig()
        self.on_tab_switch = on_tab_switch
        self.on_forfeit = on_forfeit
        self.clock = clock or time.monotonic
        self.is_active = False
        self.tab_switches = 0
        self.is_forfeit = False
        self.is_tab_visible = True
        self.total_time_hidden = 0
        self._hidden_since: Optional[float] = None

    def activate(self) -> None:
        self.is_active = True

    def deactivate(self) -> None:
        self.is_active = False

    def _now_ms(self) -> float:
        return self.clock() * 1000.0

    def handle_visibility_change(self, hidden: bool) -> None:
        if not self.is_active or not self.config.is_enabled:
            return

        now = self._now_ms()
        if hidden and self._hidden_since is None:
            self._hidden_since = now
            self.is_tab_visible = False
            self.tab_switches += 1
            logger.warning(f"[integrity] tab switched away count={self.tab_switches}")
            self._notify(self.on_tab_switch, self.tab_switches)

            if self.tab_switches > self.config.max_switches_per_round and not self.is_forfeit:
                self.is_forfeit = True
                logger.warning(f"[integrity] max tab switches exceeded ({self.config.max_switches_per_round}), forfeiting round")
                self._notify(self.on_forfeit)
        elif not hidden and self._hidden_since is not None:
            hidden_for = int(round(now - self._hidden_since))
            self.total_time_hidden += hidden_for
            self._hidden_since = None
            self.is_tab_visible = True
            logger.info(f"[integrity] tab visible again after {hidden_for}ms")

    def _notify(self, callback, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception('[integrity] callback failed')

    def reset(self) -> None:
        self.tab_switches = 0
        self.is_forfeit = False
        self.total_time_hidden = 0
        self.is_tab_visible = True
        self._hidden_since = None

    @property
    def has_warning(self) -> bool:
        limit = self.config.max_switches_per_round
        if limit is None:
            return False
        return 0 < self.tab_switches <= limit

    @property
    def is_near_forfeit(self) -> bool:
        limit = self.config.max_switches_per_round
        if limit is None:
            return False
        return self.tab_switches >= limit

    @property
    def penalty(self) -> int:
        if self.is_forfeit:
            return self.config.forfeit_penalty
        return self.tab_switches * self.config.tab_switch_penalty

    @property
    def state(self) -> IntegrityState:
        return IntegrityState(
            tab_switches=self.tab_switches,
            is_tab_visible=self.is_tab_visible,
            is_forfeit=self.is_forfeit,
            total_time_hidden=self.total_time_hidden,
            has_warning=self.has_warning,
            is_near_forfeit=self.is_near_forfeit,
            penalty=self.penalty,
        )

"""Mutable application state owned by the render loop."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field
from enum import Enum

from zemon.history import HistoryBuffer
from zemon.metrics import HostInfo, MetricProvider, MetricSnapshot
from zemon.rates import RateCalculator
from zemon.scheduler import should_refresh

CLOCK_COLOR_COUNT = 16


class View(Enum):
    PERF = "perf"
    CLOCK = "clock"

    @property
    def title(self) -> str:
        return "perf(1)" if self is View.PERF else "clock(2)"

    def next(self) -> View:
        return View.CLOCK if self is View.PERF else View.PERF


def _percent(used: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return used / total * 100.0


@dataclass
class AppState:
    """Everything the presentation layer reads each frame.

    Created once by the entry point and passed to the loop; sampling
    mutates it at most once per ``refresh_interval``.
    """

    refresh_interval: float
    cpu_history: HistoryBuffer
    rx_history: HistoryBuffer
    tx_history: HistoryBuffer
    rates: RateCalculator
    host: HostInfo = field(default_factory=HostInfo)
    last_update: float | None = None
    cpu_percent: float = 0.0
    rx_rate: float = 0.0
    tx_rate: float = 0.0
    load_avg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    view: View = View.PERF
    clock_color: int = CLOCK_COLOR_COUNT - 1
    _memory: tuple[int, int] = (0, 0)
    _swap: tuple[int, int] = (0, 0)

    @classmethod
    def create(
        cls,
        refresh_interval: float,
        history_size: int,
        interfaces: Collection[str] = (),
        host: HostInfo | None = None,
        clock_color: int = CLOCK_COLOR_COUNT - 1,
    ) -> AppState:
        return cls(
            refresh_interval=refresh_interval,
            cpu_history=HistoryBuffer(history_size),
            rx_history=HistoryBuffer(history_size),
            tx_history=HistoryBuffer(history_size),
            rates=RateCalculator(interfaces),
            host=host or HostInfo(),
            clock_color=clock_color % CLOCK_COLOR_COUNT,
        )

    # ── Derived values ──────────────────────────────────────────────────

    @property
    def memory_used(self) -> int:
        return self._memory[0]

    @property
    def memory_total(self) -> int:
        return self._memory[1]

    @property
    def memory_percent(self) -> float:
        return _percent(*self._memory)

    @property
    def swap_used(self) -> int:
        return self._swap[0]

    @property
    def swap_total(self) -> int:
        return self._swap[1]

    @property
    def swap_percent(self) -> float:
        return _percent(*self._swap)

    # ── Sampling ────────────────────────────────────────────────────────

    def is_due(self, now: float) -> bool:
        if self.last_update is None:
            return True
        return should_refresh(now, self.last_update, self.refresh_interval)

    def ingest(self, snapshot: MetricSnapshot, now: float) -> None:
        """Fold one snapshot into current values, rates and history."""
        self.cpu_percent = snapshot.cpu_percent
        self._memory = (snapshot.memory_used, snapshot.memory_total)
        self._swap = (snapshot.swap_used, snapshot.swap_total)
        self.load_avg = snapshot.load_avg
        self.rx_rate, self.tx_rate = self.rates.update(snapshot)

        self.cpu_history.push(self.cpu_percent)
        self.rx_history.push(self.rx_rate)
        self.tx_history.push(self.tx_rate)
        self.last_update = now

    def refresh_if_due(self, provider: MetricProvider, now: float) -> bool:
        """Sample *provider* when the interval has elapsed.

        Returns True when a sample was taken. ProviderError propagates.
        """
        if not self.is_due(now):
            return False
        self.ingest(provider.refresh(), now)
        return True

    # ── Interaction ─────────────────────────────────────────────────────

    def switch_view(self) -> None:
        self.view = self.view.next()

    def next_clock_color(self) -> None:
        self.clock_color = (self.clock_color + 1) % CLOCK_COLOR_COUNT

    def prev_clock_color(self) -> None:
        self.clock_color = (self.clock_color - 1) % CLOCK_COLOR_COUNT

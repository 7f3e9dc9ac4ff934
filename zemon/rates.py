"""Throughput from cumulative network byte counters."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass

from zemon.metrics import MetricSnapshot


def _total(counters: Mapping[str, int], interfaces: Collection[str]) -> int:
    if not interfaces:
        return sum(counters.values())
    return sum(counters.get(name, 0) for name in interfaces)


def aggregate_counters(
    snapshot: MetricSnapshot, interfaces: Collection[str] = ()
) -> tuple[int, int]:
    """Sum (rx, tx) byte counters over *interfaces*, or over all of them when empty."""
    return _total(snapshot.net_rx, interfaces), _total(snapshot.net_tx, interfaces)


def counter_rate(old: int, new: int, elapsed: float) -> float:
    """Bytes per second between two counter readings; a counter that went
    backwards (reset or wrap) yields 0."""
    return max(0, new - old) / elapsed


@dataclass
class RateState:
    last_snapshot: MetricSnapshot | None = None
    rx_rate: float = 0.0
    tx_rate: float = 0.0


class RateCalculator:
    """Turns successive snapshots into rx/tx rates.

    Only the previous snapshot is kept. A non-positive elapsed time between
    samples keeps the previously reported rates.
    """

    def __init__(self, interfaces: Collection[str] = ()) -> None:
        self._interfaces = tuple(interfaces)
        self.state = RateState()

    def update(self, snapshot: MetricSnapshot) -> tuple[float, float]:
        prev = self.state.last_snapshot
        rx_rate, tx_rate = self.state.rx_rate, self.state.tx_rate

        if prev is None:
            rx_rate = tx_rate = 0.0
        else:
            elapsed = snapshot.timestamp - prev.timestamp
            if elapsed > 0:
                old_rx, old_tx = aggregate_counters(prev, self._interfaces)
                new_rx, new_tx = aggregate_counters(snapshot, self._interfaces)
                rx_rate = counter_rate(old_rx, new_rx, elapsed)
                tx_rate = counter_rate(old_tx, new_tx, elapsed)

        self.state = RateState(last_snapshot=snapshot, rx_rate=rx_rate, tx_rate=tx_rate)
        return rx_rate, tx_rate

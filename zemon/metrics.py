"""Metric snapshots and the psutil-backed provider that produces them."""

from __future__ import annotations

import platform
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Protocol

import psutil

from zemon.errors import ProviderError


# ── Data types ──────────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class MetricSnapshot:
    """One point-in-time reading of every tracked metric.

    ``net_rx`` / ``net_tx`` map interface names to cumulative byte counters.
    ``timestamp`` is a monotonic clock reading in seconds.
    """

    cpu_percent: float
    memory_used: int
    memory_total: int
    net_rx: Mapping[str, int]
    net_tx: Mapping[str, int]
    timestamp: float
    swap_used: int = 0
    swap_total: int = 0
    load_avg: tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass(slots=True, frozen=True)
class HostInfo:
    os_name: str = "Unknown"
    kernel_version: str = "Unknown"
    boot_time: float = 0.0  # epoch seconds


class MetricProvider(Protocol):
    def refresh(self) -> MetricSnapshot: ...

    def host_info(self) -> HostInfo: ...


# ── psutil provider ─────────────────────────────────────────────────────────


class PsutilProvider:
    """Reads CPU, memory, swap, load and per-interface byte counters via psutil."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # First cpu_percent(interval=None) call only primes psutil's delta
        try:
            psutil.cpu_percent(interval=None)
        except (psutil.Error, OSError) as e:
            raise ProviderError(f"cannot read CPU usage: {e}") from e

    def refresh(self) -> MetricSnapshot:
        try:
            cpu = psutil.cpu_percent(interval=None)
            ram = psutil.virtual_memory()
            swap = psutil.swap_memory()
            nics = psutil.net_io_counters(pernic=True)
            load = psutil.getloadavg()
        except (psutil.Error, OSError) as e:
            raise ProviderError(f"metric collection failed: {e}") from e

        return MetricSnapshot(
            cpu_percent=min(max(float(cpu), 0.0), 100.0),
            memory_used=int(ram.used),
            memory_total=int(ram.total),
            net_rx={name: int(c.bytes_recv) for name, c in nics.items()},
            net_tx={name: int(c.bytes_sent) for name, c in nics.items()},
            timestamp=self._clock(),
            swap_used=int(swap.used),
            swap_total=int(swap.total),
            load_avg=(float(load[0]), float(load[1]), float(load[2])),
        )

    def host_info(self) -> HostInfo:
        try:
            boot = psutil.boot_time()
        except (psutil.Error, OSError) as e:
            raise ProviderError(f"cannot read boot time: {e}") from e
        return HostInfo(
            os_name=platform.system() or "Unknown",
            kernel_version=platform.release() or "Unknown",
            boot_time=float(boot),
        )

"""Fixed-capacity sample history used for sparklines."""

from __future__ import annotations

from collections import deque


class HistoryBuffer:
    """Ring buffer of recent samples, oldest first.

    Pushing onto a full buffer evicts the oldest sample, so memory stays
    bounded no matter how long the session runs.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._samples: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def push(self, value: float) -> None:
        self._samples.append(float(value))

    def as_sequence(self) -> tuple[float, ...]:
        return tuple(self._samples)

    def latest(self) -> float | None:
        return self._samples[-1] if self._samples else None

    def __len__(self) -> int:
        return len(self._samples)

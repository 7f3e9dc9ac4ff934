"""Maps AppState to a frame description the terminal driver can draw.

Everything here is pure: the same state, terminal size and wall-clock time
always produce the same Frame. Layout is rebuilt on every call because the
host pane can be resized or floated at any moment.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum

from zemon.clock import CLOCK_HEIGHT, big_text, clock_lines
from zemon.state import AppState, View

# ── Constants ──────────────────────────────────────────────────────────────


class Color(IntEnum):
    """The 16 standard terminal colours, valued by their ANSI index."""

    BLACK = 0
    RED = 1
    GREEN = 2
    YELLOW = 3
    BLUE = 4
    MAGENTA = 5
    CYAN = 6
    GRAY = 7
    DARK_GRAY = 8
    LIGHT_RED = 9
    LIGHT_GREEN = 10
    LIGHT_YELLOW = 11
    LIGHT_BLUE = 12
    LIGHT_MAGENTA = 13
    LIGHT_CYAN = 14
    WHITE = 15


class Align(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


DEFAULT_BAND_THRESHOLDS: tuple[float, float, float] = (25.0, 50.0, 75.0)
BAND_COLORS: tuple[Color, ...] = (Color.BLUE, Color.CYAN, Color.YELLOW, Color.RED)

SPARK = " ▁▂▃▄▅▆▇█"
BAR_FILL = "█"
BAR_EMPTY = "░"

MIN_WIDTH = 20
MIN_HEIGHT = 8
SPARKLINE_FLOOR = 10.0
_FOOTER_H = 3
_GAUGE_H = 3
_NETWORK_H = 5
_CLOCK_W = len(big_text("00:00:00")[0])


# ── Frame description ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def inner(self, margin: int = 1) -> Rect:
        return Rect(
            self.x + margin,
            self.y + margin,
            max(0, self.width - 2 * margin),
            max(0, self.height - 2 * margin),
        )


@dataclass(frozen=True)
class GaugeWidget:
    rect: Rect
    title: str
    percent: float
    color: Color
    label: str


@dataclass(frozen=True)
class SparklineWidget:
    """Bar-height trend line. With ``right_to_left`` the newest sample sits
    at the right edge and older samples scroll off to the left."""

    rect: Rect
    values: tuple[float, ...]
    max_value: float
    color: Color
    right_to_left: bool = False


@dataclass(frozen=True)
class TextWidget:
    rect: Rect
    lines: tuple[str, ...]
    color: Color = Color.GRAY
    align: Align = Align.LEFT
    title: str | None = None  # boxed when set


Widget = GaugeWidget | SparklineWidget | TextWidget


@dataclass(frozen=True)
class Frame:
    width: int
    height: int
    widgets: tuple[Widget, ...]


# ── Value mapping ──────────────────────────────────────────────────────────


def gauge_band(
    percent: float, thresholds: Sequence[float] = DEFAULT_BAND_THRESHOLDS
) -> int:
    """1-based colour band for *percent*: first threshold it is below wins."""
    for band, limit in enumerate(thresholds, start=1):
        if percent < limit:
            return band
    return len(thresholds) + 1


def gauge_color(
    percent: float, thresholds: Sequence[float] = DEFAULT_BAND_THRESHOLDS
) -> Color:
    return BAND_COLORS[gauge_band(percent, thresholds) - 1]


def clamp_percent(value: float) -> float:
    return min(max(value, 0.0), 100.0)


def fmt_bytes(n: int | float) -> str:
    """Human-readable byte count (binary prefixes)."""
    v = float(n)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(v) < 1024:
            return f"{v:.1f} {unit}"
        v /= 1024
    return f"{v:.1f} TiB"


def fmt_rate(bps: float) -> str:
    """Human-readable transfer rate."""
    if bps < 1024:
        return f"{bps:.1f} B/s"
    if bps < 1024 * 1024:
        return f"{bps / 1024:.1f} KB/s"
    if bps < 1024**3:
        return f"{bps / 1024 ** 2:.1f} MB/s"
    return f"{bps / 1024 ** 3:.1f} GB/s"


def fmt_percent(pct: float) -> str:
    return f"{pct:.1f}%"


def bar_cells(percent: float, width: int) -> tuple[int, int]:
    """Split a *width*-cell bar into (filled, empty) for *percent*."""
    if width <= 0:
        return 0, 0
    filled = int(width * clamp_percent(percent) / 100.0)
    return filled, width - filled


def sparkline_rows(
    values: Sequence[float],
    max_value: float,
    width: int,
    height: int = 1,
    right_to_left: bool = False,
) -> list[str]:
    """Render the most recent *width* values as *height* rows of block glyphs.

    Each column is scaled to ``height * 8`` eighth-steps, so a 3-row
    sparkline has 24 distinct levels. Rows are returned top first.
    """
    if width <= 0 or height <= 0:
        return []
    levels = len(SPARK) - 1
    recent = list(values)[-width:]
    columns: list[str] = []
    for v in recent:
        frac = min(max(v / max_value, 0.0), 1.0) if max_value > 0 else 0.0
        total = int(frac * height * levels)
        columns.append(
            "".join(SPARK[min(max(total - row * levels, 0), levels)] for row in range(height))
        )
    pad = " " * height
    if right_to_left:
        columns = [pad] * (width - len(columns)) + columns
    # columns hold bottom-first cells; transpose into top-first rows
    return ["".join(col[row] for col in columns) for row in reversed(range(height))]


def uptime_days(boot_time: float, now: datetime) -> int | None:
    if boot_time <= 0:
        return None
    return max(0, int((now.timestamp() - boot_time) // 86400))


# ── Layout helpers ─────────────────────────────────────────────────────────


def split_columns(area: Rect, percents: Sequence[int]) -> list[Rect]:
    """Split horizontally by percentage; the last column takes the remainder."""
    rects: list[Rect] = []
    x = area.x
    for i, pct in enumerate(percents):
        if i == len(percents) - 1:
            w = area.x + area.width - x
        else:
            w = area.width * pct // 100
        rects.append(Rect(x, area.y, w, area.height))
        x += w
    return rects


def stack_rows(area: Rect, heights: Sequence[int]) -> list[Rect]:
    """Stack fixed-height rows from the top; rows that don't fit are dropped."""
    rects: list[Rect] = []
    y = area.y
    for h in heights:
        if y + h > area.bottom:
            break
        rects.append(Rect(area.x, y, area.width, h))
        y += h
    return rects


def _centered_block(area: Rect, height: int, top_pct: int = 20) -> Rect:
    """A *height*-row block starting *top_pct* percent down, shifted up to fit."""
    top = min(area.height * top_pct // 100, max(0, area.height - height))
    return Rect(area.x, area.y + top, area.width, min(height, area.height))


# ── Frame builders ─────────────────────────────────────────────────────────


def _header(state: AppState, area: Rect) -> list[Widget]:
    hint = f"{state.view.title} TAB"
    widgets: list[Widget] = [
        TextWidget(Rect(area.x, area.y, area.width, 1), ("zemon  q: quit",), Color.DARK_GRAY)
    ]
    if area.width >= len(hint) + 16:
        widgets.append(
            TextWidget(
                Rect(area.x + area.width - len(hint) - 1, area.y, len(hint), 1),
                (hint,),
                Color.DARK_GRAY,
                Align.RIGHT,
            )
        )
    return widgets


def _cpu_sparkline(state: AppState, area: Rect) -> SparklineWidget:
    values = tuple(max(v, SPARKLINE_FLOOR) for v in state.cpu_history.as_sequence())
    return SparklineWidget(area, values, 100.0, Color.DARK_GRAY, right_to_left=True)


def _perf_body(
    state: AppState, area: Rect, now: datetime, thresholds: Sequence[float]
) -> list[Widget]:
    column = area if area.width < 60 else split_columns(area, (20, 60, 20))[1]
    heights = (_GAUGE_H, _GAUGE_H, _GAUGE_H, _NETWORK_H, 1)
    block = _centered_block(column, sum(heights) + 2).inner(1)
    slots = stack_rows(block, heights)

    load = state.load_avg
    cpu = clamp_percent(state.cpu_percent)
    mem = clamp_percent(state.memory_percent)
    swap = clamp_percent(state.swap_percent)
    gauges = [
        (f" CPU ({load[0]:.2f} {load[1]:.2f} {load[2]:.2f}) ", cpu, fmt_percent(cpu)),
        (f" Memory ({fmt_percent(mem)}) ", mem, fmt_bytes(state.memory_used)),
        (f" Swap ({fmt_percent(swap)}) ", swap, fmt_bytes(state.swap_used)),
    ]

    widgets: list[Widget] = []
    for rect, (title, pct, label) in zip(slots, gauges):
        widgets.append(GaugeWidget(rect, title, pct, gauge_color(pct, thresholds), label))
    if len(slots) > 3:
        widgets.extend(_network_box(state, slots[3]))
    if len(slots) > 4:
        widgets.append(_info_line(state, slots[4], now))
    return widgets


def _network_box(state: AppState, rect: Rect) -> list[Widget]:
    text = f"↓ {fmt_rate(state.rx_rate)}  ↑ {fmt_rate(state.tx_rate)}"
    widgets: list[Widget] = [
        TextWidget(rect, (text,), Color.GRAY, Align.CENTER, title=" Network ")
    ]
    inner = rect.inner(1)
    rx = state.rx_history.as_sequence()
    tx = state.tx_history.as_sequence()
    peak = max((*rx, *tx, 1.0))
    for i, (values, color) in enumerate(
        ((rx, Color.LIGHT_GREEN), (tx, Color.LIGHT_MAGENTA)), start=1
    ):
        if i < inner.height:
            row = Rect(inner.x, inner.y + i, inner.width, 1)
            widgets.append(SparklineWidget(row, values, peak, color, right_to_left=True))
    return widgets


def _info_line(state: AppState, rect: Rect, now: datetime) -> TextWidget:
    days = uptime_days(state.host.boot_time, now)
    uptime = "?" if days is None else f"{days} days"
    text = (
        f"OS: {state.host.os_name} | Kernel: {state.host.kernel_version}"
        f" | Uptime: {uptime}"
    )
    return TextWidget(rect, (text,), Color.GRAY, Align.CENTER)


def _clock_body(state: AppState, area: Rect, now: datetime) -> list[Widget]:
    color = Color(state.clock_color)
    big, date = clock_lines(now)
    if area.width < _CLOCK_W:
        big = [now.strftime("%H:%M:%S")]
    block = _centered_block(area, CLOCK_HEIGHT + 2, top_pct=25)
    slots = stack_rows(block, (len(big), 1, 1))
    widgets: list[Widget] = []
    if slots:
        widgets.append(TextWidget(slots[0], tuple(big), color, Align.CENTER))
    if len(slots) == 3:
        widgets.append(TextWidget(slots[2], (date,), color, Align.CENTER))
    return widgets


def build_frame(
    state: AppState,
    width: int,
    height: int,
    now: datetime,
    thresholds: Sequence[float] = DEFAULT_BAND_THRESHOLDS,
) -> Frame:
    """Lay out the current view for a *width* x *height* terminal."""
    screen = Rect(0, 0, width, height)
    if width < MIN_WIDTH or height < MIN_HEIGHT:
        msg = f"Terminal too small (need {MIN_WIDTH}x{MIN_HEIGHT}+)"
        return Frame(width, height, (TextWidget(screen, (msg,), Color.YELLOW),))

    header = Rect(0, 0, width, 1)
    body = Rect(0, 1, width, height - 1 - _FOOTER_H)
    footer = Rect(0, height - _FOOTER_H, width, _FOOTER_H)

    widgets = _header(state, header)
    if state.view is View.PERF:
        widgets.extend(_perf_body(state, body, now, thresholds))
    else:
        widgets.extend(_clock_body(state, body, now))
    widgets.append(_cpu_sparkline(state, footer))
    return Frame(width, height, tuple(widgets))

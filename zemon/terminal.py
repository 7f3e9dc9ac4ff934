"""Terminal session lifecycle and the curses driver.

``TerminalSession`` is the guard: whatever happens inside its ``with``
block (normal quit, ZemonError, KeyboardInterrupt, SystemExit from a
signal handler) the driver's ``exit_session`` runs exactly once on the
way out, so the user's shell never inherits raw mode or the alternate
screen.
"""

from __future__ import annotations

import curses
from contextlib import suppress
from enum import Enum
from types import TracebackType
from typing import Any, Protocol

from zemon.errors import TerminalError
from zemon.presentation import (
    BAR_EMPTY,
    BAR_FILL,
    Align,
    Color,
    Frame,
    GaugeWidget,
    Rect,
    SparklineWidget,
    TextWidget,
    bar_cells,
    sparkline_rows,
)

# ── Keys ───────────────────────────────────────────────────────────────────

KEY_ESC = "esc"
KEY_CTRL_C = "ctrl-c"
KEY_TAB = "tab"
KEY_LEFT = "left"
KEY_RIGHT = "right"
KEY_RESIZE = "resize"
KEY_MOUSE = "mouse"

QUIT_KEYS = frozenset({"q", "Q", KEY_ESC, KEY_CTRL_C})


class TerminalDriver(Protocol):
    def enter_session(self) -> None: ...

    def exit_session(self) -> None: ...

    def draw(self, frame: Frame) -> None: ...

    def poll_key(self, timeout: float) -> str | None: ...

    def size(self) -> tuple[int, int]: ...


# ── Session guard ──────────────────────────────────────────────────────────


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    TERMINATING = "terminating"
    RESTORED = "restored"


class TerminalSession:
    """Context manager owning the raw/alternate-screen mode of *driver*.

    If ``enter_session`` fails the state stays UNINITIALIZED and nothing is
    restored here; the driver is responsible for undoing whatever part of
    the entry it completed.
    """

    def __init__(self, driver: TerminalDriver) -> None:
        self.driver = driver
        self.state = SessionState.UNINITIALIZED

    def __enter__(self) -> TerminalDriver:
        if self.state is not SessionState.UNINITIALIZED:
            raise TerminalError(f"session cannot be entered from state {self.state.value}")
        self.driver.enter_session()
        self.state = SessionState.ACTIVE
        return self.driver

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.restore()

    def restore(self) -> None:
        """Leave the session. Runs the driver's restoration at most once."""
        if self.state is not SessionState.ACTIVE:
            return
        self.state = SessionState.TERMINATING
        try:
            self.driver.exit_session()
        finally:
            self.state = SessionState.RESTORED


# ── curses driver ──────────────────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _aligned(text: str, width: int, align: Align) -> tuple[int, str]:
    """Column offset and truncated text for *text* placed in *width* cells."""
    text = text[:width]
    if align is Align.CENTER:
        return (width - len(text)) // 2, text
    if align is Align.RIGHT:
        return width - len(text), text
    return 0, text


class CursesDriver:
    """Terminal driver on top of the standard-library curses module.

    ``initscr`` switches to the alternate screen and ``endwin`` leaves it;
    raw mode, keypad translation, mouse capture and the hidden cursor are
    toggled around them. Completed entry steps are recorded so
    ``exit_session`` only undoes what was actually done.
    """

    def __init__(self, escdelay_ms: int = 25) -> None:
        self._stdscr: curses.window | None = None
        self._steps: list[str] = []
        self._colors = False
        self._escdelay_ms = escdelay_ms

    @property
    def active(self) -> bool:
        return bool(self._steps)

    # ── Lifecycle ──────────────────────────────────────────────────────

    def enter_session(self) -> None:
        try:
            self._stdscr = curses.initscr()
            self._steps.append("screen")
            curses.noecho()
            curses.raw()
            self._steps.append("raw")
            self._stdscr.keypad(True)
            self._steps.append("keypad")
            mask = curses.ALL_MOUSE_EVENTS | getattr(curses, "REPORT_MOUSE_POSITION", 0)
            curses.mousemask(mask)
            self._steps.append("mouse")
            with suppress(curses.error):
                curses.curs_set(0)
            self._steps.append("cursor")
            with suppress(curses.error, AttributeError):
                curses.set_escdelay(self._escdelay_ms)
            self._init_colors()
        except curses.error as e:
            self.exit_session()
            raise TerminalError(f"cannot initialise terminal: {e}") from e

    def exit_session(self) -> None:
        """Undo completed entry steps in reverse. Safe to call repeatedly."""
        steps, self._steps = self._steps, []
        if "mouse" in steps:
            with suppress(curses.error):
                curses.mousemask(0)
        if "cursor" in steps:
            with suppress(curses.error):
                curses.curs_set(1)
        if "keypad" in steps and self._stdscr is not None:
            with suppress(curses.error):
                self._stdscr.keypad(False)
        if "raw" in steps:
            with suppress(curses.error):
                curses.noraw()
                curses.echo()
        if "screen" in steps:
            with suppress(curses.error):
                curses.endwin()
        self._stdscr = None

    def _init_colors(self) -> None:
        if not curses.has_colors():
            return
        curses.start_color()
        with suppress(curses.error):
            curses.use_default_colors()
        for color in Color:
            fg = color.value if color.value < curses.COLORS else color.value % 8
            with suppress(curses.error):
                curses.init_pair(color.value + 1, fg, -1)
        self._colors = True

    def _attr(self, color: Color, bold: bool = False) -> int:
        attr = curses.color_pair(color.value + 1) if self._colors else 0
        return attr | curses.A_BOLD if bold else attr

    def _screen(self) -> curses.window:
        if self._stdscr is None:
            raise TerminalError("terminal session is not active")
        return self._stdscr

    # ── Output ─────────────────────────────────────────────────────────

    def size(self) -> tuple[int, int]:
        max_y, max_x = self._screen().getmaxyx()
        return max_x, max_y

    def draw(self, frame: Frame) -> None:
        scr = self._screen()
        try:
            scr.erase()
            for widget in frame.widgets:
                if isinstance(widget, GaugeWidget):
                    self._draw_gauge(scr, widget)
                elif isinstance(widget, SparklineWidget):
                    self._draw_sparkline(scr, widget)
                else:
                    self._draw_text(scr, widget)
            scr.refresh()
        except curses.error as e:
            raise TerminalError(f"drawing failed: {e}") from e

    def _draw_box(self, win: curses.window, rect: Rect, title: str = "") -> Rect | None:
        """Draw a bordered box and return the inner area."""
        max_y, max_x = win.getmaxyx()
        h = min(rect.height, max_y - rect.y)
        w = min(rect.width, max_x - rect.x)
        if h < 3 or w < 4:
            return None
        try:
            sub = win.derwin(h, w, rect.y, rect.x)
            sub.box()
            if title and len(title) + 4 < w:
                sub.addstr(0, 2, title, self._attr(Color.CYAN, bold=True))
        except curses.error:
            return None
        return Rect(rect.x, rect.y, w, h).inner(1)

    def _draw_gauge(self, win: curses.window, gauge: GaugeWidget) -> None:
        """Render ``████░░░░ label`` inside a titled box."""
        inner = self._draw_box(win, gauge.rect, gauge.title)
        if inner is None or inner.height < 1:
            return
        suffix = f" {gauge.label}"
        filled, empty = bar_cells(gauge.percent, inner.width - len(suffix))
        if filled + empty < 3:
            _safe(win, inner.y, inner.x, suffix.strip()[: inner.width], self._attr(gauge.color))
            return
        _safe(win, inner.y, inner.x, BAR_FILL * filled, self._attr(gauge.color, bold=True))
        _safe(win, BAR_EMPTY * empty, self._attr(Color.DARK_GRAY))
        _safe(win, suffix, self._attr(gauge.color, bold=True))

    def _draw_sparkline(self, win: curses.window, spark: SparklineWidget) -> None:
        max_y, max_x = win.getmaxyx()
        rect = spark.rect
        # Last column of the bottom row cannot be written without curses.error
        width = min(rect.width, max_x - rect.x - 1)
        height = min(rect.height, max_y - rect.y)
        rows = sparkline_rows(spark.values, spark.max_value, width, height, spark.right_to_left)
        for i, row in enumerate(rows):
            _safe(win, rect.y + i, rect.x, row, self._attr(spark.color))

    def _draw_text(self, win: curses.window, text: TextWidget) -> None:
        area: Rect | None = text.rect
        if text.title is not None:
            area = self._draw_box(win, text.rect, text.title)
        if area is None:
            return
        max_y, max_x = win.getmaxyx()
        width = min(area.width, max_x - area.x - 1)
        for i, line in enumerate(text.lines[: area.height]):
            if area.y + i >= max_y or width <= 0:
                break
            offset, clipped = _aligned(line, width, text.align)
            _safe(win, area.y + i, area.x + offset, clipped, self._attr(text.color))

    # ── Input ──────────────────────────────────────────────────────────

    def poll_key(self, timeout: float) -> str | None:
        """Wait up to *timeout* seconds for a key; None when nothing arrived."""
        scr = self._screen()
        scr.timeout(max(0, int(timeout * 1000)))
        ch = scr.getch()
        if ch == -1:
            return None
        if ch == curses.KEY_RESIZE:
            with suppress(curses.error):
                curses.update_lines_cols()
            return KEY_RESIZE
        if ch == curses.KEY_MOUSE:
            # Drain the event so it doesn't queue up; clicks are not bound
            with suppress(curses.error):
                curses.getmouse()
            return KEY_MOUSE
        if ch in _KEYMAP:
            return _KEYMAP[ch]
        if 0 <= ch < 256 and chr(ch).isprintable():
            return chr(ch)
        return None


_KEYMAP: dict[int, str] = {
    3: KEY_CTRL_C,
    9: KEY_TAB,
    27: KEY_ESC,
    curses.KEY_LEFT: KEY_LEFT,
    curses.KEY_RIGHT: KEY_RIGHT,
}

"""Tests for zemon.terminal: the session guard and the curses driver."""

from __future__ import annotations

import curses
from collections.abc import Iterator
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from tests.fakes import FakeDriver
from zemon.errors import ProviderError, TerminalError
from zemon.presentation import (
    Align,
    Color,
    Frame,
    GaugeWidget,
    Rect,
    SparklineWidget,
    TextWidget,
    build_frame,
)
from zemon.state import AppState, View
from zemon.terminal import (
    KEY_CTRL_C,
    KEY_ESC,
    KEY_LEFT,
    KEY_MOUSE,
    KEY_RESIZE,
    KEY_TAB,
    QUIT_KEYS,
    CursesDriver,
    SessionState,
    TerminalSession,
    _aligned,
)

# ── TerminalSession ────────────────────────────────────────────────────────


class TestTerminalSession:
    def test_normal_exit_restores_once(self) -> None:
        driver = FakeDriver()
        session = TerminalSession(driver)
        with session as term:
            assert term is driver
            assert session.state is SessionState.ACTIVE
        assert driver.log == ["enter", "exit"]
        assert session.state is SessionState.RESTORED
        assert driver.raw is False

    def test_error_inside_restores_and_propagates(self) -> None:
        driver = FakeDriver()
        with pytest.raises(ProviderError):
            with TerminalSession(driver):
                raise ProviderError("boom")
        assert driver.log == ["enter", "exit"]
        assert driver.raw is False

    @pytest.mark.parametrize("exc", [KeyboardInterrupt(), SystemExit(143), RuntimeError("bug")])
    def test_abnormal_unwinding_restores(self, exc: BaseException) -> None:
        driver = FakeDriver()
        with pytest.raises(type(exc)):
            with TerminalSession(driver):
                raise exc
        assert driver.log.count("exit") == 1

    def test_failed_enter_does_not_restore(self) -> None:
        driver = FakeDriver(fail_on_enter=TerminalError("no tty"))
        session = TerminalSession(driver)
        with pytest.raises(TerminalError):
            with session:
                pytest.fail("body must not run")
        assert driver.log == ["enter"]
        assert session.state is SessionState.UNINITIALIZED

    def test_restore_is_idempotent(self) -> None:
        driver = FakeDriver()
        session = TerminalSession(driver)
        with session:
            session.restore()
            session.restore()
        assert driver.log.count("exit") == 1

    def test_cannot_reenter(self) -> None:
        driver = FakeDriver()
        session = TerminalSession(driver)
        with session:
            pass
        with pytest.raises(TerminalError):
            with session:
                pass
        assert driver.log == ["enter", "exit"]

    def test_state_is_restored_even_if_exit_raises(self) -> None:
        driver = FakeDriver()
        driver.exit_session = MagicMock(side_effect=TerminalError("tty gone"))  # type: ignore[method-assign]
        session = TerminalSession(driver)
        with pytest.raises(TerminalError):
            with session:
                pass
        assert session.state is SessionState.RESTORED


# ── Helpers ────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("align", "expected"),
    [(Align.LEFT, (0, "abc")), (Align.CENTER, (3, "abc")), (Align.RIGHT, (7, "abc"))],
)
def test_aligned(align: Align, expected: tuple[int, str]) -> None:
    assert _aligned("abc", 10, align) == expected


def test_aligned_truncates() -> None:
    assert _aligned("abcdef", 4, Align.CENTER) == (0, "abcd")


def test_quit_keys() -> None:
    assert {"q", "Q", KEY_ESC, KEY_CTRL_C} == QUIT_KEYS


# ── CursesDriver (curses mocked) ───────────────────────────────────────────


@pytest.fixture
def mock_curses() -> Iterator[MagicMock]:
    with patch("zemon.terminal.curses") as m:
        m.error = curses.error
        m.KEY_RESIZE = curses.KEY_RESIZE
        m.KEY_MOUSE = curses.KEY_MOUSE
        m.ALL_MOUSE_EVENTS = 1
        m.REPORT_MOUSE_POSITION = 2
        m.A_BOLD = 0
        m.COLORS = 8
        m.has_colors.return_value = True
        m.color_pair.side_effect = lambda n: n << 8
        m.initscr.return_value.getmaxyx.return_value = (24, 80)
        yield m


class TestCursesDriverLifecycle:
    def test_enter_acquires_modes(self, mock_curses: MagicMock) -> None:
        driver = CursesDriver()
        driver.enter_session()
        scr = mock_curses.initscr.return_value
        mock_curses.raw.assert_called_once()
        mock_curses.noecho.assert_called_once()
        scr.keypad.assert_called_with(True)
        mock_curses.mousemask.assert_called_once_with(3)
        mock_curses.curs_set.assert_called_with(0)
        assert driver.active

    def test_exit_restores_everything(self, mock_curses: MagicMock) -> None:
        driver = CursesDriver()
        driver.enter_session()
        driver.exit_session()
        assert mock_curses.mousemask.call_args_list[-1].args == (0,)
        mock_curses.curs_set.assert_called_with(1)
        mock_curses.noraw.assert_called_once()
        mock_curses.echo.assert_called_once()
        mock_curses.endwin.assert_called_once()
        assert not driver.active

    def test_exit_is_safe_to_repeat(self, mock_curses: MagicMock) -> None:
        driver = CursesDriver()
        driver.enter_session()
        driver.exit_session()
        driver.exit_session()
        mock_curses.endwin.assert_called_once()

    def test_exit_without_enter_does_nothing(self, mock_curses: MagicMock) -> None:
        CursesDriver().exit_session()
        mock_curses.endwin.assert_not_called()
        mock_curses.noraw.assert_not_called()

    def test_initscr_failure_undoes_nothing(self, mock_curses: MagicMock) -> None:
        mock_curses.initscr.side_effect = curses.error("setupterm: could not find terminal")
        driver = CursesDriver()
        with pytest.raises(TerminalError, match="could not find terminal"):
            driver.enter_session()
        mock_curses.endwin.assert_not_called()
        mock_curses.noraw.assert_not_called()

    def test_partial_enter_undoes_only_completed_steps(self, mock_curses: MagicMock) -> None:
        mock_curses.mousemask.side_effect = curses.error("no mouse")
        driver = CursesDriver()
        with pytest.raises(TerminalError):
            driver.enter_session()
        # screen, raw and keypad were entered; mouse and cursor were not
        mock_curses.noraw.assert_called_once()
        mock_curses.endwin.assert_called_once()
        mock_curses.curs_set.assert_not_called()
        assert not driver.active

    def test_operations_require_active_session(self, mock_curses: MagicMock) -> None:
        driver = CursesDriver()
        with pytest.raises(TerminalError):
            driver.size()
        with pytest.raises(TerminalError):
            driver.poll_key(0.1)


class TestCursesDriverIO:
    def _driver(self) -> CursesDriver:
        driver = CursesDriver()
        driver.enter_session()
        return driver

    def test_size_is_width_height(self, mock_curses: MagicMock) -> None:
        assert self._driver().size() == (80, 24)

    @pytest.mark.parametrize(
        ("ch", "key"),
        [
            (-1, None),
            (ord("q"), "q"),
            (27, KEY_ESC),
            (3, KEY_CTRL_C),
            (9, KEY_TAB),
            (curses.KEY_LEFT, KEY_LEFT),
            (curses.KEY_RESIZE, KEY_RESIZE),
            (curses.KEY_MOUSE, KEY_MOUSE),
            (curses.KEY_F1, None),
        ],
    )
    def test_poll_key_mapping(self, mock_curses: MagicMock, ch: int, key: str | None) -> None:
        driver = self._driver()
        scr = mock_curses.initscr.return_value
        scr.getch.return_value = ch
        assert driver.poll_key(0.1) == key
        scr.timeout.assert_called_with(100)

    def test_draw_writes_widgets(self, mock_curses: MagicMock) -> None:
        driver = self._driver()
        scr = mock_curses.initscr.return_value
        frame = Frame(
            80,
            24,
            (
                GaugeWidget(Rect(0, 1, 40, 3), " CPU ", 50.0, Color.CYAN, "50.0%"),
                SparklineWidget(Rect(0, 21, 80, 3), (100.0,), 100.0, Color.DARK_GRAY, True),
                TextWidget(Rect(0, 0, 80, 1), ("zemon",), Color.GRAY),
            ),
        )
        driver.draw(frame)
        scr.erase.assert_called_once()
        scr.refresh.assert_called_once()
        scr.derwin.assert_called_once_with(3, 40, 1, 0)
        written = [c.args for c in scr.addstr.call_args_list]
        assert (0, 0, "zemon", (Color.GRAY + 1) << 8) in written
        assert any(" 50.0%" in args for args in written)

    def test_draw_error_becomes_terminal_error(self, mock_curses: MagicMock) -> None:
        driver = self._driver()
        mock_curses.initscr.return_value.refresh.side_effect = curses.error("broken pipe")
        with pytest.raises(TerminalError):
            driver.draw(Frame(80, 24, ()))

    def test_out_of_bounds_write_is_ignored(self, mock_curses: MagicMock) -> None:
        driver = self._driver()
        scr = mock_curses.initscr.return_value
        scr.addstr.side_effect = curses.error("addwstr() returned ERR")
        driver.draw(Frame(80, 24, (TextWidget(Rect(0, 0, 80, 1), ("x",)),)))
        scr.refresh.assert_called_once()

    def test_header_hint_drawn_in_full(self, mock_curses: MagicMock) -> None:
        driver = self._driver()
        scr = mock_curses.initscr.return_value
        state = AppState.create(2.0, 10)
        state.view = View.CLOCK
        driver.draw(build_frame(state, 80, 24, datetime(2026, 1, 5, 14, 3, 9)))
        written = [c.args[2] for c in scr.addstr.call_args_list if c.args[0] == 0]
        assert "clock(2) TAB" in written

"""zemon: a compact terminal system monitor for multiplexer panes.

Shows CPU, memory, swap and network throughput as gauges and sparklines,
plus a large clock view. Meant to be bound to a floating pane in tmux or
zellij, but works as any foreground terminal program.

Usage:
    zemon
    zemon --interval 1 --history 200 --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import signal
import sys
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from zemon.config import dump_default_config, load_config, validate_config
from zemon.errors import ZemonError
from zemon.metrics import MetricProvider, PsutilProvider
from zemon.presentation import DEFAULT_BAND_THRESHOLDS, build_frame
from zemon.state import AppState, View
from zemon.terminal import (
    KEY_LEFT,
    KEY_RIGHT,
    KEY_TAB,
    QUIT_KEYS,
    CursesDriver,
    TerminalDriver,
    TerminalSession,
)

# ── Main loop ──────────────────────────────────────────────────────────────


def handle_key(state: AppState, key: str | None) -> bool:
    """Apply *key* to *state*. Returns False when the loop should stop."""
    if key is None:
        return True
    if key in QUIT_KEYS:
        return False
    if key == KEY_TAB:
        state.switch_view()
    elif key == KEY_RIGHT and state.view is View.CLOCK:
        state.next_clock_color()
    elif key == KEY_LEFT and state.view is View.CLOCK:
        state.prev_clock_color()
    return True


def run_loop(
    driver: TerminalDriver,
    provider: MetricProvider,
    state: AppState,
    poll_timeout: float = 0.1,
    thresholds: tuple[float, ...] = DEFAULT_BAND_THRESHOLDS,
    clock: Callable[[], float] = time.monotonic,
    wall_clock: Callable[[], datetime] = datetime.now,
) -> None:
    """Refresh-if-due, draw, poll; repeat until a quit key.

    ProviderError and TerminalError propagate to the caller, which is
    expected to hold the TerminalSession guard.
    """
    running = True
    while running:
        state.refresh_if_due(provider, clock())
        width, height = driver.size()
        driver.draw(build_frame(state, width, height, wall_clock(), thresholds))
        running = handle_key(state, driver.poll_key(poll_timeout))


# ── Signals ────────────────────────────────────────────────────────────────


def _exit_on_signal(signum: int, _frame: Any) -> None:
    raise SystemExit(128 + signum)


@contextmanager
def exit_on_signals(*names: str) -> Iterator[None]:
    """Turn termination signals into SystemExit so ``with`` guards unwind."""
    previous: dict[int, Any] = {}
    for name in names:
        signum = getattr(signal, name, None)
        if signum is not None:
            previous[signum] = signal.signal(signum, _exit_on_signal)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


# ── Session ────────────────────────────────────────────────────────────────


def run(
    config: dict[str, Any],
    driver: TerminalDriver | None = None,
    provider: MetricProvider | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Run one monitoring session. Returns the process exit status.

    The terminal is always restored before any error is printed.
    """
    try:
        provider = provider or PsutilProvider()
        state = AppState.create(
            refresh_interval=float(config["interval"]),
            history_size=int(config["history_size"]),
            interfaces=config["network"]["interfaces"],
            host=provider.host_info(),
            clock_color=int(config["clock"]["color"]),
        )
        with exit_on_signals("SIGTERM", "SIGHUP"):
            with TerminalSession(driver or CursesDriver()) as term:
                run_loop(
                    term,
                    provider,
                    state,
                    poll_timeout=float(config["poll_timeout"]),
                    thresholds=tuple(float(t) for t in config["bands"]["thresholds"]),
                    clock=clock,
                )
    except ZemonError as e:
        print(f"zemon: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


# ── CLI entry point ────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zemon",
        description="A simple terminal system monitor for multiplexer panes.",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        default=None,
        help="Seconds between metric samples (default: 2)",
    )
    parser.add_argument(
        "--history",
        type=int,
        default=None,
        metavar="N",
        help="Samples kept per sparkline (default: 120)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> dict[str, Any]:
    """Load the config file and apply command-line overrides."""
    config = load_config(args.config)
    if args.interval is not None:
        config["interval"] = args.interval
    if args.history is not None:
        config["history_size"] = args.history
    problems = validate_config(config)
    if problems:
        for problem in problems:
            print(f"zemon: {problem}", file=sys.stderr)
        raise SystemExit(1)
    return config


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if args.dump_config:
        print(dump_default_config(), end="")
        return
    raise SystemExit(run(resolve_config(args)))


if __name__ == "__main__":
    main()

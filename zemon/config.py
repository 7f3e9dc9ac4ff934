"""Configuration loading for zemon.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/zemon/config.toml → defaults only.
"""

from __future__ import annotations

import copy
import math
import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "interval": 2.0,
    "history_size": 120,
    "poll_timeout": 0.1,
    "bands": {
        "thresholds": [25.0, 50.0, 75.0],
    },
    "network": {
        "interfaces": [],
    },
    "clock": {
        "color": 15,
    },
}

_DEFAULT_PATH = Path.home() / ".config" / "zemon" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def validate_config(config: dict[str, Any]) -> list[str]:
    """Return a list of human-readable problems; empty means the config is usable."""
    problems: list[str] = []

    def _number(key: str, value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            problems.append(f"{key} must be a number, got {value!r}")
            return None
        return float(value)

    def _section(name: str) -> dict[str, Any] | None:
        section = config.get(name, {})
        if not isinstance(section, dict):
            problems.append(f"{name} must be a table, got {section!r}")
            return None
        return section

    interval = _number("interval", config.get("interval"))
    if interval is not None and (not math.isfinite(interval) or interval <= 0):
        problems.append(f"interval must be a finite number > 0, got {interval}")

    poll = _number("poll_timeout", config.get("poll_timeout"))
    if poll is not None and (not math.isfinite(poll) or poll <= 0):
        problems.append(f"poll_timeout must be a finite number > 0, got {poll}")

    size = config.get("history_size")
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        problems.append(f"history_size must be an integer >= 1, got {size!r}")

    bands = _section("bands")
    if bands is not None:
        thresholds = bands.get("thresholds")
        if not isinstance(thresholds, list) or len(thresholds) != 3:
            problems.append(f"bands.thresholds must be a list of 3 numbers, got {thresholds!r}")
        else:
            values = [_number("bands.thresholds", t) for t in thresholds]
            if None not in values and any(a >= b for a, b in zip(values, values[1:])):
                problems.append(f"bands.thresholds must be strictly increasing, got {thresholds}")

    network = _section("network")
    if network is not None:
        interfaces = network.get("interfaces")
        if not isinstance(interfaces, list) or not all(isinstance(i, str) for i in interfaces):
            problems.append(f"network.interfaces must be a list of names, got {interfaces!r}")

    clock = _section("clock")
    if clock is not None:
        color = clock.get("color")
        if isinstance(color, bool) or not isinstance(color, int) or not 0 <= color <= 15:
            problems.append(f"clock.color must be an integer 0-15, got {color!r}")

    return problems


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/zemon/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"zemon: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"zemon: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"zemon: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return copy.deepcopy(DEFAULT_CONFIG)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    thresholds = ", ".join(str(t) for t in DEFAULT_CONFIG["bands"]["thresholds"])
    lines = [
        "# zemon configuration",
        "# Place this file at ~/.config/zemon/config.toml",
        "",
        "# Seconds between metric samples",
        f"interval = {DEFAULT_CONFIG['interval']}",
        "# Samples kept per sparkline",
        f"history_size = {DEFAULT_CONFIG['history_size']}",
        "# Seconds to wait for a keypress each frame",
        f"poll_timeout = {DEFAULT_CONFIG['poll_timeout']}",
        "",
        "[bands]",
        "# Gauge colour changes at these percentages (blue, cyan, yellow, red)",
        f"thresholds = [{thresholds}]",
        "",
        "[network]",
        "# Interfaces summed for throughput; empty = all interfaces",
        "interfaces = []",
        "",
        "[clock]",
        "# Terminal colour index 0-15",
        f"color = {DEFAULT_CONFIG['clock']['color']}",
    ]
    return "\n".join(lines) + "\n"

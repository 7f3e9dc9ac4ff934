"""Large seven-segment style digits for the clock view."""

from __future__ import annotations

from datetime import datetime

CLOCK_HEIGHT = 5

_FULL = "██████ "
_LEFT = "██     "
_RIGHT = "    ██ "
_SIDES = "██  ██ "
_DOT = "  ██  "
_BLANK = "      "

# One row pattern per line, top to bottom
_GLYPHS: dict[str, tuple[str, ...]] = {
    "0": (_FULL, _SIDES, _SIDES, _SIDES, _FULL),
    "1": (_RIGHT, _RIGHT, _RIGHT, _RIGHT, _RIGHT),
    "2": (_FULL, _RIGHT, _FULL, _LEFT, _FULL),
    "3": (_FULL, _RIGHT, _FULL, _RIGHT, _FULL),
    "4": (_SIDES, _SIDES, _FULL, _RIGHT, _RIGHT),
    "5": (_FULL, _LEFT, _FULL, _RIGHT, _FULL),
    "6": (_FULL, _LEFT, _FULL, _SIDES, _FULL),
    "7": (_FULL, _RIGHT, _RIGHT, _RIGHT, _RIGHT),
    "8": (_FULL, _SIDES, _FULL, _SIDES, _FULL),
    "9": (_FULL, _SIDES, _FULL, _RIGHT, _FULL),
    ":": (_BLANK, _DOT, _BLANK, _DOT, _BLANK),
}


def big_text(text: str) -> list[str]:
    """Render digits and colons as CLOCK_HEIGHT rows of block characters.

    Any other character becomes a blank cell of the same width.
    """
    rows: list[str] = []
    for row in range(CLOCK_HEIGHT):
        parts = []
        for ch in text:
            glyph = _GLYPHS.get(ch)
            parts.append(glyph[row] if glyph else _BLANK)
        rows.append("".join(parts))
    return rows


def clock_lines(now: datetime) -> tuple[list[str], str]:
    """Return the big ``HH:MM:SS`` rows and the long date line for *now*."""
    return big_text(now.strftime("%H:%M:%S")), now.strftime("%A, %B %d, %Y")

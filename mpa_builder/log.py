"""
Status output for the builder.

Every message is printed with a fixed ``[mpa-builder]`` prefix on its first
line; continuation lines are indented to line up under the text.  Colour is
only emitted when the stream is a terminal and ``NO_COLOR`` is unset.
"""

import os
import re
import sys
from typing import TextIO

from mpa_builder import NAME

PREFIX = f"[{NAME}] "

_ANSI = {
    "red": "31",
    "green": "32",
    "yellow": "33",
    "blue": "34",
    "magenta": "35",
    "cyan": "36",
}

_HAS_TEXT_RE = re.compile(r"[0-9A-Za-z]")

_RESET = "\033[0m"


# ---------------------------------------------------------------------------
# Colour helpers
# ---------------------------------------------------------------------------

def _use_color(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def paint(text, color: str, stream: TextIO | None = None) -> str:
    """Wrap *text* in the ANSI code for *color* if *stream* supports it.

    Resets inside *text* (from an already painted part) re-open *color*.
    """
    if not _use_color(stream or sys.stdout):
        return str(text)
    start = f"\033[{_ANSI[color]}m"
    return start + str(text).replace(_RESET, _RESET + start) + _RESET


def cyan(text) -> str:
    return paint(text, "cyan")


def green(text) -> str:
    return paint(text, "green")


def red(text) -> str:
    return paint(text, "red")


def yellow(text) -> str:
    return paint(text, "yellow")


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_message(data, no_prefix: bool = False, color: str | None = "blue",
                   stream: TextIO | None = None) -> str:
    """Lay out *data* under the prefix.

    The first line gets the prefix (painted in *color*, plain when *color* is
    None); with *no_prefix* it is padded like the rest.
    """
    padding = " " * len(PREFIX)
    lines = str(data).splitlines() or [""]

    out = []
    for idx, line in enumerate(lines):
        if idx == 0 and not no_prefix:
            prefix = PREFIX if color is None else paint(PREFIX, color, stream)
            out.append(prefix + line)
        else:
            out.append(padding + line)
    return "\n".join(out)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def info(data, no_prefix: bool = False, color: str = "blue") -> None:
    message = format_message(data, no_prefix, color, sys.stdout)
    if _HAS_TEXT_RE.search(str(data)):
        print(message, flush=True)


def warn(data, no_prefix: bool = False) -> None:
    message = format_message(data, no_prefix, None)
    if _HAS_TEXT_RE.search(str(data)):
        print(paint(message, "yellow", sys.stderr), file=sys.stderr, flush=True)


def error(data, no_prefix: bool = False) -> None:
    message = format_message(data, no_prefix, None)
    if _HAS_TEXT_RE.search(str(data)):
        print(paint(message, "red", sys.stderr), file=sys.stderr, flush=True)


def succeed(data) -> None:
    message = format_message(data, no_prefix=True, stream=sys.stdout)
    print(f"\n{paint(message, 'green')}", flush=True)


def fail(data) -> None:
    message = format_message(data, no_prefix=True, stream=sys.stdout)
    print(f"\n{paint(message, 'red')}", flush=True)

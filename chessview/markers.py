"""
Marker lines are bracketed directives above the chess data, e.g.

    [puzzle]
    [rating: 1500]
    [arrow: e2e4 blue]
    ---
    [FEN "..."]
    1. e4 e5

The optional `---` line separates markers from chess data explicitly;
without it, markers end at the first line that isn't one.
"""

import re
from typing import Callable

from chessview.annotations import resolve_color
from chessview.models import Arrow, Circle, Highlight, ParsedResult

SEPARATOR = "---"

BOOLEAN_KEYWORDS = ("puzzle", "white", "black", "flip", "static", "noeditable", "debug")
VALUE_KEYWORDS = ("rating", "themes", "title", "move", "arrow", "circle", "highlight")

_BOOLEAN_MARKER_RE = re.compile(
    rf"^\[({'|'.join(BOOLEAN_KEYWORDS)})\]$",
    re.IGNORECASE,
)
_VALUE_MARKER_RE = re.compile(
    rf"^\[({'|'.join(VALUE_KEYWORDS)})\s*:\s*[^\]]+\]$",
    re.IGNORECASE,
)

_KEY_VALUE_RE = re.compile(r"^\[(\w+)\s*:\s*([^\]]+)\]$")
_ARROW_RE = re.compile(
    r"^\[arrow\s*:\s*([a-h][1-8])-?([a-h][1-8])(?:\s+(\w+))?\s*\]$", re.IGNORECASE
)
_CIRCLE_RE = re.compile(
    r"^\[circle\s*:\s*([a-h][1-8])(?:\s+(\w+))?\s*\]$", re.IGNORECASE
)
_HIGHLIGHT_RE = re.compile(
    r"^\[highlight\s*:\s*([a-h][1-8])(?:\s+(\w+))?\s*\]$", re.IGNORECASE
)


def is_marker_line(line: str) -> bool:
    line = line.strip()
    return bool(_BOOLEAN_MARKER_RE.match(line) or _VALUE_MARKER_RE.match(line))


def scan_markers(source: str) -> tuple[list[str], str]:
    """
    Split a block into (marker_lines, chess_data). Chess content is never
    consulted here, only the marker syntax.
    """
    lines = source.splitlines()

    separator_index = next(
        (i for i, line in enumerate(lines) if line.strip() == SEPARATOR), None
    )
    if separator_index is not None:
        markers = [line.strip() for line in lines[:separator_index] if line.strip()]
        chess_data = "\n".join(lines[separator_index + 1 :])  # noqa: E203
        return markers, chess_data

    markers = []
    chess_lines = []
    in_chess_data = False
    for line in lines:
        stripped = line.strip()
        if not in_chess_data and not stripped:
            continue
        if not in_chess_data and is_marker_line(stripped):
            markers.append(stripped)
        else:
            in_chess_data = True
            chess_lines.append(line)

    return markers, "\n".join(chess_lines)


def _parse_int(value, default):
    m = re.match(r"^[+-]?\d+", value.strip())
    return int(m.group()) if m else default


def apply_key_value(line: str, result: ParsedResult):
    m = _KEY_VALUE_RE.match(line)
    if not m:
        return
    key = m.group(1).lower()
    value = m.group(2).strip()

    if key == "rating":
        result.puzzle_rating = _parse_int(value, None)
    elif key == "themes":
        result.puzzle_themes = [t for t in re.split(r"[,\s]+", value) if t]
    elif key == "title":
        result.puzzle_title = value
    elif key == "move":
        result.start_move = _parse_int(value, 0)


def _boolean_marker(*names: str) -> Callable[[str], bool]:
    pattern = re.compile(rf"^\[(?:{'|'.join(names)})\]$", re.IGNORECASE)
    return lambda line: bool(pattern.match(line))


def _set_puzzle(line, result):
    result.is_puzzle = True


def _set_black(line, result):
    result.orientation = "black"
    result.orientation_explicit = True


def _set_white(line, result):
    result.orientation = "white"
    result.orientation_explicit = True


def _set_static(line, result):
    result.is_static = True
    result.is_editable = False


def _set_noeditable(line, result):
    result.is_editable = False


def _set_debug(line, result):
    result.debug = True


def apply_arrow(line: str, result: ParsedResult):
    if m := _ARROW_RE.match(line):
        result.arrows.append(
            Arrow(
                orig=m.group(1).lower(),
                dest=m.group(2).lower(),
                color=resolve_color(m.group(3)),
            )
        )


def apply_circle(line: str, result: ParsedResult):
    if m := _CIRCLE_RE.match(line):
        result.circles.append(
            Circle(square=m.group(1).lower(), color=resolve_color(m.group(2)))
        )


def apply_highlight(line: str, result: ParsedResult):
    if m := _HIGHLIGHT_RE.match(line):
        result.highlights.append(
            Highlight(square=m.group(1).lower(), color=resolve_color(m.group(2)))
        )


def _always(line):
    return True


# Every pair is tried on every line, in this order. Boolean markers of the
# same kind overwrite each other (last wins), overlays accumulate.
MARKER_HANDLERS = [
    (_always, apply_key_value),
    (_boolean_marker("puzzle"), _set_puzzle),
    (_boolean_marker("black", "flip"), _set_black),
    (_boolean_marker("white"), _set_white),
    (_boolean_marker("static"), _set_static),
    (_boolean_marker("noeditable"), _set_noeditable),
    (_boolean_marker("debug"), _set_debug),
    (_always, apply_arrow),
    (_always, apply_circle),
    (_always, apply_highlight),
]


def apply_marker_line(line: str, result: ParsedResult):
    line = line.strip()
    for matches, apply in MARKER_HANDLERS:
        if matches(line):
            apply(line, result)


def apply_markers(lines: list[str], result: ParsedResult):
    for line in lines:
        apply_marker_line(line, result)

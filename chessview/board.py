"""
Interfaces to the outside world: the board widget that draws positions and
collects moves, and the timer used for autoplay and puzzle replies. The
navigator and puzzle session depend on these, never on a concrete UI.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import wraps
from typing import Callable, Optional

from chessview import settings
from chessview.models import Line, MoveAnnotation, ParsedResult

PromotionCallback = Callable[[Optional[str]], None]


@dataclass
class Shape:
    orig: str
    dest: Optional[str] = None
    brush: str = "green"


@dataclass
class BoardState:
    """Everything the board needs to redraw after a position change."""

    fen: str
    last_move: Optional[tuple[str, str]] = None
    check: bool = False
    dests: Optional[dict[str, list[str]]] = None  # None when not movable
    shapes: list[Shape] = field(default_factory=list)
    highlights: list[Shape] = field(default_factory=list)


class BoardView(ABC):
    @abstractmethod
    def sync(self, state: BoardState) -> None:
        """Redraw the board with `state`."""

    @abstractmethod
    def request_promotion(
        self, square: str, color: str, callback: PromotionCallback
    ) -> None:
        """
        Ask the user which piece to promote to (q, r, b or n) and call
        `callback` with it, now or later. Dismissing the prompt calls back
        with None, which means queen.
        """

    def show_hint(self, square: str, duration_ms: int) -> None:
        """Briefly highlight a square; optional for boards without hints."""


class NullBoard(BoardView):
    """Headless board: remembers the last state, always promotes to queen."""

    def __init__(self):
        self.state: Optional[BoardState] = None

    def sync(self, state: BoardState) -> None:
        self.state = state

    def request_promotion(self, square, color, callback):
        callback("q")


class Scheduler(ABC):
    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]):
        """Run `callback` once after `delay_ms`; returns a handle with cancel()."""


class ThreadingScheduler(Scheduler):
    def call_later(self, delay_ms, callback):
        timer = threading.Timer(delay_ms / 1000, callback)
        timer.daemon = True
        timer.start()
        return timer


def locked(method):
    """
    Serialize a method on `self._lock`. Timer callbacks run on their own
    thread, so every entry point that touches navigation state takes it.
    """

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


def annotation_shapes(annotation: Optional[MoveAnnotation]) -> list[Shape]:
    if annotation is None:
        return []
    shapes = [
        Shape(orig=a.orig, dest=a.dest, brush=a.color or settings.ARROW_COLOR)
        for a in annotation.arrows
    ]
    shapes += [
        Shape(orig=c.square, brush=c.color or settings.CIRCLE_COLOR)
        for c in annotation.circles
    ]
    return shapes


def get_auto_shapes(
    result: ParsedResult, line: Optional[Line] = None, index: int = 0
) -> list[Shape]:
    """
    Marker arrows/circles always show; the annotations of the move just
    played are added on top (games only).
    """
    shapes = annotation_shapes(
        MoveAnnotation(arrows=result.arrows, circles=result.circles)
    )
    if not result.is_puzzle and line and 0 < index <= len(line):
        shapes += annotation_shapes(line[index - 1].annotations)
    return shapes


def get_highlight_shapes(result: ParsedResult) -> list[Shape]:
    return [
        Shape(orig=h.square, brush=h.color or settings.HIGHLIGHT_COLOR)
        for h in result.highlights
    ]

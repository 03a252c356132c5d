import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from chessview import settings
from chessview.board import (
    BoardState,
    BoardView,
    NullBoard,
    Scheduler,
    ThreadingScheduler,
    get_auto_shapes,
    get_highlight_shapes,
    locked,
)
from chessview.engine import ChessEngine, MoveRecord
from chessview.models import Line, MoveNode, ParsedResult
from chessview.move_tree import find_line_path
from chessview.util import START_FEN

logger = logging.getLogger(__name__)

ChangeCallback = Callable[["Navigator"], None]


@dataclass
class Frame:
    """How the current line was reached: resume_index - 1 is the node in
    `line` whose variation we entered."""

    line: Line
    resume_index: int


class Navigator:
    """
    Walks a parsed game tree. "Where we are" is the current line, a cursor
    into it (0 = before its first move, len(line) = after its last) and the
    stack of frames leading there from the root line.

    Positions are rebuilt by replaying from the root through every frame,
    so the engine never drifts from the tree. User moves that leave the
    tree are appended to it: at the end of a line they extend it, anywhere
    else they become a new variation.
    """

    def __init__(
        self,
        result: ParsedResult,
        board: Optional[BoardView] = None,
        scheduler: Optional[Scheduler] = None,
        autoplay_speed_ms: Optional[int] = None,
    ):
        self.result = result
        self.board = board or NullBoard()
        self.scheduler = scheduler or ThreadingScheduler()
        self.autoplay_speed_ms = autoplay_speed_ms or settings.AUTOPLAY_SPEED_MS

        self.start_fen = result.fen or START_FEN
        self.engine = ChessEngine(self.start_fen)
        self.root: Line = result.moves
        self.line: Line = self.root
        self.index = 0
        self.frames: list[Frame] = []

        self.on_change: list[ChangeCallback] = []
        self.is_playing = False
        self._timer = None
        self._autoplay_run = 0  # bumped on stop; stale ticks compare against it
        self._lock = threading.RLock()
        self._promoting = False
        self.destroyed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_line(self) -> Line:
        return self.line

    @property
    def current_index(self) -> int:
        return self.index

    @property
    def move_count(self) -> int:
        return len(self.line)

    @property
    def current_node(self) -> Optional[MoveNode]:
        return self.line[self.index - 1] if self.index > 0 else None

    @property
    def is_in_variation(self) -> bool:
        return bool(self.frames)

    @property
    def is_promoting(self) -> bool:
        return self._promoting

    @property
    def counter_text(self) -> str:
        return f"{self.index}/{len(self.line)}"

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _replay(self, line: Line, count: int) -> int:
        """play the first `count` moves of line; returns how many succeeded"""
        for i in range(count):
            if self.engine.move(line[i].san) is None:
                logger.warning(
                    "Replay desync at %s (ply %s of %s); truncating",
                    line[i].san,
                    i + 1,
                    count,
                )
                return i
        return count

    @locked
    def go_to_move(self, index: int):
        if self.destroyed:
            return

        index = max(0, min(len(self.line), index))

        self.engine.load(self.start_fen)
        for depth, frame in enumerate(self.frames):
            count = frame.resume_index - 1
            played = self._replay(frame.line, count)
            if played < count:
                # land on the ancestor line, at the last ply that replayed
                self.frames = self.frames[:depth]
                self.line = frame.line
                index = played
                break
        else:
            index = self._replay(self.line, index)

        self.index = index
        self.sync()

    @locked
    def go_forward(self):
        self.go_to_move(self.index + 1)

    @locked
    def go_back(self):
        if self.index <= 1 and self.frames:
            self._pop_frame()
        else:
            self.go_to_move(self.index - 1)

    @locked
    def go_to_start(self):
        if self.index <= 1 and self.frames:
            self._pop_frame()
        else:
            self.go_to_move(0)

    @locked
    def go_to_end(self):
        self.go_to_move(len(self.line))

    @locked
    def go_to_start_move(self):
        """jump to the [move: N] marker, if any"""
        if self.result.start_move > 0:
            self.go_to_move(min(self.result.start_move, len(self.line)))

    def _pop_frame(self):
        frame = self.frames.pop()
        self.line = frame.line
        self.go_to_move(frame.resume_index)

    @locked
    def return_to_main_line(self):
        if not self.frames:
            return
        outermost = self.frames[0]
        self.frames = []
        self.line = outermost.line
        self.go_to_move(outermost.resume_index)

    def _set_path_to(self, line: Line) -> bool:
        if line is self.line:
            return True
        path = find_line_path(self.root, line)
        if path is None:
            logger.warning("Line is not part of this game tree")
            return False
        self.frames = [Frame(parent, index + 1) for parent, index in path]
        self.line = line
        return True

    @locked
    def go_to_variation(self, parent_line: Line, move_index: int, variation_index: int):
        """
        Enter variation `variation_index` of parent_line[move_index], at the
        position before its first move.
        """
        if self.destroyed or not self._set_path_to(parent_line):
            return
        self.frames.append(Frame(parent_line, move_index + 1))
        self.line = parent_line[move_index].variations[variation_index]
        self.index = 0
        self.go_to_move(0)

    @locked
    def go_to_move_in_line(self, line: Line, index: int):
        if self.destroyed or not self._set_path_to(line):
            return
        self.go_to_move(index)

    # ------------------------------------------------------------------
    # Board output
    # ------------------------------------------------------------------

    def get_board_state(self) -> BoardState:
        last = self.current_node
        return BoardState(
            fen=self.engine.fen(),
            last_move=(last.from_square, last.to_square) if last else None,
            check=self.engine.in_check(),
            dests=(
                self.engine.legal_destinations()
                if self.result.is_interactive
                else None
            ),
            shapes=get_auto_shapes(self.result, self.line, self.index),
            highlights=get_highlight_shapes(self.result),
        )

    def sync(self):
        self.board.sync(self.get_board_state())
        for callback in self.on_change:
            callback(self)

    # ------------------------------------------------------------------
    # User moves
    # ------------------------------------------------------------------

    @locked
    def handle_user_move(self, orig: str, dest: str):
        """
        A move dragged on the board. Promotions ask the board for a piece
        first; until that answer arrives further moves are ignored.
        """
        if self.destroyed:
            return
        if self._promoting:
            logger.debug("Promotion pending; ignoring move %s%s", orig, dest)
            return
        if not self.result.is_interactive:
            self.sync()
            return

        self.stop_autoplay()

        if not self.engine.is_promotion(orig, dest):
            self._finish_user_move(orig, dest, None)
            return

        self._promoting = True
        fen_before = self.engine.fen()

        def on_promotion(piece: Optional[str]):
            self._answer_promotion(orig, dest, fen_before, piece)

        try:
            self.board.request_promotion(dest, self.engine.turn(), on_promotion)
        except Exception:
            self._promoting = False
            raise

    @locked
    def _answer_promotion(self, orig, dest, fen_before, piece):
        if self.destroyed:
            self._promoting = False
            return
        if self.engine.fen() != fen_before:
            logger.debug("Position changed during promotion prompt")
            self._promoting = False
            self.sync()
            return
        self._finish_user_move(orig, dest, piece or "q")

    def _finish_user_move(self, orig: str, dest: str, promotion: Optional[str]):
        try:
            record = self.engine.move_squares(orig, dest, promotion)
        except ValueError as e:
            logger.warning("Rejected move %s%s: %s", orig, dest, e)
            record = None
        finally:
            self._promoting = False

        if record is None:
            self.sync()
            return

        self._apply_user_move(record)
        self.sync()

    def _make_node(self, record: MoveRecord) -> MoveNode:
        return MoveNode(
            san=record.san,
            from_square=record.from_square,
            to_square=record.to_square,
            fen=self.engine.fen(),
        )

    def _apply_user_move(self, record: MoveRecord):
        """the engine has already played `record`; update the tree and cursor"""
        line, index = self.line, self.index

        if index >= len(line):
            line.append(self._make_node(record))
            self.index += 1
            return

        next_node = line[index]
        if next_node.san == record.san:
            self.index += 1
            return

        for variation in next_node.variations:
            if variation and variation[0].san == record.san:
                break
        else:
            variation = [self._make_node(record)]
            next_node.variations.append(variation)

        self.frames.append(Frame(line, index + 1))
        self.line = variation
        self.index = 1

    # ------------------------------------------------------------------
    # Autoplay
    # ------------------------------------------------------------------

    @locked
    def toggle_autoplay(self):
        if self.is_playing:
            self.stop_autoplay()
        else:
            self.start_autoplay()

    @locked
    def start_autoplay(self):
        if self.is_playing or self.destroyed:
            return
        self.is_playing = True
        self._schedule_tick()

    @locked
    def stop_autoplay(self):
        self.is_playing = False
        self._autoplay_run += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_tick(self):
        run = self._autoplay_run
        self._timer = self.scheduler.call_later(
            self.autoplay_speed_ms, lambda: self._tick(run)
        )

    @locked
    def _tick(self, run: int):
        if run != self._autoplay_run or not self.is_playing or self.destroyed:
            return
        self._timer = None
        if self.index >= len(self.line):
            self.stop_autoplay()
            return
        self.go_forward()
        if run != self._autoplay_run or not self.is_playing or self.destroyed:
            # stopped from a listener while moving
            return
        if self.index >= len(self.line):
            self.stop_autoplay()
        else:
            self._schedule_tick()

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    @locked
    def handle_key(self, key: str) -> bool:
        actions = {
            "ArrowLeft": self.go_back,
            "ArrowRight": self.go_forward,
            "Home": self.go_to_start,
            "End": self.go_to_end,
            " ": self.toggle_autoplay,
        }
        action = actions.get(key)
        if action is None or self.destroyed:
            return False
        action()
        return True

    @locked
    def destroy(self):
        self.stop_autoplay()
        self.on_change = []
        self.destroyed = True

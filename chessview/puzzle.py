import logging
import threading
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
from chessview.serializers import WRONG_MOVE_COMMENT
from chessview.util import START_FEN

logger = logging.getLogger(__name__)

WAITING = "waiting"
PLAYING = "playing"
SOLVED = "solved"
FAILED = "failed"


class PuzzleSession:
    """
    Solve a puzzle move by move against its solution line.

        waiting  ➤ opponent's move is scheduled, input is off
        playing  ➤ the solver is to move
        solved   ➤ every solution move has been played
        failed   ➤ a wrong move was tried, or the solution was revealed

    Played moves (including a wrong final attempt) can be reviewed with the
    go_* methods; reviewing never changes the state.
    """

    def __init__(
        self,
        result: ParsedResult,
        board: Optional[BoardView] = None,
        scheduler: Optional[Scheduler] = None,
        show_hints: Optional[bool] = None,
    ):
        if not result.is_puzzle or not result.solution_moves:
            raise ValueError("Puzzle has no valid moves")

        self.result = result
        self.solution: Line = result.solution_moves
        self.board = board or NullBoard()
        self.scheduler = scheduler or ThreadingScheduler()
        if show_hints is None:
            show_hints = settings.PUZZLE_SHOW_HINTS
        self.show_hints = show_hints

        self.start_fen = result.fen or START_FEN
        self.engine = ChessEngine(self.start_fen)
        self.player_color = result.player_color

        self.state = WAITING
        self.view_index = 0
        self.on_change: list[Callable[["PuzzleSession"], None]] = []
        self._played: Line = []
        self._solution_revealed = False
        self._timer = None
        self._reply_run = 0  # bumped on cancel; stale replies compare against it
        self._lock = threading.RLock()
        self._promoting = False
        self.destroyed = False

    @property
    def played_moves(self) -> Line:
        return list(self._played)

    @property
    def solution_revealed(self) -> bool:
        return self._solution_revealed

    @property
    def expected_move(self) -> Optional[MoveNode]:
        ply = len(self._played)
        return self.solution[ply] if ply < len(self.solution) else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @locked
    def start(self):
        if self.destroyed:
            return
        self._cancel_timer()
        self.engine.load(self.start_fen)
        self._played = []
        self.view_index = 0
        self._solution_revealed = False
        self._promoting = False

        if self.engine.turn() != self.player_color:
            self.state = WAITING
            self._schedule_opponent(settings.PUZZLE_OPPONENT_FIRST_MOVE_DELAY_MS)
        else:
            self.state = PLAYING
        self.sync()

    @locked
    def retry(self):
        self.start()

    @locked
    def destroy(self):
        self._cancel_timer()
        self.on_change = []
        self.destroyed = True

    def _cancel_timer(self):
        self._reply_run += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_opponent(self, delay_ms: int):
        run = self._reply_run
        self._timer = self.scheduler.call_later(
            delay_ms, lambda: self._play_opponent(run)
        )

    @locked
    def _play_opponent(self, run: int):
        if run != self._reply_run:
            return
        self._timer = None
        if self.destroyed or self.state != WAITING:
            return

        expected = self.expected_move
        record = self.engine.move(expected.san) if expected else None
        if record is None:
            logger.warning(
                "Opponent move %s failed to replay",
                expected.san if expected else "(none)",
            )
            self.state = FAILED
            self.sync()
            return

        self._played.append(self._make_node(record))
        self.view_index = len(self._played)
        self.state = SOLVED if self.expected_move is None else PLAYING
        self.sync()

    def _make_node(self, record: MoveRecord, comment: Optional[str] = None) -> MoveNode:
        return MoveNode(
            san=record.san,
            from_square=record.from_square,
            to_square=record.to_square,
            fen=self.engine.fen(),
            comment=comment,
        )

    # ------------------------------------------------------------------
    # Solver moves
    # ------------------------------------------------------------------

    def _accepts_input(self) -> bool:
        return (
            not self.destroyed
            and self.state == PLAYING
            and not self._solution_revealed
            and self.view_index == len(self._played)
        )

    @locked
    def handle_move(self, orig: str, dest: str):
        if self._promoting:
            logger.debug("Promotion pending; ignoring move %s%s", orig, dest)
            return
        if not self._accepts_input():
            self.sync()
            return

        if not self.engine.is_promotion(orig, dest):
            self._finish_move(orig, dest, None)
            return

        self._promoting = True

        def on_promotion(piece: Optional[str]):
            self._answer_promotion(orig, dest, piece)

        try:
            self.board.request_promotion(dest, self.engine.turn(), on_promotion)
        except Exception:
            self._promoting = False
            raise

    @locked
    def _answer_promotion(self, orig, dest, piece):
        if not self._accepts_input():
            self._promoting = False
            self.sync()
            return
        self._finish_move(orig, dest, piece or "q")

    def _finish_move(self, orig: str, dest: str, promotion: Optional[str]):
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

        expected = self.expected_move
        if record.san != expected.san:
            # keep the attempt for review but not on the live engine
            self._played.append(self._make_node(record, comment=WRONG_MOVE_COMMENT))
            self.engine.undo()
            self.view_index = len(self._played)
            self.state = FAILED
            self.sync()
            return

        self._played.append(self._make_node(record))
        self.view_index = len(self._played)
        if self.expected_move is None:
            self.state = SOLVED
        else:
            self.state = WAITING
            self._schedule_opponent(settings.PUZZLE_OPPONENT_RESPONSE_DELAY_MS)
        self.sync()

    @locked
    def show_hint(self) -> bool:
        if not self.show_hints or not self._accepts_input():
            return False
        self.board.show_hint(
            self.expected_move.from_square, settings.HINT_HIGHLIGHT_DURATION_MS
        )
        return True

    # ------------------------------------------------------------------
    # Solution
    # ------------------------------------------------------------------

    @locked
    def show_solution(self):
        """Reveal the whole solution; an unsolved attempt counts as failed."""
        if self.destroyed:
            return
        self._cancel_timer()
        if self.state != SOLVED:
            self.state = FAILED
        self._solution_revealed = True
        self.sync()

    @locked
    def hide_solution(self):
        if self.destroyed or not self._solution_revealed:
            return
        self._solution_revealed = False
        self.sync()

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    @locked
    def go_to_move(self, index: int):
        if self.destroyed:
            return
        self._solution_revealed = False
        self.view_index = max(0, min(len(self._played), index))
        self.sync()

    @locked
    def go_back(self):
        self.go_to_move(self.view_index - 1)

    @locked
    def go_forward(self):
        self.go_to_move(self.view_index + 1)

    @locked
    def go_to_start(self):
        self.go_to_move(0)

    @locked
    def go_to_end(self):
        self.go_to_move(len(self._played))

    # ------------------------------------------------------------------
    # Board output
    # ------------------------------------------------------------------

    def get_board_state(self) -> BoardState:
        if self._solution_revealed:
            shown = self.solution[-1]
        else:
            shown = self._played[self.view_index - 1] if self.view_index else None

        fen = shown.fen if shown else self.start_fen
        return BoardState(
            fen=fen,
            last_move=(shown.from_square, shown.to_square) if shown else None,
            check=ChessEngine(fen).in_check(),
            dests=self.engine.legal_destinations() if self._accepts_input() else None,
            shapes=get_auto_shapes(self.result),
            highlights=get_highlight_shapes(self.result),
        )

    def sync(self):
        self.board.sync(self.get_board_state())
        for callback in self.on_change:
            callback(self)

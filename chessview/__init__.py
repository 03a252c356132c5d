from chessview.navigator import Navigator
from chessview.parser import parse_chess_input
from chessview.puzzle import PuzzleSession

__all__ = ["Navigator", "PuzzleSession", "parse_chess_input"]

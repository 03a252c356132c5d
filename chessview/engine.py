import re
from dataclasses import dataclass
from typing import Optional

import chess


PROMOTION_PIECES = {
    "q": chess.QUEEN,
    "r": chess.ROOK,
    "b": chess.BISHOP,
    "n": chess.KNIGHT,
}

LONG_ALGEBRAIC_RE = re.compile(
    r"""(?x)
    ^[KQRBNP]?              # optional piece letter, ignored
    ([a-h][1-8])            # from
    [-x:]?                  # optional separator
    ([a-h][1-8])            # to
    (?:=?([qrbnQRBN]))?     # optional promotion
    [+#]?$
    """
)


@dataclass(frozen=True)
class MoveRecord:
    san: str
    from_square: str
    to_square: str
    promotion: Optional[str] = None


class ChessEngine:
    """
    Thin wrapper around a python-chess board exposing the small interface
    the parser and navigator need. Illegal input returns None instead of
    raising; only a malformed promotion piece raises ValueError.
    """

    def __init__(self, fen: Optional[str] = None):
        self.board = chess.Board()
        if fen and not self.load(fen):
            raise ValueError(f"Invalid FEN: {fen}")

    def load(self, fen: str) -> bool:
        try:
            board = chess.Board(fen)
        except ValueError:
            return False
        self.board = board
        return True

    def fen(self) -> str:
        return self.board.fen()

    def turn(self) -> str:
        return "white" if self.board.turn == chess.WHITE else "black"

    def in_check(self) -> bool:
        return self.board.is_check()

    def _push(self, move: chess.Move) -> MoveRecord:
        san = self.board.san(move)
        self.board.push(move)
        promotion = chess.piece_symbol(move.promotion) if move.promotion else None
        return MoveRecord(
            san=san,
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            promotion=promotion,
        )

    def move(self, text: str, sloppy: bool = False) -> Optional[MoveRecord]:
        """
        Play a move given as SAN. With `sloppy`, also accept coordinate
        notation (e2e4, e2-e4, Ng1-f3, e7e8q) and a leading pawn letter.
        """
        text = text.strip()
        if not text:
            return None

        try:
            move = self.board.parse_san(text)
        except ValueError:
            move = None
        if move:  # null moves (--, Z0) are falsy and never accepted
            return self._push(move)
        if not sloppy:
            return None

        if text[0] == "P" and len(text) > 1:
            try:
                move = self.board.parse_san(text[1:])
            except ValueError:
                move = None
            if move:
                return self._push(move)

        m = LONG_ALGEBRAIC_RE.match(text)
        if not m:
            return None
        orig, dest, promotion = m.groups()
        try:
            return self.move_squares(orig, dest, promotion)
        except ValueError:
            return None

    def move_squares(
        self, orig: str, dest: str, promotion: Optional[str] = None
    ) -> Optional[MoveRecord]:
        piece = None
        if promotion:
            piece = PROMOTION_PIECES.get(promotion.lower())
            if piece is None:
                raise ValueError(f"Invalid promotion piece: {promotion}")
        try:
            move = chess.Move(
                chess.parse_square(orig), chess.parse_square(dest), promotion=piece
            )
        except ValueError:
            return None
        if move not in self.board.legal_moves:
            return None
        return self._push(move)

    def undo(self) -> Optional[MoveRecord]:
        try:
            move = self.board.pop()
        except IndexError:
            return None
        promotion = chess.piece_symbol(move.promotion) if move.promotion else None
        return MoveRecord(
            san=self.board.san(move),
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            promotion=promotion,
        )

    def is_promotion(self, orig: str, dest: str) -> bool:
        try:
            from_square = chess.parse_square(orig)
            to_square = chess.parse_square(dest)
        except ValueError:
            return False
        return any(
            move.from_square == from_square
            and move.to_square == to_square
            and move.promotion
            for move in self.board.legal_moves
        )

    def legal_destinations(self) -> dict[str, list[str]]:
        dests: dict[str, list[str]] = {}
        for move in self.board.legal_moves:
            orig = chess.square_name(move.from_square)
            dest = chess.square_name(move.to_square)
            squares = dests.setdefault(orig, [])
            if dest not in squares:  # promotions list the same square 4 times
                squares.append(dest)
        return dests

import re
from typing import Optional
from urllib.parse import quote

import chess
import nh3

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

FEN_DEFAULTS = ("w", "-", "-", "0", "1")

_BOARD_FIELD_RE = re.compile(r"^[rnbqkpRNBQKP1-8/]+$")

FIGURINE_NOTATION = {
    "K": "♔",
    "Q": "♕",
    "R": "♖",
    "B": "♗",
    "N": "♘",
}


def strip_all_html(text: str) -> str:
    return nh3.clean(text, tags=set(), attributes={})


def looks_like_fen_board(token: str) -> bool:
    """8 slash-separated ranks using only piece letters and digits"""
    return len(token.split("/")) == 8 and bool(_BOARD_FIELD_RE.match(token))


def normalize_fen(fen: str) -> str:
    """
    Fill missing trailing FEN fields with defaults:

        8/8/8/8/8/8/8/8 ➤ 8/8/8/8/8/8/8/8 w - - 0 1

    Anything whose first field doesn't split into 8 ranks is returned
    unchanged, and validation will reject it later.
    """
    parts = fen.strip().split()
    if not parts or len(parts[0].split("/")) != 8:
        return fen

    fields = parts[:6]
    fields += FEN_DEFAULTS[len(fields) - 1 :]  # noqa: E203
    return " ".join(fields)


def validate_fen(fen: str) -> Optional[str]:
    """Returns None for a loadable position, otherwise an error message."""
    try:
        chess.Board(fen)
    except ValueError as e:
        return str(e) or "Invalid FEN position"
    return None


def get_turn_from_fen(fen: Optional[str]) -> str:
    parts = (fen or START_FEN).split()
    return "black" if len(parts) > 1 and parts[1] == "b" else "white"


def get_move_index_from_fen(fen: str) -> int:
    """
    Returns the zero-based ply index from a FEN string.

    The FEN string must be in the format:
    'rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1'
    where the second field is 'w' or 'b' (to move),
    and the last field is the fullmove number (starting at 1).

    Example:
        fullmove=1, color='w' → index=0
        fullmove=1, color='b' → index=1
        fullmove=2, color='w' → index=2
        fullmove=2, color='b' → index=3
    """
    parts = fen.strip().split()
    if len(parts) != 6:
        raise ValueError(f"Invalid FEN string: expected 6 fields, got {len(parts)}")

    color = parts[1]
    if color not in ("w", "b"):
        raise ValueError(f"Invalid color in FEN: expected 'w' or 'b', got '{color}'")

    try:
        fullmove = int(parts[5])
    except ValueError:
        raise ValueError(f"Invalid fullmove number in FEN: {parts[5]!r}")

    if fullmove < 1:
        raise ValueError(f"Fullmove number must be >= 1, got {fullmove}")

    index = (fullmove - 1) * 2
    if color == "b":
        index += 1
    return index


def format_san(san: str, notation: str = "letter") -> str:
    if notation != "figurine":
        return san
    return re.sub(r"[KQRBN]", lambda m: FIGURINE_NOTATION[m.group()], san)


def get_analysis_urls(result) -> dict[str, str]:
    """
    Lichess and Chess.com analysis links for a parsed block. Positions link
    with the FEN, games and puzzles with the SAN main line.
    """
    flipped = result.orientation == "black"
    color_param = "?color=black" if flipped else "?color=white"
    flip_param = "&flip=true" if flipped else ""

    if result.type_ == "fen" and result.fen:
        lichess_fen = result.fen.replace(" ", "_")
        return {
            "lichess": f"https://lichess.org/analysis/{lichess_fen}{color_param}",
            "chesscom": (
                "https://www.chess.com/analysis?fen="
                f"{quote(result.fen, safe='')}{flip_param}"
            ),
        }

    moves = result.moves or result.solution_moves
    moves_san = " ".join(move.san for move in moves)
    if result.fen:
        pgn = f'[SetUp "1"][FEN "{result.fen}"] {moves_san}'
    else:
        pgn = moves_san

    encoded = quote(pgn, safe="")
    return {
        "lichess": f"https://lichess.org/analysis/pgn/{encoded}{color_param}",
        "chesscom": f"https://www.chess.com/analysis?pgn={encoded}{flip_param}",
    }

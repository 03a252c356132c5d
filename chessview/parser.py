import re
from typing import Optional

from chessview import settings
from chessview.markers import apply_markers, scan_markers
from chessview.models import ParsedResult
from chessview.move_tree import build_move_tree, parse_flat_moves
from chessview.tokenizer import COMMENT_RE, HEADER_RE, find_headers
from chessview.util import (
    get_turn_from_fen,
    looks_like_fen_board,
    normalize_fen,
    validate_fen,
)

_FEN_HEADER_RE = re.compile(r'\[FEN\s+"([^"]+)"\]', re.IGNORECASE)
_HEADER_SEGMENT_RE = re.compile(r'\[[^\]]*"[^\]]*\]')


def parse_chess_input(source: str) -> ParsedResult:
    """
    Parse one block of markers + FEN or PGN into a ParsedResult. Fatal
    problems land in `result.error`; skipped moves in `result.warnings`.
    """
    result = ParsedResult()
    try:
        marker_lines, chess_data = scan_markers(source.strip())
        apply_markers(marker_lines, result)
        if result.is_puzzle:
            result.type_ = "puzzle"
            result.is_editable = False
        parse_chess_data(chess_data, result)
        if result.is_puzzle:
            finalize_puzzle(result)
    except ValueError as e:
        result.error = str(e) or "Unknown parsing error"
    return result


def is_bare_position(chess_data: str) -> bool:
    if HEADER_RE.search(chess_data):
        return False
    detection = _HEADER_SEGMENT_RE.sub("", chess_data).strip()
    first_token = detection.split()[0] if detection else ""
    return looks_like_fen_board(first_token)


def load_position(fen: str) -> str:
    normalized = normalize_fen(fen)
    if error := validate_fen(normalized):
        raise ValueError(f"Invalid FEN: {error}")
    return normalized


def extract_headers(chess_data: str) -> dict[str, str]:
    return dict(find_headers(chess_data))


def parse_chess_data(chess_data: str, result: ParsedResult):
    chess_data = chess_data.strip()
    if not chess_data:
        if result.is_puzzle:
            raise ValueError("Puzzle has no PGN data")
        raise ValueError("No position or move data")

    if is_bare_position(chess_data):
        if result.is_puzzle:
            raise ValueError("Puzzle requires moves, not just a position")
        result.type_ = "fen"
        result.fen = load_position(chess_data)
        return

    if not result.is_puzzle:
        result.type_ = "game"
    result.pgn = chess_data
    result.headers.update(extract_headers(chess_data))

    if fen_header := _FEN_HEADER_RE.search(COMMENT_RE.sub("", chess_data)):
        result.fen = load_position(fen_header.group(1))

    if result.is_puzzle:
        result.solution_moves = parse_flat_moves(
            chess_data, result.fen, result.warnings
        )
    else:
        result.moves = build_move_tree(chess_data, result.fen, result.warnings)


def get_solving_color(solution_length: int, base_turn: str) -> str:
    """
    Odd-length solutions start and end with the solver's move; with an even
    number of plies the opponent moves first.
    """
    if solution_length % 2 == 0:
        return "black" if base_turn == "white" else "white"
    return base_turn


def finalize_puzzle(result: ParsedResult):
    if not result.solution_moves:
        raise ValueError("Puzzle has no valid moves")

    result.player_color = get_solving_color(
        len(result.solution_moves), get_turn_from_fen(result.fen)
    )
    if not result.orientation_explicit:
        result.orientation = result.player_color


def resolve_orientation(
    result: ParsedResult, default_orientation: Optional[str] = None
) -> str:
    """
    Which side is at the bottom: explicit markers and puzzles decide;
    otherwise the configured default, where "auto" shows a position with
    black to move from black's side.
    """
    if result.orientation_explicit or result.is_puzzle:
        return result.orientation

    default_orientation = default_orientation or settings.DEFAULT_ORIENTATION
    if default_orientation in ("white", "black"):
        return default_orientation
    return get_turn_from_fen(result.fen)

import pytest

from chessview import parser
from chessview.models import ParsedResult
from chessview.parser import parse_chess_input, resolve_orientation
from chessview.tests import parse, sans, tree_shape
from chessview.util import START_FEN


def test_game():
    result = parse("1. e4 e5 2. Nf3 Nc6")
    assert result.type_ == "game"
    assert result.fen is None
    assert result.pgn == "1. e4 e5 2. Nf3 Nc6"
    assert sans(result.moves) == ["e4", "e5", "Nf3", "Nc6"]
    assert result.is_interactive is True
    assert result.warnings == []


def test_bare_position_is_normalized():
    result = parse("8/8/8/8/8/8/8/K6k")
    assert result.type_ == "fen"
    assert result.fen == "8/8/8/8/8/8/8/K6k w - - 0 1"
    assert result.moves == []


def test_invalid_position_is_fatal():
    result = parse_chess_input("8/8/8/8/8/8/8/8 x - - 0 1")
    assert result.type_ == "fen"
    assert result.error.startswith("Invalid FEN")


def test_bad_board_digits_fall_through_to_moves():
    result = parse_chess_input("9/8/8/8/8/8/8/8 w - - 0 1")
    assert result.error is None
    assert result.type_ == "game"
    assert result.moves == []
    assert result.warnings


@pytest.mark.parametrize(
    "source, error",
    [
        ("", "No position or move data"),
        ("[white]\n[arrow: e2e4]", "No position or move data"),
        ("[puzzle]", "Puzzle has no PGN data"),
        ("[puzzle]\n8/8/8/8/8/8/8/K6k w - - 0 1", "Puzzle requires moves, not just a position"),
        ("[puzzle]\n1. Xyz", "Puzzle has no valid moves"),
    ],
)
def test_fatal_errors(source, error):
    assert parse_chess_input(source).error == error


def test_headers_and_fen_header():
    fen = "4k3/8/8/8/8/8/4P3/4K3 w - - 0 1"
    result = parse(f'[Event "Endgame"]\n[SetUp "1"]\n[FEN "{fen}"]\n\n1. e4 Kd7')
    assert result.headers == {"Event": "Endgame", "SetUp": "1", "FEN": fen}
    assert result.fen == fen
    assert sans(result.moves) == ["e4", "Kd7"]


def test_bracketed_pair_inside_comment_is_not_a_header():
    result = parse('[Site "?"]\n1. e4 {see [Event "x"] here} e5')
    assert result.headers == {"Site": "?"}
    assert result.moves[0].comment == 'see [Event "x"] here'
    assert sans(result.moves) == ["e4", "e5"]


def test_fen_header_inside_comment_is_ignored():
    result = parse('1. e4 {[FEN "8/8/8/8/8/8/8/K6k w - - 0 1"]} e5')
    assert result.fen is None
    assert sans(result.moves) == ["e4", "e5"]


def test_short_fen_header_is_normalized():
    result = parse('[FEN "4k3/8/8/8/8/8/4P3/4K3 b"]\n1... Kd7')
    assert result.fen == "4k3/8/8/8/8/8/4P3/4K3 b - - 0 1"
    assert sans(result.moves) == ["Kd7"]


def test_bad_fen_header_is_fatal():
    result = parse_chess_input('[FEN "nonsense"]\n1. e4')
    assert result.error.startswith("Invalid FEN")


def test_markers_with_game():
    result = parse("[black]\n[static]\n[move: 2]\n---\n1. e4 e5 (1... c5) 2. Nf3")
    assert result.orientation == "black"
    assert result.is_static is True
    assert result.is_interactive is False
    assert result.start_move == 2
    assert tree_shape(result.moves) == ["e4", "e5", [["c5"]], "Nf3"]


def test_malformed_move_warning():
    result = parse("1. e4 Xyz e5")
    assert sans(result.moves) == ["e4", "e5"]
    assert len(result.warnings) == 1
    assert "Xyz" in result.warnings[0]
    assert "after 1 moves" in result.warnings[0]


def test_marker_precedence():
    result = parse("[white]\n[black]\n[arrow: e2e4]\n[arrow: d2d4 blue]\n1. e4")
    assert result.orientation == "black"
    assert [(a.orig, a.dest, a.color) for a in result.arrows] == [
        ("e2", "e4", None),
        ("d2", "d4", "blue"),
    ]


def test_puzzle_odd_solution_solver_moves_first():
    fen = "r1bqkb1r/pppp1ppp/2n2n2/4p2Q/2B1P3/8/PPPP1PPP/RNB1K1NR w KQkq - 4 4"
    result = parse(f'[puzzle]\n[rating: 600]\n[themes: mateIn1]\n[FEN "{fen}"]\n4. Qxf7#')
    assert result.type_ == "puzzle"
    assert result.is_editable is False
    assert result.is_interactive is False
    assert sans(result.solution_moves) == ["Qxf7#"]
    assert result.moves == []
    assert result.player_color == "white"
    assert result.orientation == "white"
    assert result.puzzle_rating == 600
    assert result.puzzle_themes == ["mateIn1"]


def test_puzzle_even_solution_opponent_moves_first():
    result = parse("[puzzle]\n1. e4 e5")
    assert result.player_color == "black"
    assert result.orientation == "black"


def test_puzzle_explicit_orientation_wins():
    result = parse("[puzzle]\n[white]\n1. e4 e5")
    assert result.player_color == "black"
    assert result.orientation == "white"


def test_puzzle_solution_ignores_variations():
    result = parse("[puzzle]\n1. e4 (1. d4) e5 2. Nf3")
    assert sans(result.solution_moves) == ["e4", "e5", "Nf3"]
    assert result.player_color == "white"


@pytest.mark.parametrize(
    "length, base_turn, expected",
    [
        (1, "white", "white"),
        (2, "white", "black"),
        (3, "black", "black"),
        (4, "black", "white"),
    ],
)
def test_get_solving_color(length, base_turn, expected):
    assert parser.get_solving_color(length, base_turn) == expected


def test_is_bare_position():
    assert parser.is_bare_position(START_FEN) is True
    assert parser.is_bare_position("1. e4") is False
    assert parser.is_bare_position(f'[FEN "{START_FEN}"]\n1. e4') is False


def test_resolve_orientation():
    black_to_move = ParsedResult(type_="fen", fen="8/8/8/8/8/8/8/K6k b - - 0 1")
    assert resolve_orientation(black_to_move, "auto") == "black"
    assert resolve_orientation(black_to_move, "white") == "white"

    game = ParsedResult()
    assert resolve_orientation(game, "auto") == "white"
    assert resolve_orientation(game, "black") == "black"

    explicit = ParsedResult(orientation="white", orientation_explicit=True, fen=black_to_move.fen)
    assert resolve_orientation(explicit, "black") == "white"

    puzzle = ParsedResult(is_puzzle=True, orientation="black")
    assert resolve_orientation(puzzle, "white") == "black"

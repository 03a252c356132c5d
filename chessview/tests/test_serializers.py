import json

import pytest

from chessview import serializers
from chessview.move_tree import build_move_tree
from chessview.navigator import Navigator
from chessview.parser import parse_chess_input
from chessview.tests import parse, tree_details, tree_shape


@pytest.mark.parametrize(
    "movetext",
    [
        "1. e4 e5 2. Nf3 Nc6 3. Bb5",
        "1. e4 {best by test} 1... e5 2. Nf3",
        "1. e4 (1. d4 d5 (1... Nf6 2. c4)) 1... e5 2. Nf3",
        "1. e4 e5 (1... c5 2. Nf3 (2. c3) 2... d6) 2. Nf3",
        "1. e4! e5?! 2. Nf3 $14 Nc6 $142",
        "1. e4 (1. d4) (1. c4 {English}) (1. Nf3) 1... e5",
        "1. d4 {[%cal Gd2d4,Rc2c4] [%csl Yd5] the queen pawn} d5",
        "1. e4 e5 2. Nf3 Nc6 3. Bb5 a6 4. Ba4 Nf6 5. O-O Be7 6. Re1 b5 7. Bb3 d6 8. c3 O-O",
    ],
)
def test_round_trip(movetext):
    tree = build_move_tree(movetext)
    serialized = serializers.serialize_movetext(tree)
    reparsed = build_move_tree(serialized)
    assert tree_shape(reparsed) == tree_shape(tree)
    assert tree_details(reparsed) == tree_details(tree)


def test_round_trip_preserves_annotations():
    tree = build_move_tree("1. d4 {[%cal Gd2d4,Rc2c4] [%csl Yd5] the queen pawn} d5")
    reparsed = build_move_tree(serializers.serialize_movetext(tree))
    original, again = tree[0].annotations, reparsed[0].annotations
    assert again.arrows == original.arrows
    assert again.circles == original.circles


def test_movetext_numbering():
    tree = build_move_tree("1. e4 e5 (1... c5 2. Nf3) 2. Nf3 {develop} Nc6")
    assert serializers.serialize_movetext(tree) == (
        "1. e4 e5 (1... c5 2. Nf3) 2. Nf3 {develop} 2... Nc6"
    )


def test_movetext_nags():
    tree = build_move_tree("1. e4 $1 e5 $14 2. Nf3 $142")
    assert serializers.serialize_movetext(tree) == "1. e4! e5 $14 2. Nf3 $142"


def test_movetext_from_black_to_move_position():
    fen = "4k3/8/8/8/8/8/4P3/4K3 b - - 0 12"
    tree = build_move_tree("12... Kd7 13. e4", start_fen=fen)
    assert serializers.serialize_movetext(tree, fen) == "12... Kd7 13. e4"


def test_movetext_empty():
    assert serializers.serialize_movetext([]) == ""


def test_wrong_marker_comment_not_exported():
    tree = build_move_tree("1. e4 e5")
    tree[1].comment = serializers.WRONG_MOVE_COMMENT
    assert serializers.serialize_movetext(tree) == "1. e4 e5"


def test_clipboard_text_for_position():
    result = parse("8/8/8/8/8/8/8/K6k")
    assert serializers.get_clipboard_text(result) == "8/8/8/8/8/8/8/K6k w - - 0 1"


def test_clipboard_text_for_game_with_headers():
    result = parse('[White "Morphy"]\n[Result "1-0"]\n\n1. e4 e5 1-0')
    assert serializers.get_clipboard_text(result) == (
        '[White "Morphy"]\n[Result "1-0"]\n\n1. e4 e5 1-0'
    )


def test_clipboard_text_for_game_without_headers():
    result = parse("1. e4 e5 (1... c5)")
    assert serializers.get_clipboard_text(result) == "1. e4 e5 (1... c5)"


def test_clipboard_text_includes_user_moves():
    result = parse("1. e4 e5 2. Nc3")
    navigator = Navigator(result)
    navigator.go_to_move(2)
    navigator.handle_user_move("g1", "f3")
    assert serializers.get_clipboard_text(result, navigator) == "1. e4 e5 2. Nc3 (2. Nf3)"


def test_clipboard_text_for_puzzle():
    result = parse("[puzzle]\n1. e4 e5 2. Nf3")
    assert serializers.get_clipboard_text(result) == "1. e4 e5 2. Nf3"


def test_serialize_move():
    tree = build_move_tree("1. Nf3!? {<b>flexible</b> [%cal Gg1f3]} (1. d4)")
    data = serializers.serialize_move(tree[0], notation="figurine")
    assert data["san"] == "Nf3"
    assert data["display_san"] == "♘f3"
    assert data["from"] == "g1"
    assert data["to"] == "f3"
    assert data["nag"] == "$5"
    assert data["nag_symbol"] == "!?"
    assert data["nag_label"] == "Interesting move"
    assert "<b>" not in data["comment"]
    assert "flexible" in data["comment"]
    assert data["shapes"] == [{"orig": "g1", "dest": "f3", "brush": "green"}]
    assert [m["san"] for m in data["variations"][0]] == ["d4"]


def test_serialize_result_is_json_ready():
    result = parse("[flip]\n[circle: e4 red]\n[highlight: d5]\n1. e4 {center} d5")
    data = serializers.serialize_result(result, notation="letter")
    json.dumps(data)
    assert data["type"] == "game"
    assert data["orientation"] == "black"
    assert [m["san"] for m in data["moves"]] == ["e4", "d5"]
    assert data["shapes"] == [{"orig": "e4", "dest": None, "brush": "red"}]
    assert data["highlights"] == [{"orig": "d5", "dest": None, "brush": "yellow"}]
    assert "lichess" in data["analysis_urls"]
    assert "puzzle" not in data


def test_serialize_puzzle_result():
    result = parse("[puzzle]\n[title: Open game]\n1. e4 e5")
    data = serializers.serialize_result(result)
    assert data["puzzle"]["player_color"] == "black"
    assert data["puzzle"]["title"] == "Open game"
    assert [m["san"] for m in data["puzzle"]["solution"]] == ["e4", "e5"]


def test_serialize_error_result():
    data = serializers.serialize_result(parse_chess_input(""))
    assert data["error"] == "No position or move data"
    assert "analysis_urls" not in data

import chess

from chessview.models import Line
from chessview.parser import parse_chess_input


def sans(line: Line) -> list[str]:
    return [node.san for node in line]


def tree_shape(line: Line):
    """
    Nested SAN structure of a tree, handy for comparing two trees:

        1. e4 (1. d4 d5) e5  ➤  ["e4", [["d4", "d5"]], "e5"]

    A node's variations follow it as a list only when it has any.
    """
    shape = []
    for node in line:
        shape.append(node.san)
        if node.variations:
            shape.append([tree_shape(variation) for variation in node.variations])
    return shape


def tree_details(line: Line):
    """like tree_shape but with nag and comment for every node"""
    details = []
    for node in line:
        details.append((node.san, node.nag, node.comment))
        if node.variations:
            details.append([tree_details(variation) for variation in node.variations])
    return details


def fen_after(moves: str, fen=None) -> str:
    board = chess.Board(fen) if fen else chess.Board()
    for san in moves.split():
        board.push_san(san)
    return board.fen()


def parse(source: str):
    result = parse_chess_input(source)
    assert result.error is None, result.error
    return result

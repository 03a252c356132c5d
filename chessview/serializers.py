from typing import Optional

from chessview import settings
from chessview.annotations import ANNOTATION_COLORS, nag_definition, nag_to_pgn
from chessview.board import (
    Shape,
    annotation_shapes,
    get_auto_shapes,
    get_highlight_shapes,
)
from chessview.models import Line, MoveAnnotation, MoveNode, ParsedResult
from chessview.util import (
    START_FEN,
    format_san,
    get_analysis_urls,
    get_move_index_from_fen,
    get_turn_from_fen,
    strip_all_html,
)

__all__ = [
    "format_san",
    "get_clipboard_text",
    "serialize_move",
    "serialize_movetext",
    "serialize_result",
]

# comment value used to mark a wrong puzzle attempt; never exported
WRONG_MOVE_COMMENT = "wrong"

PGN_RESULTS = ("1-0", "0-1", "1/2-1/2", "*")

_COLOR_LETTERS = {
    name: letter for letter, name in ANNOTATION_COLORS.items() if len(letter) == 1
}


def _start_ply(fen: Optional[str]) -> int:
    try:
        return get_move_index_from_fen(fen or START_FEN)
    except ValueError:
        return 1 if get_turn_from_fen(fen) == "black" else 0


def _directive_text(annotation: Optional[MoveAnnotation]) -> str:
    if annotation is None:
        return ""
    directives = []
    if annotation.arrows:
        entries = [
            f"{_COLOR_LETTERS.get(a.color, 'G')}{a.orig}{a.dest}"
            for a in annotation.arrows
        ]
        directives.append(f"[%cal {','.join(entries)}]")
    if annotation.circles:
        entries = [
            f"{_COLOR_LETTERS.get(c.color, 'G')}{c.square}"
            for c in annotation.circles
        ]
        directives.append(f"[%csl {','.join(entries)}]")
    return " ".join(directives)


def _comment_text(node: MoveNode) -> str:
    comment = node.comment if node.comment != WRONG_MOVE_COMMENT else ""
    parts = (comment, _directive_text(node.annotations))
    return " ".join(part for part in parts if part)


def _serialize_line(line: Line, ply: int) -> list[str]:
    parts = []
    needs_number = True  # black's moves need "N..." after a break

    for node in line:
        number = ply // 2 + 1
        if ply % 2 == 0:
            parts.append(f"{number}.")
        elif needs_number:
            parts.append(f"{number}...")
        needs_number = False

        nag = nag_to_pgn(node.nag) if node.nag else ""
        if nag.startswith("$"):
            parts.extend([node.san, nag])
        else:
            parts.append(node.san + nag)

        if comment := _comment_text(node):
            parts.append(f"{{{comment}}}")
            needs_number = True

        for variation in node.variations:
            parts.append(f"({' '.join(_serialize_line(variation, ply))})")
            needs_number = True

        ply += 1

    return parts


def serialize_movetext(line: Line, start_fen: Optional[str] = None) -> str:
    """
    PGN move text for a tree, e.g.

        1. e4 {best by test} (1. d4 d5) 1... e5 2. Nf3!

    Variations follow the move they replace and share its move number.
    """
    return " ".join(_serialize_line(line, _start_ply(start_fen)))


def get_clipboard_text(result: ParsedResult, navigator=None) -> str:
    """
    Export text: a bare position is its FEN; games get their headers, a
    blank line and the move text, including moves added while browsing.
    """
    if result.type_ == "fen":
        return result.fen or ""

    if result.is_puzzle:
        moves = result.solution_moves
    else:
        moves = navigator.root if navigator is not None else result.moves

    movetext = serialize_movetext(moves, result.fen)
    if (game_result := result.headers.get("Result")) in PGN_RESULTS:
        movetext = f"{movetext} {game_result}".strip()

    if not result.headers:
        return movetext

    headers = "\n".join(f'[{key} "{value}"]' for key, value in result.headers.items())
    return f"{headers}\n\n{movetext}"


def serialize_shape(shape: Shape) -> dict:
    return {"orig": shape.orig, "dest": shape.dest, "brush": shape.brush}


def serialize_move(node: MoveNode, notation: Optional[str] = None) -> dict:
    notation = notation or settings.NOTATION_TYPE
    definition = nag_definition(node.nag)
    return {
        "san": node.san,
        "display_san": format_san(node.san, notation),
        "from": node.from_square,
        "to": node.to_square,
        "fen": node.fen,
        "nag": node.nag,
        "nag_symbol": definition.symbol if definition else node.nag,
        "nag_label": definition.label if definition else None,
        "nag_class": definition.css_class if definition else None,
        "comment": strip_all_html(node.comment) if node.comment else None,
        "shapes": [serialize_shape(s) for s in annotation_shapes(node.annotations)],
        "variations": [
            [serialize_move(child, notation) for child in variation]
            for variation in node.variations
        ],
    }


def serialize_result(result: ParsedResult, notation: Optional[str] = None) -> dict:
    """JSON-ready payload of a parsed block for a UI collaborator."""
    data = {
        "type": result.type_,
        "error": result.error,
        "warnings": list(result.warnings),
        "fen": result.fen,
        "orientation": result.orientation,
        "is_static": result.is_static,
        "is_editable": result.is_editable,
        "is_puzzle": result.is_puzzle,
        "debug": result.debug,
        "start_move": result.start_move,
        "headers": dict(result.headers),
        "moves": [serialize_move(node, notation) for node in result.moves],
        "shapes": [serialize_shape(s) for s in get_auto_shapes(result)],
        "highlights": [serialize_shape(s) for s in get_highlight_shapes(result)],
    }

    if result.is_puzzle:
        data["puzzle"] = {
            "player_color": result.player_color,
            "rating": result.puzzle_rating,
            "themes": list(result.puzzle_themes),
            "title": result.puzzle_title,
            "solution": [
                serialize_move(node, notation) for node in result.solution_moves
            ],
        }

    if not result.error:
        data["analysis_urls"] = get_analysis_urls(result)

    return data

import logging
from dataclasses import dataclass
from typing import Optional

from chessview.annotations import (
    extract_comment_annotations,
    resolve_nag,
    split_inline_glyph,
)
from chessview.engine import ChessEngine
from chessview.models import Line, MoveAnnotation, MoveNode
from chessview.tokenizer import Token, tokenize
from chessview.util import START_FEN

logger = logging.getLogger(__name__)


@dataclass
class StackFrame:
    engine: ChessEngine
    line: Line
    start_fen: str  # position before the first move of `line`
    parent_line: Optional[Line] = None
    branch_index: int = -1  # parent_line[branch_index] owns this variation


@dataclass
class Pending:
    """comment/annotation/nag seen before the first move of a line"""

    comment: Optional[str] = None
    annotations: Optional[MoveAnnotation] = None
    nag: Optional[str] = None

    def clear(self):
        self.comment = None
        self.annotations = None
        self.nag = None


def append_comment(existing: Optional[str], text: str) -> Optional[str]:
    if not text:
        return existing
    return f"{existing} {text}" if existing else text


def merge_annotations(
    existing: Optional[MoveAnnotation], incoming: MoveAnnotation
) -> Optional[MoveAnnotation]:
    if incoming.is_empty:
        return existing
    return existing.merge(incoming) if existing else incoming


class TreeBuilder:
    """
    Builds a move tree from tokens, playing every move on a legality
    engine. Each variation gets its own engine, loaded from the position
    before the move it branches from, so branches never share state.

    Illegal moves become warnings and are left out; unbalanced parens are
    tolerated (extra closes ignored, unclosed variations closed at the end).
    """

    def __init__(self, start_fen: Optional[str] = None):
        self.start_fen = start_fen or START_FEN
        self.root: Line = []
        self.stack = [
            StackFrame(
                engine=ChessEngine(self.start_fen),
                line=self.root,
                start_fen=self.start_fen,
            )
        ]
        self.pending = Pending()
        self.warnings: list[str] = []
        self.move_count = 0
        self.skip_depth = 0  # inside a variation that has nothing to branch from

    @property
    def current(self) -> StackFrame:
        return self.stack[-1]

    def build(self, tokens: list[Token]) -> Line:
        handlers = {
            "move": self.handle_move,
            "comment": self.handle_comment,
            "nag": self.handle_nag,
            "open_variation": self.handle_open_variation,
            "close_variation": self.handle_close_variation,
        }
        for token in tokens:
            if self.skip_depth:
                self.skip_token(token)
            else:
                handlers[token.type_](token)

        if len(self.stack) > 1:
            logger.debug("Closing %s unterminated variation(s)", len(self.stack) - 1)
        while len(self.stack) > 1:
            self.close_frame()

        return self.root

    def handle_move(self, token: Token):
        text, inline_nag = split_inline_glyph(token.data)
        record = self.current.engine.move(text, sloppy=True)
        if record is None:
            message = f'Skipped invalid move "{text}" after {self.move_count} moves'
            logger.warning(message)
            self.warnings.append(message)
            return

        node = MoveNode(
            san=record.san,
            from_square=record.from_square,
            to_square=record.to_square,
            fen=self.current.engine.fen(),
            comment=self.pending.comment,
            nag=self.pending.nag,
            annotations=self.pending.annotations,
        )
        if inline_nag:
            node.nag = inline_nag

        self.current.line.append(node)
        self.pending.clear()
        self.move_count += 1

    def handle_comment(self, token: Token):
        text, annotation = extract_comment_annotations(token.data)
        line = self.current.line
        if line:
            node = line[-1]
            node.comment = append_comment(node.comment, text)
            node.annotations = merge_annotations(node.annotations, annotation)
        else:
            self.pending.comment = append_comment(self.pending.comment, text)
            self.pending.annotations = merge_annotations(
                self.pending.annotations, annotation
            )

    def handle_nag(self, token: Token):
        code = resolve_nag(token.data)
        if not code:
            return
        line = self.current.line
        if line:
            line[-1].nag = code
        else:
            self.pending.nag = code

    def handle_open_variation(self, token: Token):
        frame = self.current
        if not frame.line:
            logger.debug("Variation opened before any move; skipping it")
            self.skip_depth = 1
            return

        branch_index = len(frame.line) - 1
        if branch_index > 0:
            branch_fen = frame.line[branch_index - 1].fen
        else:
            branch_fen = frame.start_fen

        self.stack.append(
            StackFrame(
                engine=ChessEngine(branch_fen),
                line=[],
                start_fen=branch_fen,
                parent_line=frame.line,
                branch_index=branch_index,
            )
        )
        self.pending.clear()

    def handle_close_variation(self, token: Token):
        if len(self.stack) == 1:
            logger.debug("Unbalanced closing paren; ignoring")
            return
        self.close_frame()

    def skip_token(self, token: Token):
        if token.type_ == "open_variation":
            self.skip_depth += 1
        elif token.type_ == "close_variation":
            self.skip_depth -= 1

    def close_frame(self):
        frame = self.stack.pop()
        if frame.line:
            frame.parent_line[frame.branch_index].variations.append(frame.line)
        self.pending.clear()


def build_move_tree(
    text: str, start_fen: Optional[str] = None, warnings: Optional[list[str]] = None
) -> Line:
    builder = TreeBuilder(start_fen)
    root = builder.build(tokenize(text))
    if warnings is not None:
        warnings.extend(builder.warnings)
    return root


def parse_flat_moves(
    text: str, start_fen: Optional[str] = None, warnings: Optional[list[str]] = None
) -> Line:
    """
    Single-line parse (puzzle solutions): the main line of the tree with
    all variations dropped.
    """
    root = build_move_tree(text, start_fen, warnings)
    return [
        MoveNode(
            san=node.san,
            from_square=node.from_square,
            to_square=node.to_square,
            fen=node.fen,
            comment=node.comment,
            nag=node.nag,
            annotations=node.annotations,
        )
        for node in root
    ]


def find_line_path(root: Line, target: Line) -> Optional[list[tuple[Line, int]]]:
    """
    Path of (line, node_index) branch points leading from root to target;
    [] when target is root, None if target isn't in the tree.
    """
    if root is target:
        return []
    for index, node in enumerate(root):
        for variation in node.variations:
            path = find_line_path(variation, target)
            if path is not None:
                return [(root, index)] + path
    return None

from dataclasses import dataclass, field
from typing import Literal, Optional

Color = Literal["white", "black"]


@dataclass
class Arrow:
    orig: str
    dest: str
    color: Optional[str] = None


@dataclass
class Circle:
    square: str
    color: Optional[str] = None


@dataclass
class Highlight:
    square: str
    color: Optional[str] = None


@dataclass
class MoveAnnotation:
    arrows: list[Arrow] = field(default_factory=list)
    circles: list[Circle] = field(default_factory=list)
    highlights: list[Highlight] = field(default_factory=list)

    @property
    def is_empty(self):
        return not (self.arrows or self.circles or self.highlights)

    def merge(self, other: Optional["MoveAnnotation"]) -> "MoveAnnotation":
        """Concatenate overlay lists; neither side is modified."""
        if other is None:
            return MoveAnnotation(
                list(self.arrows), list(self.circles), list(self.highlights)
            )
        return MoveAnnotation(
            arrows=self.arrows + other.arrows,
            circles=self.circles + other.circles,
            highlights=self.highlights + other.highlights,
        )


@dataclass(eq=False)
class MoveNode:
    """
    One ply of a game tree.

    `variations` are alternatives to *this* move: each one starts from the
    position before this node, so `variations[i][0]` and this node are
    siblings. Nodes compare by identity; use `san` to compare moves.
    """

    san: str
    from_square: str
    to_square: str
    fen: str
    comment: Optional[str] = None
    nag: Optional[str] = None  # normalized "$N" code
    annotations: Optional[MoveAnnotation] = None
    variations: list[list["MoveNode"]] = field(default_factory=list)

    def __str__(self):
        return f"{self.san} {self.nag or ''} {{{self.comment or ''}}} V{len(self.variations)}"  # noqa: E501


# one linear sequence of moves sharing a branch point (main line or variation)
Line = list[MoveNode]


@dataclass
class ParsedResult:
    type_: Literal["game", "puzzle", "fen"] = "game"
    fen: Optional[str] = None  # start position override, or the bare position
    pgn: Optional[str] = None  # raw move text
    moves: Line = field(default_factory=list)
    orientation: Color = "white"
    orientation_explicit: bool = False
    is_static: bool = False
    is_editable: bool = True
    is_puzzle: bool = False
    debug: bool = False
    player_color: Color = "white"
    solution_moves: Line = field(default_factory=list)
    puzzle_rating: Optional[int] = None
    puzzle_themes: list[str] = field(default_factory=list)
    puzzle_title: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    arrows: list[Arrow] = field(default_factory=list)
    circles: list[Circle] = field(default_factory=list)
    highlights: list[Highlight] = field(default_factory=list)
    start_move: int = 0
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def is_interactive(self):
        return self.is_editable and not self.is_static and not self.is_puzzle

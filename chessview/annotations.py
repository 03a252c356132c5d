import re
from collections import namedtuple
from typing import Optional

from chessview.models import Arrow, Circle, MoveAnnotation

NagDefinition = namedtuple(
    "NagDefinition", ["code", "symbol", "inline", "label", "css_class"]
)

# NAG = Numeric Annotation Glyphs (PGN supports either NAG numbers or glyphs)
# fmt: off
NAG_DEFINITIONS = (
    NagDefinition("$1", "!", "!", "Great move", "nag-good"),
    NagDefinition("$2", "?", "?", "Mistake", "nag-mistake"),
    NagDefinition("$3", "!!", "!!", "Brilliant move", "nag-brilliant"),
    NagDefinition("$4", "??", "??", "Blunder", "nag-blunder"),
    NagDefinition("$5", "!?", "!?", "Interesting move", "nag-interesting"),
    NagDefinition("$6", "?!", "?!", "Inaccuracy", "nag-inaccuracy"),
    NagDefinition("$7", "□", None, "Forced move", "nag-forced"),
    NagDefinition("$9", "✕", None, "Miss", "nag-miss"),
    NagDefinition("$10", "=", None, "Equal position", "nag-equal"),
    NagDefinition("$13", "∞", None, "Unclear position", "nag-unclear"),
    NagDefinition("$14", "⩲", None, "White is slightly better", "nag-white-slight"),
    NagDefinition("$15", "⩱", None, "Black is slightly better", "nag-black-slight"),
    NagDefinition("$16", "±", None, "White is better", "nag-white-better"),
    NagDefinition("$17", "∓", None, "Black is better", "nag-black-better"),
    NagDefinition("$18", "+−", None, "White is winning", "nag-white-winning"),
    NagDefinition("$19", "−+", None, "Black is winning", "nag-black-winning"),
)
# fmt: on

NAG_BY_CODE = {nag.code: nag for nag in NAG_DEFINITIONS}
NAG_BY_INLINE = {nag.inline: nag for nag in NAG_DEFINITIONS if nag.inline}
NAG_BY_SYMBOL = {nag.symbol: nag for nag in NAG_DEFINITIONS}

ANNOTATION_COLORS = {
    "R": "red",
    "G": "green",
    "B": "blue",
    "Y": "yellow",
    "O": "orange",
    "P": "purple",
    "red": "red",
    "green": "green",
    "blue": "blue",
    "yellow": "yellow",
    "orange": "orange",
    "purple": "purple",
}
DEFAULT_DIRECTIVE_COLOR = "green"

_NAG_CODE_RE = re.compile(r"^\$(\d+)$")
_INLINE_GLYPH_RE = re.compile(r"[!?]+$")

# [%cal Gg4f3,Rc1h6] arrows, [%csl Rf3,Yd4] circles; anything else like
# [%clk 0:03:00] is stripped from the readable comment
_CAL_RE = re.compile(r"\[%cal\s+([^\]]+)\]", re.IGNORECASE)
_CSL_RE = re.compile(r"\[%csl\s+([^\]]+)\]", re.IGNORECASE)
_DIRECTIVE_RE = re.compile(r"\[%[a-zA-Z]+[^\]]*\]")
_ARROW_ENTRY_RE = re.compile(r"^([a-zA-Z]?)([a-h][1-8])([a-h][1-8])$", re.IGNORECASE)
_CIRCLE_ENTRY_RE = re.compile(r"^([a-zA-Z]?)([a-h][1-8])$", re.IGNORECASE)


def resolve_nag(nag: str) -> Optional[str]:
    """
    Normalize a NAG given as "$N", an inline suffix ("!?") or a display
    symbol ("±") to its "$N" code. Unknown numeric codes are kept (minus
    leading zeros) so they survive a round trip; anything else is None.
    """
    nag = (nag or "").strip()
    if m := _NAG_CODE_RE.match(nag):
        return f"${int(m.group(1))}"
    if definition := NAG_BY_INLINE.get(nag) or NAG_BY_SYMBOL.get(nag):
        return definition.code
    return None


def nag_definition(code: Optional[str]) -> Optional[NagDefinition]:
    return NAG_BY_CODE.get(code) if code else None


def nag_to_pgn(code: str) -> str:
    """inline glyph if the code has one, otherwise $N"""
    definition = NAG_BY_CODE.get(code)
    if definition and definition.inline:
        return definition.inline
    return code


def split_inline_glyph(token: str) -> tuple[str, Optional[str]]:
    """
    Split e.g. "Nf3!?" into ("Nf3", "$5"). Only the accepted one and two
    character suffixes resolve; a longer run of !/? is still stripped.
    """
    m = _INLINE_GLYPH_RE.search(token)
    if not m:
        return token, None
    suffix = m.group()
    code = NAG_BY_INLINE[suffix].code if suffix in NAG_BY_INLINE else None
    return token[: m.start()], code


def resolve_color(name: Optional[str]) -> Optional[str]:
    """Marker color words; unknown names are passed through as given."""
    if not name:
        return None
    return (
        ANNOTATION_COLORS.get(name)
        or ANNOTATION_COLORS.get(name.lower())
        or ANNOTATION_COLORS.get(name.upper())
        or name
    )


def _directive_color(letter: str) -> str:
    return ANNOTATION_COLORS.get(letter.upper(), DEFAULT_DIRECTIVE_COLOR)


def parse_comment_annotations(comment: str) -> MoveAnnotation:
    annotation = MoveAnnotation()

    if cal := _CAL_RE.search(comment):
        for entry in cal.group(1).split(","):
            if m := _ARROW_ENTRY_RE.match(entry.strip()):
                annotation.arrows.append(
                    Arrow(
                        orig=m.group(2).lower(),
                        dest=m.group(3).lower(),
                        color=_directive_color(m.group(1)),
                    )
                )

    if csl := _CSL_RE.search(comment):
        for entry in csl.group(1).split(","):
            if m := _CIRCLE_ENTRY_RE.match(entry.strip()):
                annotation.circles.append(
                    Circle(
                        square=m.group(2).lower(),
                        color=_directive_color(m.group(1)),
                    )
                )

    return annotation


def extract_comment_annotations(comment: str) -> tuple[str, MoveAnnotation]:
    """
    Pull Lichess/ChessBase-style directives out of comment text:
      - [%cal ...] => arrows
      - [%csl ...] => circles
    Returns (readable_text, annotation). Other directives (clk, eval, ...)
    are removed from the text but otherwise ignored.
    """
    if not comment:
        return "", MoveAnnotation()

    annotation = parse_comment_annotations(comment)
    text = _DIRECTIVE_RE.sub("", comment)
    text = re.sub(r"\s+", " ", text).strip()
    return text, annotation

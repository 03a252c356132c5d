import logging
import re
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

HEADER_RE = re.compile(r'\[(\w+)\s+"([^"]*)"\]')
RESULT_RE = re.compile(r"\s*(1-0|0-1|1/2-1/2|\*)\s*$")
COMMENT_RE = re.compile(r"\{[^}]*\}")
# comments come first so a bracketed pair inside braces is left alone
_COMMENT_OR_HEADER_RE = re.compile(f"{COMMENT_RE.pattern}|{HEADER_RE.pattern}")

MOVE_DELIMITERS = set("{}()$;")


@dataclass
class Token:
    type_: Literal["move", "comment", "nag", "open_variation", "close_variation"]
    data: str = ""

    def __str__(self):
        return f"{self.type_}({self.data})" if self.data else self.type_


def find_headers(text: str) -> list[tuple[str, str]]:
    """[Key "value"] pairs outside {comments}"""
    return [
        (m.group(1), m.group(2))
        for m in _COMMENT_OR_HEADER_RE.finditer(text)
        if m.group(1)
    ]


def strip_headers(text: str) -> str:
    return _COMMENT_OR_HEADER_RE.sub(
        lambda m: "" if m.group(1) else m.group(0), text
    )


def strip_result(text: str) -> str:
    return RESULT_RE.sub("", text)


def _strip_escaped_lines(text: str) -> str:
    # PGN escape mechanism: lines starting with % are ignored
    return "\n".join(line for line in text.split("\n") if not line.startswith("%"))


def tokenize(text: str) -> list[Token]:
    """
    Lex move text into moves, comments, nags and variation open/close.

    Move numbers ("1.", "12...") are dropped. Anything unrecognized is
    skipped; so is an unterminated "{" along with the rest of its line.
    Nesting isn't tracked here: every paren is its own token.
    """
    text = strip_result(strip_headers(_strip_escaped_lines(text)))

    tokens = []
    i = 0
    end = len(text)

    while i < end:
        c = text[i]

        if c.isspace():
            i += 1

        elif c == "{":
            close = text.find("}", i + 1)
            if close == -1:
                newline = text.find("\n", i + 1)
                logger.debug(
                    "Unterminated comment at index %s: %s", i, text[i : i + 30]
                )
                i = end if newline == -1 else newline + 1
                continue
            tokens.append(Token("comment", text[i + 1 : close]))  # noqa: E203
            i = close + 1

        elif c == ";":
            # rest-of-line comment
            newline = text.find("\n", i + 1)
            stop = end if newline == -1 else newline
            tokens.append(Token("comment", text[i + 1 : stop]))  # noqa: E203
            i = stop

        elif c == "$":
            m = re.match(r"\$\d+", text[i:])
            if m:
                tokens.append(Token("nag", m.group()))
                i += m.end()
            else:
                i += 1

        elif c == "(":
            tokens.append(Token("open_variation"))
            i += 1

        elif c == ")":
            tokens.append(Token("close_variation"))
            i += 1

        elif c.isdigit():
            # move number with dots, castling with zeros, or stray digits
            m = re.match(r"\d+\.+", text[i:])
            if m:
                i += m.end()
            elif text.startswith(("0-0", "0-O"), i):
                i = _read_move(text, i, tokens)
            else:
                i = _skip_word(text, i)

        elif c.isascii() and c.isalpha():
            i = _read_move(text, i, tokens)

        else:
            i += 1

    return tokens


def _skip_word(text: str, i: int) -> int:
    while i < len(text) and not text[i].isspace() and text[i] not in MOVE_DELIMITERS:
        i += 1
    return i


def _read_move(text: str, start: int, tokens: list[Token]) -> int:
    i = _skip_word(text, start)
    tokens.append(Token("move", text[start:i]))
    return i

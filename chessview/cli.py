import argparse
import json
import logging
import sys

from chessview import settings
from chessview.parser import parse_chess_input
from chessview.serializers import get_clipboard_text, serialize_result
from chessview.util import get_analysis_urls


def read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chessview",
        description="Parse chess blocks (markers + FEN or PGN) for display.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log parser diagnostics to stderr.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Print the parsed block as JSON.")
    parse_cmd.add_argument(
        "--notation",
        choices=("figurine", "letter"),
        default=settings.NOTATION_TYPE,
        help="How SAN is rendered in display fields.",
    )
    parse_cmd.add_argument("--indent", type=int, default=2)

    subparsers.add_parser("export", help="Print the block as PGN (or FEN).")
    subparsers.add_parser("analysis-url", help="Print Lichess and Chess.com links.")

    for subparser in subparsers.choices.values():
        subparser.add_argument("source", help="Block file, or - for stdin.")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.DEBUG else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        source = read_source(args.source)
    except OSError as e:
        print(f"❌ Could not read {args.source}: {e}", file=sys.stderr)
        return 1

    result = parse_chess_input(source)
    if result.error:
        print(f"❌ {result.error}", file=sys.stderr)
        return 1

    if args.command == "parse":
        data = serialize_result(result, notation=args.notation)
        print(json.dumps(data, indent=args.indent, ensure_ascii=False))
    elif args.command == "export":
        print(get_clipboard_text(result))
    elif args.command == "analysis-url":
        for site, url in get_analysis_urls(result).items():
            print(f"{site}: {url}")

    return 0


if __name__ == "__main__":
    sys.exit(main())

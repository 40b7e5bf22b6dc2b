#!/usr/bin/env python3
"""
CLI interface for lampstand.

    lampstand John 3:16
    lampstand --asv Ps 23
    lampstand search "love one another" -l 5 --book 1jn
    lampstand books
"""

import argparse
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .config import Settings, configure_logging
from .engine import BibleEngine, create_engine
from .errors import IndexUnavailable, LampstandError
from .utils.links import reference_url
from .utils.types import ScoredResult

COMMANDS = ("search", "books")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lampstand",
        description="Look up Bible passages by reference or search them by keyword.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("words", nargs="*", help="A reference, or 'search <query>', or 'books'")
    parser.add_argument("-l", "--limit", type=int, default=None, help="Number of search results")
    parser.add_argument("--book", default=None, help="Restrict search to one book")
    parser.add_argument("-t", "--translation", default=None, help="Translation id (default: LAMPSTAND_TRANSLATION)")
    parser.add_argument("--kjv", dest="translation", action="store_const", const="kjv", help="Use the KJV")
    parser.add_argument("--asv", dest="translation", action="store_const", const="asv", help="Use the ASV")
    parser.add_argument("--url", action="store_true", help="Print a biblia.com link for each verse")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return parser


def print_passage(results: List[ScoredResult], translation: str, show_url: bool) -> None:
    for r in results:
        print(f"{r.reference}  {r.text}")
        if show_url:
            print(f"    {reference_url(r.reference, translation)}")


def print_hits(results: List[ScoredResult], translation: str, show_url: bool) -> None:
    if not results:
        print("No matching verses.")
        return
    for r in results:
        print(f"{r.rank:>3}. {r.reference} [{r.score:.2f}]  {r.text}")
        if show_url:
            print(f"     {reference_url(r.reference, translation)}")


def run(engine: BibleEngine, args: argparse.Namespace) -> None:
    translation = (args.translation or engine.settings.translation).lower()
    command, rest = (args.words[0], args.words[1:]) if args.words[0] in COMMANDS else (None, args.words)

    if command == "books":
        for info in engine.list_books(translation):
            print(f"{info['name']:<16} {info['chapter_count']:>4} chapters {info['verse_count']:>6} verses")
    elif command == "search":
        results = engine.search(" ".join(rest), args.limit, translation, args.book)
        print_hits(results, translation, args.url)
    else:
        results = engine.lookup(" ".join(rest), translation)
        print_passage(results, translation, args.url)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)
    if not args.words:
        parser.print_usage(sys.stderr)
        return 1

    try:
        settings = Settings.from_env()
        configure_logging("INFO" if args.verbose else settings.log_level)
        engine = create_engine(settings)
        run(engine, args)
    except IndexUnavailable as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except LampstandError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

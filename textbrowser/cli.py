"""Command-line front door for textbrowser.

Parses CLI options, builds a browser session from the persisted config, and
prints each requested location as formatted text.
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
from collections.abc import Sequence
from dataclasses import replace

from .config import load_browser_config
from .elements import Link
from .page import Page
from .session import Session
from .syntax import DEFAULT_STYLE


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _default_render_width() -> int:
    """Resolve default page width from current terminal size."""
    term = shutil.get_terminal_size((80, 24))
    return max(1, term.columns)


def link_references(page: Page) -> list[str]:
    """Numbered list of the page's link targets, in reading order."""
    out = ["", "References", ""]
    number = 0
    for element in page.links:
        target = page.element_target(element) if isinstance(element, Link) else None
        if not isinstance(target, str):
            continue
        number += 1
        out.append(f"{number:4d}. {target}")
    return out if number else []


def render_page(page: Page, *, links: bool = False) -> str:
    lines = page.lines()
    if links:
        lines.extend(link_references(page))
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="textbrowser",
        description="Render web pages, local files and browser listings as addressable text.",
    )
    parser.add_argument(
        "locations",
        nargs="*",
        help="URIs, file paths, bookmark nicknames or search words. Defaults to the home page.",
    )
    parser.add_argument(
        "--width",
        type=_positive_int,
        default=None,
        help="Column width for formatted output (default: terminal width).",
    )
    parser.add_argument("--no-wrap", action="store_true", help="Do not break long lines.")
    parser.add_argument("--headers", action="store_true", help="Append the document header panel.")
    parser.add_argument("--links", action="store_true", help="Append a numbered list of link targets.")
    parser.add_argument("--source", action="store_true", help="Print the page source instead of the formatted text.")
    parser.add_argument("--style", default=DEFAULT_STYLE, help="Pygments style name for --source.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument("--history", action="store_true", help="Print the browsing history and exit.")
    parser.add_argument(
        "--bookmarks",
        nargs="?",
        const="",
        default=None,
        metavar="BOOK",
        help="Print a bookmark file (default: the current one) and exit.",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Log more detail to stderr.")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def main(argv: Sequence[str] | None = None, session: Session | None = None) -> None:
    """Parse CLI arguments and print each location.

    ``session`` is primarily for tests; when omitted one is built from the
    persisted config with width and wrapping taken from the options.
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    if session is None:
        config = load_browser_config()
        config = replace(
            config,
            width=args.width if args.width is not None else _default_render_width(),
            break_lines=config.break_lines and not args.no_wrap,
        )
        session = Session(config)

    if args.history:
        locations = ["history://"]
    elif args.bookmarks is not None:
        locations = [f"bookmarks://{args.bookmarks or session.bookmarks.current}"]
    else:
        locations = [" ".join(args.locations)] if args.locations else [None]

    no_color = args.no_color or not sys.stdout.isatty()
    failed = False
    try:
        for location in locations:
            page = session.browse(location)
            if page is None:
                failed = failed or session.last_error is not None
                continue
            if args.headers:
                session.add_header()
            if args.source:
                sys.stdout.write(session.view_source(args.style, no_color))
            else:
                sys.stdout.write(render_page(page, links=args.links))
    finally:
        session.shutdown()
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()

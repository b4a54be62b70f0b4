"""Content-type dispatch: response bodies to page text and registries.

``FORMATTERS`` maps a MIME type to a function ``(response, context) ->
FormatResult``. HTML goes through the layout engine; plain text and known
source types are split into lines; the synthetic ``history`` and
``bookmarks`` types render the session's own listings.
"""

from __future__ import annotations

import bz2
import codecs
import gzip
import logging
import lzma
import re
import zlib
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from .bookmarks import BookmarkShelf, resolve_location
from .elements import LineRegistry, Link
from .errors import BrowserError, EncodingError, UnsupportedContentType
from .fetch import Response
from .forms import Form, parse_forms
from .history import History
from .layout import LayoutOptions, layout
from .syntax import file_type_for_mimetype, knows_mimetype, source_mimetypes

logger = logging.getLogger(__name__)

HISTORY_TYPE = "history"
BOOKMARKS_TYPE = "bookmarks"
FALLBACK_ENCODING = "iso-8859-1"
HTML_SYNTAX = "textbrowser"
LISTING_SYNTAX = "textbrowserListing"
META_FIELDS = ("keywords", "description")

_META_CHARSET_RE = re.compile(rb"""<meta[^>]+charset\s*=\s*["']?([\w.:-]+)""", re.IGNORECASE)


@dataclass
class FormatContext:
    width: int = 80
    break_lines: bool = True
    assumed_encoding: str = "utf-8"
    sidebar_width: int = 25
    history: History | None = None
    bookmarks: BookmarkShelf | None = None


@dataclass
class FormatResult:
    lines: list[str]
    links: LineRegistry = field(default_factory=LineRegistry)
    images: LineRegistry = field(default_factory=LineRegistry)
    markup: LineRegistry = field(default_factory=lambda: LineRegistry(allow_nesting=True))
    fragments: dict[str, int] = field(default_factory=dict)
    file_type: str = ""
    syntax: str = ""
    title: str = ""
    base: str = ""
    meta: dict[str, str] = field(default_factory=dict)
    forms: list[Form] = field(default_factory=list)
    encoding: str = ""
    source: str = ""


Formatter = Callable[[Response, FormatContext], FormatResult]


def _known_encoding(name: str | None) -> str | None:
    if not name:
        return None
    try:
        return codecs.lookup(name).name
    except LookupError:
        return None


def response_encoding(response: Response, assumed: str = "utf-8") -> str:
    """Charset from the response, else one declared in an HTML ``<meta>``, else ``assumed``."""
    declared = response.charset
    if declared is None and response.content_type == "text/html":
        match = _META_CHARSET_RE.search(response.body[:4096])
        if match:
            declared = match.group(1).decode("ascii", "replace")
    encoding = _known_encoding(declared)
    if declared and encoding is None:
        logger.warning("%s: Unrecognized encoding", declared)
    if encoding is None:
        encoding = _known_encoding(assumed)
        if encoding is None:
            logger.warning("The encoding %s is not recognized, using utf-8 instead", assumed)
            encoding = "utf-8"
    return encoding


def decompress_body(response: Response) -> bytes:
    """Undo a ``Content-Encoding`` the transport left in place."""
    coding = response.content_encoding.lower()
    body = response.body
    try:
        if coding in ("gzip", "x-gzip"):
            return gzip.decompress(body)
        if coding == "deflate":
            return zlib.decompress(body)
        if coding in ("bzip2", "x-bzip2"):
            return bz2.decompress(body)
        if coding in ("xz", "x-xz"):
            return lzma.decompress(body)
    except (OSError, EOFError, ValueError, zlib.error, lzma.LZMAError) as exc:
        logger.warning("Failed to decode %s content: %s", coding, exc)
    return body


def decode_body(response: Response, assumed: str = "utf-8") -> tuple[str, str]:
    """Decoded text and the encoding actually used.

    Decoding failures log a warning and fall back to Latin-1, which never
    fails.
    """
    encoding = response_encoding(response, assumed)
    body = decompress_body(response)
    try:
        return body.decode(encoding), encoding
    except UnicodeDecodeError:
        logger.warning("%s", EncodingError(encoding, FALLBACK_ENCODING))
        return body.decode(FALLBACK_ENCODING), FALLBACK_ENCODING


def document_base(soup: BeautifulSoup, response: Response) -> str:
    base = response.url or response.request.uri
    tag = soup.find("base", href=True)
    if tag is not None:
        base = urljoin(base, str(tag["href"]).strip())
    return base


def document_meta(soup: BeautifulSoup) -> dict[str, str]:
    meta: dict[str, str] = {}
    for tag in soup.find_all("meta"):
        name = str(tag.get("name") or "").lower()
        content = tag.get("content")
        if name in META_FIELDS and content and name not in meta:
            meta[name] = " ".join(str(content).split())
    return meta


def format_html(response: Response, context: FormatContext) -> FormatResult:
    text, encoding = decode_body(response, context.assumed_encoding)
    if not text.strip():
        return FormatResult([], encoding=encoding, source=text, file_type="html", syntax=HTML_SYNTAX)
    soup = BeautifulSoup(text, "html.parser")
    base = document_base(soup, response)
    forms = parse_forms(soup, base)
    rendered = layout(
        soup,
        LayoutOptions(
            width=context.width,
            base=base,
            forms=forms,
            break_lines=context.break_lines,
            encoding=encoding,
        ),
    )
    title = soup.title.get_text(" ", strip=True) if soup.title is not None else ""
    return FormatResult(
        rendered.lines,
        rendered.links,
        rendered.images,
        rendered.markup,
        rendered.fragments,
        file_type="html",
        syntax=HTML_SYNTAX,
        title=" ".join(title.split()),
        base=base,
        meta=document_meta(soup),
        forms=forms,
        encoding=encoding,
        source=text,
    )


def format_plain(response: Response, context: FormatContext) -> FormatResult:
    text, encoding = decode_body(response, context.assumed_encoding)
    return FormatResult(text.splitlines(), encoding=encoding, source=text)


def format_source(response: Response, context: FormatContext) -> FormatResult:
    """Plain text that keeps an editor file type for highlighting."""
    result = format_plain(response, context)
    result.file_type = file_type_for_mimetype(response.content_type)
    return result


def format_history(response: Response, context: FormatContext) -> FormatResult:
    lines = ["Browsing History", "================"]
    links = LineRegistry()
    history = context.history
    for domain, events in history.by_domain() if history is not None else []:
        lines.extend(["", f"+ {domain}"])
        for index, event in enumerate(events):
            more = index < len(events) - 1
            lines.append(f"  {'|' if more else '`'}-> {event.title}")
            links.add(Link(len(lines) - 1, 6, len(event.title) + 5, target=event.uri, text=event.title))
            lines.append(f"  {'|' if more else ' '}     {event.accessed_text}")
    return FormatResult(lines, links, syntax=LISTING_SYNTAX, title="Browsing History")


def format_bookmarks(response: Response, context: FormatContext) -> FormatResult:
    shelf = context.bookmarks
    current = urlsplit(response.request.uri).netloc
    lines = [f"Bookmarks in file {current}", "=" * (18 + len(current)), ""]
    links = LineRegistry()
    if shelf is None:
        return FormatResult(lines, links, syntax=LISTING_SYNTAX)
    for mark in shelf.book(current):
        try:
            target = resolve_location(mark.uri, shelf)
        except BrowserError as exc:
            logger.warning("Bookmark %s: %s", mark.nickname, exc)
            target = mark.uri
        lines.append(f"* {mark.nickname}")
        links.add(Link(len(lines) - 1, 2, len(mark.nickname) + 1, target=target, text=mark.nickname))
        lines.append(f"  {mark.description}")
    lines.extend(["", "-" * context.sidebar_width, ""])
    for name in shelf.names():
        if name == current:
            continue
        lines.append(f"[{name}]")
        links.add(Link(len(lines) - 1, 1, len(name), target=f"bookmarks://{name}", text=name, sidebar=True))
    return FormatResult(lines, links, syntax=LISTING_SYNTAX, title=f"Bookmarks: {current}")


FORMATTERS: dict[str, Formatter] = {
    "text/html": format_html,
    "text/plain": format_plain,
    HISTORY_TYPE: format_history,
    BOOKMARKS_TYPE: format_bookmarks,
    **{content_type: format_source for content_type in source_mimetypes()},
}


def formatter_for(content_type: str) -> Formatter | None:
    """The formatter for ``content_type``; other ``text/*`` types Pygments knows are source."""
    formatter = FORMATTERS.get(content_type)
    if formatter is not None:
        return formatter
    if content_type.startswith("text/") and knows_mimetype(content_type):
        return format_source
    return None


def format_response(response: Response, context: FormatContext) -> FormatResult:
    content_type = response.content_type or "text/plain"
    formatter = formatter_for(content_type)
    if formatter is None:
        raise UnsupportedContentType(content_type)
    logger.debug("Formatting %s as %s", response.url, content_type)
    result = formatter(response, context)
    if not result.lines:
        logger.warning("Document contains no data")
    return result

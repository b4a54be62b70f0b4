"""Editor file types and terminal highlighting for page sources.

Maps MIME types to file type names via Pygments lexers, and renders raw
sources with ANSI colors for ``view_source`` and the CLI.
"""

from __future__ import annotations

import re
from functools import lru_cache

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_by_name, get_lexer_for_mimetype
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

DEFAULT_STYLE = "monokai"

# x-types that are plain text to display but carry an editor file type
SOURCE_TYPES: dict[str, str] = {
    "csh": "csh",
    "latex": "tex",
    "tex": "tex",
    "perl": "perl",
    "sh": "sh",
    "tcl": "tcl",
    "texinfo": "texinfo",
    "c++hdr": "cpp",
    "c++src": "cpp",
    "chdr": "c",
    "csrc": "c",
    "java": "java",
    "pascal": "pascal",
    "python": "python",
    "pod": "pod",
}


def source_mimetypes() -> dict[str, str]:
    """``text/x-*`` and ``application/x-*`` names for every source type."""
    mapping: dict[str, str] = {}
    for subtype, file_type in SOURCE_TYPES.items():
        mapping[f"text/x-{subtype}"] = file_type
        mapping[f"application/x-{subtype}"] = file_type
    return mapping


@lru_cache(maxsize=128)
def file_type_for_mimetype(content_type: str) -> str:
    """Editor file type for ``content_type``; empty when unknown."""
    known = source_mimetypes().get(content_type)
    if known:
        return known
    try:
        lexer = get_lexer_for_mimetype(content_type)
    except ClassNotFound:
        return ""
    return lexer.aliases[0] if lexer.aliases else lexer.name.lower()


def knows_mimetype(content_type: str) -> bool:
    return bool(file_type_for_mimetype(content_type))


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source
    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
        elif code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
        else:
            out.append(ch)
    return "".join(out)


@lru_cache(maxsize=32)
def _normalize_style(style: str) -> str:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        return DEFAULT_STYLE
    return style


@lru_cache(maxsize=32)
def _formatter_for_style(style: str) -> TerminalFormatter:
    return TerminalFormatter(style=_normalize_style(style))


def _lexer_for(file_type: str) -> Lexer:
    if file_type:
        try:
            return get_lexer_by_name(file_type)
        except ClassNotFound:
            pass
    return TextLexer()


def highlight_source(source: str, file_type: str = "", style: str = DEFAULT_STYLE, no_color: bool = False) -> str:
    """Return ``source`` with ANSI colors for ``file_type``.

    The result always ends with a newline; ``no_color`` only sanitizes.
    """
    source = sanitize_terminal_text(source)
    if no_color:
        return source if source.endswith("\n") else source + "\n"
    rendered = highlight(source, _lexer_for(file_type), _formatter_for_style(style))
    return rendered if rendered.endswith("\n") else rendered + "\n"

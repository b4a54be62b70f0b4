"""Layout engine: HTML document tree to addressable text lines.

``layout`` is the one entry point; everything else in this package is the
machinery behind it.
"""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import PageElement, Tag

from ..elements import LineRegistry
from ..forms import Form, parse_forms
from .formatter import HtmlFormatter


@dataclass
class LayoutOptions:
    width: int = 80
    base: str = ""
    forms: list[Form] | None = None
    break_lines: bool = True
    encoding: str = "utf-8"


@dataclass
class LayoutResult:
    lines: list[str]
    links: LineRegistry
    images: LineRegistry
    markup: LineRegistry
    fragments: dict[str, int]


def layout(tree: PageElement, options: LayoutOptions | None = None) -> LayoutResult:
    """Render ``tree`` into lines plus link/image/markup registries.

    The same tree and options always produce the same result. Without
    ``options.forms`` the form bindings are parsed from ``tree``.
    """
    options = options or LayoutOptions()
    forms = options.forms
    if forms is None:
        forms = parse_forms(tree, options.base) if isinstance(tree, Tag) else []
    formatter = HtmlFormatter(
        width=options.width,
        base=options.base,
        forms=forms,
        break_lines=options.break_lines,
    )
    lines = formatter.format(tree)
    registries = formatter.registries
    return LayoutResult(
        lines=lines,
        links=registries.links,
        images=registries.images,
        markup=registries.markup,
        fragments=dict(formatter.cursor.fragments),
    )


__all__ = ["LayoutOptions", "LayoutResult", "layout", "HtmlFormatter"]

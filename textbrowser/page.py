"""Rendered page: lines, element registries, metadata and the header panel.

A ``Page`` does not own its text directly; it reads and writes through a
``LineStore`` so an editor buffer can stand in for the default in-memory list.
Line and column numbers are 0-based throughout.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlsplit

from .elements import Element, LineRegistry, TextArea
from .fetch import Request, Response

if TYPE_CHECKING:
    from .formats import FormatResult
    from .forms import Form

logger = logging.getLogger(__name__)

HEADER_TITLE = "Document header: {title} {{{{{{"
HEADER_END = "}}}"


class LineStore(Protocol):
    def __len__(self) -> int: ...

    def get_line(self, index: int) -> str: ...

    def set_line(self, index: int, text: str) -> None: ...

    def insert_lines(self, index: int, lines: Iterable[str]) -> None: ...

    def delete_lines(self, start: int, count: int) -> None: ...


class ListLineStore:
    """In-memory ``LineStore``."""

    def __init__(self, lines: Iterable[str] = ()) -> None:
        self.lines = list(lines)

    def __len__(self) -> int:
        return len(self.lines)

    def get_line(self, index: int) -> str:
        if 0 <= index < len(self.lines):
            return self.lines[index]
        return ""

    def set_line(self, index: int, text: str) -> None:
        while len(self.lines) <= index:
            self.lines.append("")
        self.lines[index] = text

    def insert_lines(self, index: int, lines: Iterable[str]) -> None:
        self.lines[index:index] = list(lines)

    def delete_lines(self, start: int, count: int) -> None:
        del self.lines[start:start + count]


def _format_time(timestamp: float | None) -> str | None:
    if not timestamp:
        return None
    return time.strftime("%a %b %d %H:%M:%S %Y", time.localtime(timestamp))


@dataclass(eq=False)
class Page:
    store: LineStore
    uri: str
    links: LineRegistry = field(default_factory=LineRegistry)
    images: LineRegistry = field(default_factory=LineRegistry)
    markup: LineRegistry = field(default_factory=lambda: LineRegistry(allow_nesting=True))
    fragments: dict[str, int] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    forms: list[Form] = field(default_factory=list)
    request: Request | None = None
    response: Response | None = None
    source: str = ""
    file_type: str = ""
    syntax: str = ""
    title: str = ""
    offset: int = 0
    windows: set[int] = field(default_factory=set)
    cacheable: bool = True

    @classmethod
    def from_format(
        cls,
        result: FormatResult,
        *,
        uri: str,
        response: Response | None = None,
        source: str = "",
        store: LineStore | None = None,
    ) -> Page:
        """Build a page from a formatter result and the response it came from."""
        if store is None:
            store = ListLineStore(result.lines)
        else:
            store.delete_lines(0, len(store))
            store.insert_lines(0, result.lines)
        page = cls(
            store=store,
            uri=uri,
            links=result.links,
            images=result.images,
            markup=result.markup,
            fragments=dict(result.fragments),
            forms=list(result.forms),
            request=response.request if response is not None else None,
            response=response,
            source=source,
            file_type=result.file_type,
            syntax=result.syntax,
        )
        base = result.base or uri
        if response is not None:
            page.headers = response_headers(response, result)
        page.headers["uri base"] = base
        page.title = result.title or urlsplit(base).netloc or urlsplit(uri).netloc
        return page

    # -- line access ------------------------------------------------------

    def __len__(self) -> int:
        return len(self.store)

    def get_line(self, index: int) -> str:
        return self.store.get_line(index)

    def set_line(self, index: int, text: str) -> None:
        self.store.set_line(index, text)

    def lines(self) -> list[str]:
        return [self.store.get_line(index) for index in range(len(self.store))]

    def text(self) -> str:
        return "\n".join(self.lines())

    @property
    def content_length(self) -> int:
        """Number of lines excluding the header panel."""
        return len(self.store) - self.offset

    # -- header panel -----------------------------------------------------

    def header_panel(self) -> list[str]:
        lines = [HEADER_TITLE.format(title=self.title)]
        lines.extend(f"  {key}: {value}" for key, value in self.headers.items())
        lines.extend([HEADER_END, ""])
        return lines

    def add_header_panel(self) -> bool:
        """Append the header panel; no-op when already shown."""
        if self.offset:
            return False
        panel = self.header_panel()
        self.store.insert_lines(len(self.store), panel)
        self.offset = len(panel)
        return True

    def remove_header_panel(self) -> bool:
        if not self.offset:
            return False
        self.store.delete_lines(len(self.store) - self.offset, self.offset)
        self.offset = 0
        return True

    def toggle_header_panel(self) -> bool:
        """Flip the panel; returns whether it is now shown."""
        if self.offset:
            self.remove_header_panel()
            return False
        self.add_header_panel()
        return True

    # -- element lookup ---------------------------------------------------

    def _registry(self, want_images: bool) -> LineRegistry:
        return self.images if want_images else self.links

    def find_element_at(self, line: int, column: int, want_images: bool = False) -> Element | None:
        if not 0 <= line < self.content_length:
            return None
        for element in self._registry(want_images).line(line):
            if element.contains(column):
                return element
        return None

    def find_next_element(
        self,
        direction: int,
        line: int,
        column: int,
        want_images: bool = False,
    ) -> tuple[Element, int] | None:
        """Nearest element after (``direction > 0``) or before the position.

        Returns the element and its line offset from ``line``.
        """
        registry = self._registry(want_images)
        bucket = registry.line(line)
        if direction > 0:
            for element in bucket:
                if element.start > column:
                    return element, 0
            for index in range(line + 1, min(len(registry), self.content_length)):
                bucket = registry.line(index)
                if bucket:
                    return bucket[0], index - line
        else:
            for element in reversed(bucket):
                if element.end < column:
                    return element, 0
            for index in range(min(line, len(registry)) - 1, -1, -1):
                bucket = registry.line(index)
                if bucket:
                    return bucket[-1], index - line
        return None

    def fragment_line(self, name: str) -> int | None:
        return self.fragments.get(name)

    # -- form support -----------------------------------------------------

    def update_text_area(self, control: TextArea) -> None:
        """Rewrite the rows reserved below ``control``'s header line."""
        indent = " " * control.start
        for row, text in enumerate(control.visible_lines(), start=control.line + 1):
            self.set_line(row, indent + text if text else "")

    def view_source(self) -> list[str]:
        return self.source.splitlines()

    def element_target(self, element: Element) -> str | Request | None:
        """What following ``element`` would open, without side effects on the page."""
        resolve = getattr(element, "resolve", None)
        if resolve is None or not element.followable:
            return None
        return resolve(self)


def response_headers(response: Response, result: FormatResult) -> dict[str, str]:
    """Header panel fields; empty values are dropped."""
    fields = {
        "expires": _format_time(response.header_time("expires")),
        "last modified": _format_time(response.header_time("last-modified")),
        "content type": response.content_type,
        "encoding": result.encoding,
        "language": response.headers.get("content-language"),
        "server": response.headers.get("server"),
        "keywords": result.meta.get("keywords"),
        "description": result.meta.get("description"),
    }
    return {key: value for key, value in fields.items() if value}

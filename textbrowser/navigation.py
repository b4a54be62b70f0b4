"""Per-window navigation: current page, fragment, back and forward stacks.

A ``Window`` never fetches by itself; it asks its loader to turn a
location into a ``Page``. Stacks hold location strings (URI plus fragment),
so going back re-resolves through the loader and may hit the page cache.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from urllib.parse import urlsplit, urlunsplit

from .errors import BrowserError, NavigationError
from .fetch import Request, strip_fragment
from .page import Page

logger = logging.getLogger(__name__)

PageLoader = Callable[[str | Request], Page | None]


class Window:
    def __init__(self, window_id: int, loader: PageLoader) -> None:
        self.id = window_id
        self.loader = loader
        self.page: Page | None = None
        self.fragment: str | None = None
        self.back: list[str] = []
        self.forward: list[str] = []

    @property
    def location(self) -> str | None:
        """The page URI with the current fragment, or ``None`` without a page."""
        if self.page is None:
            return None
        if not self.fragment:
            return self.page.uri
        parts = urlsplit(self.page.uri)
        return urlunsplit(parts._replace(fragment=self.fragment))

    def __str__(self) -> str:
        return self.location or ""

    def fragment_line(self) -> int | None:
        if self.page is None or not self.fragment:
            return None
        return self.page.fragment_line(self.fragment)

    def open_page(self, page: Page, fragment: str | None = None) -> Page:
        if self.page is not None and self.page is not page:
            self.page.windows.discard(self.id)
        self.page = page
        page.windows.add(self.id)
        self.fragment = fragment
        logger.debug("Window %d shows %s", self.id, self.location)
        return page

    def open_location(self, location: str | Request) -> Page | None:
        """Load ``location`` and show it; ``None`` when nothing is displayed."""
        fragment = None
        if isinstance(location, str):
            location, fragment = strip_fragment(location)
        page = self.loader(location)
        if page is None:
            return None
        return self.open_page(page, fragment)

    def open_new(self, location: str | Request) -> Page | None:
        """Like ``open_location``, but remember the current location for ``go_back``."""
        current = self.location
        if current is not None:
            self.back.append(current)
        try:
            page = self.open_location(location)
        except BrowserError:
            if current is not None:
                self.back.pop()
            raise
        if page is None:
            if current is not None:
                self.back.pop()
            return None
        self.forward.clear()
        return page

    def go_back(self, steps: int = 1) -> Page | None:
        return self._travel(self.back, self.forward, steps, "back")

    def go_forward(self, steps: int = 1) -> Page | None:
        return self._travel(self.forward, self.back, steps, "forward")

    def go(self, offset: int) -> Page | None:
        """Negative offsets go back, positive ones forward."""
        if offset < 0:
            return self.go_back(-offset)
        return self.go_forward(offset)

    def _travel(self, source: list[str], dest: list[str], steps: int, direction: str) -> Page | None:
        steps = max(1, steps)
        if len(source) < steps:
            raise NavigationError(direction, steps, len(source))
        saved_source, saved_dest = list(source), list(dest)
        current = self.location
        if current is not None:
            dest.append(current)
        for _ in range(steps - 1):
            dest.append(source.pop())
        target = source.pop()
        try:
            page = self.open_location(target)
        except BrowserError:
            source[:] = saved_source
            dest[:] = saved_dest
            raise
        if page is None:
            source[:] = saved_source
            dest[:] = saved_dest
        return page

    def history_listing(self) -> list[str]:
        """Forward stack top-down, the current location, then the back stack top-down."""
        lines = [f"   {location}" for location in reversed(self.forward)]
        lines.append(f"-> {self.location or ''}")
        lines.extend(f"   {location}" for location in reversed(self.back))
        return lines

    def close(self) -> None:
        if self.page is not None:
            self.page.windows.discard(self.id)
        self.page = None
        self.fragment = None
        self.back.clear()
        self.forward.clear()

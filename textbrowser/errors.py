"""Error taxonomy for the browser core.

Every ``BrowserError`` is recoverable: host operations catch it, report the
message and leave the session running. ``LayoutInvariantError`` is not a
``BrowserError`` because it signals a formatter bug and must propagate.
"""

from __future__ import annotations


class BrowserError(Exception):
    """Base class for user-reportable browser failures."""


class FetchError(BrowserError):
    """Transport failure or an error status without a displayable body."""

    def __init__(self, uri: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {uri}: {reason}")
        self.uri = uri
        self.reason = reason


class UnsupportedContentType(BrowserError):
    """No formatter is registered for a response's content type."""

    def __init__(self, content_type: str) -> None:
        super().__init__(
            f"The content type of this page is {content_type}; it can not be displayed internally"
        )
        self.content_type = content_type


class EncodingError(BrowserError):
    """A declared or assumed character encoding failed to decode a body."""

    def __init__(self, encoding: str, fallback: str) -> None:
        super().__init__(f"Failed decoding the content as {encoding}, falling back to {fallback}")
        self.encoding = encoding
        self.fallback = fallback


class NavigationError(BrowserError):
    """Back/forward request deeper than the window's history."""

    def __init__(self, direction: str, requested: int, available: int) -> None:
        super().__init__(
            f"Can't go {requested} {direction} in this window ({available} available)"
        )
        self.direction = direction
        self.requested = requested
        self.available = available


class BookmarkFileNotFound(BrowserError):
    def __init__(self, book: str) -> None:
        super().__init__(f"Bookmark file {book} does not exist")
        self.book = book


class BookmarkNotFound(BrowserError):
    def __init__(self, book: str, nickname: str) -> None:
        super().__init__(f"Entry '{nickname}' does not exist in bookmark file '{book}'")
        self.book = book
        self.nickname = nickname


class SchemeUnsupported(BrowserError):
    def __init__(self, scheme: str | None, uri: str) -> None:
        if scheme:
            message = (
                f"The '{scheme}' scheme is not supported. Add a handler for it "
                "under scheme_handlers in the config file"
            )
        else:
            message = f"Unable to determine the scheme of '{uri}'"
        super().__init__(message)
        self.scheme = scheme
        self.uri = uri


class LayoutInvariantError(AssertionError):
    """An element was registered at an impossible position."""

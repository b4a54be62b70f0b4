"""Bookmark files and location resolution.

Each file in the bookmark directory is one "book": lines of
``<nickname> <uri> <description>``, with any leading ``#`` comment block kept
intact when the file is rewritten. ``resolve_location`` turns what a user
types (a bookmark reference, a bare host name, a path) into an absolute URI.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from .errors import BookmarkFileNotFound, BookmarkNotFound

logger = logging.getLogger(__name__)

BOOKMARK_LINE_RE = re.compile(r"^(\w+)\s+(\S+)\s*(.*)$")
SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


@dataclass(frozen=True)
class Bookmark:
    nickname: str
    uri: str
    description: str = ""

    def to_line(self) -> str:
        return f"{self.nickname} {self.uri} {self.description}".rstrip() + "\n"


class AddressBook:
    """One bookmark file, kept in memory and written through on change."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.name = path.name
        self.comment = ""
        self.marks: dict[str, Bookmark] = {}
        self._read()

    def _read(self) -> None:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.error("Failed to open %s for reading: %s", self.path, exc)
            return
        leading = True
        for line in text.splitlines(keepends=True):
            if line.startswith("#"):
                if leading:
                    self.comment += line
                continue
            leading = False
            match = BOOKMARK_LINE_RE.match(line.rstrip("\n"))
            if match:
                nickname, uri, description = match.groups()
                self.marks[nickname] = Bookmark(nickname, uri, description)

    def __contains__(self, nickname: object) -> bool:
        return nickname in self.marks

    def __len__(self) -> int:
        return len(self.marks)

    def __iter__(self):
        return iter(self.marks.values())

    def get(self, nickname: str) -> Bookmark:
        try:
            return self.marks[nickname]
        except KeyError:
            raise BookmarkNotFound(self.name, nickname) from None

    def add(self, nickname: str, uri: str, description: str = "") -> bool:
        """Store a bookmark; a new nickname is appended without a rewrite."""
        bookmark = Bookmark(nickname, uri, " ".join(description.split()))
        if nickname in self.marks:
            self.marks[nickname] = bookmark
            return self.rewrite()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(bookmark.to_line())
        except OSError as exc:
            logger.error("Failed to write to %s: %s", self.path, exc)
            return False
        self.marks[nickname] = bookmark
        return True

    def remove(self, nickname: str) -> bool:
        if nickname not in self.marks:
            raise BookmarkNotFound(self.name, nickname)
        del self.marks[nickname]
        return self.rewrite()

    def clear(self) -> bool:
        self.marks = {}
        return self.rewrite()

    def rewrite(self) -> bool:
        content = self.comment + "".join(mark.to_line() for mark in self.marks.values())
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".bookmarks-", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            logger.error("Failed to write to %s: %s", self.path, exc)
            return False
        return True

    @property
    def writable(self) -> bool:
        return os.access(self.path, os.W_OK)

    def listing(self) -> list[str]:
        lines = [f"Bookmarks in {self.path}"]
        lines.extend(f"{mark.nickname}: {mark.uri} # {mark.description}" for mark in self)
        return lines


class BookmarkShelf:
    """All books in the bookmark directory plus the current book name."""

    def __init__(self, directory: Path | None, current: str = "default") -> None:
        self.directory = directory
        self.current = current
        self._books: dict[str, AddressBook] = {}

    @property
    def enabled(self) -> bool:
        return self.directory is not None

    def names(self) -> list[str]:
        if self.directory is None:
            return []
        try:
            found = {
                entry.name
                for entry in self.directory.iterdir()
                if entry.is_file() and not entry.name.startswith(".")
            }
        except OSError:
            found = set()
        return sorted(found | set(self._books))

    def exists(self, name: str) -> bool:
        return name in self._books or name in self.names()

    def book(self, name: str | None = None, *, create: bool = False) -> AddressBook:
        name = name or self.current
        book = self._books.get(name)
        if book is not None:
            return book
        if self.directory is None or not (create or self.exists(name)):
            raise BookmarkFileNotFound(name)
        book = AddressBook(self.directory / name)
        self._books[name] = book
        return book

    def change(self, name: str, *, create: bool = False) -> AddressBook:
        book = self.book(name, create=create)
        if book.path.exists() and not book.writable:
            logger.warning("Bookmark file %s not writeable", book.path)
        self.current = name
        return book


def split_book_reference(reference: str, current: str) -> tuple[str, str]:
    """``:book:nick`` / ``book:nick`` / ``nick`` to ``(book, nick)``."""
    match = re.match(r"^:?([^:]*):(.*)$", reference)
    if match:
        return match.group(1) or current, match.group(2)
    return current, reference


def guess_uri(text: str) -> str:
    """Absolute URI for a typed location without a bookmark prefix."""
    text = text.strip()
    if SCHEME_RE.match(text) and not re.match(r"^[A-Za-z]:[\\/]", text):
        return text
    path = Path(text).expanduser()
    if text.startswith(("/", "~", ".")) or path.exists():
        return path.resolve().as_uri()
    return "http://" + text


def resolve_location(
    location: str,
    shelf: BookmarkShelf,
    extra: list[str] | tuple[str, ...] = (),
    *,
    _depth: int = 0,
) -> str:
    """Resolve bookmarks and URI heuristics; ``extra`` words become query terms.

    Raises ``BookmarkFileNotFound`` or ``BookmarkNotFound`` for bad
    references.
    """
    if extra:
        uri = resolve_location(location, shelf, _depth=_depth)
        words = list(extra)
        uri += words[0]
        for word in words[1:]:
            uri += ("&" if "=" in word else "+") + word
        return uri
    if not location.startswith(":"):
        return guess_uri(location)
    book_name, nickname = split_book_reference(location, shelf.current)
    if not shelf.exists(book_name):
        raise BookmarkFileNotFound(book_name)
    if not nickname:
        return f"bookmarks://{book_name}"
    target = shelf.book(book_name).get(nickname).uri
    if target.startswith(":") and _depth < 16:
        return resolve_location(target, shelf, _depth=_depth + 1)
    return guess_uri(target) if not urlsplit(target).scheme else target

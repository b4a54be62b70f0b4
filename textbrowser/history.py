"""Global browsing history.

A bounded list of ``HistoryEvent`` ordered by access time, one event per
URI. The list is loaded from and saved to a plain text file with one
``<uri> <timestamp> <title>`` line per event.
"""

from __future__ import annotations

import bisect
import logging
import os
import tempfile
import time
from collections.abc import Iterator
from dataclasses import dataclass
from email.utils import formatdate
from pathlib import Path
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 30


def default_title(uri: str) -> str | None:
    """URI authority, ``localhost`` for ``file:`` URIs, else ``None``."""
    parts = urlsplit(uri)
    if parts.netloc:
        return parts.netloc
    if parts.scheme == "file":
        return "localhost"
    return None


@dataclass(frozen=True)
class HistoryEvent:
    uri: str
    accessed: float
    title: str

    @property
    def domain(self) -> str:
        return default_title(self.uri) or ""

    @property
    def accessed_text(self) -> str:
        return formatdate(self.accessed, usegmt=True)

    def to_line(self) -> str:
        return f"{self.uri} {self.accessed:.0f} {self.title}"

    @classmethod
    def from_line(cls, line: str) -> HistoryEvent | None:
        parts = line.rstrip("\n").split(" ", 2)
        if len(parts) < 2:
            return None
        try:
            accessed = float(parts[1])
        except ValueError:
            return None
        title = parts[2] if len(parts) > 2 else ""
        return cls(parts[0], accessed, title or default_title(parts[0]) or parts[0])


class History:
    def __init__(self, path: Path | None = None, size: int = DEFAULT_HISTORY_SIZE) -> None:
        self.path = path
        self.size = max(1, size)
        self.events: list[HistoryEvent] = []
        self.accessed: float = -1.0

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[HistoryEvent]:
        return iter(self.events)

    def __contains__(self, uri: object) -> bool:
        return any(event.uri == uri for event in self.events)

    def record_visit(
        self,
        uri: str,
        title: str | None = None,
        accessed: float | None = None,
    ) -> HistoryEvent | None:
        """Add a visit, replacing any older event for the same URI.

        Returns ``None`` (and records nothing) when no title is given and the
        URI has no authority to fall back on.
        """
        title = title or default_title(uri)
        if not title:
            logger.debug("Not recording %s in history: no title", uri)
            return None
        event = HistoryEvent(uri, time.time() if accessed is None else accessed, title)
        self._insert(event)
        return event

    def _insert(self, event: HistoryEvent) -> None:
        self.events = [existing for existing in self.events if existing.uri != event.uri]
        if not self.events or event.accessed >= self.events[-1].accessed:
            self.events.append(event)
        else:
            keys = [existing.accessed for existing in self.events]
            self.events.insert(bisect.bisect_right(keys, event.accessed), event)
        self._trim()
        self.accessed = max(self.accessed, event.accessed)

    def _trim(self) -> None:
        overflow = len(self.events) - self.size
        if overflow > 0:
            del self.events[:overflow]

    def resize(self, size: int) -> None:
        self.size = max(1, size)
        self._trim()

    def lookup(self, n: int) -> HistoryEvent | None:
        """The ``n``-th most recent event, 1-based."""
        if 1 <= n <= len(self.events):
            return self.events[-n]
        return None

    def clear(self) -> None:
        self.events = []
        self.accessed = -1.0

    def by_domain(self) -> list[tuple[str, list[HistoryEvent]]]:
        """Events grouped by domain, most recently visited domain first."""
        groups: dict[str, list[HistoryEvent]] = {}
        for event in reversed(self.events):
            if event.domain:
                groups.setdefault(event.domain, []).append(event)
        return list(groups.items())

    def load(self) -> None:
        if self.path is None:
            return
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Failed to read history file %s: %s", self.path, exc)
            return
        for line in text.splitlines():
            event = HistoryEvent.from_line(line)
            if event is not None:
                self._insert(event)

    def save(self) -> bool:
        """Write the history atomically; returns whether it succeeded."""
        if self.path is None:
            return False
        content = "".join(event.to_line() + "\n" for event in self.events)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".history-", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            logger.warning("Failed to open history file %s for writing: %s", self.path, exc)
            return False
        return True

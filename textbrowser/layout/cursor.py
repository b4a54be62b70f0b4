"""Text cursor for the layout engine.

Owns the emitted lines and the position bookkeeping: current line and
column, margins, pending vertical/horizontal space, and the markup and
fragment markers waiting for the next emitted character.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..elements import MarkupKind

NO_VSPACE = -1
SOFT_SPACE = 1
HARD_SPACE = 2


@dataclass
class Mark:
    """One markup boundary; ``line``/``column`` are set once resolved."""

    kind: MarkupKind
    is_start: bool
    line: int = -1
    column: int = -1


class LayoutCursor:
    def __init__(self, width: int, *, break_lines: bool = True) -> None:
        self.lines: list[str] = [""]
        self.line = 0
        self.column = 0
        self.prev_column = 0
        self.left = 0
        self.right = max(1, width)
        self.vspace = NO_VSPACE
        self.hspace = 0
        self.pre = 0
        self.nobr = False
        self.break_lines = break_lines
        self.started = False
        self.pending_marks: list[Mark] = []
        self.marks: list[Mark] = []
        self.pending_fragments: list[str] = []
        self.fragments: dict[str, int] = {}
        self._margins: list[tuple[int, int]] = []

    # -- raw output -------------------------------------------------------

    def collect(self, text: str) -> None:
        self.lines[-1] += text

    def newline(self) -> None:
        self.lines.append("")
        self.line += 1
        self.column = 0

    def current_line_blank(self) -> bool:
        return not self.lines[-1].strip()

    # -- spacing ----------------------------------------------------------

    def request_vspace(self, lines: int, add: int = 0) -> None:
        """Keep the larger pending request; ``add`` stacks onto a pending one."""
        if lines > self.vspace:
            self.vspace = lines
        elif add:
            self.vspace += add

    def request_hspace(self, kind: int = SOFT_SPACE) -> None:
        self.hspace = max(self.hspace, kind)

    def flush_vspace(self, minimum: int = NO_VSPACE) -> None:
        """Materialize pending vertical space, leaving the column at the margin.

        ``n`` pending means ``n`` blank lines, i.e. ``n + 1`` line breaks.
        Space requested before any content is dropped.
        """
        vspace = max(self.vspace, minimum)
        if vspace < 0:
            return
        if self.started:
            for _ in range(vspace + 1):
                self.newline()
        else:
            self.lines[-1] = ""
        self.vspace = NO_VSPACE
        self.hspace = 0
        self.column = self.left
        self.collect(" " * self.left)

    # -- margins ----------------------------------------------------------

    def adjust_left(self, delta: int) -> None:
        self.left = max(0, self.left + delta)
        shift = self.left - self.column
        if shift > 0:
            self.column = self.left
            self.collect(" " * shift)

    def push_margins(self, left_delta: int, right_delta: int = 0) -> None:
        self._margins.append((self.left, self.right))
        self.adjust_left(left_delta)
        self.right = max(self.left + 1, self.right + right_delta)

    def pop_margins(self) -> None:
        """Restore the margins saved by the matching push; no-op when unmatched."""
        if not self._margins:
            return
        self.left, self.right = self._margins.pop()

    # -- words ------------------------------------------------------------

    def emit_word(self, word: str) -> bool:
        """Append one unbreakable unit of text, wrapping before it if needed.

        Returns whether anything was written; blank words only request a space.
        """
        if not word.strip():
            self.request_hspace(SOFT_SPACE)
            return False
        word = word.replace("\xa0", " ").replace("\r", "")
        length = len(word)
        self.flush_vspace()
        if self.hspace:
            allow_break = self.hspace >= HARD_SPACE or (self.break_lines and not self.nobr)
            if self.column + length > self.right and allow_break:
                self.flush_vspace(0)
            elif not self.lines[-1].endswith(" "):
                self.collect(" ")
                self.column += 1
            self.hspace = 0
        self._resolve_fragments()
        self.collect(word)
        self.prev_column = self.column
        self.column += length
        self.started = True
        self._resolve_marks(self.prev_column, self.column - 1)
        return True

    def emit_verbatim(self, text: str) -> None:
        """Append preformatted text; embedded newlines become line breaks."""
        self.flush_vspace()
        self._resolve_fragments()
        self._resolve_marks(self.column, self.column - 1)
        pieces = text.replace("\r", "").split("\n")
        for index, piece in enumerate(pieces):
            if index:
                self.flush_vspace(0)
            if piece:
                self.collect(piece)
                self.prev_column = self.column
                self.column += len(piece)
                self.started = True

    # -- markers ----------------------------------------------------------

    def mark_start(self, kind: MarkupKind) -> None:
        self.pending_marks.append(Mark(kind, True))

    def mark_end(self, kind: MarkupKind, *, defer: bool = False) -> None:
        """Close a span at the last emitted column (or at the next word)."""
        if defer:
            self.pending_marks.append(Mark(kind, False))
            return
        self.settle_marks()
        self.marks.append(Mark(kind, False, self.line, self.column - 1))

    def settle_marks(self) -> None:
        """Resolve waiting markers at the current position."""
        self.flush_vspace()
        self._resolve_marks(self.column, self.column - 1)

    def _resolve_marks(self, start_column: int, end_column: int) -> None:
        for mark in self.pending_marks:
            mark.line = self.line
            mark.column = start_column if mark.is_start else end_column
            self.marks.append(mark)
        self.pending_marks = []

    def anchor(self, name: str) -> None:
        self.pending_fragments.append(name)

    def _resolve_fragments(self) -> None:
        for name in self.pending_fragments:
            self.fragments.setdefault(name, self.line)
        self.pending_fragments = []

    def finish(self) -> list[str]:
        """Resolve leftovers and return the lines without trailing blanks."""
        self._resolve_fragments()
        lines = list(self.lines)
        while len(lines) > 1 and not lines[-1].strip():
            lines.pop()
        if len(lines) == 1 and not lines[0].strip():
            return []
        return lines

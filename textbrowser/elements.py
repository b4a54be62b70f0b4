"""Interactive elements and the per-line registries that hold them.

Every element knows its owning line and an inclusive column range. Form
controls additionally know how to read and write their own rendered region
of a page, and how to push that rendered value back into the bound
``FormInput``. The page argument only needs ``get_line``/``set_line`` (and
``update_text_area`` for text areas).
"""

from __future__ import annotations

import bisect
import sys
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .errors import BrowserError, LayoutInvariantError

if TYPE_CHECKING:
    from .fetch import Request
    from .forms import Form, FormInput
    from .page import Page

UNBOUNDED = sys.maxsize


class MarkupKind(str, Enum):
    BOLD = "Bold"
    UNDERLINE = "Underline"
    ITALIC = "Italic"
    TELETYPE = "Teletype"
    STRONG = "Strong"
    EM = "Em"
    CODE = "Code"
    KBD = "Kbd"
    SAMP = "Samp"
    VAR = "Var"
    DEFINITION = "Definition"
    CITE = "Cite"
    HEADER1 = "Header1"
    HEADER2 = "Header2"
    HEADER3 = "Header3"
    HEADER4 = "Header4"
    HEADER5 = "Header5"
    HEADER6 = "Header6"

    @classmethod
    def header(cls, level: int) -> MarkupKind:
        return cls(f"Header{level}")


@dataclass(eq=False)
class Element:
    line: int
    start: int
    end: int

    def contains(self, column: int) -> bool:
        return self.start <= column <= self.end

    @property
    def followable(self) -> bool:
        return False


@dataclass(eq=False)
class Link(Element):
    target: str = ""
    text: str = ""
    sidebar: bool = False

    @property
    def followable(self) -> bool:
        return bool(self.target)

    def resolve(self, page: Page) -> str | Request:
        return self.target


@dataclass(eq=False)
class Image(Element):
    target: str = ""
    text: str = ""
    link: Link | None = None

    @property
    def followable(self) -> bool:
        return bool(self.target)

    def resolve(self, page: Page) -> str | Request:
        return self.target


@dataclass(eq=False)
class MarkupSpan:
    """Stylistic range; may span lines, so it carries both end points."""

    kind: MarkupKind
    line: int
    start: int
    end_line: int
    end: int


def _splice(text: str, start: int, width: int, replacement: str) -> str:
    if len(text) < start:
        text = text.ljust(start)
    return text[:start] + replacement + text[start + width:]


@dataclass(eq=False)
class FormControl(Element):
    form: Form | None = None
    input: FormInput | None = None

    kind = "control"

    def get_value(self, page: Page) -> str:
        raise NotImplementedError

    def set_value(self, page: Page, value: str) -> None:
        raise NotImplementedError

    def sync(self, page: Page) -> None:
        """Store the rendered value into the bound input."""

    @property
    def width(self) -> int:
        return self.end - self.start + 1


@dataclass(eq=False)
class TextField(FormControl):
    """Free-text input; owns everything after its prompt to end of line."""

    kind = "text"

    def get_value(self, page: Page) -> str:
        return page.get_line(self.line)[self.start:].strip()

    def set_value(self, page: Page, value: str) -> None:
        text = page.get_line(self.line)
        if len(text) < self.start:
            text = text.ljust(self.start)
        page.set_line(self.line, text[:self.start] + " " + value)

    def sync(self, page: Page) -> None:
        if self.input is not None:
            self.input.value = self.get_value(page)


@dataclass(eq=False)
class PasswordField(FormControl):
    """Masked input; the page shows ``#`` or ``_``, the input holds the text."""

    kind = "password"

    def get_value(self, page: Page) -> str:
        if self.input is None:
            return ""
        return self.input.value or ""

    def set_value(self, page: Page, value: str) -> None:
        if self.input is not None:
            self.input.value = value
        mask = ("#" if value else "_") * self.width
        page.set_line(self.line, _splice(page.get_line(self.line), self.start, self.width, mask))


@dataclass(eq=False)
class SubmitButton(FormControl):
    kind = "submit"

    @property
    def followable(self) -> bool:
        return self.form is not None and not self.form.detached

    def get_value(self, page: Page) -> str:
        return page.get_line(self.line)[self.start:self.end + 1]

    def set_value(self, page: Page, value: str) -> None:
        pass

    def resolve(self, page: Page) -> Request:
        """Sync every control of the form, then build the submission."""
        if self.form is None:
            raise BrowserError("This button is not part of a form")
        self.form.sync_controls(page)
        return self.form.click(self.input)


@dataclass(eq=False)
class CheckBox(FormControl):
    """``[X]`` toggle; also used for each option of a multiple select."""

    on_value: str | None = None
    multi: bool = False

    kind = "checkbox"

    def get_value(self, page: Page) -> str:
        return page.get_line(self.line)[self.start:self.start + 1]

    def set_value(self, page: Page, value: str) -> None:
        mark = (value or " ")[:1]
        page.set_line(self.line, _splice(page.get_line(self.line), self.start, 1, mark))

    def checked(self, page: Page) -> bool:
        return self.get_value(page) == "X"

    def toggle(self, page: Page) -> None:
        self.set_value(page, " " if self.checked(page) else "X")

    def sync(self, page: Page) -> None:
        if self.input is not None:
            self.input.value = self.on_value if self.checked(page) else None


@dataclass(eq=False)
class RadioButton(FormControl):
    """``(*)`` choice; siblings share the same ``FormInput``."""

    on_value: str | None = None

    kind = "radio"

    def get_value(self, page: Page) -> str:
        return page.get_line(self.line)[self.start:self.start + 1]

    def set_value(self, page: Page, value: str) -> None:
        mark = (value or " ")[:1]
        page.set_line(self.line, _splice(page.get_line(self.line), self.start, 1, mark))

    def selected(self, page: Page) -> bool:
        return self.get_value(page) == "*"

    def siblings(self) -> list[RadioButton]:
        if self.form is None:
            return [self]
        return [
            control
            for control in self.form.controls
            if isinstance(control, RadioButton) and control.input is self.input
        ]

    def select(self, page: Page) -> None:
        for sibling in self.siblings():
            if sibling is not self and sibling.selected(page):
                sibling.set_value(page, " ")
        self.set_value(page, "*")

    def sync(self, page: Page) -> None:
        if self.input is not None and self.selected(page):
            self.input.value = self.on_value


@dataclass(eq=False)
class FileField(FormControl):
    kind = "file"

    def placeholder(self) -> str:
        return "-<Browse>-" + "-" * (self.width - 10)

    def get_value(self, page: Page) -> str:
        if self.input is None:
            return ""
        return self.input.value or ""

    def set_value(self, page: Page, value: str) -> None:
        value = value.strip()
        if self.input is not None:
            self.input.value = value
        shown = value[-self.width:] if value else self.placeholder()
        shown = shown.ljust(self.width, "-")
        page.set_line(self.line, _splice(page.get_line(self.line), self.start, self.width, shown))


@dataclass(eq=False)
class OptionSelect(FormControl):
    """Single-choice select shown as ``[current]`` padded to the longest name."""

    kind = "select"

    def choices(self) -> list[str]:
        return list(self.input.value_names) if self.input is not None else []

    def get_value(self, page: Page) -> str:
        return page.get_line(self.line)[self.start:self.start + self.width].strip()

    def set_value(self, page: Page, value: str) -> None:
        shown = value[:self.width].ljust(self.width)
        page.set_line(self.line, _splice(page.get_line(self.line), self.start, self.width, shown))

    def cycle(self, page: Page, offset: int = 1) -> bool:
        """Move to the choice ``offset`` steps away; no-op past either end."""
        choices = self.choices()
        current = self.get_value(page)
        try:
            index = choices.index(current) + offset
        except ValueError:
            index = 0
        if not 0 <= index < len(choices):
            return False
        self.set_value(page, choices[index])
        return True

    def sync(self, page: Page) -> None:
        if self.input is None:
            return
        try:
            self.input.set_by_name(self.get_value(page))
        except ValueError:
            pass


@dataclass(eq=False)
class TextArea(FormControl):
    """Multi-line input with a ``rows``-high window onto its value.

    ``line`` is the header row; the window occupies the following ``rows``
    lines. ``scroll`` is the index of the first visible value line.
    """

    rows: int = 10
    scroll: int = 0

    kind = "textarea"

    def value_lines(self) -> list[str]:
        value = (self.input.value or "") if self.input is not None else ""
        return value.splitlines()

    def max_scroll(self) -> int:
        return max(0, len(self.value_lines()) - self.rows)

    def clamp_scroll(self) -> None:
        self.scroll = max(0, min(self.scroll, self.max_scroll()))

    def visible_lines(self) -> list[str]:
        self.clamp_scroll()
        visible = self.value_lines()[self.scroll:self.scroll + self.rows]
        return visible + [""] * (self.rows - len(visible))

    def get_value(self, page: Page) -> str:
        return (self.input.value or "") if self.input is not None else ""

    def set_value(self, page: Page, value: str | None) -> None:
        if value is not None and self.input is not None:
            self.input.value = value
        page.update_text_area(self)

    def scroll_by(self, page: Page, delta: int) -> None:
        self.scroll += delta
        page.update_text_area(self)


class LineRegistry:
    """Elements bucketed by line, each bucket sorted by start column.

    ``allow_nesting`` is used for markup spans; interactive elements on one
    line must not overlap.
    """

    def __init__(self, *, allow_nesting: bool = False) -> None:
        self._lines: list[list] = []
        self.allow_nesting = allow_nesting

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator:
        for bucket in self._lines:
            yield from bucket

    def line(self, index: int) -> list:
        if 0 <= index < len(self._lines):
            return self._lines[index]
        return []

    def add(self, element) -> None:
        if element.line < 0:
            raise LayoutInvariantError(f"element registered on line {element.line}")
        single_line = getattr(element, "end_line", element.line) == element.line
        if single_line and element.end < element.start:
            raise LayoutInvariantError(
                f"empty range {element.start}..{element.end} on line {element.line}"
            )
        while len(self._lines) <= element.line:
            self._lines.append([])
        bucket = self._lines[element.line]
        starts = [existing.start for existing in bucket]
        index = bisect.bisect_right(starts, element.start)
        if not self.allow_nesting:
            before = bucket[index - 1] if index > 0 else None
            after = bucket[index] if index < len(bucket) else None
            if (before is not None and before.end >= element.start) or (
                after is not None and element.end >= after.start
            ):
                raise LayoutInvariantError(
                    f"overlapping elements on line {element.line} at column {element.start}"
                )
        bucket.insert(index, element)

    def extend(self, elements) -> None:
        for element in elements:
            self.add(element)

    def last_line(self) -> int:
        return len(self._lines) - 1


@dataclass
class Registries:
    links: LineRegistry = field(default_factory=LineRegistry)
    images: LineRegistry = field(default_factory=LineRegistry)
    markup: LineRegistry = field(default_factory=lambda: LineRegistry(allow_nesting=True))

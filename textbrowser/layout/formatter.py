"""HTML tree to addressable text.

``HtmlFormatter`` walks a BeautifulSoup tree in document order and drives a
``LayoutCursor``. Tag behaviour comes from the ``HANDLERS`` table; unknown
tags fall through to ``INERT``, which only descends into the children.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlsplit

from bs4 import NavigableString, PageElement, Tag
from bs4.element import CData, PreformattedString

from ..elements import (
    UNBOUNDED,
    CheckBox,
    FileField,
    FormControl,
    Image,
    Link,
    MarkupKind,
    MarkupSpan,
    OptionSelect,
    PasswordField,
    RadioButton,
    Registries,
    SubmitButton,
    TextArea,
    TextField,
)
from ..forms import Form, FormInput
from .cursor import HARD_SPACE, LayoutCursor, Mark

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"([ \t\n\r\f]+)")

HEADER_UNDERLINES = "=-^+\"."
TEXTAREA_TITLE = "--- Click to edit the text area ---"
PASSWORD_SIZE = 6
FILE_SIZE = 15
FILE_MIN_SIZE = 10
TEXTAREA_ROWS = 10
TAB_SIZE = 8

MARKUP_TAGS: dict[str, MarkupKind] = {
    "b": MarkupKind.BOLD,
    "u": MarkupKind.UNDERLINE,
    "i": MarkupKind.ITALIC,
    "tt": MarkupKind.TELETYPE,
    "strong": MarkupKind.STRONG,
    "em": MarkupKind.EM,
    "code": MarkupKind.CODE,
    "kbd": MarkupKind.KBD,
    "samp": MarkupKind.SAMP,
    "var": MarkupKind.VAR,
    "dfn": MarkupKind.DEFINITION,
    "cite": MarkupKind.CITE,
}


def _int_attr(node: Tag, name: str, default: int) -> int:
    try:
        return int(str(node.get(name, default)).strip())
    except ValueError:
        return default


def _roman(number: int) -> str:
    numerals = (
        (1000, "m"), (900, "cm"), (500, "d"), (400, "cd"), (100, "c"), (90, "xc"),
        (50, "l"), (40, "xl"), (10, "x"), (9, "ix"), (5, "v"), (4, "iv"), (1, "i"),
    )
    out = []
    for value, numeral in numerals:
        while number >= value:
            out.append(numeral)
            number -= value
    return "".join(out)


def _alpha(number: int) -> str:
    out = ""
    while number > 0:
        number, rem = divmod(number - 1, 26)
        out = chr(ord("a") + rem) + out
    return out


@dataclass
class _ListState:
    ordered: bool
    style: str = "1"
    counter: int = 1

    def next_bullet(self) -> str:
        if not self.ordered:
            return "*"
        number = self.counter
        self.counter += 1
        if number <= 0 or self.style == "1":
            label = str(number)
        elif self.style in ("a", "A"):
            label = _alpha(number)
        else:
            label = _roman(number)
        if self.style in ("A", "I"):
            label = label.upper()
        return label + "."


@dataclass
class _PendingLink:
    node: Tag
    href: str
    text: str = ""
    image: Image | None = None


@dataclass
class FormatterState:
    """Traversal state that is not cursor geometry."""

    form: Form | None = None
    form_index: int = 0
    inside_form: bool = False
    claimed: set[int] = field(default_factory=set)
    anchor: _PendingLink | None = None
    lists: list[_ListState] = field(default_factory=list)
    center_depth: int = 0
    saved_margins: tuple[int, int] | None = None
    centered: list[bool] = field(default_factory=list)
    multi_select: str | None = None
    frame_level: int = 0
    pre_start: bool = False


class HtmlFormatter:
    def __init__(
        self,
        *,
        width: int = 80,
        base: str = "",
        forms: Iterable[Form] = (),
        break_lines: bool = True,
    ) -> None:
        self.width = max(1, width)
        self.base = base
        forms = list(forms)
        self.forms = [form for form in forms if not form.detached]
        self.detached = next((form for form in forms if form.detached), None)
        if self.detached is not None:
            self.detached.controls.clear()
        self.cursor = LayoutCursor(self.width, break_lines=break_lines)
        self.registries = Registries()
        self.state = FormatterState()

    # -- traversal --------------------------------------------------------

    def format(self, tree: PageElement) -> list[str]:
        """Lay out ``tree`` and return the rendered lines."""
        stack: list[tuple[PageElement, bool]] = [(tree, False)]
        while stack:
            node, leaving = stack.pop()
            if leaving:
                assert isinstance(node, Tag)
                HANDLERS.get(node.name, INERT).exit(self, node)
                continue
            if isinstance(node, NavigableString):
                if isinstance(node, PreformattedString) and not isinstance(node, CData):
                    continue
                self.text(str(node))
                continue
            if not isinstance(node, Tag):
                continue
            element_id = node.get("id")
            if element_id:
                self.cursor.anchor(str(element_id))
            if HANDLERS.get(node.name, INERT).enter(self, node):
                stack.append((node, True))
                stack.extend((child, False) for child in reversed(list(node.children)))
        return self.finish()

    def finish(self) -> list[str]:
        lines = self.cursor.finish()
        self._build_markup()
        logger.debug(
            "Laid out %d lines, %d links, %d markup spans",
            len(lines),
            len(list(self.registries.links)),
            len(list(self.registries.markup)),
        )
        return lines

    def _build_markup(self) -> None:
        """Pair resolved start/end marks into spans; empty spans are dropped."""
        open_marks: dict[MarkupKind, list[Mark]] = {}
        spans: list[MarkupSpan] = []
        for mark in self.cursor.marks:
            if mark.is_start:
                open_marks.setdefault(mark.kind, []).append(mark)
                continue
            starts = open_marks.get(mark.kind)
            if not starts:
                continue
            start = starts.pop()
            if (mark.line, mark.column) < (start.line, start.column):
                continue
            spans.append(MarkupSpan(mark.kind, start.line, start.column, mark.line, mark.column))
        spans.sort(key=lambda span: (span.line, span.start))
        self.registries.markup.extend(spans)

    # -- text -------------------------------------------------------------

    def text(self, text: str) -> None:
        anchor = self.state.anchor
        if anchor is not None:
            anchor.text += text
            return
        cursor = self.cursor
        if cursor.pre:
            if self.state.pre_start:
                self.state.pre_start = False
                if text.startswith("\r\n"):
                    text = text[2:]
                elif text.startswith("\n"):
                    text = text[1:]
            cursor.emit_verbatim(text.expandtabs(TAB_SIZE))
            return
        for token in _WHITESPACE_RE.split(text):
            if token:
                cursor.emit_word(token)

    def _add_link(self, element: Link) -> None:
        self.registries.links.add(element)

    def _add_control(self, control: FormControl) -> None:
        self.registries.links.add(control)
        if control.form is not None:
            control.form.controls.append(control)

    def _active_form(self) -> Form | None:
        """The enclosing form, else the detached one for loose controls."""
        if self.state.inside_form:
            return self.state.form
        return self.detached

    def _claim(self, candidates: Iterable[FormInput]) -> FormInput | None:
        """First candidate not yet bound to a rendered control."""
        for candidate in candidates:
            if id(candidate) not in self.state.claimed:
                self.state.claimed.add(id(candidate))
                return candidate
        return None

    # -- margins ----------------------------------------------------------

    def _center_enter(self) -> None:
        state = self.state
        cursor = self.cursor
        if state.center_depth == 0:
            state.saved_margins = (cursor.left, cursor.right)
        state.center_depth += 1
        inset = (cursor.right - cursor.left) // 10
        cursor.left += inset
        cursor.right -= inset

    def _center_exit(self) -> None:
        state = self.state
        if state.center_depth == 0:
            return
        state.center_depth -= 1
        self.cursor.request_vspace(1)
        if state.center_depth == 0 and state.saved_margins is not None:
            self.cursor.left, self.cursor.right = state.saved_margins
            state.saved_margins = None

    def _markup_enter(self, node: Tag) -> bool:
        self.cursor.mark_start(MARKUP_TAGS[node.name])
        return True

    def _markup_exit(self, node: Tag) -> None:
        self.cursor.mark_end(MARKUP_TAGS[node.name], defer=self.state.anchor is not None)

    def _enter_cite(self, node: Tag) -> bool:
        self.text("`")
        return self._markup_enter(node)

    def _exit_cite(self, node: Tag) -> None:
        self.text("'")
        self._markup_exit(node)

    # -- block tags -------------------------------------------------------

    def _enter_suppressed(self, node: Tag) -> bool:
        return False

    def _enter_p(self, node: Tag) -> bool:
        self.cursor.request_vspace(1)
        return True

    def _exit_p(self, node: Tag) -> None:
        self.cursor.request_vspace(1)

    def _enter_br(self, node: Tag) -> bool:
        self.cursor.request_vspace(0, add=1)
        return True

    def _enter_hr(self, node: Tag) -> bool:
        cursor = self.cursor
        cursor.request_vspace(1)
        cursor.emit_word("-" * max(1, cursor.right - cursor.left))
        cursor.request_vspace(1)
        return True

    def _enter_center(self, node: Tag) -> bool:
        self._center_enter()
        return True

    def _exit_center(self, node: Tag) -> None:
        self._center_exit()

    def _enter_div(self, node: Tag) -> bool:
        centered = str(node.get("align", "")).lower() == "center"
        self.state.centered.append(centered)
        if centered:
            self._center_enter()
        return True

    def _exit_div(self, node: Tag) -> None:
        centered = self.state.centered.pop() if self.state.centered else False
        if centered:
            self._center_exit()
        else:
            self.cursor.request_vspace(1)

    def _enter_header(self, node: Tag) -> bool:
        level = int(node.name[1])
        self.cursor.request_vspace(1 + int((6 - level) * 0.4))
        centered = str(node.get("align", "")).lower() == "center"
        self.state.centered.append(centered)
        if centered:
            self._center_enter()
        self.cursor.mark_start(MarkupKind.header(level))
        return True

    def _exit_header(self, node: Tag) -> None:
        level = int(node.name[1])
        cursor = self.cursor
        cursor.mark_end(MarkupKind.header(level))
        cursor.request_vspace(0)
        cursor.emit_word(HEADER_UNDERLINES[level - 1] * max(0, cursor.column - cursor.left))
        centered = self.state.centered.pop() if self.state.centered else False
        if centered:
            self._center_exit()
        cursor.request_vspace(1)

    def _enter_pre(self, node: Tag) -> bool:
        cursor = self.cursor
        cursor.request_vspace(0)
        cursor.emit_word("~>")
        cursor.push_margins(2, -2)
        cursor.pre += 1
        self.state.pre_start = True
        cursor.request_vspace(0)
        return True

    def _exit_pre(self, node: Tag) -> None:
        cursor = self.cursor
        cursor.pop_margins()
        cursor.vspace = -1
        if cursor.current_line_blank():
            cursor.lines[-1] = ""
            cursor.column = 0
        else:
            cursor.newline()
        cursor.collect("<~")
        cursor.prev_column = 0
        cursor.column = 2
        cursor.started = True
        cursor.pre = max(0, cursor.pre - 1)
        self.state.pre_start = False
        cursor.request_vspace(0)

    def _enter_blockquote(self, node: Tag) -> bool:
        self.cursor.request_vspace(1)
        self.cursor.push_margins(2, -2)
        return True

    def _exit_blockquote(self, node: Tag) -> None:
        self.cursor.request_vspace(1)
        self.cursor.pop_margins()

    def _enter_address(self, node: Tag) -> bool:
        self.cursor.request_vspace(1)
        self.cursor.mark_start(MarkupKind.ITALIC)
        return True

    def _exit_address(self, node: Tag) -> None:
        self.cursor.mark_end(MarkupKind.ITALIC, defer=self.state.anchor is not None)
        self.cursor.request_vspace(1)

    def _enter_nobr(self, node: Tag) -> bool:
        self.cursor.nobr = True
        return True

    def _exit_nobr(self, node: Tag) -> None:
        self.cursor.nobr = False

    def _enter_wbr(self, node: Tag) -> bool:
        self.cursor.request_hspace(HARD_SPACE)
        return True

    def _enter_label(self, node: Tag) -> bool:
        self.cursor.request_hspace()
        return True

    # -- tables -----------------------------------------------------------

    def _enter_block(self, node: Tag) -> bool:
        self.cursor.request_vspace(1)
        return True

    def _exit_block(self, node: Tag) -> None:
        self.cursor.request_vspace(1)

    def _exit_line(self, node: Tag) -> None:
        self.cursor.request_vspace(0)

    def _enter_cell(self, node: Tag) -> bool:
        self.cursor.request_hspace()
        if node.name == "th":
            self.cursor.mark_start(MarkupKind.BOLD)
        return True

    def _exit_cell(self, node: Tag) -> None:
        if node.name == "th":
            self.cursor.mark_end(MarkupKind.BOLD, defer=self.state.anchor is not None)

    # -- lists ------------------------------------------------------------

    def _enter_list(self, node: Tag) -> bool:
        ordered = node.name == "ol"
        style = str(node.get("type", "1")) if ordered else "*"
        if style not in ("1", "a", "A", "i", "I"):
            style = "1"
        start = _int_attr(node, "start", 1) if ordered else 1
        self.state.lists.append(_ListState(ordered, style, start))
        self.cursor.request_vspace(1)
        self.cursor.push_margins(2)
        return True

    def _exit_list(self, node: Tag) -> None:
        if self.state.lists:
            self.state.lists.pop()
        self.cursor.pop_margins()
        self.cursor.request_vspace(1)

    def _enter_li(self, node: Tag) -> bool:
        cursor = self.cursor
        cursor.request_vspace(0)
        if self.state.lists:
            current = self.state.lists[-1]
            if current.ordered and node.has_attr("value"):
                current.counter = _int_attr(node, "value", current.counter)
            cursor.emit_word(current.next_bullet() + " ")
        else:
            cursor.request_hspace()
        cursor.push_margins(2)
        return True

    def _exit_li(self, node: Tag) -> None:
        self.cursor.request_vspace(1)
        self.cursor.pop_margins()

    def _enter_dt(self, node: Tag) -> bool:
        self.cursor.request_vspace(1)
        return True

    def _enter_dd(self, node: Tag) -> bool:
        self.cursor.push_margins(6)
        self.cursor.request_vspace(0)
        return True

    def _exit_dd(self, node: Tag) -> None:
        self.cursor.request_vspace(1)
        self.cursor.pop_margins()

    # -- frames -----------------------------------------------------------

    def _enter_frameset(self, node: Tag) -> bool:
        self.state.frame_level += 1
        self.cursor.request_vspace(1)
        return True

    def _exit_frameset(self, node: Tag) -> None:
        self.state.frame_level = max(0, self.state.frame_level - 1)
        self.cursor.request_vspace(1)

    def _enter_frame(self, node: Tag) -> bool:
        cursor = self.cursor
        cursor.request_vspace(0)
        cursor.emit_word("  " * self.state.frame_level + "FRAME:")
        cursor.request_hspace()
        src = str(node.get("src") or "")
        text = " ".join(str(node.get("name") or "").split()) or "[open]"
        if cursor.emit_word(text) and src:
            self._add_link(
                Link(
                    cursor.line,
                    cursor.prev_column,
                    cursor.column - 1,
                    target=urljoin(self.base, src),
                    text=text,
                    sidebar=not urlsplit(src).scheme,
                )
            )
        cursor.request_vspace(0)
        return True

    # -- links and images -------------------------------------------------

    def _enter_a(self, node: Tag) -> bool:
        name = node.get("name")
        if name:
            self.cursor.anchor(str(name))
        href = node.get("href")
        if href is not None and self.state.anchor is None:
            self.state.anchor = _PendingLink(node, str(href).strip())
        return True

    def _exit_a(self, node: Tag) -> None:
        anchor = self.state.anchor
        if anchor is None or anchor.node is not node:
            return
        self.state.anchor = None
        cursor = self.cursor
        raw = anchor.text
        text = " ".join(raw.split())
        if raw[:1].isspace():
            cursor.request_hspace()
        if not text:
            return
        cursor.emit_word(text)
        link = Link(
            cursor.line,
            cursor.prev_column,
            cursor.column - 1,
            target=urljoin(self.base, anchor.href),
            text=text,
            sidebar=not urlsplit(anchor.href).scheme,
        )
        self._add_link(link)
        if anchor.image is not None:
            image = anchor.image
            image.line, image.start, image.end = link.line, link.start, link.end
            image.link = link
            self.registries.images.add(image)
        if raw[-1:].isspace():
            cursor.request_hspace()

    def _enter_img(self, node: Tag) -> bool:
        alt = node.get("alt")
        if alt is None:
            text = "{IMAGE}"
        else:
            alt = " ".join(str(alt).split())
            text = f"{{{alt}}}" if alt else ""
        if not text:
            return True
        target = urljoin(self.base, str(node.get("src") or ""))
        anchor = self.state.anchor
        if anchor is not None:
            anchor.text += text
            if anchor.image is None:
                anchor.image = Image(0, 0, 0, target=target, text=text)
            return True
        cursor = self.cursor
        cursor.emit_word(text)
        self.registries.images.add(
            Image(cursor.line, cursor.prev_column + 1, cursor.column - 2, target=target, text=text)
        )
        return True

    # -- forms ------------------------------------------------------------

    def _enter_form(self, node: Tag) -> bool:
        state = self.state
        if state.form_index < len(self.forms):
            state.form = self.forms[state.form_index]
            state.form.controls.clear()
        else:
            logger.debug("No bindings for form #%d; its controls are inert", state.form_index)
            state.form = None
        state.inside_form = True
        state.form_index += 1
        self.cursor.request_vspace(1)
        return True

    def _exit_form(self, node: Tag) -> None:
        self.state.form = None
        self.state.inside_form = False
        self.cursor.request_vspace(1)

    def _enter_input(self, node: Tag) -> bool:
        form = self._active_form()
        input_type = str(node.get("type") or "text").lower()
        if form is None or input_type in ("hidden", "reset", "button"):
            return True
        name = node.get("name")
        cursor = self.cursor
        if input_type == "radio":
            group = form.find_input(name, "radio")
            value = str(node.get("value") or "on")
            if group is None:
                return True
            cursor.emit_word("(*)" if group.value == value else "( )")
            column = cursor.column - 2
            self._add_control(RadioButton(cursor.line, column, column, form, group, on_value=value))
        elif input_type == "checkbox":
            value = str(node.get("value") or "on")
            bound = self._claim(
                candidate for candidate in form.find_inputs(name, "checkbox") if value in candidate.possible_values
            )
            if bound is None:
                return True
            cursor.emit_word("[X]" if bound.value == value else "[ ]")
            column = cursor.column - 2
            self._add_control(CheckBox(cursor.line, column, column, form, bound, on_value=value))
        elif input_type in ("submit", "image"):
            bound = self._claim(form.find_inputs(name, input_type))
            if bound is None:
                return True
            if cursor.emit_word(bound.label or "Submit"):
                self._add_control(SubmitButton(cursor.line, cursor.prev_column, cursor.column - 1, form, bound))
        elif input_type == "password":
            bound = self._claim(form.find_inputs(name, "password"))
            if bound is None:
                return True
            size = max(1, _int_attr(node, "size", PASSWORD_SIZE))
            cursor.emit_word("[" + ("#" if bound.value else "_") * size + "]")
            end = cursor.column - 2
            self._add_control(PasswordField(cursor.line, end - size + 1, end, form, bound))
        elif input_type == "file":
            bound = self._claim(form.find_inputs(name, "file"))
            if bound is None:
                return True
            size = max(FILE_MIN_SIZE, _int_attr(node, "size", FILE_SIZE))
            cursor.emit_word("[-<Browse>-" + "-" * (size - FILE_MIN_SIZE) + "]")
            end = cursor.column - 2
            self._add_control(FileField(cursor.line, end - size + 1, end, form, bound))
        else:
            bound = self._claim(form.find_inputs(name, "text"))
            if bound is None:
                return True
            cursor.emit_word("]>")
            line, start = cursor.line, cursor.column
            cursor.collect(" ")
            cursor.column += 1
            if bound.value:
                cursor.collect(bound.value)
                cursor.column += len(bound.value)
            self._add_control(TextField(line, start, UNBOUNDED, form, bound))
            cursor.request_vspace(0)
        return True

    def _enter_button(self, node: Tag) -> bool:
        form = self._active_form()
        if form is None or str(node.get("type") or "submit").lower() != "submit":
            return True
        bound = self._claim(form.find_inputs(node.get("name"), "submit"))
        if bound is None:
            return True
        cursor = self.cursor
        if cursor.emit_word(bound.label or "Submit"):
            self._add_control(SubmitButton(cursor.line, cursor.prev_column, cursor.column - 1, form, bound))
        return False

    def _enter_select(self, node: Tag) -> bool:
        form = self._active_form()
        name = node.get("name")
        if node.has_attr("multiple"):
            self.state.multi_select = name if form is not None else None
            return True
        if form is None:
            return False
        bound = self._claim(
            candidate for candidate in form.find_inputs(name, "option") if not candidate.multiple
        )
        if bound is None or not bound.value_names:
            return False
        width = max(len(choice) for choice in bound.value_names)
        shown = bound.name_for_value(bound.value) or ""
        cursor = self.cursor
        cursor.emit_word("[" + shown.ljust(width) + "]")
        if width:
            self._add_control(OptionSelect(cursor.line, cursor.prev_column + 1, cursor.column - 2, form, bound))
        return False

    def _exit_select(self, node: Tag) -> None:
        if node.has_attr("multiple"):
            self.state.multi_select = None
            self.cursor.request_vspace(1)

    def _enter_option(self, node: Tag) -> bool:
        form = self._active_form()
        if form is None or self.state.multi_select is None:
            return False
        text = " ".join(node.get_text().split())
        value = node.get("value")
        value = text if value is None else str(value)
        cursor = self.cursor
        cursor.request_vspace(0)
        bound = self._claim(
            candidate
            for candidate in form.find_inputs(self.state.multi_select, "option")
            if candidate.multiple and value in candidate.possible_values
        )
        if bound is None:
            return True
        cursor.emit_word("[X]" if bound.value == value else "[ ]")
        column = cursor.column - 2
        self._add_control(CheckBox(cursor.line, column, column, form, bound, on_value=value, multi=True))
        return True

    def _exit_option(self, node: Tag) -> None:
        self.cursor.request_vspace(0)

    def _enter_textarea(self, node: Tag) -> bool:
        form = self._active_form()
        if form is None:
            return False
        bound = self._claim(form.find_inputs(node.get("name"), "textarea"))
        if bound is None:
            return False
        rows = max(1, _int_attr(node, "rows", TEXTAREA_ROWS))
        cursor = self.cursor
        width = cursor.right - cursor.left
        cursor.request_vspace(0)
        cursor.emit_word(TEXTAREA_TITLE + "-" * max(0, width - len(TEXTAREA_TITLE) - 4) + " {{{")
        line, start = cursor.line, cursor.left
        visible = (bound.value or "").splitlines()[:rows]
        for row in visible:
            cursor.request_vspace(0)
            cursor.emit_verbatim(row.expandtabs(TAB_SIZE))
        cursor.request_vspace(rows - len(visible))
        cursor.emit_word("}}} " + "-" * max(0, width - 4))
        cursor.request_vspace(0)
        self._add_control(TextArea(line, start, max(start, cursor.right - 1), form, bound, rows=rows))
        return False


@dataclass(frozen=True)
class TagHandler:
    """Enter/exit callbacks for one tag; enter returns whether to descend."""

    enter: Callable[[HtmlFormatter, Tag], bool] = lambda formatter, node: True
    exit: Callable[[HtmlFormatter, Tag], None] = lambda formatter, node: None


INERT = TagHandler()
SUPPRESSED = TagHandler(HtmlFormatter._enter_suppressed)
MARKUP = TagHandler(HtmlFormatter._markup_enter, HtmlFormatter._markup_exit)
BLOCK = TagHandler(HtmlFormatter._enter_block, HtmlFormatter._exit_block)
LIST = TagHandler(HtmlFormatter._enter_list, HtmlFormatter._exit_list)
HEADER = TagHandler(HtmlFormatter._enter_header, HtmlFormatter._exit_header)
PRE = TagHandler(HtmlFormatter._enter_pre, HtmlFormatter._exit_pre)
CELL = TagHandler(HtmlFormatter._enter_cell, HtmlFormatter._exit_cell)

HANDLERS: dict[str, TagHandler] = {
    "head": SUPPRESSED,
    "script": SUPPRESSED,
    "style": SUPPRESSED,
    "del": SUPPRESSED,
    "template": SUPPRESSED,
    "title": SUPPRESSED,
    **{tag: MARKUP for tag in MARKUP_TAGS},
    **{f"h{level}": HEADER for level in range(1, 7)},
    "cite": TagHandler(HtmlFormatter._enter_cite, HtmlFormatter._exit_cite),
    "p": TagHandler(HtmlFormatter._enter_p, HtmlFormatter._exit_p),
    "br": TagHandler(HtmlFormatter._enter_br),
    "hr": TagHandler(HtmlFormatter._enter_hr),
    "noframes": TagHandler(HtmlFormatter._enter_hr),
    "center": TagHandler(HtmlFormatter._enter_center, HtmlFormatter._exit_center),
    "div": TagHandler(HtmlFormatter._enter_div, HtmlFormatter._exit_div),
    "pre": PRE,
    "listing": PRE,
    "xmp": PRE,
    "blockquote": TagHandler(HtmlFormatter._enter_blockquote, HtmlFormatter._exit_blockquote),
    "address": TagHandler(HtmlFormatter._enter_address, HtmlFormatter._exit_address),
    "nobr": TagHandler(HtmlFormatter._enter_nobr, HtmlFormatter._exit_nobr),
    "wbr": TagHandler(HtmlFormatter._enter_wbr),
    "label": TagHandler(HtmlFormatter._enter_label),
    "table": BLOCK,
    "dl": BLOCK,
    "tr": TagHandler(exit=HtmlFormatter._exit_line),
    "td": CELL,
    "th": CELL,
    "ul": LIST,
    "ol": LIST,
    "menu": LIST,
    "dir": LIST,
    "li": TagHandler(HtmlFormatter._enter_li, HtmlFormatter._exit_li),
    "dt": TagHandler(HtmlFormatter._enter_dt),
    "dd": TagHandler(HtmlFormatter._enter_dd, HtmlFormatter._exit_dd),
    "frameset": TagHandler(HtmlFormatter._enter_frameset, HtmlFormatter._exit_frameset),
    "frame": TagHandler(HtmlFormatter._enter_frame),
    "a": TagHandler(HtmlFormatter._enter_a, HtmlFormatter._exit_a),
    "img": TagHandler(HtmlFormatter._enter_img),
    "form": TagHandler(HtmlFormatter._enter_form, HtmlFormatter._exit_form),
    "input": TagHandler(HtmlFormatter._enter_input),
    "button": TagHandler(HtmlFormatter._enter_button),
    "select": TagHandler(HtmlFormatter._enter_select, HtmlFormatter._exit_select),
    "option": TagHandler(HtmlFormatter._enter_option, HtmlFormatter._exit_option),
    "textarea": TagHandler(HtmlFormatter._enter_textarea),
}

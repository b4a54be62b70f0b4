"""Layout engine behavior: spacing, markup spans, links, lists and forms.

Every scenario renders a small document through ``layout`` and checks the
emitted lines together with the registries built alongside them.
"""

from __future__ import annotations

import unittest

from bs4 import BeautifulSoup

from textbrowser.elements import CheckBox, Image, Link, MarkupKind, OptionSelect, SubmitButton, TextArea, TextField
from textbrowser.forms import parse_forms
from textbrowser.layout import LayoutOptions, layout
from textbrowser.layout.cursor import SOFT_SPACE, LayoutCursor
from textbrowser.layout.formatter import TEXTAREA_TITLE
from textbrowser.page import ListLineStore, Page


def _render(markup: str, width: int = 80, base: str = "http://h/", break_lines: bool = True):
    soup = BeautifulSoup(markup, "html.parser")
    return layout(soup, LayoutOptions(width=width, base=base, break_lines=break_lines))


def _page(result, uri: str = "http://h/") -> Page:
    return Page(
        store=ListLineStore(result.lines),
        uri=uri,
        links=result.links,
        images=result.images,
        markup=result.markup,
    )


def _snapshot(result) -> tuple:
    return (
        result.lines,
        [(type(item).__name__, item.line, item.start, item.end, getattr(item, "target", "")) for item in result.links],
        [(item.line, item.start, item.end, item.target) for item in result.images],
        [(item.kind, item.line, item.start, item.end_line, item.end) for item in result.markup],
        result.fragments,
    )


COMPLEX_DOCUMENT = """
<html><head><title>T</title><style>p { color: red }</style></head><body>
<h2 id="top">Section <i>one</i></h2>
<p>Some <b>bold</b> and <a href="/a">a link</a> with an <img src="i.png" alt="icon">.</p>
<ul><li>first <a href="b.html">b</a></li><li>second <a href="c.html">c</a> <a href="d.html">d</a></li></ul>
<form action="/s"><input name="q" value="v"> <input type="checkbox" name="c" value="1" checked>
<select name="s"><option>one</option><option>three</option></select>
<input type="submit" value="Go"></form>
<pre>  keep   this
spacing</pre>
</body></html>
"""


class LayoutScenarioTests(unittest.TestCase):
    def test_paragraph_with_bold_word(self) -> None:
        result = _render("<p>Hello <b>world</b></p>")

        self.assertEqual(result.lines, ["Hello world"])
        spans = list(result.markup)
        self.assertEqual(len(spans), 1)
        span = spans[0]
        self.assertEqual(span.kind, MarkupKind.BOLD)
        self.assertEqual((span.line, span.start, span.end_line, span.end), (0, 6, 0, 10))

    def test_relative_link_resolves_against_base(self) -> None:
        result = _render('<a href="/x">go</a>')

        self.assertEqual(result.lines, ["go"])
        links = list(result.links)
        self.assertEqual(len(links), 1)
        link = links[0]
        self.assertIsInstance(link, Link)
        self.assertEqual(link.target, "http://h/x")
        self.assertEqual((link.line, link.start, link.end), (0, 0, 1))

    def test_checked_checkbox_value_round_trip(self) -> None:
        result = _render('<input type="checkbox" checked>')
        page = _page(result)

        self.assertEqual(result.lines, ["[X]"])
        control = list(result.links)[0]
        self.assertIsInstance(control, CheckBox)
        self.assertEqual(control.get_value(page), "X")
        control.set_value(page, " ")
        self.assertEqual(page.get_line(0), "[ ]")

    def test_layout_is_deterministic(self) -> None:
        first = _render(COMPLEX_DOCUMENT)
        second = _render(COMPLEX_DOCUMENT)

        self.assertEqual(_snapshot(first), _snapshot(second))

    def test_elements_are_sorted_and_disjoint_per_line(self) -> None:
        result = _render(COMPLEX_DOCUMENT, width=30)

        for registry in (result.links, result.images):
            for index in range(len(registry)):
                bucket = registry.line(index)
                for before, after in zip(bucket, bucket[1:]):
                    self.assertLess(before.start, after.start)
                    self.assertLess(before.end, after.start)
        for element in result.links:
            self.assertLess(element.line, len(result.lines))

    def test_elements_cover_their_rendered_text(self) -> None:
        result = _render(COMPLEX_DOCUMENT)

        for element in result.links:
            if isinstance(element, Link):
                self.assertEqual(result.lines[element.line][element.start:element.end + 1], element.text)


class LayoutSpacingTests(unittest.TestCase):
    def test_paragraphs_are_separated_by_one_blank_line(self) -> None:
        self.assertEqual(_render("<p>one</p><p>two</p>").lines, ["one", "", "two"])

    def test_leading_and_trailing_space_is_dropped(self) -> None:
        self.assertEqual(_render("<br><br><p>x</p><br><br>").lines, ["x"])

    def test_empty_document_has_no_lines(self) -> None:
        self.assertEqual(_render("<p> </p>").lines, [])

    def test_long_text_wraps_at_width(self) -> None:
        self.assertEqual(_render("<p>aaaa bbbb cccc</p>", width=10).lines, ["aaaa bbbb", "cccc"])

    def test_wrapping_can_be_disabled(self) -> None:
        result = _render("<p>aaaa bbbb cccc</p>", width=10, break_lines=False)

        self.assertEqual(result.lines, ["aaaa bbbb cccc"])

    def test_whitespace_runs_collapse(self) -> None:
        self.assertEqual(_render("<p>a \n\t  b</p>").lines, ["a b"])

    def test_suppressed_tags_render_nothing(self) -> None:
        result = _render("<head><title>T</title></head><p>a<script>var x;</script>b</p>")

        self.assertEqual(result.lines, ["ab"])

    def test_header_is_underlined_and_marked(self) -> None:
        result = _render("<h1>Title</h1><p>x</p>")

        self.assertEqual(result.lines, ["Title", "=====", "", "x"])
        spans = [span for span in result.markup if span.kind == MarkupKind.HEADER1]
        self.assertEqual(len(spans), 1)
        self.assertEqual((spans[0].line, spans[0].start, spans[0].end), (0, 0, 4))

    def test_preformatted_text_keeps_spacing(self) -> None:
        result = _render("<pre>a  b\nc</pre>")

        self.assertEqual(result.lines, ["~>", "  a  b", "  c", "<~"])

    def test_unordered_list_items_are_bulleted(self) -> None:
        result = _render("<ul><li>one</li><li>two</li></ul>")

        self.assertEqual(result.lines, ["  * one", "", "  * two"])

    def test_ordered_list_counts_from_start(self) -> None:
        result = _render('<ol start="3"><li>a</li><li>b</li></ol>')

        self.assertEqual(result.lines, ["  3. a", "", "  4. b"])

    def test_roman_list_style(self) -> None:
        result = _render('<ol type="I" start="4"><li>x</li></ol>')

        self.assertEqual(result.lines, ["  IV. x"])

    def test_fragment_maps_to_rendered_line(self) -> None:
        result = _render('<p>one</p><p id="second">two</p><a name="end"></a><p>three</p>')

        self.assertEqual(result.fragments["second"], 2)
        self.assertEqual(result.fragments["end"], 4)


class LayoutElementTests(unittest.TestCase):
    def test_image_alt_text_is_registered(self) -> None:
        result = _render('<img src="i.png" alt="pic">')

        self.assertEqual(result.lines, ["{pic}"])
        images = list(result.images)
        self.assertEqual(len(images), 1)
        self.assertIsInstance(images[0], Image)
        self.assertEqual((images[0].start, images[0].end), (1, 3))
        self.assertEqual(images[0].target, "http://h/i.png")

    def test_image_without_alt_uses_placeholder(self) -> None:
        self.assertEqual(_render('<img src="i.png">').lines, ["{IMAGE}"])

    def test_linked_image_shares_link_range(self) -> None:
        result = _render('<a href="big.png"><img src="small.png" alt="thumb"></a>')

        link = list(result.links)[0]
        image = list(result.images)[0]
        self.assertEqual(link.target, "http://h/big.png")
        self.assertEqual(image.target, "http://h/small.png")
        self.assertIs(image.link, link)
        self.assertEqual((image.line, image.start, image.end), (link.line, link.start, link.end))

    def test_empty_link_is_skipped(self) -> None:
        result = _render('<p>a <a href="/x"> </a> b</p>')

        self.assertEqual(result.lines, ["a b"])
        self.assertEqual(list(result.links), [])

    def test_text_field_owns_rest_of_line(self) -> None:
        result = _render('<form action="/s"><input name="q" value="abc"></form>')
        page = _page(result)

        self.assertEqual(result.lines, ["]> abc"])
        field = list(result.links)[0]
        self.assertIsInstance(field, TextField)
        self.assertEqual(field.get_value(page), "abc")
        field.set_value(page, "xyz")
        self.assertEqual(page.get_line(0), "]> xyz")
        self.assertEqual(field.get_value(page), "xyz")

    def test_select_shows_current_choice_padded(self) -> None:
        result = _render(
            '<form><select name="s"><option>alpha</option><option selected>be</option></select></form>'
        )
        page = _page(result)

        self.assertEqual(result.lines, ["[be   ]"])
        select = list(result.links)[0]
        self.assertIsInstance(select, OptionSelect)
        self.assertEqual((select.start, select.end), (1, 5))
        self.assertFalse(select.cycle(page, 1))
        self.assertTrue(select.cycle(page, -1))
        self.assertEqual(page.get_line(0), "[alpha]")
        select.set_value(page, "be")
        self.assertEqual(select.get_value(page), "be")

    def test_textarea_reserves_rows(self) -> None:
        result = _render('<form><textarea name="t" rows="2">hello</textarea></form>', width=40)
        page = _page(result)

        self.assertTrue(result.lines[0].startswith(TEXTAREA_TITLE))
        self.assertTrue(result.lines[0].endswith("{{{"))
        self.assertEqual(result.lines[1:3], ["hello", ""])
        self.assertTrue(result.lines[3].startswith("}}}"))
        area = list(result.links)[0]
        self.assertIsInstance(area, TextArea)
        area.set_value(page, "x\ny\nz")
        self.assertEqual(page.lines()[1:3], ["x", "y"])
        area.scroll_by(page, 1)
        self.assertEqual(page.lines()[1:3], ["y", "z"])

    def test_controls_register_with_their_form(self) -> None:
        soup = BeautifulSoup(COMPLEX_DOCUMENT, "html.parser")
        forms = parse_forms(soup, "http://h/")
        result = layout(soup, LayoutOptions(base="http://h/", forms=forms))

        controls = [element for element in result.links if not isinstance(element, Link)]
        self.assertEqual(len(forms), 1)
        self.assertEqual(forms[0].controls, controls)
        self.assertEqual(len(controls), 4)

    def test_blank_submit_label_falls_back_to_default(self) -> None:
        result = _render('<form><input type="checkbox" name="c"><input type="submit" value=" "></form>')

        self.assertEqual(result.lines, ["[ ]Submit"])
        box, button = list(result.links)
        self.assertIsInstance(box, CheckBox)
        self.assertIsInstance(button, SubmitButton)
        self.assertEqual((button.start, button.end), (3, 8))

    def test_blank_button_text_falls_back_to_default(self) -> None:
        result = _render('<form><input type="checkbox" name="c"><button> </button></form>')

        self.assertEqual(result.lines, ["[ ]Submit"])
        self.assertEqual(len(list(result.links)), 2)

    def test_blank_frame_name_shows_placeholder(self) -> None:
        result = _render('<frameset><frame src="a.html" name="  "></frameset>')

        self.assertEqual(result.lines, ["  FRAME: [open]"])
        link = list(result.links)[0]
        self.assertEqual((link.start, link.end, link.target), (9, 14, "http://h/a.html"))

    def test_blank_word_is_not_emitted(self) -> None:
        cursor = LayoutCursor(20)

        self.assertFalse(cursor.emit_word("  "))
        self.assertEqual(cursor.hspace, SOFT_SPACE)
        self.assertEqual(cursor.lines, [""])
        self.assertTrue(cursor.emit_word("x"))
        self.assertEqual(cursor.lines, [" x"])

    def test_multiple_select_renders_one_box_per_option(self) -> None:
        result = _render(
            '<form><select name="m" multiple><option> one</option><option selected> two</option></select></form>'
        )
        page = _page(result)

        self.assertEqual(result.lines, ["[ ] one", "[X] two"])
        first, second = list(result.links)
        self.assertIsInstance(first, CheckBox)
        self.assertTrue(first.multi)
        self.assertEqual([(box.line, box.start) for box in (first, second)], [(0, 1), (1, 1)])
        first.toggle(page)
        first.sync(page)
        self.assertEqual(first.input.value, "one")
        self.assertEqual(second.input.value, "two")

    def test_textarea_scroll_is_clamped(self) -> None:
        result = _render('<form><textarea name="t" rows="2">a\nb\nc</textarea></form>', width=40)
        page = _page(result)
        area = list(result.links)[0]

        area.scroll_by(page, 10)
        self.assertEqual(area.scroll, 1)
        self.assertEqual(page.lines()[1:3], ["b", "c"])
        area.scroll_by(page, -10)
        self.assertEqual(area.scroll, 0)
        self.assertEqual(page.lines()[1:3], ["a", "b"])


class LayoutBlockTests(unittest.TestCase):
    def test_header_underline_depends_on_level(self) -> None:
        for level, char in zip(range(2, 7), "-^+\"."):
            with self.subTest(level=level):
                result = _render(f"<h{level}>Ab</h{level}>")

                self.assertEqual(result.lines, ["Ab", char * 2])

    def test_nested_center_restores_margins_at_outermost_exit(self) -> None:
        result = _render(
            "<center><p>a</p><center><p>b</p></center><p>c</p></center><p>d</p>",
            width=40,
        )

        self.assertEqual(result.lines, ["    a", "", "       b", "", "       c", "", "d"])

    def test_blockquote_narrows_both_margins(self) -> None:
        result = _render("<blockquote>aaa bbb ccc</blockquote><p>aaa bbb ccc</p>", width=12)

        self.assertEqual(result.lines, ["  aaa bbb", "  ccc", "", "aaa bbb ccc"])

    def test_definition_body_is_indented(self) -> None:
        result = _render("<dl><dt>term</dt><dd>definition</dd></dl><p>after</p>")

        self.assertEqual(result.lines[0].rstrip(), "term")
        self.assertEqual(result.lines[1], "      definition")
        self.assertEqual(result.lines[2:], ["", "after"])

    def test_line_breaks_add_to_pending_space(self) -> None:
        self.assertEqual(_render("a<br>b").lines, ["a", "b"])
        self.assertEqual(_render("a<br><br>b").lines, ["a", "", "b"])
        self.assertEqual(_render("<p>a</p><br>b").lines, ["a", "", "", "b"])


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import unittest

from requests.structures import CaseInsensitiveDict

from textbrowser.elements import Image, LineRegistry, Link
from textbrowser.fetch import Request, Response
from textbrowser.formats import FormatResult
from textbrowser.page import ListLineStore, Page, response_headers


def _response(uri: str = "http://example.com/doc", **headers: str) -> Response:
    merged = CaseInsensitiveDict({"Content-Type": "text/html; charset=utf-8"})
    merged.update(headers)
    return Response(200, Request(uri), uri, merged, b"", "OK")


def _result(lines: list[str], links: list[Link] = (), title: str = "") -> FormatResult:
    registry = LineRegistry()
    registry.extend(links)
    return FormatResult(list(lines), links=registry, title=title, encoding="utf-8")


class PageFromFormatTests(unittest.TestCase):
    def test_title_falls_back_to_authority(self) -> None:
        page = Page.from_format(_result(["x"]), uri="http://example.com/doc", response=_response())

        self.assertEqual(page.title, "example.com")
        self.assertEqual(page.headers["uri base"], "http://example.com/doc")
        self.assertEqual(page.headers["content type"], "text/html")
        self.assertEqual(page.request.uri, "http://example.com/doc")

    def test_existing_store_is_refilled(self) -> None:
        store = ListLineStore(["old", "lines", "here"])

        page = Page.from_format(_result(["new"]), uri="http://h/", store=store)

        self.assertIs(page.store, store)
        self.assertEqual(store.lines, ["new"])

    def test_response_headers_drop_empty_fields(self) -> None:
        result = _result(["x"])
        result.meta = {"keywords": "a, b"}

        headers = response_headers(_response(Server="httpd"), result)

        self.assertEqual(headers, {
            "content type": "text/html",
            "encoding": "utf-8",
            "server": "httpd",
            "keywords": "a, b",
        })


class HeaderPanelTests(unittest.TestCase):
    def setUp(self) -> None:
        links = [Link(0, 0, 3, target="http://h/a", text="link"), Link(1, 2, 4, target="http://h/b", text="two")]
        self.page = Page.from_format(
            _result(["link here", "  two"], links, title="Doc"),
            uri="http://h/",
            response=_response("http://h/"),
        )

    def test_add_then_remove_restores_page(self) -> None:
        before_lines = self.page.lines()
        before_links = [(link.line, link.start, link.end) for link in self.page.links]

        self.assertTrue(self.page.add_header_panel())
        self.assertEqual(self.page.lines()[2], "Document header: Doc {{{")
        self.assertEqual(self.page.lines()[-2:], ["}}}", ""])
        self.assertEqual(self.page.content_length, 2)
        self.assertTrue(self.page.remove_header_panel())

        self.assertEqual(self.page.lines(), before_lines)
        self.assertEqual([(link.line, link.start, link.end) for link in self.page.links], before_links)
        self.assertEqual(self.page.offset, 0)

    def test_panel_operations_are_idempotent(self) -> None:
        self.assertFalse(self.page.remove_header_panel())
        self.assertTrue(self.page.add_header_panel())
        length = len(self.page)
        self.assertFalse(self.page.add_header_panel())
        self.assertEqual(len(self.page), length)

    def test_toggle_reports_new_state(self) -> None:
        self.assertTrue(self.page.toggle_header_panel())
        self.assertFalse(self.page.toggle_header_panel())
        self.assertEqual(self.page.lines(), ["link here", "  two"])

    def test_panel_lines_hold_no_elements(self) -> None:
        self.page.add_header_panel()

        for line in range(2, len(self.page)):
            self.assertIsNone(self.page.find_element_at(line, 0))


class ElementLookupTests(unittest.TestCase):
    def setUp(self) -> None:
        self.first = Link(0, 0, 3, target="http://h/1", text="one")
        self.second = Link(0, 6, 8, target="http://h/2", text="two")
        self.third = Link(3, 2, 6, target="http://h/3", text="three")
        result = _result(["one - two", "", "", "  three"], [self.first, self.second, self.third])
        result.images.add(Image(3, 3, 5, target="http://h/i.png", text="{i}"))
        self.page = Page.from_format(result, uri="http://h/")

    def test_find_element_at_column(self) -> None:
        self.assertIs(self.page.find_element_at(0, 7), self.second)
        self.assertIsNone(self.page.find_element_at(0, 4))
        self.assertIsNone(self.page.find_element_at(10, 0))
        self.assertEqual(self.page.find_element_at(3, 4, want_images=True).target, "http://h/i.png")

    def test_find_next_element_forward(self) -> None:
        self.assertEqual(self.page.find_next_element(1, 0, 0), (self.second, 0))
        self.assertEqual(self.page.find_next_element(1, 0, 6), (self.third, 3))
        self.assertIsNone(self.page.find_next_element(1, 3, 2))

    def test_find_next_element_backward(self) -> None:
        self.assertEqual(self.page.find_next_element(-1, 3, 2), (self.second, -3))
        self.assertEqual(self.page.find_next_element(-1, 0, 6), (self.first, 0))
        self.assertIsNone(self.page.find_next_element(-1, 0, 0))

    def test_element_target(self) -> None:
        self.assertEqual(self.page.element_target(self.first), "http://h/1")
        self.assertIsNone(self.page.element_target(Link(0, 0, 0)))


if __name__ == "__main__":
    unittest.main()

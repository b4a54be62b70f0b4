from __future__ import annotations

import unittest

from textbrowser.errors import FetchError, NavigationError
from textbrowser.fetch import Request
from textbrowser.navigation import Window
from textbrowser.page import ListLineStore, Page


class _Loader:
    """Serves pages from a dict; unknown locations load nothing."""

    def __init__(self, *uris: str) -> None:
        self.pages = {uri: Page(store=ListLineStore([uri]), uri=uri) for uri in uris}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def __call__(self, location: str | Request) -> Page | None:
        uri = location.uri if isinstance(location, Request) else location
        self.calls.append(uri)
        if uri in self.failing:
            raise FetchError(uri, "boom")
        return self.pages.get(uri)


class WindowNavigationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.loader = _Loader("http://h/a", "http://h/b", "http://h/c")
        self.window = Window(1, self.loader)

    def _visit(self, *uris: str) -> None:
        for uri in uris:
            self.assertIsNotNone(self.window.open_new(uri))

    def test_go_back_with_empty_stack_fails_and_keeps_page(self) -> None:
        self._visit("http://h/a")
        page = self.window.page

        with self.assertRaises(NavigationError) as ctx:
            self.window.go_back(1)

        self.assertEqual(ctx.exception.available, 0)
        self.assertIs(self.window.page, page)
        self.assertEqual(self.window.back, [])
        self.assertEqual(self.window.forward, [])

    def test_back_and_forward_walk_the_stacks(self) -> None:
        self._visit("http://h/a", "http://h/b", "http://h/c")

        self.assertEqual(self.window.go_back().uri, "http://h/b")
        self.assertEqual(self.window.back, ["http://h/a"])
        self.assertEqual(self.window.forward, ["http://h/c"])
        self.assertEqual(self.window.go_forward().uri, "http://h/c")
        self.assertEqual(self.window.back, ["http://h/a", "http://h/b"])
        self.assertEqual(self.window.forward, [])

    def test_go_back_several_steps(self) -> None:
        self._visit("http://h/a", "http://h/b", "http://h/c")

        self.assertEqual(self.window.go_back(2).uri, "http://h/a")
        self.assertEqual(self.window.back, [])
        self.assertEqual(self.window.forward, ["http://h/c", "http://h/b"])
        self.assertEqual(self.window.go(1).uri, "http://h/b")

    def test_open_new_clears_forward_stack(self) -> None:
        self._visit("http://h/a", "http://h/b")
        self.window.go_back()

        self._visit("http://h/c")

        self.assertEqual(self.window.forward, [])
        self.assertEqual(self.window.back, ["http://h/a"])

    def test_failed_open_restores_back_stack(self) -> None:
        self._visit("http://h/a")

        self.assertIsNone(self.window.open_new("http://h/missing"))
        self.loader.failing.add("http://h/b")
        with self.assertRaises(FetchError):
            self.window.open_new("http://h/b")

        self.assertEqual(self.window.back, [])
        self.assertEqual(self.window.page.uri, "http://h/a")

    def test_failed_travel_restores_both_stacks(self) -> None:
        self._visit("http://h/a", "http://h/b", "http://h/c")
        self.window.go_back()
        self.loader.failing.add("http://h/a")

        with self.assertRaises(FetchError):
            self.window.go_back()

        self.assertEqual(self.window.back, ["http://h/a"])
        self.assertEqual(self.window.forward, ["http://h/c"])
        self.assertEqual(self.window.page.uri, "http://h/b")

    def test_fragment_is_kept_in_location(self) -> None:
        self.loader.pages["http://h/a"].fragments["sec"] = 0

        self._visit("http://h/a#sec")

        self.assertEqual(self.loader.calls[-1], "http://h/a")
        self.assertEqual(self.window.fragment, "sec")
        self.assertEqual(self.window.location, "http://h/a#sec")
        self.assertEqual(self.window.fragment_line(), 0)

    def test_history_listing_marks_current_location(self) -> None:
        self._visit("http://h/a", "http://h/b", "http://h/c")
        self.window.go_back()

        self.assertEqual(
            self.window.history_listing(),
            ["   http://h/c", "-> http://h/b", "   http://h/a"],
        )

    def test_pages_track_showing_windows(self) -> None:
        self._visit("http://h/a", "http://h/b")

        self.assertEqual(self.loader.pages["http://h/a"].windows, set())
        self.assertEqual(self.loader.pages["http://h/b"].windows, {1})
        self.window.close()
        self.assertEqual(self.loader.pages["http://h/b"].windows, set())
        self.assertIsNone(self.window.location)


if __name__ == "__main__":
    unittest.main()

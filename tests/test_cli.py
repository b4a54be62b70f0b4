"""CLI option handling and output tests.

Drives ``textbrowser.cli.main`` against local files with an injected session,
so nothing touches the network or the user's data directory.
"""

from __future__ import annotations

import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from textbrowser import cli
from textbrowser.config import BrowserConfig
from textbrowser.session import Session

PAGE = """<html><head><title>Local</title></head><body>
<h1>Welcome</h1>
<p>See <a href="http://example.com/docs">the docs</a> or <a href="#top">top</a>.</p>
</body></html>
"""


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.page_path = self.root / "index.html"
        self.page_path.write_text(PAGE, encoding="utf-8")
        self.session = Session(BrowserConfig(data_dir=self.root / "data", width=60))

    def _run(self, *argv: str) -> str:
        out = io.StringIO()
        with redirect_stdout(out):
            cli.main(list(argv), session=self.session)
        return out.getvalue()

    def test_prints_formatted_page(self) -> None:
        output = self._run(str(self.page_path))

        self.assertEqual(output, "Welcome\n=======\n\nSee the docs or top.\n")

    def test_links_option_lists_targets(self) -> None:
        output = self._run("--links", str(self.page_path))

        self.assertIn("References", output)
        self.assertIn("   1. http://example.com/docs\n", output)
        self.assertIn("   2. " + self.page_path.as_uri() + "#top\n", output)

    def test_headers_option_appends_panel(self) -> None:
        output = self._run("--headers", str(self.page_path))

        self.assertIn("Document header: Local {{{", output)
        self.assertIn("  content type: text/html", output)

    def test_source_option_prints_raw_source(self) -> None:
        output = self._run("--source", "--no-color", str(self.page_path))

        self.assertIn('<a href="http://example.com/docs">the docs</a>', output)

    def test_history_option_lists_visits(self) -> None:
        self._run(str(self.page_path))

        output = self._run("--history")

        self.assertTrue(output.startswith("Browsing History\n"))
        self.assertIn("Local", output)
        self.assertTrue((self.root / "data" / "history").exists())

    def test_missing_file_exits_with_failure(self) -> None:
        with self.assertRaises(SystemExit) as ctx, redirect_stderr(io.StringIO()):
            self._run(str(self.root / "missing.html"))

        self.assertEqual(ctx.exception.code, 1)

    def test_width_must_be_positive(self) -> None:
        with self.assertRaises(SystemExit) as ctx, redirect_stderr(io.StringIO()):
            cli.build_parser().parse_args(["--width", "0"])

        self.assertEqual(ctx.exception.code, 2)

    def test_link_references_empty_without_links(self) -> None:
        plain = self.root / "plain.txt"
        plain.write_text("no links here\n", encoding="utf-8")

        page = self.session.browse(str(plain))

        self.assertEqual(cli.link_references(page), [])
        self.assertEqual(cli.render_page(page, links=True), "no links here\n")


if __name__ == "__main__":
    unittest.main()

"""Browser session: the state a host surface drives.

``Session`` owns the fetcher, page cache, global history, bookmark shelf and
windows. Host operations address pages purely by line and column; each one
catches ``BrowserError``, logs it and returns a failure value so a host can
keep running.
"""

from __future__ import annotations

import functools
import logging
import re
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from urllib.parse import urljoin, urlsplit

from requests.structures import CaseInsensitiveDict

from .bookmarks import BookmarkShelf, resolve_location, split_book_reference
from .config import BrowserConfig, load_browser_config
from .elements import (
    CheckBox,
    Element,
    FileField,
    FormControl,
    OptionSelect,
    PasswordField,
    RadioButton,
    SubmitButton,
    TextArea,
    TextField,
)
from .errors import BrowserError, FetchError, SchemeUnsupported, UnsupportedContentType
from .fetch import Fetcher, Request, Response, error_response, strip_fragment, synthetic_response
from .formats import (
    BOOKMARKS_TYPE,
    HISTORY_TYPE,
    FormatContext,
    format_plain,
    format_response,
    formatter_for,
)
from .history import History
from .navigation import Window
from .page import LineStore, Page
from .syntax import highlight_source

logger = logging.getLogger(__name__)

ACTION_SHOW = "show"
ACTION_SAVE = "save"
ACTION_CANCEL = "cancel"
MAX_REDIRECTS = 5
SYNTHETIC_TYPES = (HISTORY_TYPE, BOOKMARKS_TYPE)

_HANDLER_FLAG_RE = re.compile(r"%([sopfaq%])")

ChooseAction = Callable[[Response], str]
ChooseFile = Callable[[str], "Path | None"]
Launcher = Callable[[str], None]


def expand_handler(template: str, uri: str) -> str:
    """Substitute ``%s %o %p %f %a %q %%`` in an external handler command."""
    parts = urlsplit(uri)
    _, _, opaque = uri.partition(":")
    flags = {
        "s": uri,
        "o": opaque,
        "p": parts.path,
        "f": parts.fragment,
        "a": parts.netloc,
        "q": parts.query,
        "%": "%",
    }
    return _HANDLER_FLAG_RE.sub(lambda match: flags[match.group(1)], template)


def spawn(command: str) -> None:
    """Start an external program without waiting for it."""
    subprocess.Popen(shlex.split(command), start_new_session=True)


def _reported(failure):
    """Host-operation wrapper: log ``BrowserError`` and return ``failure``."""

    def decorate(method):
        @functools.wraps(method)
        def wrapper(self: Session, *args, **kwargs):
            try:
                return method(self, *args, **kwargs)
            except BrowserError as exc:
                logger.error("%s", exc)
                self.last_error = exc
                return failure

        return wrapper

    return decorate


class Session:
    def __init__(
        self,
        config: BrowserConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        choose_action: ChooseAction | None = None,
        choose_file: ChooseFile | None = None,
        launcher: Launcher = spawn,
        store_factory: Callable[[], LineStore] | None = None,
    ) -> None:
        self.config = config or load_browser_config()
        self.fetcher = fetcher or Fetcher(
            timeout=self.config.connect_timeout,
            from_header=self.config.from_header,
        )
        self.fetcher.register_scheme("history", self._fetch_history)
        self.fetcher.register_scheme("bookmarks", self._fetch_bookmarks)
        self.history = History(self.config.history_file, self.config.history_size)
        self.history.load()
        self.bookmarks = BookmarkShelf(self.config.addrbook_dir, self.config.default_addrbook)
        self.choose_action = choose_action
        self.choose_file = choose_file
        self.launcher = launcher
        self.store_factory = store_factory
        self.cache: dict[str, Page] = {}
        self.windows: dict[int, Window] = {}
        self.current: Window | None = None
        self.last_error: BrowserError | None = None
        self._next_window_id = 1

    # -- windows ----------------------------------------------------------

    def new_window(self) -> Window:
        window = Window(self._next_window_id, self.load)
        self._next_window_id += 1
        self.windows[window.id] = window
        self.current = window
        return window

    def window(self, window_id: int | None = None) -> Window:
        """The given window, else the current one (created on demand)."""
        if window_id is not None:
            try:
                window = self.windows[window_id]
            except KeyError:
                raise BrowserError(f"No browser window with id {window_id}") from None
            self.current = window
            return window
        if self.current is None:
            return self.new_window()
        return self.current

    def page(self, window_id: int | None = None) -> Page:
        page = self.window(window_id).page
        if page is None:
            raise BrowserError("No page is displayed in this window")
        return page

    # -- request flow -----------------------------------------------------

    def format_context(self) -> FormatContext:
        return FormatContext(
            width=self.config.width,
            break_lines=self.config.break_lines,
            assumed_encoding=self.config.assumed_encoding,
            sidebar_width=self.config.sidebar_width,
            history=self.history,
            bookmarks=self.bookmarks,
        )

    def check_scheme(self, uri: str) -> str | None:
        """Return ``uri`` when it can be fetched internally.

        A configured external handler is launched instead (and ``None``
        returned); unknown schemes raise ``SchemeUnsupported``.
        """
        scheme = urlsplit(uri).scheme.lower()
        if not scheme:
            raise SchemeUnsupported(None, uri)
        template = self.config.scheme_handlers.get(scheme)
        if template:
            command = expand_handler(template, uri)
            logger.info("Launching: '%s'", command)
            try:
                self.launcher(command)
            except OSError as exc:
                raise FetchError(uri, f"failed to launch {command!r}: {exc}") from exc
            return None
        if self.fetcher.supports(uri):
            return uri
        raise SchemeUnsupported(scheme, uri)

    def fetch(self, request: Request) -> Response:
        """Fetch, following redirects that the transport left unresolved."""
        response = self.fetcher.fetch(request)
        hops = 0
        while 300 <= response.status < 400 and "location" in response.headers and hops < MAX_REDIRECTS:
            target = urljoin(response.url, response.headers["location"])
            logger.debug("Redirected to %s", target)
            response = self.fetcher.fetch(Request(target))
            hops += 1
        return response

    def select_action(self, response: Response, action: str | None = None) -> str:
        if response.is_error:
            if response.body:
                return ACTION_SHOW
            raise FetchError(response.request.uri, response.status_line)
        if action:
            return action
        if response.is_attachment:
            return ACTION_SAVE
        if formatter_for(response.content_type or "text/plain") is not None:
            return ACTION_SHOW
        if self.choose_action is not None:
            return self.choose_action(response) or ACTION_CANCEL
        raise UnsupportedContentType(response.content_type)

    def handle_request(
        self,
        location: str | Request,
        action: str | None = None,
        *,
        save_to: Path | None = None,
        store: LineStore | None = None,
    ) -> Page | None:
        """Fetch ``location`` and show or save it; returns the shown page."""
        request = location if isinstance(location, Request) else Request(location)
        response = self.fetch(request)
        action = self.select_action(response, action)
        logger.debug("Action for %s: %s", request.uri, action)
        if action == ACTION_SHOW:
            return self.page_from_response(response, store=store)
        if action == ACTION_SAVE:
            self.save_response(response, save_to)
        return None

    def page_from_response(self, response: Response, *, store: LineStore | None = None) -> Page | None:
        context = self.format_context()
        if response.is_error and formatter_for(response.content_type or "text/plain") is None:
            result = format_plain(response, context)
        else:
            result = format_response(response, context)
        if not result.lines:
            return None
        uri, _ = strip_fragment(response.request.uri)
        if store is None and self.store_factory is not None:
            store = self.store_factory()
        page = Page.from_format(result, uri=uri, response=response, source=result.source, store=store)
        page.cacheable = not (
            response.request.is_post or response.is_error or response.content_type in SYNTHETIC_TYPES
        )
        if page.cacheable:
            self.cache[uri] = page
            self.history.record_visit(uri, page.title)
        return page

    def load(self, location: str | Request) -> Page | None:
        """Page loader used by windows: cache first, then the network."""
        if isinstance(location, str):
            cached = self.cache.get(location)
            if cached is not None:
                logger.debug("Using cached page for %s", location)
                self.history.record_visit(location, cached.title)
                return cached
            if self.check_scheme(location) is None:
                return None
        elif self.check_scheme(location.uri) is None:
            return None
        return self.handle_request(location)

    def save_response(self, response: Response, path: Path | None = None) -> Path | None:
        suggested = response.suggested_filename
        if path is None:
            path = self.choose_file(suggested) if self.choose_file is not None else Path.cwd() / suggested
        if path is None:
            return None
        path = Path(path).expanduser()
        if path.is_dir():
            path = path / suggested
        try:
            path.write_bytes(response.body)
        except OSError as exc:
            logger.error("Unable to open %s for writing: %s", path, exc)
            return None
        logger.info("Saved %s to %s", response.request.uri, path)
        return path

    # -- synthetic schemes ------------------------------------------------

    def _fetch_history(self, request: Request) -> Response:
        event_number = urlsplit(request.uri).netloc
        if not event_number:
            modified = self.history.accessed if self.history.accessed > 0 else None
            return synthetic_response(request, HISTORY_TYPE, modified=modified)
        event = self.history.lookup(int(event_number)) if event_number.isdigit() else None
        if event is None:
            return error_response(request, 409, f"History event {event_number} does not exist")
        headers: CaseInsensitiveDict = CaseInsensitiveDict({"Location": event.uri})
        return Response(307, request, request.uri, headers, b"", "Temporary Redirect")

    def _fetch_bookmarks(self, request: Request) -> Response:
        name = urlsplit(request.uri).netloc
        if not name or not self.bookmarks.exists(name):
            return error_response(request, 404, f"No bookmarks file '{name}' exists")
        book = self.bookmarks.book(name)
        modified = book.path.stat().st_mtime if book.path.exists() else None
        return synthetic_response(request, BOOKMARKS_TYPE, modified=modified)

    # -- element helpers --------------------------------------------------

    def _element_at(self, line: int, column: int, *, images: bool = False) -> tuple[Page, Element]:
        page = self.page()
        element = page.find_element_at(line, column, images)
        if element is None:
            kind = "image" if images else "link"
            raise BrowserError(f"{page.uri}: No {kind} at this point!")
        return page, element

    def _control_at(self, line: int, column: int) -> tuple[Page, FormControl]:
        page, element = self._element_at(line, column)
        if not isinstance(element, FormControl) or element.form is None:
            raise BrowserError(f"{page.uri}: No input at this point!")
        return page, element

    def _open_target(self, page: Page, element: Element) -> bool:
        target = page.element_target(element)
        if target is None:
            raise BrowserError(f"{page.uri}: No link at this point!")
        if isinstance(target, str) and self.check_scheme(target) is None:
            return True
        return self.window().open_new(target) is not None

    # -- host operations --------------------------------------------------

    @_reported(None)
    def browse(self, location: str | None = None, *, new_window: bool = False) -> Page | None:
        """Open a typed location (bookmarks and search words allowed)."""
        words = (location or "").split() or self.config.home_page.split()
        if not words:
            raise BrowserError("No location given and no home page configured")
        uri = resolve_location(words[0], self.bookmarks, words[1:])
        if self.check_scheme(uri) is None:
            return None
        window = self.new_window() if new_window else self.window()
        page = window.open_new(uri)
        if window.page is None:
            self.close_window(window.id)
        return page

    @_reported(False)
    def follow(self, line: int, column: int) -> bool:
        page, element = self._element_at(line, column)
        if element.followable:
            return self._open_target(page, element)
        if isinstance(element, FormControl) and element.form is not None:
            return self.click_input(line, column)
        raise BrowserError(f"{page.uri}: No link at this point!")

    @_reported(False)
    def click_input(self, line: int, column: int, value: str | None = None) -> bool:
        """Activate the form control at the position.

        Toggles checkboxes, selects radio buttons, follows submit buttons.
        Text-like controls take ``value``; a select without one moves to the
        next choice.
        """
        page, control = self._control_at(line, column)
        if isinstance(control, SubmitButton):
            return self._open_target(page, control)
        if isinstance(control, CheckBox):
            control.toggle(page)
        elif isinstance(control, RadioButton):
            control.select(page)
        elif isinstance(control, OptionSelect):
            if value is None:
                return control.cycle(page, 1)
            if value not in control.choices():
                raise BrowserError(f"Illegal value {value!r} for input {control.input.name!r}")
            control.set_value(page, value)
        elif isinstance(control, (TextField, PasswordField, FileField, TextArea)):
            if value is None:
                return False
            control.set_value(page, value)
        control.sync(page)
        return True

    @_reported(False)
    def next_input_choice(self, line: int, column: int, offset: int = 1) -> bool:
        """Rotate a select (bounded) or a radio group (cyclic) by ``offset``."""
        page, control = self._control_at(line, column)
        if isinstance(control, OptionSelect):
            changed = control.cycle(page, offset)
        elif isinstance(control, RadioButton):
            siblings = control.siblings()
            current = next((index for index, radio in enumerate(siblings) if radio.selected(page)), -1)
            siblings[(current + offset) % len(siblings)].select(page)
            changed = True
        else:
            return False
        control.sync(page)
        return changed

    @_reported(False)
    def submit(self, line: int, column: int) -> bool:
        """Submit the form owning the control at the position."""
        page, control = self._control_at(line, column)
        form = control.form
        if form is None or form.detached:
            raise BrowserError(f"{page.uri}: This input is not part of a form")
        buttons = [item for item in form.controls if isinstance(item, SubmitButton)]
        if not buttons:
            raise BrowserError("Unable to find submit button")
        return self._open_target(page, buttons[0])

    @_reported(False)
    def go_back(self, steps: int = 1) -> bool:
        self.page()
        return self.window().go_back(steps) is not None

    @_reported(False)
    def go_forward(self, steps: int = 1) -> bool:
        self.page()
        return self.window().go_forward(steps) is not None

    @_reported([])
    def show_history(self) -> list[str]:
        self.page()
        return self.window().history_listing()

    @_reported(False)
    def add_header(self) -> bool:
        return self.page().add_header_panel()

    @_reported(False)
    def remove_header(self) -> bool:
        return self.page().remove_header_panel()

    @_reported(False)
    def toggle_header(self) -> bool:
        return self.page().toggle_header_panel()

    @_reported(False)
    def reload(self, force: bool = False) -> bool:
        """Fetch the current page again; form results need ``force``."""
        window = self.window()
        page = self.page()
        request = page.request or Request(page.uri)
        if request.is_post and not force:
            logger.warning("Not resubmitting form data to %s without force", page.uri)
            return False
        new_page = self.handle_request(request, ACTION_SHOW, store=page.store)
        if new_page is None:
            return False
        window.open_page(new_page, window.fragment)
        return True

    @_reported("")
    def view_source(self, style: str = "monokai", no_color: bool = False) -> str:
        page = self.page()
        return highlight_source(page.source, page.file_type, style=style, no_color=no_color)

    @_reported(None)
    def update_source(self, text: str) -> Page | None:
        """Re-format the current page from edited source text."""
        window = self.window()
        page = self.page()
        if page.response is None:
            raise BrowserError(f"{page.uri}: page has no source to update")
        headers = CaseInsensitiveDict(page.response.headers)
        headers["Content-Type"] = f"{page.response.content_type or 'text/plain'}; charset=utf-8"
        headers.pop("Content-Encoding", None)
        response = replace(page.response, headers=headers, body=text.encode("utf-8"))
        new_page = self.page_from_response(response, store=page.store)
        if new_page is None:
            return None
        window.open_page(new_page, window.fragment)
        return new_page

    @_reported(False)
    def save_link(self, line: int, column: int, path: Path | None = None) -> bool:
        page, element = self._element_at(line, column)
        target = page.element_target(element)
        if not isinstance(target, str):
            raise BrowserError(f"{page.uri}: No link at this point!")
        if self.check_scheme(target) is None:
            return True
        self.handle_request(target, ACTION_SAVE, save_to=path)
        return True

    @_reported(False)
    def handle_image(self, line: int, column: int, action: str | None = None, path: Path | None = None) -> bool:
        page, image = self._element_at(line, column, images=True)
        target = page.element_target(image)
        if not isinstance(target, str) or self.check_scheme(target) is None:
            return False
        self.handle_request(target, action, save_to=path)
        return True

    @_reported(None)
    def find_next_link(self, line: int, column: int, count: int = 1, images: bool = False) -> tuple[int, int] | None:
        """Position of the ``count``-th next (or previous, when negative) link."""
        page = self.page()
        direction = -1 if count < 0 else 1
        remaining = abs(count)
        found: tuple[int, int] | None = None
        while remaining > 0:
            hit = page.find_next_element(direction, line, column, images)
            if hit is None:
                break
            element, offset = hit
            line += offset
            column = element.start
            found = (line, column)
            remaining -= 1
        if found is None:
            logger.info("No further links")
        return found

    def _text_area_near(self, line: int, column: int) -> tuple[Page, TextArea]:
        page = self.page()
        element = page.find_element_at(line, column)
        if not isinstance(element, TextArea):
            hit = page.find_next_element(-1, line, column)
            element = hit[0] if hit is not None else None
        if not isinstance(element, TextArea):
            raise BrowserError("Not on a text area")
        return page, element

    @_reported(False)
    def scroll_text_area(self, line: int, column: int, rows: int = 1) -> bool:
        page, area = self._text_area_near(line, column)
        area.scroll_by(page, rows)
        return True

    @_reported(False)
    def set_text_area(self, line: int, column: int, text: str) -> bool:
        page, area = self._text_area_near(line, column)
        area.set_value(page, text)
        return True

    @_reported(None)
    def link_target(self, line: int, column: int) -> str | None:
        page = self.page()
        element = page.find_element_at(line, column)
        if element is None:
            return None
        target = page.element_target(element)
        return target.uri if isinstance(target, Request) else target

    # -- bookmarks --------------------------------------------------------

    def _require_bookmarks(self) -> BookmarkShelf:
        if not self.bookmarks.enabled:
            raise BrowserError("Bookmarks are disabled. To enable bookmarks, set addrbook_dir in the config file")
        return self.bookmarks

    @_reported(False)
    def bookmark(self, reference: str, delete: bool = False) -> bool:
        """Bookmark the current page as ``[:book:]nick``, or delete that bookmark."""
        shelf = self._require_bookmarks()
        book_name, nickname = split_book_reference(reference, shelf.current)
        if not nickname:
            raise BrowserError("A bookmark needs a nickname")
        if delete:
            return shelf.book(book_name).remove(nickname)
        page = self.page()
        return shelf.book(book_name, create=True).add(nickname, page.uri, page.title)

    @_reported(False)
    def change_bookmark_file(self, name: str, create: bool = False) -> bool:
        self._require_bookmarks().change(name, create=create)
        logger.info("Bookmark file is now '%s'", name)
        return True

    @_reported([])
    def list_bookmarks(self, book: str | None = None) -> list[str]:
        return self._require_bookmarks().book(book).listing()

    def list_bookmark_files(self) -> list[str]:
        return self.bookmarks.names()

    # -- lifecycle --------------------------------------------------------

    def set_history_size(self, size: int) -> None:
        self.history.resize(size)

    def close_window(self, window_id: int | None = None) -> None:
        window = self.windows.pop(window_id if window_id is not None else getattr(self.current, "id", -1), None)
        if window is None:
            return
        window.close()
        if self.current is window:
            self.current = next(iter(self.windows.values()), None)

    def shutdown(self) -> bool:
        """Persist the global history."""
        return self.history.save()

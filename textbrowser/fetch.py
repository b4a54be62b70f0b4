"""Fetch collaborator: requests, responses, and scheme dispatch.

``http``/``https`` go through one ``requests.Session`` which owns redirects,
cookies and timeouts. ``file:`` URIs are read from disk, and further schemes
(``history:``, ``bookmarks:``) are registered by the session.
"""

from __future__ import annotations

import html
import logging
import mimetypes
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path
from urllib.parse import unquote, urlsplit, urlunsplit
from urllib.request import url2pathname

import requests
from requests.structures import CaseInsensitiveDict

from . import __version__
from .errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENT = f"textbrowser/{__version__}"
NETWORK_SCHEMES = ("http", "https")


@dataclass
class Request:
    """One request to the fetch collaborator."""

    uri: str
    method: str = "GET"
    body: bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_post(self) -> bool:
        return self.method.upper() == "POST"

    def __str__(self) -> str:
        return self.uri


@dataclass
class Response:
    """Final response after redirects, as seen by the core."""

    status: int
    request: Request
    url: str
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400

    @property
    def is_error(self) -> bool:
        return self.status >= 400

    @property
    def status_line(self) -> str:
        return f"{self.status} {self.reason}".strip()

    @property
    def content_type(self) -> str:
        """MIME type without parameters, lowercased; empty when missing."""
        raw = self.headers.get("content-type", "")
        return raw.split(";", 1)[0].strip().lower()

    @property
    def charset(self) -> str | None:
        raw = self.headers.get("content-type", "")
        for param in raw.split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip("\"'")
        return None

    @property
    def content_disposition(self) -> str:
        return self.headers.get("content-disposition", "")

    @property
    def content_encoding(self) -> str:
        return self.headers.get("content-encoding", "")

    @property
    def suggested_filename(self) -> str:
        """File name from ``Content-Disposition`` or the last URI segment."""
        disposition = self.content_disposition
        marker = "filename="
        if marker in disposition:
            name = disposition.split(marker, 1)[1].split(";", 1)[0].strip().strip("\"'")
            if name:
                return os.path.basename(name)
        path = urlsplit(self.request.uri).path
        return os.path.basename(path.rstrip("/")) or "index"

    @property
    def is_attachment(self) -> bool:
        return self.content_disposition.lower().startswith("attachment")

    def header_time(self, name: str) -> float | None:
        """Parse an HTTP date header into a unix timestamp."""
        value = self.headers.get(name)
        if not value:
            return None
        try:
            return parsedate_to_datetime(value).timestamp()
        except (TypeError, ValueError):
            return None


SchemeHandler = Callable[[Request], Response]


def _directory_listing(path: Path, uri: str) -> bytes:
    """HTML index for a local directory, like a server autoindex page."""
    title = html.escape(str(path))
    rows = [f"<html><head><title>Directory {title}</title></head><body>"]
    rows.append(f"<h1>Directory listing of {title}</h1><ul>")
    base = uri if uri.endswith("/") else uri + "/"
    if path.parent != path:
        rows.append(f'<li><a href="{html.escape(base)}..">..</a></li>')
    try:
        entries = sorted(path.iterdir(), key=lambda entry: entry.name.lower())
    except (PermissionError, OSError):
        entries = []
    for entry in entries:
        name = entry.name + ("/" if entry.is_dir() else "")
        rows.append(f'<li><a href="{html.escape(base + name)}">{html.escape(name)}</a></li>')
    rows.append("</ul></body></html>")
    return "\n".join(rows).encode("utf-8")


def file_uri_path(uri: str) -> Path:
    parts = urlsplit(uri)
    return Path(url2pathname(unquote(parts.path)))


class Fetcher:
    """Synchronous fetch collaborator.

    One request is in flight at a time; timeouts surface as ``FetchError``.
    """

    def __init__(
        self,
        *,
        timeout: float = 120,
        from_header: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        if from_header:
            self.session.headers["From"] = from_header
        self._schemes: dict[str, SchemeHandler] = {"file": self._fetch_file}
        for scheme in NETWORK_SCHEMES:
            self._schemes[scheme] = self._fetch_http

    def register_scheme(self, scheme: str, handler: SchemeHandler) -> None:
        self._schemes[scheme.lower()] = handler

    def supports(self, uri: str) -> bool:
        scheme = urlsplit(uri).scheme.lower()
        return scheme in self._schemes

    def fetch(self, request: Request | str) -> Response:
        if isinstance(request, str):
            request = Request(request)
        scheme = urlsplit(request.uri).scheme.lower()
        handler = self._schemes.get(scheme)
        if handler is None:
            raise FetchError(request.uri, f"unsupported scheme {scheme!r}")
        logger.debug("Fetching %s %s", request.method, request.uri)
        response = handler(request)
        if response.is_error:
            logger.warning("Failed to fetch %s: %s", request.uri, response.status_line)
        return response

    def _fetch_http(self, request: Request) -> Response:
        try:
            raw = self.session.request(
                request.method,
                request.uri,
                data=request.body,
                headers=request.headers or None,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise FetchError(request.uri, str(exc)) from exc
        return Response(
            status=raw.status_code,
            request=request,
            url=raw.url,
            headers=CaseInsensitiveDict(raw.headers),
            body=raw.content,
            reason=raw.reason or "",
        )

    def _fetch_file(self, request: Request) -> Response:
        path = file_uri_path(request.uri)
        headers: CaseInsensitiveDict = CaseInsensitiveDict()
        if not path.exists():
            return Response(404, request, request.uri, headers, b"", "File `%s' does not exist" % path)
        try:
            stat = path.stat()
            if path.is_dir():
                body = _directory_listing(path, request.uri)
                headers["Content-Type"] = "text/html; charset=utf-8"
            else:
                body = path.read_bytes()
                guessed, encoding = mimetypes.guess_type(path.name)
                headers["Content-Type"] = guessed or "text/plain"
                if encoding:
                    headers["Content-Encoding"] = encoding
        except (PermissionError, OSError) as exc:
            return Response(403, request, request.uri, headers, b"", str(exc))
        headers["Last-Modified"] = formatdate(stat.st_mtime, usegmt=True)
        headers["Content-Length"] = str(len(body))
        return Response(200, request, request.uri, headers, body, "OK")


def synthetic_response(request: Request, content_type: str, body: bytes = b"", *, modified: float | None = None) -> Response:
    """Successful response for self-generated pages."""
    headers: CaseInsensitiveDict = CaseInsensitiveDict({"Content-Type": content_type})
    headers["Last-Modified"] = formatdate(modified if modified is not None else time.time(), usegmt=True)
    return Response(200, request, request.uri, headers, body, "OK")


def error_response(request: Request, status: int, reason: str) -> Response:
    return Response(status, request, request.uri, CaseInsensitiveDict(), b"", reason)


def strip_fragment(uri: str) -> tuple[str, str | None]:
    """Split ``uri`` into the fragment-less URI and the fragment (or ``None``)."""
    parts = urlsplit(uri)
    fragment = parts.fragment or None
    return urlunsplit(parts._replace(fragment="")), fragment

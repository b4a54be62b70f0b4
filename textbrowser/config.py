"""Persistent JSON config helpers.

Reads browser settings (data locations, history size, wrapping, scheme
handlers). Malformed or missing config falls back to defaults
one key at a time.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

logger = logging.getLogger(__name__)

APP_NAME = "textbrowser"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_HOME_PAGE = "http://vim.sf.net/"


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def _default_data_dir() -> Path:
    return Path(user_data_dir(APP_NAME, appauthor=False))


@dataclass
class BrowserConfig:
    data_dir: Path = field(default_factory=_default_data_dir)
    history_file: Path | None = None
    history_size: int = 30
    addrbook_dir: Path | None = None
    default_addrbook: str = "default"
    assumed_encoding: str = "utf-8"
    break_lines: bool = True
    connect_timeout: float = 120
    from_header: str | None = field(default_factory=lambda: os.environ.get("EMAIL"))
    home_page: str = field(default_factory=lambda: os.environ.get("HOMEPAGE") or DEFAULT_HOME_PAGE)
    width: int = 80
    sidebar_width: int = 25
    scheme_handlers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.history_file is None:
            self.history_file = self.data_dir / "history"
        if self.addrbook_dir is None:
            self.addrbook_dir = self.data_dir / "addressbooks"


def _positive_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return None
    return value


def _positive_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return None
    return float(value)


def _text(value: object) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _path(value: object) -> Path | None:
    text = _text(value)
    return Path(text).expanduser() if text else None


def _flag(value: object) -> bool | None:
    return value if isinstance(value, bool) else None


def _handlers(value: object) -> dict[str, str] | None:
    if not isinstance(value, dict):
        return None
    return {
        str(scheme).lower(): command
        for scheme, command in value.items()
        if isinstance(command, str) and command.strip()
    }


_PARSERS = {
    "data_dir": _path,
    "history_file": _path,
    "history_size": _positive_int,
    "addrbook_dir": _path,
    "default_addrbook": _text,
    "assumed_encoding": _text,
    "break_lines": _flag,
    "connect_timeout": _positive_number,
    "from_header": _text,
    "home_page": _text,
    "width": _positive_int,
    "sidebar_width": _positive_int,
    "scheme_handlers": _handlers,
}


def browser_config_from_dict(data: dict[str, object]) -> BrowserConfig:
    """Build a config from a JSON object; malformed values keep their default."""
    values: dict[str, object] = {}
    for key, parse in _PARSERS.items():
        if key not in data:
            continue
        parsed = parse(data[key])
        if parsed is None:
            logger.warning("Ignoring malformed config value for %s: %r", key, data[key])
            continue
        values[key] = parsed
    return BrowserConfig(**values)


def load_browser_config() -> BrowserConfig:
    return browser_config_from_dict(load_config())

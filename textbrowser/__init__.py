"""Public package surface for textbrowser.

Exports ``main`` for programmatic CLI invocation and ``Session`` for hosts
that drive the browser directly. Implementation lives in submodules.
"""

from __future__ import annotations

__version__ = "1.1.0"


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)


def __getattr__(name: str):
    if name == "Session":
        from .session import Session

        return Session
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["Session", "__version__", "main"]

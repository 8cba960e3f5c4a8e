"""Locate the App named on the command line.

Shared by ``redact run`` and ``redact routes``.
"""

import importlib
import os
import sys

from redact.app import App


def resolve_app(import_string: str) -> App:
    """Import ``"package.module:attr"`` and return the App it names.

    ``attr`` defaults to ``app``. The working directory is importable, so
    ``redact run server`` finds ``./server.py``. If ``attr`` is a factory
    rather than an App, it is called with no arguments.

    Raises:
        ModuleNotFoundError: The module cannot be imported.
        AttributeError: The module has no such attribute.
        TypeError: The target is not an App, or its factory failed.
    """
    module_path, _, attr_name = import_string.partition(":")
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    target = getattr(importlib.import_module(module_path), attr_name or "app")

    match target:
        case App():
            return target
        case _ if callable(target):
            try:
                built = target()
            except Exception as exc:
                msg = f"Factory {import_string!r} raised an error: {exc}"
                raise TypeError(msg) from exc
            if isinstance(built, App):
                return built
            msg = f"Factory {import_string!r} returned {type(built).__name__}, not a redact.App"
            raise TypeError(msg)
        case _:
            msg = f"{import_string!r} is a {type(target).__name__}, not a redact.App"
            raise TypeError(msg)

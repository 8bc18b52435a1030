"""Render result values as text for the terminal.

Strings go through untouched, None becomes ``None``, everything else is
pretty printed by prettyprinter. Formatting never raises: cycles are printed
as recursion markers, nesting deeper than ``depth`` is elided, and anything
that still blows up is reported as an ``<unprintable ...>`` string.
"""
from __future__ import annotations

import reprlib
from typing import Any

import prettyprinter as pp  # type: ignore
from loguru import logger

from idebug.engine import defaults
from idebug.engine.errors import FormatFailure

pp.install_extras(["dataclasses"], warn_on_error=False)


def _fallback(value: Any, depth: int) -> str:
    """Plain bounded repr for values prettyprinter can't handle."""
    short = reprlib.Repr()
    short.maxlevel = depth
    short.maxstring = short.maxother = 2000
    return short.repr(value)


def pretty(value: Any, depth: int = defaults.FORMAT_DEPTH) -> str:
    """Pretty print ``value`` or raise FormatFailure."""
    try:
        return pp.pformat(value, depth=depth, width=defaults.FORMAT_WIDTH)
    except Exception as e:
        # RecursionError on very deep structures lands here too
        logger.debug("[idebug] prettyprinter failed on {}: {}", type(value).__name__, e)

    try:
        return _fallback(value, depth)
    except Exception as e:
        raise FormatFailure(f"{type(e).__name__}: {e}") from e


def format_value(value: Any, depth: int = defaults.FORMAT_DEPTH) -> str:
    if value is None:
        return defaults.NONE_PLACEHOLDER

    if isinstance(value, str):
        return value

    try:
        return pretty(value, depth)
    except FormatFailure as e:
        return f"<unprintable {type(value).__name__} object: {e}>"

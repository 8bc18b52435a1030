"""Narrow protocols for the pieces a host can swap out.

The launcher and sessions only depend on these shapes, so tests and hosts
can hand in plain functions or small fakes instead of the real classes.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from idebug.engine.defaults import PROMPT


@runtime_checkable
class Evaluator(Protocol):
    """Turns one input line into a result value.

    May return an awaitable; the session awaits it before formatting.
    Raising is fine: the session reports the error and keeps going.
    """

    def __call__(self, line: str) -> Any: ...


@runtime_checkable
class TerminalSpawner(Protocol):
    """Opens a visible terminal running the debugger client."""

    def validate(self) -> None:
        """Raise PlatformUnsupportedError if this spawner can't run here."""
        ...

    def spawn(
        self, title: str, port: int, password: str | None, prompt: str = PROMPT
    ) -> None:
        """Start the detached terminal; raise SpawnError on failure."""
        ...

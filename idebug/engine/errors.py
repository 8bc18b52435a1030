"""Exception hierarchy for the debugger.

Launch-time errors (platform, bind, spawn) are fatal for one launch and are
reported through the launcher's error channel. The rest are local to a single
session or a single input line and never leave the session.
"""
from __future__ import annotations


class DebuggerError(Exception):
    """Base class for everything idebug raises on purpose."""


# ── Fatal: abort the launch ─────────────────────────────────────────


class PlatformUnsupportedError(DebuggerError):
    """No terminal spawner is available for this host environment."""


class BindError(DebuggerError):
    """The loopback listening socket couldn't be created or has no usable port."""


class SpawnError(DebuggerError):
    """The external terminal window couldn't be started."""


# ── Local: one session or one line ──────────────────────────────────


class AuthenticationFailure(DebuggerError):
    """A client sent the wrong secret (or none at all) on its single attempt."""


class EvalFailure(DebuggerError):
    """The evaluator raised while running one input line.

    The original exception is kept as ``__cause__`` and as ``.error``.
    """

    def __init__(self, error: BaseException):
        super().__init__(str(error))
        self.error = error

    def __str__(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


class FormatFailure(DebuggerError):
    """A result value couldn't be turned into text."""

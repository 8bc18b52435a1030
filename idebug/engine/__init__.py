"""idebug engine layer: the REPL server with no terminal/UI dependency.

All modules use ``from __future__ import annotations`` and modern
Python typing (``str | None``, ``@dataclass(slots=True)``, etc.).

Modules
-------
defaults
    Constants: default title, prompt marker, loopback host, environment names.

errors
    ``DebuggerError`` and the launch-time / session-local subclasses.

config
    ``DebuggerConfig``: frozen per-launch settings shared by all sessions.
    - ``DebuggerConfig.from_options``: short option names + env/.env layering
    - ``generate_password``: one-time secret when the host doesn't set one

protocols
    ``Evaluator`` and ``TerminalSpawner`` structural interfaces.

evaluator
    - ``PythonEvaluator``: default eval/exec/await evaluator over a namespace
    - ``evaluate``: blank-line default, auto-await, ``EvalFailure`` wrapping
    - ``format_error``: error text sent back to the client

formatter
    ``format_value``: never-failing prettyprinter rendering of results.

session
    ``ReplSession``: handshake + read-eval-print loop for one connection.

listener
    ``ReplListener``: ephemeral loopback port, one session per connection.

terminal
    PowerShell / xterm spawners for the client window, command builders.

launcher
    ``launch`` and ``DebuggerHandle``: supervised startup, error channel, shutdown.
"""

from idebug.engine.config import DebuggerConfig
from idebug.engine.errors import (
    AuthenticationFailure,
    BindError,
    DebuggerError,
    EvalFailure,
    FormatFailure,
    PlatformUnsupportedError,
    SpawnError,
)
from idebug.engine.evaluator import PythonEvaluator
from idebug.engine.launcher import DebuggerHandle, launch
from idebug.engine.listener import ReplListener

__all__ = [
    "AuthenticationFailure",
    "BindError",
    "DebuggerConfig",
    "DebuggerError",
    "DebuggerHandle",
    "EvalFailure",
    "FormatFailure",
    "PlatformUnsupportedError",
    "PythonEvaluator",
    "ReplListener",
    "SpawnError",
    "launch",
]

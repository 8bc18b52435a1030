"""Open a terminal window with a live REPL into a running Python process.

    import idebug

    idebug.launch(title="Worker 3", eval=idebug.PythonEvaluator({"app": app}))
"""

from idebug.engine import (
    AuthenticationFailure,
    BindError,
    DebuggerConfig,
    DebuggerError,
    DebuggerHandle,
    EvalFailure,
    FormatFailure,
    PlatformUnsupportedError,
    PythonEvaluator,
    ReplListener,
    SpawnError,
    launch,
)

__version__ = "0.3.0"

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

"""Open a terminal window running ``idebug.client`` against our port.

Windows gets a PowerShell console (window title set through
``$host.UI.RawUI.WindowTitle``), everything else gets ``xterm`` if it is
installed. The secret is passed in the child's environment, never on the
command line. The child is detached: closing the window doesn't touch the
host process and the host exiting doesn't close the window.
"""
from __future__ import annotations

import os
import shutil
import subprocess
import sys
from collections.abc import Mapping

from loguru import logger

from idebug.engine import defaults
from idebug.engine.errors import PlatformUnsupportedError, SpawnError
from idebug.engine.protocols import TerminalSpawner

CLIENT_MODULE = "idebug.client"


def escape_powershell(text: str) -> str:
    """Escape for a single-quoted PowerShell string (quotes are doubled)."""
    return text.replace("'", "''")


def client_environment(
    password: str | None,
    prompt: str = defaults.PROMPT,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Environment for the client process: ours plus the secret and prompt."""
    env = dict(os.environ if base is None else base)
    env[defaults.PROMPT_ENV] = prompt
    if password is not None:
        env[defaults.PASSWORD_ENV] = password
    else:
        env.pop(defaults.PASSWORD_ENV, None)

    return env


def build_powershell_command(
    title: str, port: int, python: str | None = None
) -> list[str]:
    """Arguments for powershell.exe: set the title, run the client, then exit."""
    python = python or sys.executable
    client = f"& '{escape_powershell(python)}' -m {CLIENT_MODULE} {port}"
    return [
        "-NoExit",
        "-Command",
        f"$host.UI.RawUI.WindowTitle='{escape_powershell(title)}'; {client}; exit",
    ]


def build_xterm_command(
    terminal: str, title: str, port: int, python: str | None = None
) -> list[str]:
    return [
        terminal,
        "-T",
        title,
        "-e",
        python or sys.executable,
        "-m",
        CLIENT_MODULE,
        str(port),
    ]


class PowerShellSpawner:
    """Spawns ``powershell.exe`` in a new console window (Windows only)."""

    executable = "powershell.exe"

    def __init__(self, python: str | None = None):
        self.python = python

    def validate(self) -> None:
        if sys.platform != "win32":
            raise PlatformUnsupportedError("PowerShell debugger windows only work on Windows.")

    def spawn(
        self, title: str, port: int, password: str | None, prompt: str = defaults.PROMPT
    ) -> None:
        args = [self.executable, *build_powershell_command(title, port, self.python)]
        flags = getattr(subprocess, "CREATE_NEW_CONSOLE", 0) | getattr(
            subprocess, "CREATE_NEW_PROCESS_GROUP", 0
        )

        logger.info("[idebug] Opening PowerShell debugger window: {}", title)
        try:
            subprocess.Popen(
                args,
                cwd=os.getcwd(),
                env=client_environment(password, prompt),
                creationflags=flags,
            )
        except OSError as e:
            raise SpawnError(f"Can't start {self.executable}: {e}") from e


class XTermSpawner:
    """Spawns ``xterm`` (or a compatible ``-T``/``-e`` terminal) in its own session."""

    def __init__(self, terminal: str = "xterm", python: str | None = None):
        self.terminal = terminal
        self.python = python

    def validate(self) -> None:
        if shutil.which(self.terminal) is None:
            raise PlatformUnsupportedError(
                f"No '{self.terminal}' found on PATH to host the debugger window."
            )

    def spawn(
        self, title: str, port: int, password: str | None, prompt: str = defaults.PROMPT
    ) -> None:
        args = build_xterm_command(self.terminal, title, port, self.python)

        logger.info("[idebug] Opening {} debugger window: {}", self.terminal, title)
        try:
            subprocess.Popen(
                args,
                cwd=os.getcwd(),
                env=client_environment(password, prompt),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise SpawnError(f"Can't start {self.terminal}: {e}") from e


def default_spawner() -> TerminalSpawner:
    """Pick the spawner for this platform or raise PlatformUnsupportedError."""
    if sys.platform == "win32":
        return PowerShellSpawner()

    if sys.platform.startswith(("linux", "freebsd", "openbsd")):
        return XTermSpawner()

    raise PlatformUnsupportedError(f"No debugger terminal available for {sys.platform}.")

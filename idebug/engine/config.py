"""Write-once debugger configuration.

Values are layered the same way for every launch::

    defaults < .env.idebug < process environment < explicit options

Explicit options use the short launch names (``title``, ``default``, ``eval``,
``password``) or the dataclass field names.
"""
from __future__ import annotations

import dataclasses
import os
import secrets
from collections.abc import Mapping
from typing import Any

from dotenv import dotenv_values

from idebug.engine import defaults
from idebug.engine.evaluator import PythonEvaluator
from idebug.engine.protocols import Evaluator

# launch option name -> dataclass field
OPTION_ALIASES = {"eval": "evaluator"}


def generate_password() -> str:
    """One-time token used when the host doesn't pick a secret."""
    return secrets.token_urlsafe(24)


def environment_config() -> dict[str, str | None]:
    """Merge .env.idebug and the process environment (environment wins)."""
    return {**dotenv_values(defaults.DOTENV_FILE), **os.environ}


@dataclasses.dataclass(frozen=True, slots=True)
class DebuggerConfig:
    """Everything a launch needs, shared read-only by all sessions.

    ``password=None`` disables the handshake; ``from_options()`` never
    produces that, it generates a token instead.
    """

    title: str = defaults.DEFAULT_TITLE
    default: Any = None
    evaluator: Evaluator = dataclasses.field(default_factory=PythonEvaluator)
    password: str | None = None
    prompt: str = defaults.PROMPT
    host: str = defaults.LOOPBACK_HOST
    banner: str | None = None
    exit_command: str | None = defaults.EXIT_COMMAND
    auth_timeout: float | None = defaults.AUTH_TIMEOUT
    format_depth: int = defaults.FORMAT_DEPTH

    def __post_init__(self) -> None:
        if not callable(self.evaluator):
            raise TypeError(f"evaluator must be callable, got {self.evaluator!r}")

        if not isinstance(self.title, str):
            raise TypeError(f"title must be a string, got {self.title!r}")

        if not self.prompt:
            raise ValueError("prompt must not be empty")

    @property
    def authenticated(self) -> bool:
        """True if clients must send the secret first."""
        return self.password is not None

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any] | None = None, **kwargs: Any
    ) -> DebuggerConfig:
        """Build a config from launch options, applying defaults.

        Options set to None count as unset (so ``title=None`` still gets the
        default title), except ``default`` where None is a real value.
        """
        given = dict(options or {}) | kwargs
        fields = {f.name for f in dataclasses.fields(cls)}

        resolved: dict[str, Any] = {}
        for key, val in given.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in fields:
                raise TypeError(f"Unknown debugger option: {key}")

            if val is None and name != "default":
                continue

            resolved[name] = val

        env = environment_config()
        if "title" not in resolved and env.get(defaults.TITLE_ENV):
            resolved["title"] = env[defaults.TITLE_ENV]

        if "prompt" not in resolved and env.get(defaults.PROMPT_ENV):
            resolved["prompt"] = env[defaults.PROMPT_ENV]

        if "password" not in resolved:
            resolved["password"] = env.get(defaults.PASSWORD_ENV) or generate_password()

        return cls(**resolved)

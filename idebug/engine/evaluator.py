"""Evaluation of one REPL input line.

``PythonEvaluator`` is the default evaluator: it runs the line as Python in a
namespace the host controls. Full builtins are included -- this is a local
debugging tool, not a sandbox.

``evaluate()`` wraps whichever evaluator is configured with the rules every
session follows: blank lines return the configured default without calling
the evaluator, awaitable results are awaited, failures become ``EvalFailure``.
"""
from __future__ import annotations

import builtins
import inspect
import re
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any

from loguru import logger

from idebug.engine.errors import EvalFailure

if TYPE_CHECKING:
    from idebug.engine.config import DebuggerConfig

# Word boundary match avoids false positives like "awaitable = True".
AWAIT_KEYWORD = re.compile(r"\bawait\b")

ASYNC_WRAPPER = "__idebug_async_wrapper__"


class PythonEvaluator:
    """Evaluate input as Python against a persistent namespace.

    - Expressions are eval'd and their value returned.
    - Statements (assignment, import, ...) are exec'd and return None.
    - Code using 'await' is wrapped in an async function; the coroutine is
      returned and the session awaits it.
    - The last non-None result is stored as ``_``.
    """

    def __init__(self, namespace: MutableMapping[str, Any] | None = None):
        self.namespace: MutableMapping[str, Any] = (
            namespace if namespace is not None else {}
        )
        self.namespace.setdefault("__builtins__", builtins)

    def __repr__(self) -> str:
        return f"PythonEvaluator(names={len(self.namespace)})"

    def __call__(self, line: str) -> Any:
        code = line.strip()

        if AWAIT_KEYWORD.search(code):
            return self._run_async(code)

        try:
            compiled = compile(code, "<idebug>", "eval")
        except SyntaxError:
            # Statement, not expression -- use exec
            exec(compile(code, "<idebug>", "exec"), self.namespace)
            return None

        return self._remember(eval(compiled, self.namespace))

    async def _run_async(self, code: str) -> Any:
        # First try to evaluate as expression with await, then as a statement.
        # Names assigned inside the wrapper stay local to it.
        try:
            wrapper = compile(
                f"async def {ASYNC_WRAPPER}():\n    return {code}\n", "<idebug>", "exec"
            )
        except SyntaxError:
            wrapper = compile(
                f"async def {ASYNC_WRAPPER}():\n    {code}\n", "<idebug>", "exec"
            )

        exec(wrapper, self.namespace)
        fn = self.namespace.pop(ASYNC_WRAPPER)
        return self._remember(await fn())

    def _remember(self, result: Any) -> Any:
        if result is not None and not inspect.isawaitable(result):
            self.namespace["_"] = result

        return result


def format_error(error: BaseException) -> str:
    """Text sent to the client for a failed line."""
    if isinstance(error, EvalFailure):
        return f"Error: {error}"

    return f"Error: {type(error).__name__}: {error}"


async def evaluate(line: str, config: DebuggerConfig) -> Any:
    """Run one input line through the configured evaluator.

    ``line`` arrives without its line terminator but otherwise untouched; it
    is only stripped to decide whether it is blank.
    """
    if not line.strip():
        return config.default

    try:
        result = config.evaluator(line)

        # Auto-await coroutines / awaitables
        if inspect.isawaitable(result):
            result = await result
    except (Exception, SystemExit) as e:
        # exit() / sys.exit() typed into the debugger must not stop the host
        logger.debug("[idebug] Evaluation failed for {!r}: {}", line, e)
        raise EvalFailure(e) from e

    return result

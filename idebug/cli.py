#!/usr/bin/env python3
"""Demo host application for idebug.

Runs some background work that mutates in-process state (a counter and a
rolling list of items) and lets you open debugger windows onto it::

    idebug-demo            # then type 'open' at the demo> prompt

Inside a debugger window try ``help``, ``counter``, ``items``, ``latest``,
``items[2]``, ``clear`` or any Python expression over ``app``.
"""
from __future__ import annotations

import asyncio
import datetime
import random
import re
import sys
from dataclasses import dataclass, field
from typing import Any, Final

from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import set_title

import idebug
from idebug.engine.launcher import DebuggerHandle
from idebug.logs import setup_logging

COLORS: Final = ["Red", "Blue", "Green", "Yellow", "Purple", "Orange", "Pink", "Cyan"]

HELP: Final = """Available commands:
  counter        - current counter value
  items          - all current items
  items.count    - number of items
  latest         - most recent item
  random         - a random item
  clear          - clear all items
  items[n]       - item at index n
  help           - this help text

Anything else is evaluated as Python; 'app' is the running DemoApp:
  app.counter * 2
  [i for i in app.items if 'Red' in i]
  app.interval = 1"""

ITEM_INDEX = re.compile(r"^items\[\s*(-?\d+)\s*\]$")


@dataclass
class DemoApp:
    """A tiny 'live process' whose state the debugger can poke at."""

    title: str = "idebug demo"

    # seconds between background updates
    interval: float = 3.0

    # keep the list manageable
    maxItems: int = 10

    counter: int = 0
    items: list[str] = field(default_factory=list)
    debuggers: list[DebuggerHandle] = field(default_factory=list)
    exiting: bool = False

    python: idebug.PythonEvaluator = field(init=False)

    def __post_init__(self) -> None:
        self.python = idebug.PythonEvaluator({"app": self})

    # ── Background work ─────────────────────────────────────────────

    def tick(self) -> str:
        self.counter += 1
        item = f"{random.choice(COLORS)} Item #{self.counter}"
        self.items.append(item)
        del self.items[: -self.maxItems]
        return item

    async def work(self) -> None:
        while not self.exiting:
            item = self.tick()
            logger.info(
                "[{:%H:%M:%S}] Counter: {}, Latest: {}, Total Items: {}",
                datetime.datetime.now(),
                self.counter,
                item,
                len(self.items),
            )
            await asyncio.sleep(self.interval)

    # ── Debugger evaluator ──────────────────────────────────────────

    def evaluate(self, code: str) -> Any:
        """Answer the demo's shortcut commands, else run it as Python."""
        cmd = code.strip()
        match cmd:
            case "help":
                return HELP
            case "counter":
                return self.counter
            case "items":
                return self.items
            case "items.count":
                return len(self.items)
            case "latest":
                return self.items[-1] if self.items else "No items yet"
            case "random":
                return random.choice(self.items) if self.items else "No items yet"
            case "clear":
                count = len(self.items)
                self.items.clear()
                return f"Cleared {count} items"

        if found := ITEM_INDEX.match(cmd):
            idx = int(found.group(1))
            if -len(self.items) <= idx < len(self.items):
                return self.items[idx]

            return f"Index {idx} out of range. Valid range: 0-{len(self.items) - 1}"

        return self.python(code)

    def openDebugger(self, title: str | None = None) -> DebuggerHandle:
        handle = idebug.launch(
            title=title or f"{self.title} - live process state",
            default="Ready for commands... (try: counter, items, help)",
            eval=self.evaluate,
        )
        self.debuggers.append(handle)
        return handle

    async def closeDebuggers(self) -> None:
        for handle in self.debuggers:
            await handle.shutdown()

        self.debuggers.clear()

    # ── Local prompt ────────────────────────────────────────────────

    async def runCommand(self, text: str) -> None:
        cmd, _, rest = text.strip().partition(" ")
        match cmd:
            case "":
                return
            case "open" | "debug":
                handle = self.openDebugger(rest.strip() or None)
                if port := await handle.started(timeout=10):
                    logger.info("Debugger listening on port {}", port)
            case "close":
                await self.closeDebuggers()
                logger.info("All debuggers closed")
            case "status":
                for handle in self.debuggers:
                    logger.info("{}", handle)
                logger.info("counter={} items={}", self.counter, len(self.items))
            case "quit" | "exit":
                self.exiting = True
            case _:
                logger.error("Unknown command: {} (try: open, close, status, quit)", cmd)

    async def dorepl(self) -> None:
        session: PromptSession = PromptSession()
        set_title(self.title)

        worker = asyncio.create_task(self.work(), name="demo work")
        try:
            while not self.exiting:
                try:
                    text = await session.prompt_async("demo> ")
                    logger.trace("demo> {}", text)
                    await self.runCommand(text)
                except KeyboardInterrupt:
                    # Control-C pressed. Try again.
                    continue
                except EOFError:
                    # Control-D pressed
                    logger.error("Exiting...")
                    self.exiting = True
        finally:
            worker.cancel()
            await self.closeDebuggers()


def main() -> int:
    app = DemoApp()

    # log through patch_stdout so messages don't tear up the prompt
    with patch_stdout():
        setup_logging(name="idebug-demo")
        asyncio.run(app.dorepl())

    return 0


if __name__ == "__main__":
    sys.exit(main())

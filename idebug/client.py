#!/usr/bin/env python3
"""Terminal side of the debugger.

Runs inside the window opened by the spawner::

    python -m idebug.client <port>

Connects to the host's loopback port, sends the secret from
``$IDEBUG_PASSWORD``, then alternates between printing server output and
reading one line with prompt_toolkit (history, auto-suggest).
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Any

from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory, ThreadedHistory

from idebug.engine import defaults
from idebug.logs import setup_logging

HISTORY_FILE = "~/.idebug_history"


def make_prompt_session() -> PromptSession:
    return PromptSession(
        history=ThreadedHistory(FileHistory(os.path.expanduser(HISTORY_FILE))),
        auto_suggest=AutoSuggestFromHistory(),
    )


async def read_until_prompt(reader: asyncio.StreamReader, marker: bytes) -> tuple[str, bool]:
    """Collect server output up to the next prompt.

    Returns ``(output, prompted)``; ``prompted`` is False when the server
    closed the connection instead. The marker only counts at the start of
    a line, so results that happen to contain it don't end the read early.
    """
    buf = b""
    while True:
        try:
            buf += await reader.readuntil(marker)
        except asyncio.IncompleteReadError as e:
            return (buf + e.partial).decode("utf-8", errors="replace"), False
        except asyncio.LimitOverrunError as e:
            # huge output without a prompt yet: take what's buffered, keep going
            buf += await reader.readexactly(e.consumed)
            continue

        head = buf[: -len(marker)]
        if not head or head.endswith(b"\n"):
            return head.decode("utf-8", errors="replace"), True


async def ask(session: Any, prompt: str) -> str | None:
    """One input line; None on Control-D."""
    while True:
        try:
            return await session.prompt_async(prompt)
        except KeyboardInterrupt:
            # Control-C pressed. Try again.
            continue
        except EOFError:
            return None


async def run_client(
    host: str,
    port: int,
    password: str | None = None,
    session: Any = None,
    prompt: str = defaults.PROMPT,
) -> int:
    """Bridge the terminal to the debugger until either side quits.

    Returns a process exit code: 1 if the host refused us before the first
    prompt (usually a wrong secret), 0 otherwise.
    """
    try:
        reader, writer = await asyncio.open_connection(host, port, limit=defaults.LINE_LIMIT)
    except OSError as e:
        logger.error("Can't connect to debugger at {}:{}: {}", host, port, e)
        return 1

    session = session or make_prompt_session()
    marker = prompt.encode("utf-8")
    prompted_once = False

    try:
        if password is not None:
            writer.write(password.encode("utf-8") + b"\n")
            await writer.drain()

        while True:
            output, prompted = await read_until_prompt(reader, marker)
            if output:
                print(output, end="", flush=True)

            if not prompted:
                if not prompted_once:
                    logger.error("Debugger refused the connection (wrong password?)")
                    return 1

                logger.warning("Debugger connection closed.")
                return 0

            prompted_once = True
            line = await ask(session, prompt)
            if line is None:
                logger.info("Exiting...")
                return 0

            writer.write(line.encode("utf-8") + b"\n")
            await writer.drain()
    except ConnectionError as e:
        logger.warning("Debugger connection lost: {}", e)
        return 0
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Error while closing connection: {}", e)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="idebug-client", description="Connect a terminal to a running idebug REPL."
    )
    parser.add_argument("port", type=int, help="loopback port printed by the host")
    parser.add_argument("--host", default=defaults.LOOPBACK_HOST)
    parser.add_argument(
        "--prompt", default=os.getenv(defaults.PROMPT_ENV, defaults.PROMPT)
    )
    args = parser.parse_args(argv)

    setup_logging(name="idebug-client")

    try:
        return asyncio.run(
            run_client(
                args.host, args.port, os.getenv(defaults.PASSWORD_ENV), prompt=args.prompt
            )
        )
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())

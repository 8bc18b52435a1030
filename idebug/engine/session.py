"""One connected debugger client: handshake, then read-eval-print until EOF.

State machine::

    AWAITING_AUTH --(secret matches)--> ACTIVE --(EOF / error / .exit)--> CLOSED
          |                                                                 ^
          +-------------------(wrong secret / timeout / EOF)----------------+

Sessions without a configured secret start in ACTIVE. Lines are handled one
at a time in arrival order: the next line isn't read until the previous
result (and the next prompt) has been written.
"""
from __future__ import annotations

import asyncio
import enum
import itertools
import secrets
from typing import TYPE_CHECKING, Any

from loguru import logger

from idebug.engine.errors import AuthenticationFailure
from idebug.engine.evaluator import evaluate, format_error
from idebug.engine.formatter import format_value

if TYPE_CHECKING:
    from idebug.engine.config import DebuggerConfig

_session_ids = itertools.count(1)


class SessionState(enum.Enum):
    AWAITING_AUTH = "awaiting-auth"
    ACTIVE = "active"
    CLOSED = "closed"


class ReplSession:
    """Read-eval-print loop over one duplex stream.

    The evaluator and default value are read from the shared config on every
    line; the session itself only owns its stream and its state.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        config: DebuggerConfig,
    ):
        self.reader = reader
        self.writer = writer
        self.config = config
        self.id = next(_session_ids)
        self.peer: Any = writer.get_extra_info("peername")

        self.state = (
            SessionState.AWAITING_AUTH if config.authenticated else SessionState.ACTIVE
        )

    def __repr__(self) -> str:
        return f"<ReplSession #{self.id} {self.state.value} peer={self.peer}>"

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    async def run(self) -> None:
        """Drive the session until the stream closes."""
        logger.info("[idebug #{}] Client connected from {}", self.id, self.peer)

        try:
            if self.state is SessionState.AWAITING_AUTH:
                try:
                    await self.authenticate()
                except AuthenticationFailure as e:
                    # one attempt only: never leave the stream open for a retry
                    logger.warning("[idebug #{}] Authentication failed: {}", self.id, e)
                    return

            if self.config.banner:
                await self.send(self.config.banner + "\n")

            await self.send(self.config.prompt)

            while not self.closed:
                try:
                    raw = await self.read_line()
                except ValueError:
                    await self.send(
                        "Error: input line too long\n" + self.config.prompt
                    )
                    continue

                if not raw:
                    break

                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if not await self.handle_line(line):
                    break
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            logger.debug("[idebug #{}] Connection lost: {}", self.id, e)
        finally:
            await self.close()

    async def authenticate(self) -> None:
        """Read exactly one full line and compare it to the secret.

        Buffers until a newline arrives, so a secret split across several
        network packets still authenticates. Raises AuthenticationFailure on
        mismatch, timeout, oversize line or EOF.
        """
        try:
            raw = await asyncio.wait_for(
                self.reader.readline(), timeout=self.config.auth_timeout
            )
        except asyncio.TimeoutError:
            raise AuthenticationFailure("no secret received in time")
        except ValueError:
            raise AuthenticationFailure("secret line too long")

        if not raw.endswith(b"\n"):
            raise AuthenticationFailure("connection closed before the secret was sent")

        password = (self.config.password or "").encode("utf-8")
        if not secrets.compare_digest(raw.strip(), password):
            raise AuthenticationFailure("wrong secret")

        self.state = SessionState.ACTIVE
        logger.info("[idebug #{}] Authenticated", self.id)

    async def read_line(self) -> bytes:
        """Next input line with its terminator, or the partial tail at EOF.

        A line over the stream limit raises ValueError, but only after the
        whole line (through its newline) has been dropped, so no fragment of
        it is ever read as a command of its own.
        """
        try:
            return await self.reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return e.partial
        except asyncio.LimitOverrunError as e:
            consumed = e.consumed

        while True:
            await self.reader.readexactly(consumed)
            try:
                await self.reader.readuntil(b"\n")
            except asyncio.LimitOverrunError as e:
                consumed = e.consumed
                continue

            logger.warning("[idebug #{}] Dropped over-long input line", self.id)
            raise ValueError("input line too long")

    async def handle_line(self, line: str) -> bool:
        """Evaluate one line and write back the result plus the next prompt.

        Returns False when the session should end (exit command).
        """
        logger.trace("[idebug #{}] {}{}", self.id, self.config.prompt, line)

        exit_command = self.config.exit_command
        if exit_command and line.strip() == exit_command:
            logger.info("[idebug #{}] Client requested exit", self.id)
            return False

        try:
            output = format_value(
                await evaluate(line, self.config), self.config.format_depth
            )
        except Exception as e:
            # one bad command must not kill the session
            output = format_error(e)

        await self.send(output + "\n" + self.config.prompt)
        return True

    async def send(self, text: str) -> None:
        self.writer.write(text.encode("utf-8", errors="replace"))
        await self.writer.drain()

    async def close(self) -> None:
        """Close the stream; safe to call more than once."""
        if self.closed:
            return

        self.state = SessionState.CLOSED
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug("[idebug #{}] Error while closing: {}", self.id, e)

        logger.info("[idebug #{}] Client disconnected", self.id)

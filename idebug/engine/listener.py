"""Loopback TCP listener that starts one ReplSession per connection."""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from idebug.engine import defaults
from idebug.engine.errors import BindError
from idebug.engine.session import ReplSession

if TYPE_CHECKING:
    from idebug.engine.config import DebuggerConfig


class ReplListener:
    """Owns the listening socket and every session accepted on it.

    The port is assigned by the OS on ``start()`` and never changes while the
    listener is up. ``stop()`` closes the socket and all open sessions and can
    be called any number of times, including before ``start()``.
    """

    def __init__(self, config: DebuggerConfig):
        self.config = config
        self.server: asyncio.Server | None = None
        self.port: int | None = None
        self.sessions: set[ReplSession] = set()
        self._tasks: set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return f"<ReplListener {self.config.host}:{self.port} sessions={len(self.sessions)}>"

    @property
    def serving(self) -> bool:
        return self.server is not None and self.server.is_serving()

    async def start(self) -> int:
        """Bind an ephemeral loopback port and start accepting clients."""
        if self.server is not None:
            raise BindError(f"Listener already started on port {self.port}")

        try:
            server = await asyncio.start_server(
                self._accept,
                self.config.host,
                defaults.EPHEMERAL_PORT,
                limit=defaults.LINE_LIMIT,
            )
        except OSError as e:
            raise BindError(f"Can't listen on {self.config.host}: {e}") from e

        try:
            port = server.sockets[0].getsockname()[1]
        except (IndexError, TypeError, OSError) as e:
            server.close()
            raise BindError(f"Listener has no usable address: {e}") from e

        if not isinstance(port, int) or port <= 0:
            server.close()
            raise BindError(f"Listener reported invalid port: {port!r}")

        self.server = server
        self.port = port
        logger.info("[idebug] Listening on {}:{}", self.config.host, port)
        return port

    async def _accept(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        session = ReplSession(reader, writer, self.config)
        task = asyncio.current_task()
        self.sessions.add(session)
        if task is not None:
            self._tasks.add(task)

        try:
            await session.run()
        except Exception:
            # a broken session must not take the listener down with it
            logger.exception("[idebug #{}] Session crashed", session.id)
            await session.close()
        finally:
            self.sessions.discard(session)
            self._tasks.discard(task)

    async def stop(self) -> None:
        """Close the listening socket and every open session."""
        server, self.server = self.server, None

        if server is not None:
            server.close()

        for session in list(self.sessions):
            await session.close()

        # let session handlers finish; skip ourselves if a session is stopping us
        pending = self._tasks - {asyncio.current_task()}
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if server is not None:
            await server.wait_closed()
            logger.info("[idebug] Stopped listening on port {}", self.port)

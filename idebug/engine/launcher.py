"""Start a debugger: validate, listen, open the terminal window.

``launch()`` returns immediately with a ``DebuggerHandle``. The actual work
runs as one supervised coroutine:

- inside the caller's running event loop, if there is one (so evaluated code
  can await the host's own coroutines), or
- on a private daemon thread with its own event loop otherwise.

Nothing raised by that coroutine reaches the host. Launch failures are logged
(``logger.error``), stored on ``handle.error`` and handed to ``on_error`` if
given; per-line and per-session errors stay inside their session.
"""
from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from typing import Any

from loguru import logger

from idebug.engine.config import DebuggerConfig
from idebug.engine.listener import ReplListener
from idebug.engine.protocols import TerminalSpawner
from idebug.engine.terminal import default_spawner

ErrorCallback = Callable[[BaseException], Any]


class DebuggerHandle:
    """Controls one launched debugger.

    ``port`` is set once the listener is up; ``error`` once a launch failed.
    ``close()`` may be called from any thread, any number of times.
    """

    def __init__(
        self,
        config: DebuggerConfig | None,
        spawner: TerminalSpawner | None = None,
        on_error: ErrorCallback | None = None,
    ):
        self.config = config
        self.spawner = spawner
        self.on_error = on_error

        self.listener: ReplListener | None = None
        self.port: int | None = None
        self.error: BaseException | None = None

        self._ready = threading.Event()
        self._done = threading.Event()
        self._closing = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task | None = None
        self._thread: threading.Thread | None = None

    def __repr__(self) -> str:
        status = "failed" if self.error else "running" if self.running else "idle"
        return f"<DebuggerHandle {status} port={self.port}>"

    @property
    def running(self) -> bool:
        return self.port is not None and not self._done.is_set()

    # ── Startup ─────────────────────────────────────────────────────

    def start(self) -> DebuggerHandle:
        """Schedule the launch on the running loop, or on a background thread."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            self._task = loop.create_task(self._supervise(), name="idebug launcher")
        else:
            self._thread = threading.Thread(
                target=self._thread_main, name="idebug", daemon=True
            )
            self._thread.start()

        return self

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        loop.set_exception_handler(self._loop_exception)
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._supervise())
        finally:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    @staticmethod
    def _loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        # stray task errors on our private loop go to the log, not to the host
        logger.error("[idebug] Background error: {}", context.get("message"))
        if exc := context.get("exception"):
            logger.opt(exception=exc).debug("[idebug] Background exception")

    async def _supervise(self) -> None:
        """Run the launch and keep serving until close(); never raises."""
        self._loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()

        try:
            if self._closing:
                return

            await self._launch()
            await self._stop.wait()
        except asyncio.CancelledError:
            logger.info("[idebug] Debugger cancelled")
        except Exception as e:
            self._report(e)
        finally:
            if self.listener is not None:
                try:
                    await self.listener.stop()
                except Exception:
                    logger.exception("[idebug] Error while stopping listener")

            self._ready.set()
            self._done.set()

    async def _launch(self) -> None:
        if self.config is None:
            raise ValueError("No debugger configuration")

        # platform check happens before any socket is opened
        spawner = self.spawner or default_spawner()
        spawner.validate()

        self.listener = ReplListener(self.config)
        self.port = await self.listener.start()

        # a failed spawn falls through to _supervise, which closes the listener
        spawner.spawn(
            self.config.title, self.port, self.config.password, self.config.prompt
        )

        logger.info(
            "[idebug] Debugger '{}' ready on port {}", self.config.title, self.port
        )
        self._ready.set()

    def _report(self, error: BaseException) -> None:
        self.error = error
        logger.error("Failed to start debugger: {}", error)

        if self.on_error is not None:
            try:
                self.on_error(error)
            except Exception:
                logger.exception("[idebug] on_error callback raised")

    # ── Waiting ─────────────────────────────────────────────────────

    def wait_ready(self, timeout: float | None = None) -> int | None:
        """Block until the launch finished (either way); return the port.

        Don't call this from the event loop the debugger runs on -- use
        ``await handle.started()`` there.
        """
        self._ready.wait(timeout)
        return None if self.error else self.port

    async def started(self, timeout: float | None = None) -> int | None:
        """Async version of wait_ready(); safe on any event loop."""
        if not self._ready.is_set():
            await asyncio.to_thread(self._ready.wait, timeout)

        return None if self.error else self.port

    def join(self, timeout: float | None = None) -> bool:
        """Block until the debugger has fully stopped; True if it has."""
        return self._done.wait(timeout)

    # ── Shutdown ────────────────────────────────────────────────────

    def close(self) -> None:
        """Ask the debugger to stop listening and drop all sessions."""
        self._closing = True

        loop, stop = self._loop, self._stop
        if loop is None or stop is None or self._done.is_set():
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            stop.set()
            return

        try:
            loop.call_soon_threadsafe(stop.set)
        except RuntimeError:
            # background loop finished between the check and the call
            logger.debug("[idebug] Debugger loop already closed")

    async def shutdown(self) -> None:
        """close() and wait until the listener and all sessions are gone."""
        self.close()

        if self._task is not None and self._task.get_loop() is asyncio.get_running_loop():
            await asyncio.shield(self._task)
        elif not self._done.is_set():
            await asyncio.to_thread(self._done.wait)


def launch(
    config: DebuggerConfig | None = None,
    *,
    spawner: TerminalSpawner | None = None,
    on_error: ErrorCallback | None = None,
    **options: Any,
) -> DebuggerHandle:
    """Open a debugger window connected to a REPL inside this process.

    Either pass a ready ``DebuggerConfig`` or launch options::

        launch(title="Worker 3", default="ready", eval=my_eval)

    Never raises: bad options, unsupported platforms, bind and spawn
    failures are reported through the log and ``on_error``.
    """
    try:
        if config is None:
            config = DebuggerConfig.from_options(options)
        elif options:
            raise TypeError("Pass either a DebuggerConfig or options, not both")
    except Exception as e:
        handle = DebuggerHandle(None, spawner, on_error)
        handle._report(e)
        handle._ready.set()
        handle._done.set()
        return handle

    return DebuggerHandle(config, spawner, on_error).start()

"""Shared test fixtures for idebug test suite.

ReplClient is a minimal line-protocol client for talking to a real
ReplListener over loopback; RecordingSpawner stands in for the terminal
window so launches can be tested headless.
"""

import asyncio
import contextlib
from io import StringIO

import pytest
from loguru import logger

from idebug.engine import defaults
from idebug.engine.config import DebuggerConfig
from idebug.engine.listener import ReplListener

PROMPT = defaults.PROMPT.encode()
TIMEOUT = 5


class ReplClient:
    """Test double for the terminal client: raw reads, no prompt_toolkit."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer

    @classmethod
    async def open(cls, port: int, password: str | None = None) -> "ReplClient":
        reader, writer = await asyncio.open_connection(defaults.LOOPBACK_HOST, port)
        client = cls(reader, writer)
        if password is not None:
            await client.send(password + "\n")
        return client

    async def send(self, text: str) -> None:
        self.writer.write(text.encode())
        await self.writer.drain()

    async def read_prompt(self) -> str:
        """Everything up to (not including) the next prompt marker."""
        data = await asyncio.wait_for(self.reader.readuntil(PROMPT), TIMEOUT)
        return data[: -len(PROMPT)].decode()

    async def ask(self, line: str) -> str:
        """Send one line, return the server's response without the newline."""
        await self.send(line + "\n")
        return (await self.read_prompt()).removesuffix("\n")

    async def read_all(self) -> bytes:
        """Read until the server closes the connection."""
        return await asyncio.wait_for(self.reader.read(), TIMEOUT)

    async def close(self) -> None:
        self.writer.close()
        with contextlib.suppress(OSError):
            await self.writer.wait_closed()


class RecordingSpawner:
    """Stand-in for PowerShellSpawner/XTermSpawner that records spawn calls."""

    def __init__(self, invalid: Exception | None = None, fail: Exception | None = None):
        self.invalid = invalid
        self.fail = fail
        self.validated = 0
        self.calls: list[dict] = []

    def validate(self) -> None:
        self.validated += 1
        if self.invalid:
            raise self.invalid

    def spawn(self, title, port, password, prompt=defaults.PROMPT) -> None:
        if self.fail:
            raise self.fail

        self.calls.append(dict(title=title, port=port, password=password, prompt=prompt))


# ── Fixtures ──


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """No IDEBUG_* variables or .env.idebug file leak in from the developer's shell."""
    for name in (defaults.PASSWORD_ENV, defaults.TITLE_ENV, defaults.PROMPT_ENV):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def log_capture():
    """Capture loguru output for assertion. Yields a StringIO buffer."""
    buf = StringIO()
    handler_id = logger.add(buf, format="{level} {message}", level="DEBUG")
    yield buf
    logger.remove(handler_id)


@pytest.fixture
def make_config():
    """DebuggerConfig factory; no password unless the test asks for one."""

    def make(**kwargs) -> DebuggerConfig:
        kwargs.setdefault("password", None)
        return DebuggerConfig(**kwargs)

    return make


@pytest.fixture
def serve():
    """Async context manager running a ReplListener for the test body."""

    @contextlib.asynccontextmanager
    async def running(config: DebuggerConfig):
        listener = ReplListener(config)
        await listener.start()
        try:
            yield listener
        finally:
            await listener.stop()

    return running


@pytest.fixture
def connect():
    return ReplClient.open


@pytest.fixture
def spawner() -> RecordingSpawner:
    return RecordingSpawner()


@pytest.fixture
def spawner_factory():
    return RecordingSpawner

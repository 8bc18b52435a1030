"""Tests for the terminal client against a real listener.

prompt_toolkit is replaced by ScriptedSession so input is deterministic.
"""

import asyncio

import pytest

from idebug import client
from idebug.client import read_until_prompt, run_client


class ScriptedSession:
    """Answers prompt_async() from a list; EOFError when it runs out."""

    def __init__(self, *lines):
        self.lines = list(lines)
        self.prompts: list[str] = []

    async def prompt_async(self, prompt):
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError

        line = self.lines.pop(0)
        if isinstance(line, BaseException):
            raise line

        return line


def feed(*chunks: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    reader.feed_eof()
    return reader


# ── Reading server output ───────────────────────────────────────────────────


class TestReadUntilPrompt:
    @pytest.mark.asyncio
    async def test_plain_result(self):
        assert await read_until_prompt(feed(b"4\n> "), b"> ") == ("4\n", True)

    @pytest.mark.asyncio
    async def test_first_prompt(self):
        assert await read_until_prompt(feed(b"> "), b"> ") == ("", True)

    @pytest.mark.asyncio
    async def test_marker_inside_output_ignored(self):
        reader = feed(b"a > b\n> ")
        assert await read_until_prompt(reader, b"> ") == ("a > b\n", True)

    @pytest.mark.asyncio
    async def test_connection_closed(self):
        assert await read_until_prompt(feed(b"partial"), b"> ") == ("partial", False)

    @pytest.mark.asyncio
    async def test_split_chunks(self):
        assert await read_until_prompt(feed(b"hel", b"lo\n", b">", b" "), b"> ") == (
            "hello\n",
            True,
        )

    @pytest.mark.asyncio
    async def test_output_larger_than_limit(self):
        reader = asyncio.StreamReader(limit=16)
        reader.feed_data(b"x" * 100 + b"\n> ")
        reader.feed_eof()
        output, prompted = await read_until_prompt(reader, b"> ")
        assert prompted
        assert output == "x" * 100 + "\n"


# ── Full client sessions ────────────────────────────────────────────────────


class TestRunClient:
    @pytest.mark.asyncio
    async def test_round_trip(self, make_config, serve, capsys):
        session = ScriptedSession("", "hello")
        async with serve(make_config(default="ready", evaluator=str.upper)) as listener:
            code = await run_client("127.0.0.1", listener.port, session=session)

        assert code == 0
        out = capsys.readouterr().out
        assert "ready\n" in out
        assert "HELLO\n" in out
        assert session.prompts == ["> ", "> ", "> "]

    @pytest.mark.asyncio
    async def test_with_password(self, make_config, serve, capsys):
        session = ScriptedSession("2 + 2")
        async with serve(make_config(password="xyz")) as listener:
            code = await run_client("127.0.0.1", listener.port, "xyz", session=session)

        assert code == 0
        assert "4\n" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_wrong_password(self, make_config, serve, log_capture):
        session = ScriptedSession("2 + 2")
        async with serve(make_config(password="xyz")) as listener:
            code = await run_client("127.0.0.1", listener.port, "nope", session=session)

        assert code == 1
        assert session.prompts == []
        assert "refused" in log_capture.getvalue()

    @pytest.mark.asyncio
    async def test_custom_prompt(self, make_config, serve, capsys):
        session = ScriptedSession("'a > b'")
        async with serve(make_config(prompt="dbg> ")) as listener:
            code = await run_client(
                "127.0.0.1", listener.port, session=session, prompt="dbg> "
            )

        assert code == 0
        assert session.prompts == ["dbg> ", "dbg> "]
        assert "a > b\n" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_ctrl_c_retries(self, make_config, serve, capsys):
        session = ScriptedSession(KeyboardInterrupt(), "1")
        async with serve(make_config()) as listener:
            code = await run_client("127.0.0.1", listener.port, session=session)

        assert code == 0
        assert "1\n" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_server_exit_command(self, make_config, serve):
        session = ScriptedSession(".exit", "never sent")
        async with serve(make_config()) as listener:
            code = await run_client("127.0.0.1", listener.port, session=session)

        assert code == 0
        assert session.lines == ["never sent"]

    @pytest.mark.asyncio
    async def test_nothing_listening(self, make_config, serve):
        async with serve(make_config()) as listener:
            port = listener.port

        assert await run_client("127.0.0.1", port, session=ScriptedSession()) == 1


class TestMain:
    def test_reads_password_and_prompt_from_env(self, monkeypatch):
        seen = {}

        async def fake_run_client(host, port, password=None, session=None, prompt="> "):
            seen.update(host=host, port=port, password=password, prompt=prompt)
            return 0

        monkeypatch.setenv("IDEBUG_PASSWORD", "xyz")
        monkeypatch.setattr(client, "run_client", fake_run_client)
        monkeypatch.setattr(client, "setup_logging", lambda **kwargs: None)

        assert client.main(["4321", "--prompt", "$ "]) == 0
        assert seen == dict(host="127.0.0.1", port=4321, password="xyz", prompt="$ ")

    def test_bad_port_argument(self):
        with pytest.raises(SystemExit):
            client.main(["not-a-port"])

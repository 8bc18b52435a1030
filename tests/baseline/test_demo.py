"""Tests for the demo host (idebug.cli.DemoApp)."""
from unittest.mock import MagicMock, patch

import pytest

from idebug.cli import HELP, DemoApp


@pytest.fixture
def app():
    app = DemoApp(maxItems=3)
    app.items = ["Red Item #1", "Blue Item #2"]
    app.counter = 2
    return app


class TestTick:
    def test_counter_and_item(self):
        app = DemoApp()
        item = app.tick()
        assert app.counter == 1
        assert item.endswith("Item #1")
        assert app.items == [item]

    def test_items_trimmed(self, app):
        for _ in range(5):
            app.tick()

        assert app.counter == 7
        assert len(app.items) == 3
        assert app.items[-1].endswith("Item #7")


class TestEvaluate:
    def test_help(self, app):
        assert app.evaluate("help") == HELP

    def test_counter(self, app):
        assert app.evaluate(" counter ") == 2

    def test_items(self, app):
        assert app.evaluate("items") == ["Red Item #1", "Blue Item #2"]
        assert app.evaluate("items.count") == 2

    def test_latest(self, app):
        assert app.evaluate("latest") == "Blue Item #2"

    def test_latest_empty(self):
        assert DemoApp().evaluate("latest") == "No items yet"

    def test_random(self, app):
        assert app.evaluate("random") in app.items

    def test_clear(self, app):
        assert app.evaluate("clear") == "Cleared 2 items"
        assert app.items == []

    @pytest.mark.parametrize("code,expected", [("items[0]", "Red Item #1"), ("items[ -1 ]", "Blue Item #2")])
    def test_index(self, app, code, expected):
        assert app.evaluate(code) == expected

    def test_index_out_of_range(self, app):
        assert app.evaluate("items[5]") == "Index 5 out of range. Valid range: 0-1"

    def test_python_fallback(self, app):
        assert app.evaluate("app.counter * 2") == 4
        assert app.evaluate("[i for i in app.items if 'Red' in i]") == ["Red Item #1"]

    def test_python_mutation(self, app):
        app.evaluate("app.interval = 1")
        assert app.interval == 1

    def test_python_errors_propagate(self, app):
        with pytest.raises(NameError):
            app.evaluate("nope")


class TestCommands:
    @pytest.mark.asyncio
    async def test_open_launches_debugger(self, app):
        handle = MagicMock()

        async def started(timeout=None):
            return 4321

        handle.started = started
        with patch("idebug.cli.idebug.launch", return_value=handle) as launch:
            await app.runCommand("open Worker 3")

        kwargs = launch.call_args.kwargs
        assert kwargs["title"] == "Worker 3"
        assert kwargs["default"].startswith("Ready for commands")
        assert kwargs["eval"] == app.evaluate
        assert app.debuggers == [handle]

    @pytest.mark.asyncio
    async def test_close_shuts_down_all(self, app):
        handle = MagicMock()
        calls = []

        async def shutdown():
            calls.append(1)

        handle.shutdown = shutdown
        app.debuggers = [handle, handle]

        await app.runCommand("close")
        assert calls == [1, 1]
        assert app.debuggers == []

    @pytest.mark.asyncio
    async def test_quit(self, app):
        await app.runCommand("quit")
        assert app.exiting

    @pytest.mark.asyncio
    async def test_unknown_command(self, app, log_capture):
        await app.runCommand("frobnicate")
        assert "Unknown command: frobnicate" in log_capture.getvalue()
        assert not app.exiting

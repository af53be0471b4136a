import asyncio
import io

from app.dashboard.console import format_created_at, handle_command, render
from app.dashboard.view import DashboardView


ROWS = [
    {"id": 2, "url": "https://b.example", "title": "B", "created_at": "2024-05-02T10:00:00+00:00"},
    {"id": 1, "url": "https://a.example", "title": "A", "created_at": "2024-05-01T10:00:00+00:00"},
]


def test_format_created_at_falls_back_to_raw_value():
    assert format_created_at("") == ""
    assert format_created_at("t1") == "t1"
    assert format_created_at("2024-05-15T12:00:00+00:00").startswith("2024-05-1")


def test_render_lists_numbered_bookmarks(backend):
    backend.store.rows = ROWS
    view = DashboardView(lambda: backend)
    asyncio.run(view.activate())
    out = io.StringIO()

    render(view, out=out)

    text = out.getvalue()
    assert "me@example.com" in text
    assert "1. B  <https://b.example>" in text
    assert "2. A  <https://a.example>" in text


def test_render_empty_state(backend):
    view = DashboardView(lambda: backend)
    asyncio.run(view.activate())
    out = io.StringIO()

    render(view, out=out)

    assert "No bookmarks yet" in out.getvalue()


def test_commands_drive_the_view(backend):
    backend.store.rows = ROWS
    view = DashboardView(lambda: backend)
    out = io.StringIO()

    async def exercise():
        await view.activate()
        assert await handle_command(view, "add https://c.example Cool site", out) is True
        assert [item.title for item in view.bookmarks][0] == "Cool site"
        assert await handle_command(view, "rm 3", out) is True
        assert [item.id for item in view.bookmarks] == [100, 2]
        assert await handle_command(view, "rm 9", out) is True
        assert await handle_command(view, "add onlyurl", out) is True
        assert await handle_command(view, "", out) is True
        assert await handle_command(view, "help", out) is True
        assert await handle_command(view, "logout", out) is False

    asyncio.run(exercise())

    text = out.getvalue()
    assert "no bookmark numbered 9" in text
    assert "usage: add <url> <title>" in text
    assert "commands:" in text
    assert backend.auth.ended is True


def test_quit_stops_without_logging_out(backend):
    view = DashboardView(lambda: backend)

    async def exercise():
        await view.activate()
        return await handle_command(view, "quit")

    assert asyncio.run(exercise()) is False
    assert backend.auth.ended is False

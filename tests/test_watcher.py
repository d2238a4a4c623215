"""
Tests for the watch session: event filtering, debounce, render
coalescing, polling fallback, error threshold, and shutdown.
"""

import asyncio
import io
import os
import signal
import sys

import pytest
from rich.console import Console

from kanmd.core import repository, service, watcher
from kanmd.core.watcher import WatchSession, is_relevant_change


class FakeObserver:
    """Stand-in for watchdog's Observer; records calls, emits nothing."""

    def __init__(self):
        self.scheduled = []
        self.alive = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self):
        self.alive = True

    def stop(self):
        self.stopped = True
        self.alive = False

    def join(self, timeout=None):
        pass

    def is_alive(self):
        return self.alive


class BrokenObserver(FakeObserver):
    def start(self):
        raise OSError("inotify watch limit reached")


class Renders:
    """Async render callback that counts calls and tracks overlap."""

    def __init__(self, delay=0.0):
        self.delay = delay
        self.count = 0
        self.active = 0
        self.max_active = 0

    async def __call__(self):
        self.count += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.active -= 1


def quiet_consoles():
    return Console(file=io.StringIO()), Console(file=io.StringIO())


def make_session(board_dir, render, **kwargs):
    console, error_console = quiet_consoles()
    kwargs.setdefault("observer_factory", FakeObserver)
    kwargs.setdefault("handle_signals", False)
    kwargs.setdefault("debounce", 0.05)
    kwargs.setdefault("poll_interval", 0.05)
    return WatchSession(board_dir, render, console=console, error_console=error_console, **kwargs)


# --- event filtering ---

@pytest.mark.parametrize(
    "path, expected",
    [
        ("/b/todo/task.md", True),
        ("/b/board.yaml", True),
        ("todo/task.md", True),
        ("/b/todo/task.md.tmp", False),
        ("/b/todo/.task.md.swp", False),
        ("/b/todo/.hidden.md", False),
        ("/b/todo/notes.txt", False),
        ("", False),
        (b"/b/todo/task.md", True),
    ],
)
def test_is_relevant_change(path, expected):
    assert is_relevant_change(path) is expected


# --- native mode ---

def test_initial_render_and_native_mode(board_dir):
    render = Renders()
    session = make_session(board_dir, render)

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.02)
        assert render.count == 1
        assert session.mode == watcher.MODE_NATIVE
        session.stop()
        await task

    asyncio.run(scenario())
    assert not session.running


def test_burst_of_events_renders_once(board_dir):
    render = Renders()
    session = make_session(board_dir, render)

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.02)
        for _ in range(5):
            session.notify_change("todo/a.md")
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.2)
        session.stop()
        await task

    asyncio.run(scenario())
    assert render.count == 2


def test_change_during_render_gets_one_follow_up(board_dir):
    render = Renders(delay=0.2)
    session = make_session(board_dir, render)

    async def scenario():
        task = asyncio.create_task(session.run())
        # Initial render takes 0.2s
        await asyncio.sleep(0.25)
        session.notify_change("todo/a.md")
        # Debounce fires ~0.05s later; that render is busy for 0.2s
        await asyncio.sleep(0.1)
        session.notify_change("todo/b.md")
        await asyncio.sleep(0.02)
        session.notify_change("todo/c.md")
        await asyncio.sleep(0.6)
        session.stop()
        await task

    asyncio.run(scenario())
    # initial + first change + exactly one coalesced follow-up
    assert render.count == 3
    assert render.max_active == 1


def test_dead_observer_falls_back_to_polling(board_dir):
    render = Renders()
    observers = []

    def factory():
        observers.append(FakeObserver())
        return observers[-1]

    session = make_session(board_dir, render, observer_factory=factory)

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.02)
        observers[0].alive = False
        await asyncio.sleep(0.15)
        assert session.mode == watcher.MODE_POLLING
        session.stop()
        await task

    asyncio.run(scenario())
    assert observers[0].stopped
    assert len(observers) == 1


# --- polling mode ---

def test_setup_failure_uses_polling_and_renders_on_change(board_dir):
    render = Renders()
    session = make_session(board_dir, render, observer_factory=BrokenObserver)

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.1)
        assert session.mode == watcher.MODE_POLLING
        assert render.count == 1

        service.add_card("todo", "New card", root=board_dir)
        await asyncio.sleep(0.2)
        assert render.count == 2

        # No change, no render
        await asyncio.sleep(0.2)
        assert render.count == 2
        session.stop()
        await task

    asyncio.run(scenario())
    assert "falling back to polling" in session.error_console.file.getvalue()


def test_polling_errors_surface_after_threshold(board_dir, monkeypatch):
    render = Renders()
    session = make_session(
        board_dir, render, observer_factory=BrokenObserver, poll_interval=0.02, error_threshold=3
    )
    calls = {"n": 0}

    def failing_load(root=None):
        calls["n"] += 1
        raise OSError("disk went away")

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.01)
        monkeypatch.setattr(repository, "load_board", failing_load)
        # Wait for exactly five failed polls
        while calls["n"] < 5:
            await asyncio.sleep(0.005)
        session.stop()
        await task

    asyncio.run(scenario())
    output = session.error_console.file.getvalue()
    assert output.count("disk went away") == 1


# --- shutdown ---

def test_stop_is_idempotent(board_dir):
    render = Renders()
    session = make_session(board_dir, render)

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.02)
        session.stop()
        session.stop()
        await task

    asyncio.run(scenario())
    assert session.console.file.getvalue().count("Stopped watching.") == 1


def test_stop_cancels_pending_render(board_dir):
    render = Renders()
    session = make_session(board_dir, render, debounce=0.1)

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.02)
        session.notify_change("todo/a.md")
        session.stop()
        await task
        await asyncio.sleep(0.15)

    asyncio.run(scenario())
    assert render.count == 1


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
def test_sigterm_stops_session(board_dir):
    render = Renders()
    session = make_session(board_dir, render, handle_signals=True)

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.02)
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(task, timeout=2)

    asyncio.run(scenario())
    assert not session.running
    assert "Stopped watching." in session.console.file.getvalue()


def test_unexpected_render_error_is_reported_and_watching_continues(board_dir, caplog):
    calls = {"n": 0}

    async def render():
        calls["n"] += 1
        if calls["n"] == 2:
            raise ValueError("template exploded")

    session = make_session(board_dir, render)

    async def scenario():
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.02)
        session.notify_change("todo/a.md")
        await asyncio.sleep(0.15)
        session.notify_change("todo/b.md")
        await asyncio.sleep(0.15)
        session.stop()
        await task

    with caplog.at_level("ERROR", logger="kanmd.core.watcher"):
        asyncio.run(scenario())

    assert calls["n"] == 3
    assert "template exploded" in session.error_console.file.getvalue()
    assert any(r.exc_info and "template exploded" in str(r.exc_info[1]) for r in caplog.records)

"""
FILE: kanmd/core/watcher.py
PURPOSE: Re-render the board whenever its files change
EXPORTS:
  - WatchSession (owns timers, observer, poll loop, and signal handlers)
  - watch_board(root, render, console) -> None (coroutine)
  - is_relevant_change(path) -> bool
DEPENDENCIES:
  - asyncio, signal (stdlib)
  - watchdog (native recursive filesystem events)
  - rich (status lines)
  - kanmd.core.repository (load_board for polling snapshots)
NOTES:
  - Native mode: watchdog Observer on the board root; events are handed to
    the asyncio loop with call_soon_threadsafe and debounced
  - Only one render runs at a time. A change that arrives mid-render
    sets a pending flag and gets exactly one follow-up render
  - If the observer can't start, or its thread dies, the session switches
    to polling for good: load_board() every interval, render on change
  - Poll errors are only printed after POLL_ERROR_THRESHOLD in a row
  - SIGINT/SIGTERM call stop(); handlers are installed once per session
"""

import asyncio
import logging
import os
import signal
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional

from rich.console import Console
from rich.markup import escape
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from . import repository
from .constants import (
    BOARD_FILE,
    CARD_SUFFIX,
    DEBOUNCE_SECONDS,
    POLL_ERROR_THRESHOLD,
    POLL_INTERVAL_SECONDS,
    TEMP_SUFFIX,
)
from .exceptions import KanmdError

logger = logging.getLogger(__name__)

RenderFn = Callable[[], Awaitable[None]]

MODE_NATIVE = "native"
MODE_POLLING = "polling"

_LOOP_HANDLER = object()

WATCHED_SUFFIXES = (CARD_SUFFIX, os.path.splitext(BOARD_FILE)[1])


def is_relevant_change(path) -> bool:
    """True for card files and board config; False for temp and hidden files."""
    if not path:
        return False
    name = os.path.basename(os.fsdecode(path))
    if name.endswith(TEMP_SUFFIX) or name.startswith("."):
        return False
    return name.endswith(WATCHED_SUFFIXES)


class _BoardEventHandler(FileSystemEventHandler):
    """Forwards relevant watchdog events to the session (runs on observer thread)."""

    def __init__(self, session: "WatchSession"):
        self.session = session

    def on_any_event(self, event):
        if event.is_directory:
            return
        for path in (event.src_path, getattr(event, "dest_path", "")):
            if is_relevant_change(path):
                self.session.notify_change(path)
                return


class WatchSession:
    """
    One `kanmd watch` run.

    Usage:
        session = WatchSession(root, render)
        await session.run()    # returns after stop() or SIGINT/SIGTERM
    """

    def __init__(
        self,
        root: Path,
        render: RenderFn,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
        debounce: float = DEBOUNCE_SECONDS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        error_threshold: int = POLL_ERROR_THRESHOLD,
        observer_factory: Callable = Observer,
        handle_signals: bool = True,
    ):
        self.root = Path(root)
        self.render = render
        self.console = console or Console()
        self.error_console = error_console or Console(stderr=True)
        self.debounce = debounce
        self.poll_interval = poll_interval
        self.error_threshold = error_threshold
        self.observer_factory = observer_factory
        self.handle_signals = handle_signals

        self.mode: Optional[str] = None
        self.render_count = 0

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopped: Optional[asyncio.Event] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._rendering = False
        self._pending = False
        self._observer = None
        self._tasks = set()
        self._poll_task: Optional[asyncio.Task] = None
        self._health_task: Optional[asyncio.Task] = None
        self._signals = []

    @property
    def running(self) -> bool:
        return self._stopped is not None and not self._stopped.is_set()

    # --- Lifecycle ---

    async def run(self) -> None:
        """Render once, start watching, and wait until stopped."""
        self._loop = asyncio.get_running_loop()
        self._stopped = asyncio.Event()
        repository.ensure_board(self.root)
        self._install_signal_handlers()

        self.console.clear()
        self.console.print("[dim]Watching for changes... (Ctrl+C to exit)[/dim]\n")
        self._rendering = True
        await self._render_once(show_header=False)

        if self.running:
            try:
                self._start_native()
            except (OSError, RuntimeError) as e:
                logger.debug("Native watch failed to start: %s", e)
                self.error_console.print(
                    "[yellow]Warning: Native file watching unavailable, "
                    "falling back to polling[/yellow]"
                )
                self._start_polling()

        await self._stopped.wait()

    def stop(self, announce: bool = True) -> None:
        """Cancel timers, close the observer or poll loop, and end run()."""
        if not self.running:
            return

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._close_observer()
        for task in (self._poll_task, self._health_task):
            if task is not None:
                task.cancel()
        self._poll_task = self._health_task = None
        self._remove_signal_handlers()

        if announce:
            self.console.print("\n[dim]Stopped watching.[/dim]")
        self._stopped.set()

    def _install_signal_handlers(self) -> None:
        if not self.handle_signals or self._signals:
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                self._loop.add_signal_handler(sig, self.stop)
                self._signals.append((sig, _LOOP_HANDLER))
            except NotImplementedError:
                # No loop signal support (Windows); hop back onto the loop
                previous = signal.signal(
                    sig, lambda *_: self._loop.call_soon_threadsafe(self.stop)
                )
                self._signals.append((sig, previous))

    def _remove_signal_handlers(self) -> None:
        for sig, previous in self._signals:
            if previous is _LOOP_HANDLER:
                self._loop.remove_signal_handler(sig)
            else:
                signal.signal(sig, previous)
        self._signals = []

    # --- Native mode ---

    def _start_native(self) -> None:
        observer = self.observer_factory()
        observer.schedule(_BoardEventHandler(self), str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        self.mode = MODE_NATIVE
        self._health_task = self._spawn(self._watch_observer())
        logger.debug("Watching %s with native events", self.root)

    async def _watch_observer(self) -> None:
        # watchdog has no error callback; a dead observer thread is the error
        while self.running and self.mode == MODE_NATIVE:
            await asyncio.sleep(self.poll_interval)
            if self._observer is not None and not self._observer.is_alive():
                self.error_console.print("[red]Watch error:[/red] file observer stopped")
                self.error_console.print("Falling back to polling mode...")
                self._health_task = None
                self._close_observer()
                self._start_polling()
                return

    def _close_observer(self) -> None:
        if self._observer is None:
            return
        observer, self._observer = self._observer, None
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=1.0)

    def notify_change(self, path=None) -> None:
        """Report a file change. Safe to call from any thread."""
        if not self.running or self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._schedule_render)
        except RuntimeError:
            # Loop already closed during shutdown
            pass

    def _schedule_render(self) -> None:
        if not self.running:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self.debounce, self._on_debounce)

    def _on_debounce(self) -> None:
        self._timer = None
        self._request_render()

    # --- Polling mode ---

    def _start_polling(self) -> None:
        self.mode = MODE_POLLING
        self._poll_task = self._spawn(self._poll())
        logger.debug("Polling %s every %.2fs", self.root, self.poll_interval)

    def _snapshot(self):
        return repository.load_board(self.root)

    async def _poll(self) -> None:
        try:
            last = self._snapshot()
        except (OSError, KanmdError):
            last = None
        consecutive_errors = 0

        while self.running:
            await asyncio.sleep(self.poll_interval)
            try:
                board = self._snapshot()
            except (OSError, KanmdError) as e:
                consecutive_errors += 1
                logger.debug("Poll failed (%d in a row): %s", consecutive_errors, e)
                if consecutive_errors >= self.error_threshold:
                    self.error_console.print(f"[red]Error:[/red] {escape(str(e))}")
                    consecutive_errors = 0
                continue

            consecutive_errors = 0
            if board != last:
                last = board
                self._request_render()

    # --- Rendering ---

    def _spawn(self, coro) -> asyncio.Task:
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _request_render(self) -> None:
        if not self.running:
            return
        if self._rendering:
            self._pending = True
            return
        # Claim the flag before the task starts so two requests can't both spawn
        self._rendering = True
        self._spawn(self._render_once())

    async def _render_once(self, show_header: bool = True) -> None:
        try:
            if show_header:
                self.console.clear()
                stamp = datetime.now().strftime("%H:%M:%S")
                suffix = " (polling mode)" if self.mode == MODE_POLLING else ""
                self.console.print(f"[dim]{escape(f'[{stamp}]{suffix}')}[/dim]\n")
            self.render_count += 1
            await self.render()
        except (KanmdError, OSError) as e:
            self.error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        except Exception as e:
            logger.exception("Render failed")
            self.error_console.print(f"[red]Render failed:[/red] {escape(str(e))}")
        finally:
            if self._pending and self.running:
                self._pending = False
                self._spawn(self._render_once())
            else:
                self._rendering = False


async def watch_board(root: Path, render: RenderFn, console: Optional[Console] = None) -> None:
    """Watch root until SIGINT/SIGTERM, calling render() on every change."""
    session = WatchSession(root, render, console=console)
    await session.run()

"""
FILE: kanmd/cli/commands/system.py
PURPOSE: System commands (version, watch)
"""

import asyncio

import typer

# Import shared objects from main module
# These will be available after main.py imports this module
from ..main import app, console, error_console, __version__
from ...core import repository
from ...core.constants import get_board_dir
from ...core.watcher import WatchSession
from ...formatting import CardFormatter


@app.command()
def version():
    """Show kanmd version."""
    console.print(f"kanmd v{__version__}")


@app.command()
def watch():
    """
    Show the board and redraw it whenever a card file changes.

    Uses native file events when available, otherwise polls every second.
    Press Ctrl+C to stop.

    Example:
        kanmd watch
    """
    root = get_board_dir()

    async def render():
        board = repository.load_board(root)
        console.print(CardFormatter.render_board(board))

    session = WatchSession(root, render, console=console, error_console=error_console)
    asyncio.run(session.run())
    raise typer.Exit(0)

"""
FILE: kanmd/cli/main.py
PURPOSE: Typer-based CLI for one-shot board commands
EXPORTS:
  - app (Typer application)
  - check_app (checklist sub-command group)
  - console, error_console (Rich consoles)
  - exit_with_error(error, json_output) -> NoReturn
  - emit_json(text) -> None
  - main() (entry point)
DEPENDENCIES:
  - typer (CLI framework)
  - rich (formatted output, logging handler)
  - kanmd.core.service (card operations)
  - kanmd.cli.commands (command registration)
NOTES:
  - Running `kanmd` with no command shows the board
  - Data commands support --json; errors then come back as {"error", "code"}
  - Error messages go to stderr
  - Exit codes: 0=success, 1=error
"""

import json
import logging
import sys

# Fix Windows console encoding for Unicode characters
if sys.platform == "win32":
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .. import __version__

# Typer app setup
app = typer.Typer(
    name="kanmd",
    help="Markdown-backed Kanban board for the terminal",
    add_completion=False,
)

# Checklist sub-command group
check_app = typer.Typer(
    name="check",
    help="Checklist commands",
)
app.add_typer(check_app, name="check")

# Rich console for formatted output
console = Console()
error_console = Console(stderr=True)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
    )


def emit_json(text: str) -> None:
    """Write JSON to stdout unstyled and unwrapped so scripts can parse it."""
    typer.echo(text)


def exit_with_error(error: Exception, json_output: bool = False):
    """
    Report an error and exit with status 1.

    Domain errors carry their own code; anything else (OS errors) is
    reported as ERROR.
    """
    code = getattr(error, "code", "ERROR")
    message = getattr(error, "message", None) or str(error)
    if json_output:
        emit_json(json.dumps({"error": message, "code": code}, indent=2))
    else:
        error_console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def default_command(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """
    Default callback - shows the board when no command is specified.
    """
    configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        from .commands.cards import ls
        ls(column=None, json_output=False, raw=False)


# Import command modules to register commands with app
# Commands are decorated with @app.command() in their modules
from .commands import (  # noqa: E402
    # Card commands
    ls,
    show,
    add,
    mv,
    rm,
    priority,
    edit,
    rank,
    # Checklist commands
    check_add,
    check_toggle,
    check_rm,
    # System commands
    version,
    watch,
)


def main():
    """Main entry point for CLI."""
    app()

"""
FILE: kanmd/cli/commands/cards.py
PURPOSE: Card commands (ls, show, add, mv, rm, priority, edit, rank)
"""

import json
from typing import List, Optional

import typer
from rich.markup import escape

from ..main import app, console, emit_json, exit_with_error
from ...core import repository, service
from ...core.constants import DEFAULT_PRIORITY
from ...core.exceptions import InvalidInputError, KanmdError
from ...formatting import CardFormatter, format_column_name


@app.command()
def ls(
    column: Optional[str] = typer.Argument(None, help="Only show this column"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Show the board (or a single column).

    Example:
        kanmd ls
        kanmd ls in-progress
        kanmd ls --json
    """
    try:
        if column is None and not raw:
            board = repository.load_board()
            if json_output:
                emit_json(board.to_json())
                return
            console.print()
            console.print(CardFormatter.render_board(board))
            return

        cards = service.list_cards(column)
        if json_output:
            emit_json(CardFormatter.to_json_array(cards))
        elif raw:
            for line in CardFormatter.to_raw_lines(cards):
                console.print(line, markup=False, highlight=False)
        else:
            console.print(f"[bold]{escape(format_column_name(column))}[/bold] [dim]({len(cards)})[/dim]")
            if not cards:
                console.print("  [dim](empty)[/dim]")
            for card in cards:
                console.print(CardFormatter.card_line(card))

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@app.command()
def show(
    card_id: str = typer.Argument(..., help="Card ID to view"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show full details for a card including description and checklist.

    Example:
        kanmd show build-login-page
    """
    try:
        card = service.get_card(card_id)
        if json_output:
            emit_json(card.to_json())
            return
        console.print()
        console.print(CardFormatter.render_card(card))
        console.print()

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@app.command()
def add(
    column: str = typer.Argument(..., help="Column to add the card to"),
    title: List[str] = typer.Argument(..., help="Card title"),
    priority: str = typer.Option(DEFAULT_PRIORITY, "--priority", "-p", help="high, medium, or low"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Create a new card.

    Example:
        kanmd add todo "Build login page"
        kanmd add todo Fix the flaky test --priority high
    """
    try:
        card = service.add_card(column, " ".join(title), priority=priority)
        if json_output:
            emit_json(card.to_json())
        else:
            console.print(
                f"[green]✓ Created [bold]{escape(card.id)}[/bold][/green] "
                f"in {escape(format_column_name(column))}"
            )

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@app.command()
def mv(
    card_id: str = typer.Argument(..., help="Card ID to move"),
    to_column: str = typer.Argument(..., help="Destination column"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Move a card to another column (clears its manual rank).

    Example:
        kanmd mv build-login-page in-progress
    """
    try:
        card = service.move_card(card_id, to_column)
        if json_output:
            emit_json(card.to_json())
        else:
            console.print(
                f"[blue]→[/blue] Moved [green]{escape(card.id)}[/green] "
                f"to {escape(format_column_name(to_column))}"
            )

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@app.command()
def rm(
    card_id: str = typer.Argument(..., help="Card ID to delete"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Delete a card permanently.

    Example:
        kanmd rm build-login-page
    """
    try:
        card = service.delete_card(card_id)
        if json_output:
            emit_json(json.dumps({"id": card.id, "column": card.column, "deleted": True}, indent=2))
        else:
            console.print(f"[red]✗[/red] Deleted {escape(card.id)}")

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@app.command()
def priority(
    card_id: str = typer.Argument(..., help="Card ID"),
    level: str = typer.Argument(..., help="high, medium, or low"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Set a card's priority (clears its manual rank if it changes).

    Example:
        kanmd priority build-login-page high
    """
    try:
        card = service.edit_card(card_id, {"priority": level})
        if json_output:
            emit_json(card.to_json())
        else:
            console.print(f"[blue]✎[/blue] Set {escape(card.id)} priority to {escape(card.priority)}")

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@app.command()
def edit(
    card_id: str = typer.Argument(..., help="Card ID to edit"),
    title: Optional[str] = typer.Option(None, "--title", help="New title (the ID does not change)"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New description"),
    labels: Optional[str] = typer.Option(None, "--labels", "-l", help="Comma-separated labels"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Update a card's title, description, or labels.

    Example:
        kanmd edit build-login-page --title "New title" --labels "feature,auth"
    """
    updates = {}
    if title is not None:
        updates["title"] = title
    if description is not None:
        updates["description"] = description
    if labels is not None:
        updates["labels"] = labels

    try:
        if not updates:
            raise InvalidInputError("No updates provided. Use --title, --description, or --labels.")

        card = service.edit_card(card_id, updates)
        if json_output:
            emit_json(card.to_json())
        else:
            console.print(f"[blue]✎[/blue] Updated {escape(card.id)}")

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@app.command()
def rank(
    card_id: str = typer.Argument(..., help="Card ID"),
    position: int = typer.Argument(..., help="1-based position within its column and priority"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Reorder a card among cards with the same column and priority.

    Example:
        kanmd rank build-login-page 1
    """
    try:
        card = service.rank_card(card_id, position)
        if json_output:
            emit_json(card.to_json())
        else:
            console.print(
                f"[blue]↕[/blue] {escape(card.id)} is now #{card.rank} "
                f"in {escape(format_column_name(card.column))} ({escape(card.priority)})"
            )

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)

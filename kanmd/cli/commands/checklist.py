"""
FILE: kanmd/cli/commands/checklist.py
PURPOSE: Checklist commands (check add, check toggle, check rm)
"""

from typing import List

import typer
from rich.markup import escape

from ..main import check_app, console, emit_json, exit_with_error
from ...core import service
from ...core.exceptions import KanmdError


def _print_checklist(card) -> None:
    done, total = card.checklist_progress()
    console.print(f"[dim]{escape(card.id)}: {done}/{total} done[/dim]")
    for index, item in enumerate(card.checklist, start=1):
        mark = "[green]✓[/green]" if item.checked else "[dim]○[/dim]"
        console.print(f"  [dim]{index}.[/dim] {mark} {escape(item.text)}")


@check_app.command("add")
def check_add(
    card_id: str = typer.Argument(..., help="Card ID"),
    text: List[str] = typer.Argument(..., help="Checklist item text"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Append an unchecked item to a card's checklist.

    Example:
        kanmd check add build-login-page Write the form
    """
    try:
        card = service.checklist_add(card_id, " ".join(text))
        if json_output:
            emit_json(card.to_json())
        else:
            _print_checklist(card)

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@check_app.command("toggle")
def check_toggle(
    card_id: str = typer.Argument(..., help="Card ID"),
    index: int = typer.Argument(..., help="1-based item number"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Check or uncheck a checklist item.

    Example:
        kanmd check toggle build-login-page 2
    """
    try:
        card = service.checklist_toggle(card_id, index)
        if json_output:
            emit_json(card.to_json())
        else:
            _print_checklist(card)

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)


@check_app.command("rm")
def check_rm(
    card_id: str = typer.Argument(..., help="Card ID"),
    index: int = typer.Argument(..., help="1-based item number"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Remove a checklist item.

    Example:
        kanmd check rm build-login-page 2
    """
    try:
        card = service.checklist_remove(card_id, index)
        if json_output:
            emit_json(card.to_json())
        else:
            _print_checklist(card)

    except (KanmdError, OSError) as e:
        exit_with_error(e, json_output)

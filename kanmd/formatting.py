"""
FILE: kanmd/formatting.py
PURPOSE: Shared formatting utilities for CLI and watch output
EXPORTS:
  - CardFormatter: Class for formatting boards and cards
  - format_column_name(name) -> str
DEPENDENCIES:
  - rich (for styled text)
  - json (for JSON serialization)
  - kanmd.core.models (Board, Card)
  - kanmd.core.service (sort_cards)
NOTES:
  - Centralized formatting logic for consistency
  - Used by both one-shot commands and the watch render callback
  - User text is escaped before it goes into Rich markup
"""

import json
from typing import Any, List

from rich.console import Group
from rich.markup import escape
from rich.text import Text

from .core.models import Board, Card
from .core.service import sort_cards

PRIORITY_STYLES = {
    "high": "red",
    "medium": "yellow",
    "low": "green",
}


def format_column_name(name: str) -> str:
    """'in-progress' -> 'In Progress'."""
    return " ".join(word[:1].upper() + word[1:] for word in name.split("-"))


class CardFormatter:
    """Centralized card display formatting."""

    @staticmethod
    def card_line(card: Card) -> str:
        """One-line summary: priority dot, title, checklist progress, id."""
        style = PRIORITY_STYLES.get(card.priority, "white")
        line = f"  [{style}]●[/{style}] {escape(card.title)}"
        done, total = card.checklist_progress()
        if total:
            line += f" [dim]\\[{done}/{total}][/dim]"
        if card.rank is not None:
            line += f" [dim]#{card.rank}[/dim]"
        return line + f" [dim]({escape(card.id)})[/dim]"

    @staticmethod
    def render_board(board: Board) -> Group:
        """
        Render every column with its cards in display order.

        Args:
            board: Loaded board

        Returns:
            Rich Group ready for console.print()
        """
        parts: List[Any] = []
        for column in board.columns:
            cards = sort_cards(board.cards_in(column))
            parts.append(
                f"[bold]{escape(format_column_name(column))}[/bold] [dim]({len(cards)})[/dim]"
            )
            if not cards:
                parts.append("  [dim](empty)[/dim]")
            for card in cards:
                parts.append(CardFormatter.card_line(card))
            parts.append("")
        return Group(*parts)

    @staticmethod
    def render_card(card: Card) -> Group:
        """Full details for one card."""
        style = PRIORITY_STYLES.get(card.priority, "white")
        parts: List[Any] = [
            f"[bold]{escape(card.title)}[/bold]",
            f"[dim]ID: {escape(card.id)}[/dim]",
            "",
            f"Column:   {escape(format_column_name(card.column))}",
            f"Priority: [{style}]{escape(card.priority)}[/{style}]",
            f"Created:  {escape(card.created)}",
        ]
        if card.updated:
            parts.append(f"Updated:  {escape(card.updated)}")
        if card.rank is not None:
            parts.append(f"Rank:     {card.rank}")
        if card.labels:
            labels = ", ".join(f"[cyan]{escape(label)}[/cyan]" for label in card.labels)
            parts.append(f"Labels:   {labels}")
        if card.dependencies:
            parts.append(f"Depends:  {escape(', '.join(card.dependencies))}")

        if card.description:
            parts.append("")
            parts.append("[bold]Description[/bold]")
            parts.append(Text(card.description))

        if card.checklist:
            parts.append("")
            parts.append("[bold]Checklist[/bold]")
            for index, item in enumerate(card.checklist, start=1):
                if item.checked:
                    parts.append(f"  [dim]{index}.[/dim] [green]✓[/green] [dim]{escape(item.text)}[/dim]")
                else:
                    parts.append(f"  [dim]{index}.[/dim] [dim]○[/dim] {escape(item.text)}")
        return Group(*parts)

    @staticmethod
    def to_raw_lines(cards: List[Card]) -> List[str]:
        """Plain text, one card per line: column/id: title."""
        return [f"{c.column}/{c.id}: {c.title}" for c in cards]

    @staticmethod
    def to_json_array(cards: List[Card]) -> str:
        return json.dumps([c.to_dict() for c in cards], indent=2)

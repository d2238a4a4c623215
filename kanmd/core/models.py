"""
FILE: kanmd/core/models.py
PURPOSE: Domain models for cards, checklist items, and the board
EXPORTS:
  - ChecklistItem (dataclass)
  - Card (dataclass)
  - Board (dataclass)
  - is_valid_priority(value) -> bool
DEPENDENCIES:
  - dataclasses (stdlib)
  - json (stdlib)
  - typing (stdlib)
NOTES:
  - All models have to_dict()/to_json() for serialization
  - Optional fields (rank, updated) use None, never a missing key
  - Timestamps stored as ISO-8601 strings
  - id and column come from the file path, not the file body
"""

from dataclasses import dataclass, field, asdict
from typing import List, Optional
import json

from .constants import DEFAULT_PRIORITY, PRIORITIES


def is_valid_priority(value) -> bool:
    return value in PRIORITIES


@dataclass
class ChecklistItem:
    """One checklist line inside a card."""

    text: str
    checked: bool = False


@dataclass
class Card:
    """A single task, stored as <root>/<column>/<id>.md."""

    id: str
    title: str
    column: str
    priority: str = DEFAULT_PRIORITY
    labels: List[str] = field(default_factory=list)
    created: str = ""
    updated: Optional[str] = None
    description: str = ""
    checklist: List[ChecklistItem] = field(default_factory=list)
    rank: Optional[int] = None
    dependencies: List[str] = field(default_factory=list)

    @property
    def filename(self) -> str:
        return f"{self.id}.md"

    def checklist_progress(self):
        """Return (checked, total) for the checklist."""
        return sum(1 for item in self.checklist if item.checked), len(self.checklist)

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        """Serialize card to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


@dataclass
class Board:
    """Column list from board.yaml plus every card found on disk."""

    columns: List[str] = field(default_factory=list)
    cards: List[Card] = field(default_factory=list)

    def find(self, card_id: str) -> Optional[Card]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def cards_in(self, column: str) -> List[Card]:
        return [c for c in self.cards if c.column == column]

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        """Serialize board to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

"""
FILE: kanmd/core/service.py
PURPOSE: Business logic layer for card operations
EXPORTS:
  - make_card_id(title) -> str
  - add_card(column, title, priority) -> Card
  - move_card(card_id, to_column) -> Card
  - delete_card(card_id) -> Card
  - get_card(card_id) -> Card
  - edit_card(card_id, updates) -> Card
  - rank_card(card_id, position) -> Card
  - checklist_add(card_id, text) -> Card
  - checklist_toggle(card_id, index) -> Card
  - checklist_remove(card_id, index) -> Card
  - list_cards(column) -> List[Card]
  - sort_cards(cards) -> List[Card]
DEPENDENCIES:
  - kanmd.core.repository (board loading and card file writes)
  - kanmd.core.paths (name and path validation)
  - kanmd.core.exceptions (all domain errors)
NOTES:
  - Every operation validates names first, then loads the board fresh
    from disk, then checks domain rules, then writes
  - Validation failures are raised before anything touches the disk
  - rank is cleared whenever a card changes column or priority
  - Every mutation except add stamps 'updated'
  - move and rank touch several files and are not atomic as a whole
"""

import re
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import repository
from .codec import now_iso
from .constants import DEFAULT_PRIORITY, MAX_ID_LENGTH, PRIORITIES, PRIORITY_ORDER
from .exceptions import (
    AlreadyInColumnError,
    CardExistsError,
    CardNotFoundError,
    ColumnNotFoundError,
    IndexOutOfRangeError,
    InvalidInputError,
    InvalidPositionError,
    InvalidTitleError,
)
from .models import Board, Card, ChecklistItem, is_valid_priority
from .paths import card_path, validate_component

CARD_ID_RE = re.compile(r"^[a-z0-9-]+$")
# Titles, labels and checklist items are one line each in the card file
LINE_BREAK_RE = re.compile(r"\s*[\r\n]+\s*")

EDITABLE_FIELDS = ("title", "priority", "labels", "description", "checklist", "rank", "dependencies")


def make_card_id(title: str) -> str:
    """
    Derive a card ID from a title.

    Lowercases, strips everything except letters, digits, whitespace and
    hyphens, turns whitespace runs into single hyphens, and truncates.
    """
    card_id = title.lower()
    card_id = re.sub(r"[^a-z0-9\s-]", "", card_id)
    card_id = re.sub(r"\s+", "-", card_id)
    card_id = re.sub(r"-+", "-", card_id)
    return card_id[:MAX_ID_LENGTH]


def _single_line(text: str) -> str:
    """Collapse line breaks to single spaces and strip the ends."""
    return LINE_BREAK_RE.sub(" ", str(text)).strip()


def _checklist_text(text: str) -> str:
    text = _single_line(text)
    if not text:
        raise InvalidInputError("Checklist item text cannot be empty")
    return text


def _root(root: Optional[Path]) -> Path:
    return repository.ensure_board(root)


def _require_column(board: Board, column: str) -> None:
    if column not in board.columns:
        raise ColumnNotFoundError(column, board.columns)


def _require_card(board: Board, card_id: str) -> Card:
    card = board.find(card_id)
    if card is None:
        raise CardNotFoundError(card_id)
    return card


def _require_priority(priority: str) -> None:
    if not is_valid_priority(priority):
        raise InvalidInputError(
            f'Invalid priority "{priority}". Must be: {", ".join(PRIORITIES)}'
        )


def _load_card(card_id: str, root: Optional[Path]):
    """Validate card_id, load the board, and return (root, board, card)."""
    validate_component(card_id)
    root = _root(root)
    board = repository.load_board(root)
    return root, board, _require_card(board, card_id)


def add_card(
    column: str,
    title: str,
    priority: str = DEFAULT_PRIORITY,
    root: Optional[Path] = None,
) -> Card:
    """
    Create a new card in a column.

    Args:
        column: Column name (must be listed in board.yaml)
        title: Card title; the card ID is derived from it once
        priority: high, medium, or low
        root: Board root (defaults to $KANMD_DIR or ./.kanban)

    Returns:
        The newly created Card

    Raises:
        InvalidNameError: If column contains unsafe characters
        InvalidInputError: If priority is not a known value
        ColumnNotFoundError: If column is not on the board
        InvalidTitleError: If no valid ID can be derived from title
        CardExistsError: If <column>/<id>.md already exists
    """
    validate_component(column)
    _require_priority(priority)
    title = _single_line(title)

    root = _root(root)
    board = repository.load_board(root)
    _require_column(board, column)

    card_id = make_card_id(title)
    if not card_id or not CARD_ID_RE.fullmatch(card_id):
        raise InvalidTitleError(title)

    card = Card(
        id=card_id,
        title=title,
        column=column,
        priority=priority,
        created=now_iso(),
    )

    path = card_path(root, column, card_id)
    try:
        repository.write_card_exclusive(path, card)
    except FileExistsError:
        raise CardExistsError(card_id, column)

    return card


def move_card(card_id: str, to_column: str, root: Optional[Path] = None) -> Card:
    """
    Move a card to another column.

    Writes the card into the destination with exclusive create, then
    removes the source file. A stale destination file (left by an
    interrupted earlier move) is reported, never overwritten.

    Raises:
        InvalidNameError, ColumnNotFoundError, CardNotFoundError,
        AlreadyInColumnError, CardExistsError
    """
    validate_component(card_id)
    validate_component(to_column)

    root = _root(root)
    board = repository.load_board(root)
    _require_column(board, to_column)
    card = _require_card(board, card_id)

    if card.column == to_column:
        raise AlreadyInColumnError(card_id, to_column)

    from_path = card_path(root, card.column, card_id)
    to_path = card_path(root, to_column, card_id)

    moved = replace(card, column=to_column, rank=None, updated=now_iso())
    try:
        repository.write_card_exclusive(to_path, moved)
    except FileExistsError:
        raise CardExistsError(
            card_id,
            to_column,
            f'Card "{card_id}" already exists in {to_column}. Remove the duplicate first.',
        )
    repository.remove_card_file(from_path)

    return moved


def delete_card(card_id: str, root: Optional[Path] = None) -> Card:
    """Delete a card file. Returns the card as it was before deletion."""
    root, _, card = _load_card(card_id, root)
    repository.remove_card_file(card_path(root, card.column, card_id))
    return card


def get_card(card_id: str, root: Optional[Path] = None) -> Card:
    """
    Fetch a single card by ID.

    Raises:
        InvalidNameError: If card_id contains unsafe characters
        CardNotFoundError: If no column holds the card
    """
    _, _, card = _load_card(card_id, root)
    return card


def _coerce_updates(updates: Dict[str, Any]) -> Dict[str, Any]:
    """Basic type coercion for edit fields; no deeper schema checks."""
    coerced: Dict[str, Any] = {}
    for key, value in updates.items():
        if key not in EDITABLE_FIELDS:
            raise InvalidInputError(
                f'Cannot edit field "{key}". Editable: {", ".join(EDITABLE_FIELDS)}'
            )

        if key == "title":
            value = _single_line(value)
            if not value:
                raise InvalidInputError("Card title cannot be empty")
        elif key == "priority":
            _require_priority(value)
        elif key in ("labels", "dependencies"):
            if isinstance(value, str):
                value = value.split(",")
            value = [_single_line(v) for v in value if _single_line(v)]
        elif key == "description":
            value = (value or "").strip()
        elif key == "checklist":
            items = [
                item if isinstance(item, ChecklistItem) else ChecklistItem(**item)
                for item in value
            ]
            value = [ChecklistItem(_checklist_text(i.text), i.checked) for i in items]
        elif key == "rank" and value is not None:
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise InvalidInputError(f'Invalid rank "{value}"')

        coerced[key] = value
    return coerced


def edit_card(card_id: str, updates: Dict[str, Any], root: Optional[Path] = None) -> Card:
    """
    Replace some fields of a card.

    Args:
        card_id: Card to edit
        updates: Field name -> new value (shallow replace). Allowed keys:
            title, priority, labels, description, checklist, rank, dependencies.
            Pass rank=None to clear a manual rank.

    Returns:
        The updated Card

    Notes:
        - Changing priority to a different value clears rank, unless
          rank is part of the same update
        - Written via temp file + rename, so readers never see a partial file
    """
    validate_component(card_id)
    fields = _coerce_updates(updates)

    root, _, card = _load_card(card_id, root)

    if (
        "priority" in fields
        and fields["priority"] != card.priority
        and "rank" not in fields
    ):
        fields["rank"] = None

    updated = replace(card, **fields)
    updated.updated = now_iso()
    repository.write_card_atomic(card_path(root, card.column, card_id), updated)

    return updated


def _group_sort_key(card: Card):
    return (card.rank if card.rank is not None else float("inf"), card.created)


def rank_card(card_id: str, position: int, root: Optional[Path] = None) -> Card:
    """
    Put a card at a 1-based position within its (column, priority) group.

    The group is ordered by rank (unranked last, oldest first), the card
    is reinserted at min(position, group size), and the whole group is
    renumbered 1..N. Only cards whose rank changed are rewritten.

    Raises:
        InvalidPositionError: If position < 1
        CardNotFoundError: If card doesn't exist
    """
    validate_component(card_id)
    if position < 1:
        raise InvalidPositionError(position)

    root, board, card = _load_card(card_id, root)

    group = [
        c for c in board.cards
        if c.column == card.column and c.priority == card.priority
    ]
    group.sort(key=_group_sort_key)
    group = [c for c in group if c.id != card.id]

    insert_at = min(position - 1, len(group))
    group.insert(insert_at, card)

    stamp = now_iso()
    changes = []
    result = card
    for index, member in enumerate(group):
        new_rank = index + 1
        if member.rank == new_rank:
            continue
        renumbered = replace(member, rank=new_rank, updated=stamp)
        changes.append((card_path(root, member.column, member.id), renumbered))
        if member.id == card.id:
            result = renumbered

    repository.write_cards_batch(changes)
    return result


def _save_checklist(root: Path, card: Card, checklist: List[ChecklistItem]) -> Card:
    updated = replace(card, checklist=checklist, updated=now_iso())
    repository.write_card_atomic(card_path(root, card.column, card.id), updated)
    return updated


def _require_index(card: Card, index: int) -> None:
    if index < 1 or index > len(card.checklist):
        raise IndexOutOfRangeError(index, len(card.checklist))


def checklist_add(card_id: str, text: str, root: Optional[Path] = None) -> Card:
    """
    Append an unchecked item to the card's checklist.

    Raises:
        InvalidInputError: If text is empty once line breaks are collapsed
    """
    text = _checklist_text(text)
    root, _, card = _load_card(card_id, root)
    checklist = list(card.checklist) + [ChecklistItem(text=text, checked=False)]
    return _save_checklist(root, card, checklist)


def checklist_toggle(card_id: str, index: int, root: Optional[Path] = None) -> Card:
    """
    Flip the checked state of the item at 1-based index.

    Raises:
        IndexOutOfRangeError: If index is outside 1..len(checklist)
    """
    root, _, card = _load_card(card_id, root)
    _require_index(card, index)

    checklist = [ChecklistItem(item.text, item.checked) for item in card.checklist]
    target = checklist[index - 1]
    target.checked = not target.checked
    return _save_checklist(root, card, checklist)


def checklist_remove(card_id: str, index: int, root: Optional[Path] = None) -> Card:
    """Remove the checklist item at 1-based index."""
    root, _, card = _load_card(card_id, root)
    _require_index(card, index)

    checklist = [item for i, item in enumerate(card.checklist, start=1) if i != index]
    return _save_checklist(root, card, checklist)


def sort_cards(cards: List[Card]) -> List[Card]:
    """
    Display order inside a column: priority (high first), then rank
    (unranked last), then created ascending.
    """
    return sorted(
        cards,
        key=lambda c: (PRIORITY_ORDER.get(c.priority, len(PRIORITY_ORDER)),) + _group_sort_key(c),
    )


def list_cards(column: Optional[str] = None, root: Optional[Path] = None) -> List[Card]:
    """
    List cards, optionally restricted to one column.

    Cards are grouped by board column order, each column in display order.

    Raises:
        InvalidNameError, ColumnNotFoundError: For a bad column filter
    """
    if column is not None:
        validate_component(column)

    board = repository.load_board(_root(root))
    if column is not None:
        _require_column(board, column)
        return sort_cards(board.cards_in(column))

    cards: List[Card] = []
    for name in board.columns:
        cards.extend(sort_cards(board.cards_in(name)))
    return cards

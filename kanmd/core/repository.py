"""
FILE: kanmd/core/repository.py
PURPOSE: Board store - directory layout, board.yaml, and card file I/O
EXPORTS:
  - ensure_board(root) -> Path
  - read_columns(text) -> List[str]
  - load_board(root) -> Board
  - write_card_exclusive(path, card) -> None
  - write_card_atomic(path, card) -> None
  - write_cards_batch(items) -> None
  - remove_card_file(path) -> None
DEPENDENCIES:
  - os, logging, pathlib (stdlib)
  - kanmd.core.codec (parse_card, serialize_card)
  - kanmd.core.models (Board, Card)
NOTES:
  - No cache: every load_board() call re-reads the disk
  - Auto-creates the root, board.yaml, and column directories on first use
  - Never overwrites an existing board.yaml
  - Exclusive create uses O_CREAT|O_EXCL so a second writer gets FileExistsError
  - Atomic writes go to <path>.tmp and are renamed into place
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .codec import parse_card, serialize_card
from .constants import (
    BOARD_FILE,
    CARD_SUFFIX,
    DEFAULT_BOARD_NAME,
    DEFAULT_COLUMNS,
    TEMP_SUFFIX,
    get_board_dir,
)
from .models import Board, Card
from .paths import assert_within_root

logger = logging.getLogger(__name__)


def _root(root: Optional[Path]) -> Path:
    return Path(root) if root is not None else get_board_dir()


def default_board_config() -> str:
    lines = [f"name: {DEFAULT_BOARD_NAME}", "columns:"]
    lines.extend(f"  - {column}" for column in DEFAULT_COLUMNS)
    return "\n".join(lines) + "\n"


def ensure_board(root: Optional[Path] = None) -> Path:
    """
    Make sure the board root and board.yaml exist.

    Safe to call multiple times; an existing board.yaml is left untouched.

    Returns:
        The board root path
    """
    root = _root(root)
    root.mkdir(parents=True, exist_ok=True)

    config_path = root / BOARD_FILE
    try:
        # Exclusive create so a concurrent init never clobbers a config
        with open(config_path, "x", encoding="utf-8") as f:
            f.write(default_board_config())
        logger.debug("Initialized board config at %s", config_path)
    except FileExistsError:
        pass

    return root


def read_columns(text: str) -> List[str]:
    """
    Pull the column list out of board.yaml contents.

    Only the 'columns:' block is read: indented '- name' lines after it,
    until the next non-indented, non-blank line.
    """
    columns: List[str] = []
    in_columns = False

    for line in text.split("\n"):
        stripped = line.strip()
        if stripped == "columns:":
            in_columns = True
            continue
        if not in_columns:
            continue
        # A new top-level key ends the block
        if stripped and not line.startswith((" ", "\t")):
            break
        if stripped.startswith("- "):
            columns.append(stripped[2:].strip())

    return columns


def _load_column(root: Path, column: str) -> List[Card]:
    column_dir = root / column
    try:
        filenames = sorted(os.listdir(column_dir))
    except FileNotFoundError:
        return []

    cards = []
    for filename in filenames:
        if not filename.endswith(CARD_SUFFIX):
            continue
        path = column_dir / filename
        assert_within_root(path, root)
        with open(path, "r", encoding="utf-8") as f:
            cards.append(parse_card(f.read(), filename, column))
    return cards


def load_board(root: Optional[Path] = None) -> Board:
    """
    Load board.yaml and every card in every column.

    Returns:
        Board with columns in config order and cards grouped by column,
        sorted by filename within a column

    Notes:
        Creates missing column directories. A column directory that
        disappears mid-load yields no cards; other read errors propagate.
    """
    root = ensure_board(root)

    with open(root / BOARD_FILE, "r", encoding="utf-8") as f:
        columns = read_columns(f.read())

    for column in columns:
        column_dir = assert_within_root(root / column, root)
        column_dir.mkdir(parents=True, exist_ok=True)

    cards: List[Card] = []
    for column in columns:
        cards.extend(_load_column(root, column))

    return Board(columns=columns, cards=cards)


def write_card_exclusive(path: Path, card: Card) -> None:
    """
    Create a card file, failing if it already exists.

    Raises:
        FileExistsError: If path already exists (caller maps to CardExistsError)
    """
    content = serialize_card(card).encode("utf-8")
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
    try:
        os.write(fd, content)
    finally:
        os.close(fd)
    logger.debug("Created %s", path)


def _write_temp(path: Path, card: Card) -> Path:
    temp_path = Path(f"{path}{TEMP_SUFFIX}")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(serialize_card(card))
    except OSError:
        _discard(temp_path)
        raise
    return temp_path


def _discard(path: Path) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def write_card_atomic(path: Path, card: Card) -> None:
    """Write card to <path>.tmp then rename over path."""
    temp_path = _write_temp(path, card)
    os.replace(temp_path, path)
    logger.debug("Wrote %s", path)


def write_cards_batch(items: Iterable[Tuple[Path, Card]]) -> None:
    """
    Two-phase write for several cards: all temp files first, then renames.

    Each rename is atomic on its own; the batch as a whole is not.
    """
    staged: List[Tuple[Path, Path]] = []
    try:
        for path, card in items:
            staged.append((_write_temp(path, card), path))
    except OSError:
        for temp_path, _ in staged:
            _discard(temp_path)
        raise

    for temp_path, path in staged:
        os.replace(temp_path, path)
        logger.debug("Wrote %s", path)


def remove_card_file(path: Path) -> None:
    os.unlink(path)
    logger.debug("Removed %s", path)

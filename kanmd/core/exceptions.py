"""
FILE: kanmd/core/exceptions.py
PURPOSE: Custom exception classes for error handling
EXPORTS:
  - KanmdError (base exception, carries .code)
  - InvalidNameError, PathTraversalError
  - ColumnNotFoundError, InvalidTitleError
  - CardExistsError, CardNotFoundError, AlreadyInColumnError
  - InvalidPositionError, IndexOutOfRangeError
  - InvalidInputError
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - All exceptions inherit from KanmdError for easy catching
  - Every exception has a stable symbolic code callers can branch on
  - OS-level failures (permissions, disk full) are NOT wrapped; they propagate
"""

from typing import Iterable


class KanmdError(Exception):
    """Base exception for all kanmd errors."""

    code = "ERROR"

    def __init__(self, message: str, code: str = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class InvalidNameError(KanmdError):
    """Column name or card ID contains unsafe characters."""

    code = "INVALID_NAME"

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f'Invalid name: "{name}". Only alphanumeric, hyphens, and underscores allowed.'
        )


class PathTraversalError(KanmdError):
    """Computed path escapes the board root."""

    code = "PATH_TRAVERSAL"

    def __init__(self, path):
        self.path = path
        super().__init__("Invalid path")


class ColumnNotFoundError(KanmdError):
    """Column is not listed in board.yaml."""

    code = "COLUMN_NOT_FOUND"

    def __init__(self, column: str, available: Iterable[str] = ()):
        self.column = column
        self.available = list(available)
        super().__init__(
            f'Column "{column}" doesn\'t exist. Available: {", ".join(self.available)}'
        )


class InvalidTitleError(KanmdError):
    """No usable card ID can be derived from the title."""

    code = "INVALID_TITLE"

    def __init__(self, title: str):
        self.title = title
        super().__init__(
            f'Cannot generate valid ID from title "{title}". '
            "Title must contain some alphanumeric characters."
        )


class CardExistsError(KanmdError):
    """Target card file already exists."""

    code = "CARD_EXISTS"

    def __init__(self, card_id: str, column: str, message: str = None):
        self.card_id = card_id
        self.column = column
        super().__init__(message or f'Card "{card_id}" already exists in {column}')


class CardNotFoundError(KanmdError):
    """Card with given ID doesn't exist in any column."""

    code = "CARD_NOT_FOUND"

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f'Card "{card_id}" not found')


class AlreadyInColumnError(KanmdError):
    """Move target is the card's current column."""

    code = "ALREADY_IN_COLUMN"

    def __init__(self, card_id: str, column: str):
        self.card_id = card_id
        self.column = column
        super().__init__(f'Card is already in "{column}"')


class InvalidPositionError(KanmdError):
    """Rank position below 1."""

    code = "INVALID_POSITION"

    def __init__(self, position: int):
        self.position = position
        super().__init__("Position must be 1 or greater")


class IndexOutOfRangeError(KanmdError):
    """Checklist index outside 1..len(checklist)."""

    code = "INDEX_OUT_OF_RANGE"

    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        if length:
            detail = f"valid range is 1-{length}"
        else:
            detail = "checklist is empty"
        super().__init__(f"Checklist index {index} out of range ({detail})")


class InvalidInputError(KanmdError):
    """Input validation failed."""

    code = "INVALID_INPUT"

    def __init__(self, message: str):
        super().__init__(message)

"""
FILE: kanmd/core/codec.py
PURPOSE: Read and write the card file format (frontmatter + Markdown body)
EXPORTS:
  - parse_frontmatter(text) -> (dict, str)
  - parse_card(text, filename, column) -> Card
  - serialize_card(card) -> str
  - now_iso() -> str
DEPENDENCIES:
  - re, datetime (stdlib)
  - kanmd.core.models (Card, ChecklistItem)
NOTES:
  - The frontmatter grammar is deliberately tiny, NOT YAML:
      block    := '---' NEWLINE line* '---'
      line     := key ':' value     (split on the first ':', both sides trimmed)
      labels, dependencies := comma list, items trimmed, empty items dropped
      rank     := integer, anything unparseable is dropped silently
      other keys are kept as plain strings
    Lines without ':' are ignored. No quoting, nesting, or multi-line values.
  - Body sections: '# Title', '## Description', '## Checklist'.
    Any other '## ' heading is skipped until the next known section.
  - serialize_card writes a fixed field order so output is byte-stable
"""

import re
from datetime import datetime, timezone
from typing import Dict, List, Tuple, Any

from .constants import CARD_SUFFIX, DEFAULT_PRIORITY, DEFAULT_TITLE
from .models import Card, ChecklistItem

FRONTMATTER_DELIMITER = "---"
LIST_KEYS = ("labels", "dependencies")
CHECKLIST_RE = re.compile(r"^- \[( |x)\] (.+)$")

SECTION_HEADER = "header"
SECTION_DESCRIPTION = "description"
SECTION_CHECKLIST = "checklist"
SECTION_OTHER = "other"


def now_iso() -> str:
    """Current UTC instant as e.g. 2026-01-31T09:15:02.123Z."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _split_list(value: str) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_frontmatter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Split a card file into its frontmatter fields and Markdown body.

    Args:
        text: Full file contents

    Returns:
        (frontmatter, body). frontmatter is empty and body is the whole
        text when there is no opening or closing delimiter.
    """
    frontmatter: Dict[str, Any] = {}
    if not text.startswith(FRONTMATTER_DELIMITER):
        return frontmatter, text

    start = len(FRONTMATTER_DELIMITER)
    end = text.find(FRONTMATTER_DELIMITER, start)
    if end == -1:
        return frontmatter, text

    block = text[start:end].strip()
    body = text[end + len(FRONTMATTER_DELIMITER):].strip()

    for line in block.split("\n"):
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip()
        value = value.strip()

        if key in LIST_KEYS:
            frontmatter[key] = _split_list(value)
        elif key == "rank":
            try:
                frontmatter[key] = int(value)
            except ValueError:
                pass
        else:
            frontmatter[key] = value

    return frontmatter, body


def parse_card(text: str, filename: str, column: str) -> Card:
    """
    Build a Card from file contents.

    Args:
        text: Full file contents
        filename: File name inside the column directory (e.g. 'fix-bug.md')
        column: Column directory the file was found in

    Returns:
        Card with id taken from filename and column from the caller
    """
    frontmatter, body = parse_frontmatter(text)

    card_id = filename[: -len(CARD_SUFFIX)] if filename.endswith(CARD_SUFFIX) else filename
    title = ""
    checklist: List[ChecklistItem] = []
    description_lines: List[str] = []
    section = SECTION_HEADER

    for line in body.split("\n"):
        stripped = line.strip()

        if stripped.startswith("# ") and not title:
            title = stripped[2:].strip()
            continue

        if stripped == "## Description":
            section = SECTION_DESCRIPTION
            continue
        if stripped == "## Checklist":
            section = SECTION_CHECKLIST
            continue
        if stripped.startswith("## "):
            section = SECTION_OTHER
            continue

        if section == SECTION_DESCRIPTION:
            description_lines.append(line)
        elif section == SECTION_CHECKLIST:
            match = CHECKLIST_RE.match(stripped)
            if match:
                checklist.append(
                    ChecklistItem(text=match.group(2), checked=match.group(1) == "x")
                )

    rank = frontmatter.get("rank")
    return Card(
        id=card_id,
        title=title or DEFAULT_TITLE,
        column=column,
        priority=frontmatter.get("priority") or DEFAULT_PRIORITY,
        labels=frontmatter.get("labels", []),
        created=frontmatter.get("created", ""),
        updated=frontmatter.get("updated") or None,
        description="\n".join(description_lines).strip(),
        checklist=checklist,
        rank=rank,
        dependencies=frontmatter.get("dependencies", []),
    )


def serialize_card(card: Card) -> str:
    """
    Render a Card to file contents.

    Field order is fixed: priority, labels, dependencies, created, rank,
    updated. labels and dependencies are always written (empty when
    unset) so parsing and re-serializing gives identical bytes.
    """
    lines = [FRONTMATTER_DELIMITER]
    lines.append(f"priority: {card.priority or DEFAULT_PRIORITY}")

    for key in LIST_KEYS:
        values = getattr(card, key) or []
        lines.append(f"{key}: {', '.join(values)}" if values else f"{key}:")

    lines.append(f"created: {card.created or now_iso()}")
    if card.rank is not None:
        lines.append(f"rank: {card.rank}")
    if card.updated is not None:
        lines.append(f"updated: {card.updated}")
    lines.append(FRONTMATTER_DELIMITER)
    lines.append("")
    lines.append(f"# {card.title or DEFAULT_TITLE}")

    if card.description:
        lines.append("")
        lines.append("## Description")
        lines.append(card.description)

    if card.checklist:
        lines.append("")
        lines.append("## Checklist")
        for item in card.checklist:
            box = "[x]" if item.checked else "[ ]"
            lines.append(f"- {box} {item.text}")

    return "\n".join(lines) + "\n"

"""
Tests for the card file codec: frontmatter parsing, body sections,
serialization order, and parse/serialize stability.
"""

import pytest

from kanmd.core.codec import now_iso, parse_card, parse_frontmatter, serialize_card
from kanmd.core.models import Card, ChecklistItem

ISO_RE = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"


# --- parse_frontmatter ---

def test_parse_frontmatter_basic_fields():
    text = "---\npriority: high\nlabels: bug, urgent\ncreated: 2024-01-01T00:00:00.000Z\n---\n\n# Title"
    fm, body = parse_frontmatter(text)

    assert fm["priority"] == "high"
    assert fm["labels"] == ["bug", "urgent"]
    assert fm["created"] == "2024-01-01T00:00:00.000Z"
    assert body == "# Title"


def test_parse_frontmatter_empty_labels():
    fm, _ = parse_frontmatter("---\nlabels:\n---\n# T")
    assert fm["labels"] == []


def test_parse_frontmatter_drops_empty_label_items():
    fm, _ = parse_frontmatter("---\nlabels: a, , b,\n---\n# T")
    assert fm["labels"] == ["a", "b"]


def test_parse_frontmatter_dependencies_list():
    fm, _ = parse_frontmatter("---\ndependencies: setup-db, write-schema\n---\n# T")
    assert fm["dependencies"] == ["setup-db", "write-schema"]


def test_parse_frontmatter_rank_integer():
    fm, _ = parse_frontmatter("---\nrank: 3\n---\n# T")
    assert fm["rank"] == 3


def test_parse_frontmatter_invalid_rank_dropped():
    fm, _ = parse_frontmatter("---\nrank: soon\n---\n# T")
    assert "rank" not in fm


def test_parse_frontmatter_splits_on_first_colon():
    fm, _ = parse_frontmatter("---\nupdated: 2024-01-01T10:20:30.000Z\n---\n# T")
    assert fm["updated"] == "2024-01-01T10:20:30.000Z"


def test_parse_frontmatter_ignores_lines_without_colon():
    fm, _ = parse_frontmatter("---\njust words\npriority: low\n---\n# T")
    assert fm == {"priority": "low"}


def test_parse_frontmatter_without_delimiter():
    fm, body = parse_frontmatter("# Only a title\n")
    assert fm == {}
    assert body == "# Only a title\n"


def test_parse_frontmatter_unclosed_delimiter_is_body():
    text = "---\npriority: high\n# Title"
    fm, body = parse_frontmatter(text)
    assert fm == {}
    assert body == text


# --- parse_card ---

FULL_CARD = """---
priority: high
labels: feature, auth
created: 2024-01-15T10:00:00.000Z
rank: 2
updated: 2024-01-16T11:00:00.000Z
---

# Build login page

## Description
Users need to log in.

Second paragraph.

## Notes
ignored text

## Checklist
- [x] Design form
- [ ] Wire up API
not a checklist line
"""


def test_parse_card_full():
    card = parse_card(FULL_CARD, "build-login-page.md", "todo")

    assert card.id == "build-login-page"
    assert card.column == "todo"
    assert card.title == "Build login page"
    assert card.priority == "high"
    assert card.labels == ["feature", "auth"]
    assert card.created == "2024-01-15T10:00:00.000Z"
    assert card.updated == "2024-01-16T11:00:00.000Z"
    assert card.rank == 2
    assert card.description == "Users need to log in.\n\nSecond paragraph."
    assert card.checklist == [
        ChecklistItem(text="Design form", checked=True),
        ChecklistItem(text="Wire up API", checked=False),
    ]


def test_parse_card_defaults():
    card = parse_card("# Bare card\n", "bare-card.md", "done")

    assert card.priority == "medium"
    assert card.labels == []
    assert card.created == ""
    assert card.updated is None
    assert card.rank is None
    assert card.description == ""
    assert card.checklist == []
    assert card.dependencies == []


def test_parse_card_missing_title_defaults():
    card = parse_card("---\npriority: low\n---\n\n## Description\nNo heading\n", "x.md", "todo")
    assert card.title == "Untitled"
    assert card.description == "No heading"


def test_parse_card_first_title_wins():
    card = parse_card("# First\n# Second\n", "x.md", "todo")
    assert card.title == "First"


def test_parse_card_other_section_content_ignored():
    text = "# T\n\n## Links\n- [x] looks like a checklist\n"
    card = parse_card(text, "t.md", "todo")
    assert card.checklist == []
    assert card.description == ""


# --- serialize_card ---

def test_serialize_card_field_order():
    card = Card(
        id="a",
        title="A",
        column="todo",
        priority="low",
        labels=["x", "y"],
        created="2024-01-01T00:00:00.000Z",
        updated="2024-01-02T00:00:00.000Z",
        rank=1,
        description="Desc",
        checklist=[ChecklistItem("one", True), ChecklistItem("two")],
    )

    assert serialize_card(card) == (
        "---\n"
        "priority: low\n"
        "labels: x, y\n"
        "dependencies:\n"
        "created: 2024-01-01T00:00:00.000Z\n"
        "rank: 1\n"
        "updated: 2024-01-02T00:00:00.000Z\n"
        "---\n"
        "\n"
        "# A\n"
        "\n"
        "## Description\n"
        "Desc\n"
        "\n"
        "## Checklist\n"
        "- [x] one\n"
        "- [ ] two\n"
    )


def test_serialize_card_minimal():
    card = Card(id="a", title="A", column="todo", created="2024-01-01T00:00:00.000Z")
    text = serialize_card(card)

    assert "labels:\n" in text
    assert "rank:" not in text
    assert "updated:" not in text
    assert "## Description" not in text
    assert "## Checklist" not in text
    assert text.endswith("# A\n")


def test_serialize_card_fills_created_and_title():
    import re

    card = Card(id="a", title="", column="todo")
    text = serialize_card(card)
    created = [l for l in text.splitlines() if l.startswith("created: ")][0]

    assert re.match(ISO_RE, created[len("created: "):])
    assert "# Untitled\n" in text


def test_now_iso_format():
    import re
    assert re.match(ISO_RE, now_iso())


# --- round trip ---

@pytest.mark.parametrize(
    "card",
    [
        Card(id="c", title="Plain", column="todo", created="2024-01-01T00:00:00.000Z"),
        Card(
            id="c",
            title="Everything: set",
            column="todo",
            priority="high",
            labels=["a", "b c"],
            created="2024-01-01T00:00:00.000Z",
            updated="2024-02-01T00:00:00.000Z",
            rank=7,
            description="Line one\n\n  indented line\nlast",
            checklist=[ChecklistItem("first", True), ChecklistItem("second [x]")],
            dependencies=["other-card"],
        ),
    ],
)
def test_round_trip_preserves_fields(card):
    text = serialize_card(card)
    parsed = parse_card(text, "c.md", "todo")

    assert parsed == card
    assert serialize_card(parsed) == text

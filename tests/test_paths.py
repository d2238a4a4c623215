"""
Tests for the path guard: name validation and root containment.
"""

import os
import sys

import pytest

from kanmd.core import paths
from kanmd.core.exceptions import InvalidNameError, PathTraversalError


@pytest.mark.parametrize("name", ["todo", "in-progress", "my_column", "Task-42", "a"])
def test_validate_component_accepts_safe_names(name):
    paths.validate_component(name)


@pytest.mark.parametrize(
    "name",
    ["", ".", "..", "../etc", "a/b", "a\\b", "has space", "c:", "star*", "todo\n"],
)
def test_validate_component_rejects_unsafe_names(name):
    with pytest.raises(InvalidNameError) as exc:
        paths.validate_component(name)
    assert exc.value.code == "INVALID_NAME"


def test_assert_within_root_allows_root_and_children(tmp_path):
    assert paths.assert_within_root(tmp_path, tmp_path) == tmp_path.resolve()
    child = tmp_path / "todo" / "card.md"
    assert paths.assert_within_root(child, tmp_path) == child.resolve()


def test_assert_within_root_rejects_escape(tmp_path):
    with pytest.raises(PathTraversalError) as exc:
        paths.assert_within_root(tmp_path / ".." / "elsewhere.md", tmp_path)
    assert exc.value.code == "PATH_TRAVERSAL"


def test_assert_within_root_rejects_sibling_with_shared_prefix(tmp_path):
    root = tmp_path / "board"
    sibling = tmp_path / "board-other" / "x.md"
    with pytest.raises(PathTraversalError):
        paths.assert_within_root(sibling, root)


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_assert_within_root_follows_symlinks(tmp_path):
    root = tmp_path / "board"
    outside = tmp_path / "outside"
    root.mkdir()
    outside.mkdir()
    os.symlink(outside, root / "todo")

    with pytest.raises(PathTraversalError):
        paths.assert_within_root(root / "todo" / "card.md", root)


def test_card_path_builds_md_path(tmp_path):
    path = paths.card_path(tmp_path, "todo", "build-login-page")
    assert path == tmp_path / "todo" / "build-login-page.md"

"""Shared pytest configuration and fixtures for tests."""

import sys
import io
from pathlib import Path

import pytest

# Fix Windows console encoding
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def board_dir(monkeypatch, tmp_path):
    """Point every test at its own empty board root."""
    root = tmp_path / ".kanban"
    monkeypatch.setenv("KANMD_DIR", str(root))
    yield root

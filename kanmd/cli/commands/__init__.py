"""
FILE: kanmd/cli/commands/__init__.py
PURPOSE: CLI command modules
"""

# Export all command handlers for easy importing
from .cards import (
    ls,
    show,
    add,
    mv,
    rm,
    priority,
    edit,
    rank,
)
from .checklist import (
    check_add,
    check_toggle,
    check_rm,
)
from .system import (
    version,
    watch,
)

__all__ = [
    "ls",
    "show",
    "add",
    "mv",
    "rm",
    "priority",
    "edit",
    "rank",
    "check_add",
    "check_toggle",
    "check_rm",
    "version",
    "watch",
]

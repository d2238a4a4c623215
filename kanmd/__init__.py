"""kanmd - Markdown-backed Kanban board for the terminal."""

__version__ = "1.1.0"

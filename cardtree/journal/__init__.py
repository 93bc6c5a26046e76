"""Undo/redo journaling."""

from .manager import UndoJournal

__all__ = ["UndoJournal"]

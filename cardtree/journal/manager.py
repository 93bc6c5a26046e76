"""
Undo/redo journal for cardtree.

Each open tab owns one journal. Before every structural or content mutation
the tab's full card array is recorded; undo and redo swap whole arrays.
"""

import logging
from typing import List, Optional, Sequence

from ..config import config
from ..models import Card, UndoEntry


class UndoJournal:
    """
    Bounded snapshot history for a single tab.
    """

    def __init__(self, tab_id: str, max_depth: Optional[int] = None):
        """
        Initialize the journal.

        Args:
            tab_id: The tab whose cards are journaled
            max_depth: Maximum undo entries kept (defaults to journal.max_depth)
        """
        self.tab_id = tab_id
        self.max_depth = max_depth if max_depth is not None else config.undo_depth
        self._undo: List[UndoEntry] = []
        self._redo: List[UndoEntry] = []

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def peek_undo(self) -> Optional[UndoEntry]:
        """The entry the next undo would restore, if any."""
        return self._undo[-1] if self._undo else None

    def peek_redo(self) -> Optional[UndoEntry]:
        return self._redo[-1] if self._redo else None

    def record(self, operation: str, cards: Sequence[Card], description: str = "") -> UndoEntry:
        """
        Record the state before a mutation and invalidate the redo stack.

        Args:
            operation: Operation tag (insert, delete, move, ...)
            cards: The tab's cards before the mutation
            description: Human-readable description of the change

        Returns:
            The recorded entry
        """
        entry = UndoEntry(
            operation=operation,
            tab_id=self.tab_id,
            cards=tuple(cards),
            description=description,
        )
        self._undo.append(entry)
        if len(self._undo) > self.max_depth:
            del self._undo[:len(self._undo) - self.max_depth]
        self._redo.clear()
        return entry

    def undo(self, current: Sequence[Card]) -> Optional[List[Card]]:
        """
        Step back one entry.

        Args:
            current: The tab's cards right now, pushed onto the redo stack

        Returns:
            The restored cards, or None when there is nothing to undo
        """
        if not self._undo:
            return None
        entry = self._undo.pop()
        self._redo.append(entry.model_copy(update={"cards": tuple(current)}))
        logging.info(f"Undo '{entry.operation}' on tab {self.tab_id}")
        return list(entry.cards)

    def redo(self, current: Sequence[Card]) -> Optional[List[Card]]:
        """
        Re-apply the most recently undone entry.

        Returns:
            The restored cards, or None when there is nothing to redo
        """
        if not self._redo:
            return None
        entry = self._redo.pop()
        self._undo.append(entry.model_copy(update={"cards": tuple(current)}))
        logging.info(f"Redo '{entry.operation}' on tab {self.tab_id}")
        return list(entry.cards)

    def clear(self) -> None:
        """Forget all undo and redo entries."""
        self._undo.clear()
        self._redo.clear()

"""
cardtree: A hierarchical card-tree editing engine.

Manages structured content cards arranged in a mutable hierarchy, opened one
file per editing panel, with clipboard transfer and bounded undo/redo.
"""

__version__ = "0.1.0"
__author__ = "cardtree Project"

# Import main components
from .models import Card, CardKind, CardStatus, Tab, Panel
from .workspace import WorkspaceManager
from .journal import UndoJournal
from .history import BaseHistoryRecorder, InMemoryHistoryRecorder, DuckDBHistoryRecorder
from .importers import BaseImporter, CardFileImporter, MockImporter

__all__ = [
    "Card",
    "CardKind",
    "CardStatus",
    "Tab",
    "Panel",
    "WorkspaceManager",
    "UndoJournal",
    "BaseHistoryRecorder",
    "InMemoryHistoryRecorder",
    "DuckDBHistoryRecorder",
    "BaseImporter",
    "CardFileImporter",
    "MockImporter"
]

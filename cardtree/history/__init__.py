"""Card version history recorders."""

from .recorder import BaseHistoryRecorder, InMemoryHistoryRecorder
from .database import DuckDBHistoryRecorder

__all__ = ["BaseHistoryRecorder", "InMemoryHistoryRecorder", "DuckDBHistoryRecorder"]

"""
History recorder interface for cardtree.

The workspace hands every committed card version to a recorder after the
in-memory change is applied. Recorders persist an append-only, per-card
version list keyed by (file name, card id).
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from ..config import config
from ..models import CardHistory, CardVersion


class BaseHistoryRecorder(ABC):
    """
    Abstract base class for all history recorders.
    """

    @abstractmethod
    def append_version(self, file_name: str, card_id: str, version: CardVersion) -> CardHistory:
        """
        Append a version to a card's history.

        Args:
            file_name: File the card belongs to
            card_id: Engine id of the card
            version: The version record

        Returns:
            The updated history
        """
        pass

    @abstractmethod
    def load_history(self, file_name: str, card_id: str) -> CardHistory:
        """
        Load a card's history, empty if none was recorded.
        """
        pass


class InMemoryHistoryRecorder(BaseHistoryRecorder):
    """
    Recorder that keeps histories in a dictionary.

    Used in tests and when no history database is configured.
    """

    def __init__(self, max_versions: Optional[int] = None):
        self.max_versions = max_versions if max_versions is not None else config.history_max_versions
        self._histories: Dict[Tuple[str, str], CardHistory] = {}

    def append_version(self, file_name: str, card_id: str, version: CardVersion) -> CardHistory:
        key = (file_name, card_id)
        current = self._histories.get(key) or CardHistory(card_id=card_id, file_name=file_name)
        versions = current.versions + [version]
        if len(versions) > self.max_versions:
            versions = versions[len(versions) - self.max_versions:]
        updated = CardHistory(card_id=card_id, file_name=file_name, versions=versions)
        self._histories[key] = updated
        return updated

    def load_history(self, file_name: str, card_id: str) -> CardHistory:
        return self._histories.get((file_name, card_id)) or CardHistory(card_id=card_id, file_name=file_name)

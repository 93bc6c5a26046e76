"""
Base importer interface for cardtree.

This module defines the abstract interface that all card sources must implement.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import Card


class BaseImporter(ABC):
    """
    Abstract base class for all card importers.

    Each importer reads cards from a specific source and returns them in
    normalized document order, ready to be opened in a tab.
    """

    @abstractmethod
    def get_all_cards(self) -> List[Card]:
        """
        Retrieve all cards from the source.

        Returns:
            List of Card objects in depth-first document order
        """
        pass

"""Card sources for various formats."""

from .base import BaseImporter
from .card_file import CardFileHeader, CardFileImporter, save_card_file
from .mock import MockImporter

__all__ = ["BaseImporter", "CardFileHeader", "CardFileImporter", "MockImporter", "save_card_file"]

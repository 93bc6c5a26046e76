"""
Card file importer for cardtree.

Card files are JSON documents with a ``schemaVersion``, a ``header`` and a
``body`` array of card records. Stored order and hierarchy links are not
trusted: every loaded document is passed through ``normalize_card_order``.
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..models import Card, utc_now
from ..tree import normalize_card_order
from .base import BaseImporter


CARD_FILE_SCHEMA_VERSION = 1

# camelCase keys written by older versions of the file format
_FIELD_ALIASES = {
    "cardId": "card_id",
    "hasLeftTrace": "has_left_trace",
    "hasRightTrace": "has_right_trace",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "parentId": "parent_id",
    "childIds": "child_ids",
    "prevId": "prev_id",
    "nextId": "next_id",
}


class CardFileHeader(BaseModel):
    """
    Header of a card file.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    file_name: str = Field(..., alias="fileName")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=utc_now, alias="updatedAt")
    memo: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


def _coerce_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    record = {_FIELD_ALIASES.get(key, key): value for key, value in raw.items()}
    if "created_at" not in record and "updated_at" in record:
        record["created_at"] = record["updated_at"]
    return record


class CardFileImporter(BaseImporter):
    """
    Importer for JSON card files.
    """

    def __init__(self, file_path: str):
        """
        Initialize the importer.

        Args:
            file_path: Path to the card file
        """
        self.file_path = Path(file_path)
        self.header: Optional[CardFileHeader] = None
        logging.info(f"Initialized card file importer for: {self.file_path}")

    def get_all_cards(self) -> List[Card]:
        """
        Read, validate and normalize every card in the file.

        Records that fail validation are skipped with a warning. An unreadable
        file yields an empty list.
        """
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logging.error(f"Failed to read card file {self.file_path}: {e}")
            return []

        if not isinstance(document, dict) or not isinstance(document.get("body"), list):
            logging.error(f"Card file {self.file_path} has no 'body' array")
            return []

        schema_version = document.get("schemaVersion")
        if schema_version not in (None, CARD_FILE_SCHEMA_VERSION):
            logging.warning(f"Card file {self.file_path} uses schema version {schema_version}")

        header = document.get("header")
        if isinstance(header, dict):
            try:
                self.header = CardFileHeader.model_validate(header)
            except ValidationError as e:
                logging.warning(f"Ignoring invalid header in {self.file_path}: {e}")

        cards: List[Card] = []
        for position, raw in enumerate(document["body"]):
            if not isinstance(raw, dict):
                logging.warning(f"Skipping non-object card record #{position} in {self.file_path}")
                continue
            try:
                card = Card.model_validate(_coerce_record(raw))
            except ValidationError as e:
                logging.warning(f"Skipping invalid card record #{position} in {self.file_path}: {e}")
                continue
            cards.append(card)

        normalized = normalize_card_order(cards)
        logging.info(f"Loaded {len(normalized)} cards from {self.file_path}")
        return normalized


def save_card_file(file_path: str, cards: Sequence[Card],
                   header: Optional[CardFileHeader] = None) -> CardFileHeader:
    """
    Write cards to a JSON card file.

    Args:
        file_path: Destination path
        cards: Cards in document order
        header: Existing header to keep (its updated_at is refreshed)

    Returns:
        The header that was written
    """
    path = Path(file_path)
    if header is None:
        header = CardFileHeader(file_name=path.name)
    header = header.model_copy(update={"updated_at": utc_now()})

    document = {
        "schemaVersion": CARD_FILE_SCHEMA_VERSION,
        "header": header.model_dump(mode="json", by_alias=True),
        "body": [card.model_dump(mode="json") for card in cards],
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(document, f, ensure_ascii=False, indent=2)

    logging.info(f"Saved {len(cards)} cards to {path}")
    return header

"""
Card history models for cardtree.

Version records describe one committed change to one card and are handed to
the history recorder after the change is applied.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .card import Card, utc_now


class CardHistoryOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MERGE = "merge"
    RESTORE = "restore"


class CardVersionDiff(BaseModel):
    """
    Changed fields of a card before and after an update.
    """

    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None


class CardVersion(BaseModel):
    """
    A single version of a card.
    """

    version_id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    timestamp: datetime = Field(default_factory=utc_now)

    operation: CardHistoryOperation

    card: Card = Field(..., description="Full card snapshot after the operation")

    diff: Optional[CardVersionDiff] = None

    restored_from_version_id: Optional[str] = None

    restored_from_timestamp: Optional[datetime] = None


class CardHistory(BaseModel):
    """
    The version history of one card within one file, oldest first.
    """

    card_id: str
    file_name: str
    versions: List[CardVersion] = Field(default_factory=list)

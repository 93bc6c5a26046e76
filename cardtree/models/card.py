"""
Card data models for cardtree.

This module defines the content unit managed by the tree engine, the detached
clipboard representation of a card subtree and the patch used for content
updates.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class CardStatus(str, Enum):
    """Review status of a card, cycled in declaration order."""

    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    DEPRECATED = "deprecated"


class CardKind(str, Enum):
    """Structural kind of a card."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    BULLET = "bullet"
    FIGURE = "figure"
    TABLE = "table"
    TEST = "test"
    QA = "qa"


CARD_STATUS_SEQUENCE: List[CardStatus] = list(CardStatus)


def next_card_status(current) -> CardStatus:
    """
    Advance a status to the next stage of the draft/review/approved/deprecated cycle.

    Unknown values restart the cycle at draft.
    """
    try:
        index = CARD_STATUS_SEQUENCE.index(CardStatus(current))
    except ValueError:
        return CARD_STATUS_SEQUENCE[0]
    return CARD_STATUS_SEQUENCE[(index + 1) % len(CARD_STATUS_SEQUENCE)]


class Card(BaseModel):
    """
    One structured content unit inside an open card file.

    Cards are immutable; every edit produces a new instance. The hierarchy
    fields below ``parent_id`` are derived from ``parent_id`` plus the card's
    position in the owning array and are rewritten by the tree engine only.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        description="Opaque unique identifier assigned by the engine"
    )

    card_id: Optional[str] = Field(
        default=None,
        description="User-facing sequential display code (e.g. REQ-001)"
    )

    title: str = Field(default="", description="Card title")

    body: str = Field(default="", description="Card body text")

    status: CardStatus = Field(default=CardStatus.DRAFT)

    kind: CardKind = Field(default=CardKind.PARAGRAPH)

    has_left_trace: bool = Field(
        default=False,
        description="Left trace flag, owned by the external relation subsystem"
    )

    has_right_trace: bool = Field(
        default=False,
        description="Right trace flag, owned by the external relation subsystem"
    )

    created_at: datetime = Field(default_factory=utc_now)

    updated_at: datetime = Field(default_factory=utc_now)

    parent_id: Optional[str] = Field(
        default=None,
        description="Parent card id; the only independently-true hierarchy pointer"
    )

    child_ids: List[str] = Field(
        default_factory=list,
        description="Derived: ids of direct children in document order"
    )

    prev_id: Optional[str] = Field(default=None, description="Derived: previous sibling id")

    next_id: Optional[str] = Field(default=None, description="Derived: next sibling id")

    level: int = Field(default=0, ge=0, description="Derived: depth, 0 for roots")

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are read as UTC."""
        return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class CardPatch(BaseModel):
    """
    Partial content update for a card.

    Only content fields are patchable; identity and hierarchy fields are owned
    by the tree engine.
    """

    model_config = ConfigDict(extra="forbid")

    card_id: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    status: Optional[CardStatus] = None
    kind: Optional[CardKind] = None

    def changes(self) -> dict:
        """Return only the fields that were explicitly set (card_id may be cleared)."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key == "card_id"
        }


class ClipboardNode(BaseModel):
    """
    A detached, identity-free copy of a card subtree.
    """

    title: str = ""
    body: str = ""
    status: CardStatus = CardStatus.DRAFT
    kind: CardKind = CardKind.PARAGRAPH
    has_left_trace: bool = False
    has_right_trace: bool = False

    children: List['ClipboardNode'] = Field(
        default_factory=list,
        description="Nested copies of the card's children, in document order"
    )

    def count(self) -> int:
        """Number of cards in this subtree, including the root."""
        return 1 + sum(child.count() for child in self.children)


# Enable forward references for self-referencing model
ClipboardNode.model_rebuild()

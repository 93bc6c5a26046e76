"""
Workspace models for cardtree.

This module defines open tabs, leaf panels, undo journal entries and the
tagged outcomes returned by registry commands.
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .card import Card, CardKind, CardStatus


class InsertPosition(str, Enum):
    """Placement of new or moved cards relative to an anchor card."""

    BEFORE = "before"
    AFTER = "after"
    CHILD = "child"


class DisplayMode(str, Enum):
    """How a tab presents its cards."""

    DETAILED = "detailed"
    COMPACT = "compact"


class Tab(BaseModel):
    """
    One open card file inside one panel.

    The ``cards`` order is the ground truth for sibling sequence and subtree
    placement. Tabs are replaced wholesale on every command.
    """

    id: str = Field(..., description="Tab identifier")

    panel_id: str = Field(..., description="Owning panel")

    file_name: Optional[str] = Field(
        default=None,
        description="Backing file; None means untitled and never saved"
    )

    cards: List[Card] = Field(default_factory=list)

    selected_card_ids: List[str] = Field(default_factory=list)

    anchor_card_id: Optional[str] = Field(
        default=None,
        description="Last selected card, used as range anchor and default insert anchor"
    )

    dirty_card_ids: List[str] = Field(default_factory=list)

    expanded_card_ids: List[str] = Field(default_factory=list)

    editing_card_id: Optional[str] = None

    is_dirty: bool = False

    display_mode: DisplayMode = DisplayMode.DETAILED

    @property
    def is_untitled(self) -> bool:
        return self.file_name is None

    def find_card(self, card_id: str) -> Optional[Card]:
        """Return the card with the given id, or None."""
        for card in self.cards:
            if card.id == card_id:
                return card
        return None


class Panel(BaseModel):
    """
    A leaf panel hosting an ordered set of tabs.
    """

    id: str
    tab_ids: List[str] = Field(default_factory=list)
    active_tab_id: Optional[str] = None


class UndoEntry(BaseModel):
    """
    A snapshot of a tab's cards taken before a mutation.
    """

    model_config = ConfigDict(frozen=True)

    operation: str = Field(..., description="Operation tag (insert, delete, move, ...)")
    tab_id: str
    cards: Tuple[Card, ...] = Field(..., description="The tab's cards before the operation")
    description: str = ""


class MergeOptions(BaseModel):
    """
    Caller-supplied settings for merging cards.

    Unset content fields are derived from the merged cards.
    """

    title: Optional[str] = None
    body: Optional[str] = None
    status: Optional[CardStatus] = None
    kind: Optional[CardKind] = None
    card_id: Optional[str] = None
    remove_originals: bool = True
    inherit_traces: bool = True


class OpenStatus(str, Enum):
    OPENED = "opened"
    ACTIVATED = "activated"
    DENIED = "denied"


class OpenTabOutcome(BaseModel):
    """
    Result of opening a file in a panel.
    """

    status: OpenStatus
    panel_id: str
    tab_id: Optional[str] = None
    conflicting_panel_id: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != OpenStatus.DENIED


class RenameOutcome(BaseModel):
    """
    Result of binding a tab to a (new) file name.
    """

    success: bool
    tab_id: str
    file_name: Optional[str] = None
    reason: Optional[str] = None

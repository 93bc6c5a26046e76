"""Data models for cardtree."""

from .card import (
    Card,
    CardKind,
    CardPatch,
    CardStatus,
    ClipboardNode,
    CARD_STATUS_SEQUENCE,
    next_card_status,
    utc_now,
)
from .workspace import (
    DisplayMode,
    InsertPosition,
    MergeOptions,
    OpenStatus,
    OpenTabOutcome,
    Panel,
    RenameOutcome,
    Tab,
    UndoEntry,
)
from .history import (
    CardHistory,
    CardHistoryOperation,
    CardVersion,
    CardVersionDiff,
)

__all__ = [
    "Card",
    "CardKind",
    "CardPatch",
    "CardStatus",
    "ClipboardNode",
    "CARD_STATUS_SEQUENCE",
    "next_card_status",
    "utc_now",
    "DisplayMode",
    "InsertPosition",
    "MergeOptions",
    "OpenStatus",
    "OpenTabOutcome",
    "Panel",
    "RenameOutcome",
    "Tab",
    "UndoEntry",
    "CardHistory",
    "CardHistoryOperation",
    "CardVersion",
    "CardVersionDiff",
]

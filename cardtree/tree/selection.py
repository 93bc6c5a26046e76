"""
Selection and range model for one open tab.

Selections are plain id lists plus an anchor (the last selected card). All
functions are pure and return a new ``Selection``.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..models import Card
from .mutations import index_of, topmost_ids


@dataclass(frozen=True)
class Selection:
    """
    Selected card ids in selection order, plus the range anchor.
    """
    card_ids: List[str] = field(default_factory=list)
    anchor_id: Optional[str] = None


def select_single(cards: Sequence[Card], card_id: str) -> Optional[Selection]:
    """Select exactly one card. Returns None if the card does not exist."""
    if index_of(cards, card_id) < 0:
        return None
    return Selection([card_id], card_id)


def toggle_selection(cards: Sequence[Card], current: Selection, card_id: str) -> Optional[Selection]:
    """
    Add a card to the selection or remove it if already selected.

    Adding makes the card the anchor; removing the anchor moves it to the most
    recently selected remaining card.
    """
    if index_of(cards, card_id) < 0:
        return None

    if card_id in current.card_ids:
        remaining = [selected for selected in current.card_ids if selected != card_id]
        anchor = current.anchor_id
        if anchor == card_id:
            anchor = remaining[-1] if remaining else None
        return Selection(remaining, anchor)

    return Selection(current.card_ids + [card_id], card_id)


def select_range(cards: Sequence[Card], current: Selection, target_id: str) -> Optional[Selection]:
    """
    Select every card between the anchor and the target, inclusive.

    The span is taken over the current array order and the anchor is kept.
    Without a usable anchor this behaves like ``select_single``.
    """
    target_index = index_of(cards, target_id)
    if target_index < 0:
        return None

    anchor_index = index_of(cards, current.anchor_id)
    if anchor_index < 0:
        return select_single(cards, target_id)

    low, high = sorted((anchor_index, target_index))
    return Selection([card.id for card in cards[low:high + 1]], current.anchor_id)


def prune_selection(cards: Sequence[Card], current: Selection) -> Selection:
    """Drop selected ids (and the anchor) that no longer exist."""
    existing = {card.id for card in cards}
    kept = [card_id for card_id in current.card_ids if card_id in existing]
    anchor = current.anchor_id if current.anchor_id in existing else None
    return Selection(kept, anchor)


def selection_roots(cards: Sequence[Card], card_ids: Sequence[str]) -> List[str]:
    """
    Reduce a selection to its topmost cards.

    Any selected card with a selected ancestor is dropped, so a parent and its
    selected children are not processed twice. Result is in array order.
    """
    return topmost_ids(cards, card_ids)

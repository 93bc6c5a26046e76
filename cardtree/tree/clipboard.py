"""
Clipboard subtree transfer.

Copying turns selected subtrees into detached ``ClipboardNode`` trees that
carry content only. Pasting materializes those trees into fresh cards with
new identities and display codes.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from ..models import Card, ClipboardNode, utc_now
from .mutations import insert_subtrees
from .numbering import generate_card_ids
from .selection import selection_roots


@dataclass(frozen=True)
class PasteResult:
    """
    Outcome of a successful paste.
    """
    cards: List[Card]
    root_ids: List[str]
    new_cards: List[Card]


def _copy_node(card: Card, by_id: Dict[str, Card]) -> ClipboardNode:
    return ClipboardNode(
        title=card.title,
        body=card.body,
        status=card.status,
        kind=card.kind,
        has_left_trace=card.has_left_trace,
        has_right_trace=card.has_right_trace,
        children=[_copy_node(by_id[child_id], by_id) for child_id in card.child_ids if child_id in by_id],
    )


def copy_subtrees(cards: Sequence[Card], card_ids: Sequence[str]) -> List[ClipboardNode]:
    """
    Copy the selected cards as detached subtrees.

    The selection is reduced to its roots first; each root yields one tree.
    """
    by_id = {card.id: card for card in cards}
    return [_copy_node(by_id[root_id], by_id) for root_id in selection_roots(cards, card_ids)]


def materialize(nodes: Sequence[ClipboardNode], id_factory: Callable[[], str],
                codes: Optional[List[str]] = None,
                now: Optional[datetime] = None) -> List[List[Card]]:
    """
    Turn clipboard trees into card blocks with fresh identities.

    Each block is a root (level 0, no parent) followed by its descendants in
    document order. Display codes, when given, are assigned in that order.
    """
    now = now or utc_now()
    code_iter = iter(codes or [])
    blocks: List[List[Card]] = []

    def build(node: ClipboardNode, parent_id: Optional[str], level: int, block: List[Card]) -> None:
        card = Card(
            id=id_factory(),
            card_id=next(code_iter, None),
            title=node.title,
            body=node.body,
            status=node.status,
            kind=node.kind,
            has_left_trace=node.has_left_trace,
            has_right_trace=node.has_right_trace,
            created_at=now,
            updated_at=now,
            parent_id=parent_id,
            level=level,
        )
        block.append(card)
        for child in node.children:
            build(child, card.id, level + 1, block)

    for node in nodes:
        block: List[Card] = []
        build(node, None, 0, block)
        blocks.append(block)
    return blocks


def paste_subtrees(cards: Sequence[Card], nodes: Sequence[ClipboardNode],
                   anchor_id: Optional[str], position,
                   id_factory: Callable[[], str],
                   preferred_prefix: Optional[str] = None,
                   digits: int = 3) -> Optional[PasteResult]:
    """
    Paste clipboard trees next to an anchor.

    All pasted roots share the parent and level derived from the anchor, as
    with insertion. Every new card receives the next sequential display code.

    Returns:
        PasteResult, or None when the clipboard is empty or the anchor is unresolvable
    """
    if not nodes:
        return None

    total = sum(node.count() for node in nodes)
    codes = generate_card_ids(cards, total, preferred_prefix, digits)
    blocks = materialize(nodes, id_factory, codes)

    result = insert_subtrees(cards, blocks, anchor_id, position)
    if result is None:
        return None

    new_ids = {card.id for block in blocks for card in block}
    return PasteResult(
        cards=result,
        root_ids=[block[0].id for block in blocks],
        new_cards=[card for card in result if card.id in new_ids],
    )

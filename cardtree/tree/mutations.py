"""
Structural mutations on ordered card arrays.

Every function here takes a sequence of cards and returns a new list; inputs
are never modified. The array order is authoritative: every card's
descendants occupy one consecutive run right after it, at strictly greater
levels ("subtree contiguity"). Derived fields (child_ids, prev_id, next_id,
level) are recomputed by ``rebuild_links`` after each structural change.

Expected validation failures return None; nothing here raises for bad ids.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..models import Card, CardPatch, InsertPosition, MergeOptions, utc_now


def index_of(cards: Sequence[Card], card_id: Optional[str]) -> int:
    """Array position of a card, -1 when absent."""
    if card_id is None:
        return -1
    for index, card in enumerate(cards):
        if card.id == card_id:
            return index
    return -1


def subtree_end(cards: Sequence[Card], index: int) -> int:
    """
    First position after the subtree rooted at ``cards[index]``.

    Scans forward while cards are deeper than the root.
    """
    base_level = cards[index].level
    end = index + 1
    while end < len(cards) and cards[end].level > base_level:
        end += 1
    return end


def _resolve_levels(cards: Sequence[Card], by_id: Dict[str, Card]) -> Dict[str, int]:
    levels: Dict[str, int] = {}
    for card in cards:
        chain: List[str] = []
        on_chain: Set[str] = set()
        current: Optional[Card] = card
        base = -1
        while current is not None:
            if current.id in levels:
                base = levels[current.id]
                break
            if current.id in on_chain:
                break
            chain.append(current.id)
            on_chain.add(current.id)
            current = by_id.get(current.parent_id) if current.parent_id is not None else None
        for offset, card_id in enumerate(reversed(chain)):
            levels[card_id] = base + 1 + offset
    return levels


def rebuild_links(cards: Sequence[Card]) -> List[Card]:
    """
    Recompute derived hierarchy fields from parent_id and array order.

    Groups cards by parent in array order to derive each parent's child_ids
    and each card's prev_id/next_id, and derives level from the parent chain.
    Cards whose derived fields are already correct are returned unchanged.
    """
    by_id = {card.id: card for card in cards}
    groups: Dict[Optional[str], List[str]] = {}
    for card in cards:
        key = card.parent_id if card.parent_id in by_id else None
        groups.setdefault(key, []).append(card.id)

    siblings: Dict[str, Tuple[Optional[str], Optional[str]]] = {}
    for ids in groups.values():
        for position, card_id in enumerate(ids):
            prev_id = ids[position - 1] if position > 0 else None
            next_id = ids[position + 1] if position + 1 < len(ids) else None
            siblings[card_id] = (prev_id, next_id)

    levels = _resolve_levels(cards, by_id)

    rebuilt: List[Card] = []
    for card in cards:
        prev_id, next_id = siblings[card.id]
        derived = {
            "child_ids": list(groups.get(card.id, [])),
            "prev_id": prev_id,
            "next_id": next_id,
            "level": levels[card.id],
        }
        if any(getattr(card, field) != value for field, value in derived.items()):
            card = card.model_copy(update=derived)
        rebuilt.append(card)
    return rebuilt


def resolve_placement(cards: Sequence[Card], anchor_index: int,
                      position) -> Tuple[int, Optional[str], int]:
    """
    Where new cards go relative to an anchor.

    Returns:
        (insert index, parent id, level) for the inserted roots
    """
    anchor = cards[anchor_index]
    position = InsertPosition(position)
    if position == InsertPosition.BEFORE:
        return anchor_index, anchor.parent_id, anchor.level
    end = subtree_end(cards, anchor_index)
    if position == InsertPosition.AFTER:
        return end, anchor.parent_id, anchor.level
    return end, anchor.id, anchor.level + 1


def insert_subtrees(cards: Sequence[Card], blocks: Sequence[Sequence[Card]],
                    anchor_id: Optional[str], position) -> Optional[List[Card]]:
    """
    Insert contiguous card blocks next to an anchor.

    Each block is a root followed by its descendants in document order. All
    roots share the parent and level derived from the anchor; descendants keep
    their level offset from their root.

    Args:
        cards: Current cards
        blocks: Blocks to insert, in order
        anchor_id: Anchor card; None is only accepted when ``cards`` is empty
        position: before, after or child

    Returns:
        The relinked card list, or None if the anchor cannot be resolved
    """
    if anchor_id is None:
        if cards:
            return None
        index, parent_id, level = 0, None, 0
    else:
        anchor_index = index_of(cards, anchor_id)
        if anchor_index < 0:
            return None
        index, parent_id, level = resolve_placement(cards, anchor_index, position)

    placed: List[Card] = []
    for block in blocks:
        if not block:
            continue
        root = block[0]
        offset = level - root.level
        placed.append(root.model_copy(update={"parent_id": parent_id, "level": level}))
        for descendant in block[1:]:
            placed.append(descendant.model_copy(update={"level": descendant.level + offset}))

    return rebuild_links(list(cards[:index]) + placed + list(cards[index:]))


def insert_card(cards: Sequence[Card], card: Card, anchor_id: Optional[str],
                position=InsertPosition.AFTER) -> Optional[List[Card]]:
    """Insert a single new card relative to an anchor."""
    return insert_subtrees(cards, [[card]], anchor_id, position)


def collect_subtree_ids(cards: Sequence[Card], card_ids: Iterable[str]) -> Set[str]:
    """
    The given cards plus all of their descendants, following child_ids.

    Unknown ids are ignored.
    """
    by_id = {card.id: card for card in cards}
    collected: Set[str] = set()
    stack = [card_id for card_id in card_ids if card_id in by_id]
    while stack:
        card_id = stack.pop()
        if card_id in collected:
            continue
        collected.add(card_id)
        stack.extend(child_id for child_id in by_id[card_id].child_ids if child_id in by_id)
    return collected


def delete_cards(cards: Sequence[Card],
                 card_ids: Iterable[str]) -> Tuple[List[Card], List[Card], int]:
    """
    Remove cards together with their whole subtrees.

    Returns:
        (remaining cards, removed cards in document order, lowest removed index);
        the index is -1 when nothing was removed
    """
    doomed = collect_subtree_ids(cards, card_ids)
    if not doomed:
        return list(cards), [], -1

    removed = [card for card in cards if card.id in doomed]
    first_index = min(index for index, card in enumerate(cards) if card.id in doomed)
    remaining = rebuild_links([card for card in cards if card.id not in doomed])
    return remaining, removed, first_index


def has_ancestor_in(by_id: Dict[str, Card], card_id: str, ancestor_ids: Set[str]) -> bool:
    """Whether any ancestor of ``card_id`` is in ``ancestor_ids`` (cycle-safe)."""
    seen: Set[str] = set()
    current = by_id.get(card_id)
    while current is not None and current.parent_id is not None:
        parent_id = current.parent_id
        if parent_id in ancestor_ids:
            return True
        if parent_id in seen:
            return False
        seen.add(parent_id)
        current = by_id.get(parent_id)
    return False


def topmost_ids(cards: Sequence[Card], card_ids: Iterable[str]) -> List[str]:
    """
    Keep only the ids without an ancestor in the same set, in array order.
    """
    wanted = set(card_ids)
    by_id = {card.id: card for card in cards}
    return [
        card.id for card in cards
        if card.id in wanted and not has_ancestor_in(by_id, card.id, wanted)
    ]


def move_cards(cards: Sequence[Card], card_ids: Sequence[str], target_id: str,
               position) -> Optional[List[Card]]:
    """
    Move cards (with their subtrees) next to a target card.

    Validation happens before anything changes: the target must exist, must
    not be one of the moved cards and must not be a descendant of one.

    Returns:
        The relinked card list, or None when the move is rejected
    """
    moved = list(dict.fromkeys(card_ids))
    by_id = {card.id: card for card in cards}
    if not moved or target_id not in by_id or any(card_id not in by_id for card_id in moved):
        return None

    moved_set = set(moved)
    if target_id in moved_set:
        logging.info(f"Rejected move of {target_id} onto itself")
        return None
    if has_ancestor_in(by_id, target_id, moved_set):
        logging.info(f"Rejected move: target {target_id} is a descendant of a moved card")
        return None

    blocks: List[List[Card]] = []
    taken: Set[str] = set()
    for root_id in topmost_ids(cards, moved):
        start = index_of(cards, root_id)
        block = list(cards[start:subtree_end(cards, start)])
        blocks.append(block)
        taken.update(card.id for card in block)

    if target_id in taken:
        return None

    remaining = [card for card in cards if card.id not in taken]
    return insert_subtrees(remaining, blocks, target_id, position)


def _default_merge_body(group: Sequence[Card]) -> str:
    sections = []
    for card in group:
        segments = [text.strip() for text in (card.title, card.body) if text and text.strip()]
        if segments:
            sections.append("\n".join(segments))
    return "\n\n".join(sections)


def merge_cards(cards: Sequence[Card], card_ids: Sequence[str], new_id: str,
                options: Optional[MergeOptions] = None) -> Optional[Tuple[List[Card], Card]]:
    """
    Merge contiguous childless siblings into one new card.

    The cards must share parent and level, have no children and occupy
    consecutive array positions. The merged card takes the first card's
    position and the earliest creation time.

    Args:
        cards: Current cards
        card_ids: Cards to merge (at least two)
        new_id: Identity for the merged card
        options: Content overrides and the remove/inherit flags

    Returns:
        (relinked cards, merged card), or None when the selection is not mergeable
    """
    options = options or MergeOptions()
    wanted = list(dict.fromkeys(card_ids))
    if len(wanted) < 2:
        return None

    positions = {card.id: index for index, card in enumerate(cards)}
    if any(card_id not in positions for card_id in wanted):
        return None

    indices = sorted(positions[card_id] for card_id in wanted)
    group = [cards[index] for index in indices]
    first = group[0]

    if any(card.parent_id != first.parent_id or card.level != first.level for card in group):
        return None
    if any(card.child_ids for card in group):
        return None
    if indices[-1] - indices[0] != len(indices) - 1:
        return None

    merged = Card(
        id=new_id,
        card_id=options.card_id if options.card_id is not None else first.card_id,
        title=options.title if options.title is not None else first.title,
        body=options.body if options.body is not None else _default_merge_body(group),
        status=options.status or first.status,
        kind=options.kind or first.kind,
        has_left_trace=options.inherit_traces and any(card.has_left_trace for card in group),
        has_right_trace=options.inherit_traces and any(card.has_right_trace for card in group),
        created_at=min(card.created_at for card in group),
        updated_at=utc_now(),
        parent_id=first.parent_id,
        level=first.level,
    )

    start = indices[0]
    if options.remove_originals:
        result = list(cards[:start]) + [merged] + list(cards[indices[-1] + 1:])
    else:
        result = list(cards[:start]) + [merged] + list(cards[start:])
    return rebuild_links(result), merged


def update_card(cards: Sequence[Card], card_id: str,
                patch: CardPatch) -> Optional[Tuple[List[Card], Card, Card]]:
    """
    Apply a content patch to one card.

    Returns:
        (cards, card before, card after), or None if the card is missing or
        the patch changes nothing
    """
    index = index_of(cards, card_id)
    if index < 0:
        return None

    before = cards[index]
    changes = {
        field: value for field, value in patch.changes().items()
        if getattr(before, field) != value
    }
    if not changes:
        return None

    changes["updated_at"] = utc_now()
    after = before.model_copy(update=changes)
    result = list(cards)
    result[index] = after
    return result, before, after


def set_trace_flags(cards: Sequence[Card],
                    flags: Dict[str, Tuple[Optional[bool], Optional[bool]]]) -> Tuple[List[Card], int]:
    """
    Overwrite trace flags of the given cards.

    ``flags`` maps card id to (has_left_trace, has_right_trace); None keeps the
    current value. Timestamps are left alone since the flags are owned by the
    relation subsystem.

    Returns:
        (cards, number of cards whose flags changed)
    """
    changed = 0
    result: List[Card] = []
    for card in cards:
        if card.id in flags:
            left, right = flags[card.id]
            update = {}
            if left is not None and left != card.has_left_trace:
                update["has_left_trace"] = left
            if right is not None and right != card.has_right_trace:
                update["has_right_trace"] = right
            if update:
                card = card.model_copy(update=update)
                changed += 1
        result.append(card)
    return result, changed


def normalize_card_order(cards: Iterable[Card]) -> List[Card]:
    """
    Put untrusted cards into depth-first document order.

    Roots are cards whose parent cannot be resolved (missing or self). A
    parent's children follow its stored child_ids first, then any other cards
    naming it as parent, in input order. Cards not reached from a root (cycle
    members) are appended as new roots rather than dropped. Dangling parent
    references are cleared and derived fields are rebuilt.
    """
    by_id: Dict[str, Card] = {}
    ordered: List[Card] = []
    for card in cards:
        if card.id in by_id:
            logging.warning(f"Duplicate card id {card.id} ignored during normalization")
            continue
        by_id[card.id] = card
        ordered.append(card)

    def resolvable_parent(card: Card) -> Optional[str]:
        parent_id = card.parent_id
        if parent_id is None or parent_id == card.id or parent_id not in by_id:
            return None
        return parent_id

    children: Dict[str, List[str]] = {card.id: [] for card in ordered}
    listed: Dict[str, Set[str]] = {card.id: set() for card in ordered}
    for card in ordered:
        for child_id in card.child_ids:
            child = by_id.get(child_id)
            if child is not None and resolvable_parent(child) == card.id and child_id not in listed[card.id]:
                children[card.id].append(child_id)
                listed[card.id].add(child_id)
    for card in ordered:
        parent_id = resolvable_parent(card)
        if parent_id is not None and card.id not in listed[parent_id]:
            children[parent_id].append(card.id)
            listed[parent_id].add(card.id)

    result: List[Card] = []
    visited: Set[str] = set()

    def place(root_id: str) -> None:
        stack: List[Tuple[str, Optional[str], int]] = [(root_id, None, 0)]
        while stack:
            card_id, parent_id, level = stack.pop()
            if card_id in visited:
                continue
            visited.add(card_id)
            result.append(by_id[card_id].model_copy(update={"parent_id": parent_id, "level": level}))
            for child_id in reversed(children[card_id]):
                if child_id not in visited:
                    stack.append((child_id, card_id, level + 1))

    for card in ordered:
        if resolvable_parent(card) is None:
            if card.parent_id is not None:
                logging.warning(f"Card {card.id} has unresolvable parent {card.parent_id}; treating as root")
            place(card.id)

    for card in ordered:
        if card.id not in visited:
            logging.warning(f"Card {card.id} is part of a parent cycle; appending as root")
            place(card.id)

    return rebuild_links(result)

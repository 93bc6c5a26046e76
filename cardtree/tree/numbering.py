"""
Display code numbering for cards.

Display codes look like ``PREFIX-NNN`` (``REQ-001``) or plain zero-padded
numbers (``042``). New codes continue the highest number already used with
the chosen prefix.
"""

import re
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from ..models import Card


_PREFIXED_CODE = re.compile(r'^(.+?)-(\d+)$')
_LEADING_NUMBER = re.compile(r'^\s*(\d+)')


def parse_card_id(card_id: Optional[str]) -> Optional[Tuple[str, int]]:
    """
    Split a display code into prefix and number.

    Args:
        card_id: Display code such as "REQ-001" or "042"

    Returns:
        (prefix, number) tuple, prefix is "" for bare numbers, None if unparseable
    """
    if not card_id:
        return None

    match = _PREFIXED_CODE.match(card_id)
    if match:
        return match.group(1), int(match.group(2))

    match = _LEADING_NUMBER.match(card_id)
    if match:
        return "", int(match.group(1))

    return None


def find_max_card_number(cards: Sequence[Card], prefix: Optional[str] = None) -> int:
    """
    Highest number used by the cards' display codes.

    Args:
        cards: Cards to scan
        prefix: Only consider codes with this prefix (None considers all)

    Returns:
        The highest number, or 0 when no code matches
    """
    highest = 0
    for card in cards:
        parsed = parse_card_id(card.card_id)
        if not parsed:
            continue
        if prefix is not None and parsed[0] != prefix:
            continue
        highest = max(highest, parsed[1])
    return highest


def get_most_common_prefix(cards: Sequence[Card]) -> str:
    """Most frequent display code prefix, "" when no card has a code."""
    counts = Counter()
    for card in cards:
        parsed = parse_card_id(card.card_id)
        if parsed:
            counts[parsed[0]] += 1

    if not counts:
        return ""
    return counts.most_common(1)[0][0]


def _format_code(prefix: str, number: int, digits: int) -> str:
    padded = str(number).zfill(digits)
    return f"{prefix}-{padded}" if prefix else padded


def generate_card_ids(cards: Sequence[Card], count: int,
                      preferred_prefix: Optional[str] = None,
                      digits: int = 3) -> List[str]:
    """
    Generate ``count`` consecutive display codes following the existing ones.

    Args:
        cards: Cards already present in the file
        count: Number of codes to generate
        preferred_prefix: Prefix to use; None picks the most common prefix
        digits: Zero padding width

    Returns:
        List of new display codes in ascending order
    """
    prefix = preferred_prefix if preferred_prefix is not None else get_most_common_prefix(cards)
    start = find_max_card_number(cards, prefix) + 1
    return [_format_code(prefix, number, digits) for number in range(start, start + count)]


def generate_next_card_id(cards: Sequence[Card], preferred_prefix: Optional[str] = None,
                          digits: int = 3) -> str:
    """Generate the next display code for a single new card."""
    return generate_card_ids(cards, 1, preferred_prefix, digits)[0]


def is_card_id_duplicate(cards: Sequence[Card], card_id: str,
                         exclude_id: Optional[str] = None) -> bool:
    """
    Check whether a display code is already used by another card.

    Args:
        cards: Cards to check against
        card_id: Display code to look for
        exclude_id: Engine id of a card to ignore (the card being edited)
    """
    if not card_id:
        return False
    return any(
        card.card_id == card_id
        for card in cards
        if exclude_id is None or card.id != exclude_id
    )

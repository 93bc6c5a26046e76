"""
Mock importer for testing cardtree.

This module provides a hardcoded requirements document whose cards are
deliberately stored out of order with stale derived fields, the way an
untrusted file would arrive.
"""

from datetime import datetime, timezone
from typing import List, Optional

from ..models import Card, CardKind, CardStatus
from ..tree import normalize_card_order
from .base import BaseImporter


_CREATED = datetime(2025, 10, 19, 5, 30, tzinfo=timezone.utc)


class MockImporter(BaseImporter):
    """
    Mock importer that returns hardcoded test cards.

    Used for demos and tests without requiring a card file on disk.
    """

    def __init__(self):
        """Initialize the mock importer with test data."""
        self._raw_cards = self._create_test_cards()

    def get_raw_cards(self) -> List[Card]:
        """The cards in their stored (shuffled) order, before normalization."""
        return list(self._raw_cards)

    def get_all_cards(self) -> List[Card]:
        """
        Return the test cards in normalized document order.
        """
        return normalize_card_order(self._raw_cards)

    def _create_test_cards(self) -> List[Card]:
        """
        Create the hardcoded requirements document.

        Hierarchy:
            REQ-001 System overview
                REQ-002 Purpose
                REQ-003 Scope
            REQ-004 Functional requirements
                REQ-005 Open files
                    REQ-006 Open the same file twice
                REQ-007 Undo changes
            REQ-008 Open question on merge strictness
        """
        def card(number: int, title: str, body: str, kind: CardKind, status: CardStatus,
                 parent: Optional[int] = None, children: List[int] = (), left: bool = False,
                 right: bool = False) -> Card:
            return Card(
                id=f"card-{number:03d}",
                card_id=f"REQ-{number:03d}",
                title=title,
                body=body,
                kind=kind,
                status=status,
                has_left_trace=left,
                has_right_trace=right,
                created_at=_CREATED,
                updated_at=_CREATED,
                parent_id=f"card-{parent:03d}" if parent else None,
                child_ids=[f"card-{child:03d}" for child in children],
                level=7,
            )

        # Stored order is shuffled; level is stale on purpose
        return [
            card(6, "Open the same file twice", "Opening a file already open in the panel reactivates its tab.",
                 CardKind.TEST, CardStatus.REVIEW, parent=5, left=True),
            card(3, "Scope", "Structural editing, clipboard, undo and panel bookkeeping.",
                 CardKind.PARAGRAPH, CardStatus.APPROVED, parent=1),
            card(1, "System overview", "", CardKind.HEADING, CardStatus.APPROVED,
                 children=[2, 3], right=True),
            card(5, "Open files", "A file is open in at most one panel at a time.",
                 CardKind.BULLET, CardStatus.REVIEW, parent=4, children=[6], left=True, right=True),
            card(2, "Purpose", "Manage hierarchical cards across editing panels.",
                 CardKind.PARAGRAPH, CardStatus.APPROVED, parent=1),
            card(7, "Undo changes", "Every structural change can be undone up to 100 steps back.",
                 CardKind.BULLET, CardStatus.DRAFT, parent=4),
            card(4, "Functional requirements", "", CardKind.HEADING, CardStatus.DRAFT,
                 children=[5, 7]),
            card(8, "Open question on merge strictness", "Should gaps filled by selected cards be merged?",
                 CardKind.QA, CardStatus.DRAFT),
        ]

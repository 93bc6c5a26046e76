"""
Unit tests for the selection model and clipboard subtree transfer.
"""

import itertools
import unittest

from cardtree.models import Card, CardKind, CardStatus, InsertPosition
from cardtree.tree import (
    Selection,
    copy_subtrees,
    materialize,
    paste_subtrees,
    prune_selection,
    rebuild_links,
    select_range,
    select_single,
    selection_roots,
    toggle_selection,
)


def sample_cards():
    return rebuild_links([
        Card(id="a", card_id="REQ-001", title="A"),
        Card(id="a1", card_id="REQ-002", title="A1", parent_id="a", kind=CardKind.BULLET),
        Card(id="a2", card_id="REQ-003", title="A2", parent_id="a", has_left_trace=True),
        Card(id="b", card_id="REQ-004", title="B", status=CardStatus.APPROVED),
    ])


def counter_ids(prefix="new"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


class TestSelection(unittest.TestCase):

    def setUp(self):
        self.cards = sample_cards()

    def test_select_single(self):
        self.assertEqual(select_single(self.cards, "a1"), Selection(["a1"], "a1"))
        self.assertIsNone(select_single(self.cards, "missing"))

    def test_toggle_adds_and_moves_anchor(self):
        selection = toggle_selection(self.cards, Selection(["a"], "a"), "b")

        self.assertEqual(selection.card_ids, ["a", "b"])
        self.assertEqual(selection.anchor_id, "b")

    def test_toggle_removing_anchor(self):
        selection = toggle_selection(self.cards, Selection(["a", "a2", "b"], "b"), "b")

        self.assertEqual(selection.card_ids, ["a", "a2"])
        self.assertEqual(selection.anchor_id, "a2")

        emptied = toggle_selection(self.cards, Selection(["a"], "a"), "a")
        self.assertEqual(emptied, Selection([], None))

    def test_range_spans_array_order_and_keeps_anchor(self):
        selection = select_range(self.cards, Selection(["b"], "b"), "a1")

        self.assertEqual(selection.card_ids, ["a1", "a2", "b"])
        self.assertEqual(selection.anchor_id, "b")

    def test_range_without_anchor_selects_single(self):
        self.assertEqual(select_range(self.cards, Selection(), "a2"), Selection(["a2"], "a2"))
        self.assertEqual(select_range(self.cards, Selection([], "gone"), "a2"), Selection(["a2"], "a2"))
        self.assertIsNone(select_range(self.cards, Selection(["a"], "a"), "missing"))

    def test_prune_selection(self):
        pruned = prune_selection(self.cards[:2], Selection(["a", "b"], "b"))

        self.assertEqual(pruned, Selection(["a"], None))

    def test_selection_roots_drop_selected_descendants(self):
        self.assertEqual(selection_roots(self.cards, ["a2", "a", "b"]), ["a", "b"])
        self.assertEqual(selection_roots(self.cards, ["a2", "a1"]), ["a1", "a2"])


class TestClipboard(unittest.TestCase):

    def setUp(self):
        self.cards = sample_cards()

    def test_copy_produces_detached_trees(self):
        nodes = copy_subtrees(self.cards, ["a1", "a"])

        self.assertEqual(len(nodes), 1)
        self.assertEqual(nodes[0].title, "A")
        self.assertEqual([child.title for child in nodes[0].children], ["A1", "A2"])
        self.assertEqual(nodes[0].children[0].kind, CardKind.BULLET)
        self.assertTrue(nodes[0].children[1].has_left_trace)
        self.assertEqual(nodes[0].count(), 3)

    def test_copy_nothing(self):
        self.assertEqual(copy_subtrees(self.cards, []), [])
        self.assertEqual(copy_subtrees(self.cards, ["missing"]), [])

    def test_materialize_assigns_fresh_ids_and_codes(self):
        nodes = copy_subtrees(self.cards, ["a"])
        blocks = materialize(nodes, counter_ids(), ["X-1", "X-2", "X-3"])

        block = blocks[0]
        self.assertEqual([card.id for card in block], ["new-1", "new-2", "new-3"])
        self.assertEqual([card.card_id for card in block], ["X-1", "X-2", "X-3"])
        self.assertEqual([card.level for card in block], [0, 1, 1])
        self.assertEqual(block[1].parent_id, "new-1")

    def test_paste_after_preserves_shape(self):
        nodes = copy_subtrees(self.cards, ["a"])
        result = paste_subtrees(self.cards, nodes, "b", InsertPosition.AFTER, counter_ids())

        self.assertEqual([card.id for card in result.cards], ["a", "a1", "a2", "b", "new-1", "new-2", "new-3"])
        self.assertEqual(result.root_ids, ["new-1"])
        self.assertEqual(result.cards[4].child_ids, ["new-2", "new-3"])
        self.assertEqual([card.title for card in result.new_cards], ["A", "A1", "A2"])
        self.assertEqual([card.card_id for card in result.new_cards], ["REQ-005", "REQ-006", "REQ-007"])

    def test_paste_multiple_roots_as_children(self):
        nodes = copy_subtrees(self.cards, ["a1", "b"])
        result = paste_subtrees(self.cards, nodes, "a2", InsertPosition.CHILD, counter_ids())

        self.assertEqual(result.root_ids, ["new-1", "new-2"])
        pasted = [card for card in result.cards if card.id in result.root_ids]
        self.assertTrue(all(card.parent_id == "a2" and card.level == 2 for card in pasted))
        a2 = next(card for card in result.cards if card.id == "a2")
        self.assertEqual(a2.child_ids, ["new-1", "new-2"])

    def test_paste_into_empty_document(self):
        nodes = copy_subtrees(self.cards, ["b"])
        result = paste_subtrees([], nodes, None, InsertPosition.AFTER, counter_ids(), digits=2)

        self.assertEqual(result.root_ids, ["new-1"])
        self.assertEqual(result.cards[0].card_id, "01")
        self.assertEqual(result.cards[0].status, CardStatus.APPROVED)

    def test_paste_rejections(self):
        nodes = copy_subtrees(self.cards, ["b"])

        self.assertIsNone(paste_subtrees(self.cards, [], "b", InsertPosition.AFTER, counter_ids()))
        self.assertIsNone(paste_subtrees(self.cards, nodes, "missing", InsertPosition.AFTER, counter_ids()))


if __name__ == '__main__':
    unittest.main()

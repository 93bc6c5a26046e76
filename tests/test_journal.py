"""
Unit tests for the undo/redo journal.
"""

import unittest

from cardtree.journal import UndoJournal
from cardtree.models import Card


def snapshot(*card_ids):
    return [Card(id=card_id) for card_id in card_ids]


class TestUndoJournal(unittest.TestCase):

    def setUp(self):
        self.journal = UndoJournal("tab-1", max_depth=100)

    def test_empty_journal(self):
        self.assertFalse(self.journal.can_undo)
        self.assertFalse(self.journal.can_redo)
        self.assertIsNone(self.journal.undo(snapshot("a")))
        self.assertIsNone(self.journal.redo(snapshot("a")))
        self.assertIsNone(self.journal.peek_undo())

    def test_undo_then_redo_restores_states(self):
        self.journal.record("insert", snapshot("a"), "Inserted b")
        current = snapshot("a", "b")

        restored = self.journal.undo(current)
        self.assertEqual([card.id for card in restored], ["a"])
        self.assertTrue(self.journal.can_redo)
        self.assertEqual(self.journal.peek_redo().operation, "insert")

        redone = self.journal.redo(restored)
        self.assertEqual([card.id for card in redone], ["a", "b"])
        self.assertTrue(self.journal.can_undo)
        self.assertFalse(self.journal.can_redo)

    def test_record_clears_redo(self):
        self.journal.record("insert", snapshot("a"))
        self.journal.undo(snapshot("a", "b"))
        self.assertTrue(self.journal.can_redo)

        self.journal.record("delete", snapshot("a"))
        self.assertFalse(self.journal.can_redo)

    def test_depth_is_capped(self):
        for index in range(105):
            self.journal.record("update", snapshot(f"s{index}"))

        self.assertEqual(self.journal.undo_depth, 100)
        # the five oldest snapshots were dropped
        restored = None
        current = snapshot("latest")
        while self.journal.can_undo:
            restored = self.journal.undo(current)
            current = restored
        self.assertEqual(restored[0].id, "s5")

    def test_entries_are_tagged_with_tab(self):
        entry = self.journal.record("move", snapshot("a"), "Moved a")

        self.assertEqual(entry.tab_id, "tab-1")
        self.assertEqual(entry.description, "Moved a")
        self.assertIsInstance(entry.cards, tuple)

    def test_clear(self):
        self.journal.record("insert", snapshot("a"))
        self.journal.undo(snapshot("a", "b"))
        self.journal.clear()

        self.assertEqual(self.journal.undo_depth, 0)
        self.assertEqual(self.journal.redo_depth, 0)

    def test_default_depth_from_config(self):
        journal = UndoJournal("tab-2")
        self.assertEqual(journal.max_depth, 100)


if __name__ == '__main__':
    unittest.main()

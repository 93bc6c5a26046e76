"""
Unit tests for core cardtree components.

Tests configuration management, the data models and display code numbering.
"""

import os
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from cardtree.config import ConfigManager
from cardtree.models import (
    Card,
    CardKind,
    CardPatch,
    CardStatus,
    ClipboardNode,
    OpenStatus,
    OpenTabOutcome,
    Tab,
    next_card_status,
)
from cardtree.tree import (
    find_max_card_number,
    generate_card_ids,
    generate_next_card_id,
    get_most_common_prefix,
    is_card_id_duplicate,
    parse_card_id,
)


class TestConfigManager(unittest.TestCase):
    """Test configuration management functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "test_config.yaml"

    def tearDown(self):
        """Clean up test fixtures."""
        if self.config_path.exists():
            self.config_path.unlink()
        os.rmdir(self.temp_dir)

    def test_config_creation_with_defaults(self):
        """Test config manager falls back to defaults when file missing."""
        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.undo_depth, 100)
        self.assertEqual(config.history_max_versions, 100)
        self.assertEqual(config.card_id_digits, 3)
        self.assertIsNone(config.card_id_prefix)
        self.assertTrue(config.expand_on_open)
        self.assertEqual(config.display_mode, "detailed")
        self.assertEqual(config.log_filename, "cardtree.log")

    def test_config_loading_from_file(self):
        """Test loading configuration from YAML file."""
        test_config = """
journal:
  max_depth: 5

history:
  max_versions: 10
  database: "test_history.db"

cards:
  id_digits: 4
  id_prefix: "SYS"

workspace:
  expand_on_open: false
"""
        with open(self.config_path, 'w') as f:
            f.write(test_config)

        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.undo_depth, 5)
        self.assertEqual(config.history_max_versions, 10)
        self.assertEqual(config.history_database, "test_history.db")
        self.assertEqual(config.card_id_digits, 4)
        self.assertEqual(config.card_id_prefix, "SYS")
        self.assertFalse(config.expand_on_open)
        # Keys missing from the file fall back to property defaults
        self.assertEqual(config.display_mode, "detailed")

    def test_dot_notation_access(self):
        """Test accessing config values with dot notation."""
        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.get("journal.max_depth"), 100)
        self.assertEqual(config.get("logging.level"), "INFO")
        self.assertIsNone(config.get("nonexistent.key"))
        self.assertEqual(config.get("nonexistent.key", "fallback"), "fallback")

    def test_get_section(self):
        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.get_section("history")["max_versions"], 100)
        self.assertEqual(config.get_section("missing"), {})

    def test_invalid_yaml_uses_defaults(self):
        """Test a malformed file falls back to defaults."""
        with open(self.config_path, 'w') as f:
            f.write("journal: [unclosed\n")

        config = ConfigManager(str(self.config_path))
        self.assertEqual(config.undo_depth, 100)

    def test_reload(self):
        """Test reload picks up changes on disk."""
        with open(self.config_path, 'w') as f:
            f.write("journal:\n  max_depth: 3\n")
        config = ConfigManager(str(self.config_path))
        self.assertEqual(config.undo_depth, 3)

        with open(self.config_path, 'w') as f:
            f.write("journal:\n  max_depth: 7\n")
        config.reload()
        self.assertEqual(config.undo_depth, 7)


class TestModels(unittest.TestCase):
    """Test pydantic data models."""

    def test_card_defaults(self):
        card = Card(id="a")

        self.assertEqual(card.status, CardStatus.DRAFT)
        self.assertEqual(card.kind, CardKind.PARAGRAPH)
        self.assertEqual(card.child_ids, [])
        self.assertEqual(card.level, 0)
        self.assertIsNone(card.parent_id)
        self.assertIsNotNone(card.created_at.tzinfo)

    def test_card_is_immutable(self):
        card = Card(id="a", title="Title")

        with self.assertRaises(ValidationError):
            card.title = "Changed"

        changed = card.model_copy(update={"title": "Changed"})
        self.assertEqual(card.title, "Title")
        self.assertEqual(changed.title, "Changed")

    def test_card_rejects_negative_level(self):
        with self.assertRaises(ValidationError):
            Card(id="a", level=-1)

    def test_card_rejects_unknown_status(self):
        with self.assertRaises(ValidationError):
            Card(id="a", status="archived")

    def test_status_cycle(self):
        self.assertEqual(next_card_status(CardStatus.DRAFT), CardStatus.REVIEW)
        self.assertEqual(next_card_status(CardStatus.REVIEW), CardStatus.APPROVED)
        self.assertEqual(next_card_status(CardStatus.APPROVED), CardStatus.DEPRECATED)
        self.assertEqual(next_card_status(CardStatus.DEPRECATED), CardStatus.DRAFT)
        self.assertEqual(next_card_status("approved"), CardStatus.DEPRECATED)
        self.assertEqual(next_card_status("bogus"), CardStatus.DRAFT)

    def test_card_patch_changes(self):
        self.assertEqual(CardPatch().changes(), {})
        self.assertEqual(CardPatch(title="New").changes(), {"title": "New"})
        # Clearing the display code is an explicit change
        self.assertEqual(CardPatch(card_id=None).changes(), {"card_id": None})
        self.assertEqual(CardPatch(title=None).changes(), {})

    def test_card_patch_rejects_unknown_fields(self):
        with self.assertRaises(ValidationError):
            CardPatch(parent_id="elsewhere")
        with self.assertRaises(ValidationError):
            CardPatch(titel="typo")

    def test_clipboard_node_count(self):
        node = ClipboardNode(
            title="root",
            children=[ClipboardNode(title="a", children=[ClipboardNode(title="a1")]), ClipboardNode(title="b")],
        )
        self.assertEqual(node.count(), 4)

    def test_tab_helpers(self):
        tab = Tab(id="t1", panel_id="p1", cards=[Card(id="a"), Card(id="b")])

        self.assertTrue(tab.is_untitled)
        self.assertEqual(tab.find_card("b").id, "b")
        self.assertIsNone(tab.find_card("zzz"))

    def test_open_outcome_ok(self):
        self.assertTrue(OpenTabOutcome(status=OpenStatus.OPENED, panel_id="p").ok)
        self.assertTrue(OpenTabOutcome(status=OpenStatus.ACTIVATED, panel_id="p").ok)
        self.assertFalse(OpenTabOutcome(status=OpenStatus.DENIED, panel_id="p").ok)


class TestNumbering(unittest.TestCase):
    """Test display code parsing and generation."""

    def setUp(self):
        self.cards = [
            Card(id="1", card_id="REQ-001"),
            Card(id="2", card_id="REQ-007"),
            Card(id="3", card_id="TST-020"),
            Card(id="4"),
        ]

    def test_parse_card_id(self):
        self.assertEqual(parse_card_id("REQ-001"), ("REQ", 1))
        self.assertEqual(parse_card_id("SYS-REQ-012"), ("SYS-REQ", 12))
        self.assertEqual(parse_card_id("042"), ("", 42))
        self.assertIsNone(parse_card_id("no-number-here"))
        self.assertIsNone(parse_card_id(None))
        self.assertIsNone(parse_card_id(""))

    def test_find_max_card_number(self):
        self.assertEqual(find_max_card_number(self.cards), 20)
        self.assertEqual(find_max_card_number(self.cards, "REQ"), 7)
        self.assertEqual(find_max_card_number(self.cards, "NONE"), 0)

    def test_most_common_prefix(self):
        self.assertEqual(get_most_common_prefix(self.cards), "REQ")
        self.assertEqual(get_most_common_prefix([Card(id="x")]), "")

    def test_generate_card_ids(self):
        self.assertEqual(generate_card_ids(self.cards, 3), ["REQ-008", "REQ-009", "REQ-010"])
        self.assertEqual(generate_card_ids(self.cards, 1, preferred_prefix="TST"), ["TST-021"])
        self.assertEqual(generate_next_card_id([], digits=4), "0001")
        self.assertEqual(generate_card_ids(self.cards, 0), [])

    def test_is_card_id_duplicate(self):
        self.assertTrue(is_card_id_duplicate(self.cards, "REQ-001"))
        self.assertFalse(is_card_id_duplicate(self.cards, "REQ-001", exclude_id="1"))
        self.assertFalse(is_card_id_duplicate(self.cards, "REQ-999"))
        self.assertFalse(is_card_id_duplicate(self.cards, ""))


class TestTimestamps(unittest.TestCase):

    def test_naive_timestamps_are_utc(self):
        card = Card(id="a", created_at=datetime(2024, 1, 1), updated_at=datetime(2024, 1, 2, 8, 30))

        self.assertEqual(card.created_at, datetime(2024, 1, 1, tzinfo=timezone.utc))
        self.assertEqual(card.updated_at.tzinfo, timezone.utc)

    def test_explicit_timestamp_kept(self):
        moment = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        card = Card(id="a", created_at=moment, updated_at=moment)
        self.assertEqual(card.created_at, moment)


if __name__ == '__main__':
    unittest.main()

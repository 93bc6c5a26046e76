#!/usr/bin/env python3
"""
cardtree - Hierarchical Card-Tree Engine

Command-line entry point. Loads a card file (or the built-in mock document)
into a workspace panel, prints its outline and a status summary, and can
write the normalized document back out.
"""

import logging
import sys
import argparse
from collections import Counter
from typing import Dict, Sequence

from cardtree.config import config
from cardtree.history import DuckDBHistoryRecorder
from cardtree.importers import CardFileImporter, MockImporter, save_card_file
from cardtree.models import Card, CardStatus, Tab
from cardtree.workspace import WorkspaceManager


def setup_logging():
    """Configure logging for the application."""
    level = getattr(logging, config.get("logging.level", "INFO").upper())
    format_str = config.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = config.log_filename

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file)
        ]
    )


def format_outline(tab: Tab) -> str:
    """
    Render a tab's cards as an indented outline.

    Collapsed cards hide their descendants.

    Args:
        tab: The tab to render

    Returns:
        One line per visible card
    """
    lines = []
    hidden_below = None
    for card in tab.cards:
        if hidden_below is not None:
            if card.level > hidden_below:
                continue
            hidden_below = None
        marker = "-"
        if card.child_ids:
            expanded = card.id in tab.expanded_card_ids
            marker = "v" if expanded else ">"
            if not expanded:
                hidden_below = card.level
        code = f"[{card.card_id}] " if card.card_id else ""
        lines.append(f"{'  ' * card.level}{marker} {code}{card.title or '(untitled)'} ({card.kind.value}, {card.status.value})")
    return "\n".join(lines)


def summarize_cards(cards: Sequence[Card]) -> Dict[str, int]:
    """
    Count cards per status plus cards missing a left or right trace.

    Deprecated cards are not counted as untraced.
    """
    summary = {status.value: 0 for status in CardStatus}
    summary.update(Counter(card.status.value for card in cards))
    active = [card for card in cards if card.status != CardStatus.DEPRECATED]
    summary["untraced_left"] = sum(1 for card in active if not card.has_left_trace)
    summary["untraced_right"] = sum(1 for card in active if not card.has_right_trace)
    summary["total"] = len(cards)
    return summary


def run(importer_name: str, file_path: str = None, history_db: str = None, save_path: str = None) -> Tab:
    """
    Load cards into a fresh workspace and print the result.

    Args:
        importer_name: "mock" or "file"
        file_path: Card file path (required for the file importer)
        history_db: DuckDB file to record history into (optional)
        save_path: Where to write the normalized document (optional)

    Returns:
        The opened tab
    """
    if importer_name == "file":
        if not file_path:
            raise ValueError("--file is required for the file importer")
        importer = CardFileImporter(file_path)
        file_name = file_path
    else:
        importer = MockImporter()
        file_name = "mock_requirements.json"

    cards = importer.get_all_cards()

    recorder = None
    if history_db:
        recorder = DuckDBHistoryRecorder(history_db)
        recorder.connect()
        recorder.initialize_database()

    try:
        workspace = WorkspaceManager(history_recorder=recorder)
        panel = workspace.create_panel("main")
        outcome = workspace.open_tab(panel.id, file_name, cards)
        tab = workspace.get_tab(outcome.tab_id)

        print(format_outline(tab))
        print()
        for key, value in summarize_cards(tab.cards).items():
            print(f"{key:>15}: {value}")

        if save_path:
            save_card_file(save_path, tab.cards)
            print(f"\nSaved normalized document to {save_path}")

        return tab
    finally:
        if recorder is not None:
            recorder.disconnect()


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="cardtree - Hierarchical Card-Tree Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                   # Show the built-in mock document
  python main.py --importer file --file cards.json # Show a card file
  python main.py --importer file --file cards.json --save normalized.json
        """
    )

    parser.add_argument(
        "--importer",
        choices=["mock", "file"],
        default="mock",
        help="Card source to use (default: mock)"
    )

    parser.add_argument(
        "--file",
        type=str,
        help="Path to a JSON card file (required for the file importer)"
    )

    parser.add_argument(
        "--history-db",
        type=str,
        help="DuckDB file for card version history"
    )

    parser.add_argument(
        "--save",
        type=str,
        help="Write the normalized document to this path"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="cardtree 0.1.0"
    )

    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_arguments()
    setup_logging()

    logging.info("cardtree - Hierarchical Card-Tree Engine")

    try:
        run(args.importer, args.file, args.history_db, args.save)
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        print("\nInterrupted.")
    except Exception as e:
        logging.error(f"Run failed: {e}")
        print(f"\nRun failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

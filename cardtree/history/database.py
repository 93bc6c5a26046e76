"""
DuckDB-backed history recorder for cardtree.

This module stores card version records in a DuckDB database so that the
per-card history survives across sessions.
"""

import duckdb
import logging
from typing import List, Optional

from ..config import config
from ..models import CardHistory, CardVersion
from .recorder import BaseHistoryRecorder


class DuckDBHistoryRecorder(BaseHistoryRecorder):
    """
    Persists card version histories in a DuckDB database.
    """

    def __init__(self, db_path: Optional[str] = None, max_versions: Optional[int] = None):
        """
        Initialize the recorder.

        Args:
            db_path: Path to the DuckDB database file (defaults to history.database)
            max_versions: Versions kept per card (defaults to history.max_versions)
        """
        self.db_path = db_path or config.history_database
        self.max_versions = max_versions if max_versions is not None else config.history_max_versions
        self.connection = None

    def connect(self):
        """Establish connection to the database."""
        self.connection = duckdb.connect(self.db_path)

    def disconnect(self):
        """Close the database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        self.initialize_database()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()

    def initialize_database(self):
        """
        Create the version table if it doesn't exist.
        """
        if not self.connection:
            raise RuntimeError("Database connection not established")

        self.connection.execute("CREATE SEQUENCE IF NOT EXISTS card_version_seq;")
        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS card_versions (
                seq BIGINT PRIMARY KEY DEFAULT nextval('card_version_seq'),
                version_id VARCHAR NOT NULL,
                file_name VARCHAR NOT NULL,
                card_id VARCHAR NOT NULL,
                operation VARCHAR NOT NULL,
                recorded_at VARCHAR NOT NULL,
                version_json TEXT NOT NULL
            )
        """)

    def append_version(self, file_name: str, card_id: str, version: CardVersion) -> CardHistory:
        """
        Append a version and trim the card's history to max_versions.
        """
        if not self.connection:
            raise RuntimeError("Database connection not established")

        self.connection.execute("""
            INSERT INTO card_versions (version_id, file_name, card_id, operation, recorded_at, version_json)
            VALUES (?, ?, ?, ?, ?, ?)
        """, [
            version.version_id,
            file_name,
            card_id,
            version.operation.value,
            version.timestamp.isoformat(),
            version.model_dump_json()
        ])

        self.connection.execute(f"""
            DELETE FROM card_versions
            WHERE file_name = ? AND card_id = ?
              AND seq NOT IN (
                SELECT seq FROM card_versions
                WHERE file_name = ? AND card_id = ?
                ORDER BY seq DESC
                LIMIT {int(self.max_versions)}
              )
        """, [file_name, card_id, file_name, card_id])

        logging.debug(f"Recorded {version.operation.value} version for card {card_id} in {file_name}")
        return self.load_history(file_name, card_id)

    def load_history(self, file_name: str, card_id: str) -> CardHistory:
        """
        Load a card's versions, oldest first.

        Rows that no longer parse are skipped with a warning.
        """
        if not self.connection:
            raise RuntimeError("Database connection not established")

        rows = self.connection.execute("""
            SELECT version_json FROM card_versions
            WHERE file_name = ? AND card_id = ?
            ORDER BY seq
        """, [file_name, card_id]).fetchall()

        versions: List[CardVersion] = []
        for row in rows:
            try:
                versions.append(CardVersion.model_validate_json(row[0]))
            except ValueError as e:
                logging.warning(f"Skipping unreadable history row for card {card_id} in {file_name}: {e}")

        return CardHistory(card_id=card_id, file_name=file_name, versions=versions)

    def list_card_ids(self, file_name: str) -> List[str]:
        """
        List the cards of a file that have recorded history.
        """
        if not self.connection:
            raise RuntimeError("Database connection not established")

        rows = self.connection.execute("""
            SELECT DISTINCT card_id FROM card_versions
            WHERE file_name = ?
            ORDER BY card_id
        """, [file_name]).fetchall()
        return [row[0] for row in rows]

    def delete_history(self, file_name: str, card_id: str) -> int:
        """
        Delete a card's whole history.

        Returns:
            Number of versions removed
        """
        if not self.connection:
            raise RuntimeError("Database connection not established")

        count = self.connection.execute("""
            SELECT COUNT(*) FROM card_versions WHERE file_name = ? AND card_id = ?
        """, [file_name, card_id]).fetchone()[0]
        self.connection.execute("""
            DELETE FROM card_versions WHERE file_name = ? AND card_id = ?
        """, [file_name, card_id])
        return count

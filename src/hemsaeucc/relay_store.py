"""
HEMSAEUCC - Relay message store.

Durable keyed blob store backing the relay mailbox. One SQLite file holds
a single bucket table mapping composite keys to serialized envelopes:

    <recipient_id>-<timestamp_ns:020d>-<sequence:012d>

Recipient IDs are fixed-width hex, and mailbox scans always use the
separator-terminated prefix ``<recipient_id>-``, so one recipient's scan
can never match another recipient's keys. The sequence number makes keys
unique even when two envelopes for the same recipient share a timestamp.

Thread safety:
- One threading.Lock serializes all use of the shared connection
- Every operation runs in its own BEGIN IMMEDIATE transaction and either
  commits fully or rolls back
"""

import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import (
    ID_HEX_LENGTH,
    RELAY_BUCKET,
    RELAY_KEY_SEPARATOR,
    RELAY_SEQ_WIDTH,
    RELAY_TS_WIDTH,
)
from .errors import ErrorCode, StorageError
from .utils import validate_party_id

logger = logging.getLogger(__name__)


class RelayStore:
    """
    Persistent keyed store for relay envelopes.

    ``put`` and ``scan_prefix_and_delete`` are the storage primitives;
    ``append`` and ``drain`` are the recipient-level operations the relay
    service uses.
    """

    def __init__(self, db_path: Path):
        """
        Open (or create) the store.

        Args:
            db_path: Path to SQLite database file

        Raises:
            StorageError: If the database cannot be opened
        """
        self.db_path = Path(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        self._db_lock = threading.Lock()
        self._seq = 0

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema and seed the key sequence."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._db_lock:
                # Autocommit mode; transactions are opened explicitly
                self.conn = sqlite3.connect(
                    str(self.db_path), check_same_thread=False, isolation_level=None
                )
                self.conn.execute("PRAGMA synchronous = FULL")
                self.conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {RELAY_BUCKET} (
                        key TEXT PRIMARY KEY,
                        value BLOB NOT NULL
                    )
                """
                )
                row = self.conn.execute(
                    f"SELECT MAX(CAST(substr(key, -{RELAY_SEQ_WIDTH}) AS INTEGER)) FROM {RELAY_BUCKET}"
                ).fetchone()
                self._seq = int(row[0] or 0)
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to open relay store {self.db_path}: {e}", exc_info=True)
            raise StorageError(
                ErrorCode.E601_STORE_OPEN_FAILED,
                f"Failed to open relay store: {e}",
                {"path": str(self.db_path)},
            ) from e

        logger.info(f"Relay store opened: {self.db_path}")

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StorageError(ErrorCode.E600_STORAGE_ERROR, "Relay store is closed")
        return self.conn

    def make_key(self, recipient_id: str, ts_ns: Optional[int] = None) -> str:
        """
        Build a unique storage key for an envelope.

        Args:
            recipient_id: Hex recipient ID
            ts_ns: Receive time in nanoseconds (defaults to now)
        """
        if ts_ns is None:
            ts_ns = time.time_ns()
        with self._db_lock:
            self._seq += 1
            seq = self._seq
        return (
            f"{recipient_id}{RELAY_KEY_SEPARATOR}{ts_ns:0{RELAY_TS_WIDTH}d}"
            f"{RELAY_KEY_SEPARATOR}{seq:0{RELAY_SEQ_WIDTH}d}"
        )

    def put(self, key: str, value: bytes) -> None:
        """
        Insert or overwrite a value. Durable once this returns.

        Raises:
            StorageError: If the write transaction fails
        """
        with self._db_lock:
            conn = self._require_conn()
            try:
                conn.execute("BEGIN IMMEDIATE")
                conn.execute(
                    f"INSERT OR REPLACE INTO {RELAY_BUCKET} (key, value) VALUES (?, ?)",
                    (key, sqlite3.Binary(value)),
                )
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                logger.error(f"Failed to store envelope {key}: {e}", exc_info=True)
                raise StorageError(
                    ErrorCode.E602_WRITE_FAILED, f"Failed to store envelope: {e}", {"key": key}
                ) from e

    def scan_prefix_and_delete(self, prefix: str) -> List[bytes]:
        """
        Remove and return every value whose key starts with ``prefix``.

        Runs in one transaction: either every matching entry is deleted and
        returned, or nothing changes. Values come back in key order.

        Raises:
            StorageError: If the transaction fails
        """
        with self._db_lock:
            conn = self._require_conn()
            try:
                conn.execute("BEGIN IMMEDIATE")
                rows = conn.execute(
                    f"SELECT key, value FROM {RELAY_BUCKET} WHERE substr(key, 1, ?) = ? ORDER BY key",
                    (len(prefix), prefix),
                ).fetchall()
                conn.executemany(
                    f"DELETE FROM {RELAY_BUCKET} WHERE key = ?", [(row[0],) for row in rows]
                )
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                logger.error(f"Failed to drain prefix {prefix!r}: {e}", exc_info=True)
                raise StorageError(
                    ErrorCode.E603_DRAIN_FAILED, f"Failed to drain envelopes: {e}", {"prefix": prefix}
                ) from e

        if rows:
            logger.debug(f"Drained {len(rows)} envelopes for prefix {prefix!r}")
        return [bytes(row[1]) for row in rows]

    def append(self, recipient_id: str, value: bytes) -> str:
        """
        Store an envelope in a recipient's mailbox.

        Returns:
            The key the envelope was stored under

        Raises:
            ValueError: If recipient_id is not a fixed-width hex ID
            StorageError: If the write fails
        """
        self._check_recipient(recipient_id)
        key = self.make_key(recipient_id)
        self.put(key, value)
        return key

    def drain(self, recipient_id: str) -> List[bytes]:
        """
        Atomically remove and return all envelopes for a recipient.

        Raises:
            ValueError: If recipient_id is not a fixed-width hex ID
            StorageError: If the transaction fails
        """
        self._check_recipient(recipient_id)
        return self.scan_prefix_and_delete(recipient_id + RELAY_KEY_SEPARATOR)

    def count(self, prefix: str = "") -> int:
        """Count stored entries whose key starts with ``prefix``."""
        with self._db_lock:
            conn = self._require_conn()
            try:
                row = conn.execute(
                    f"SELECT COUNT(*) FROM {RELAY_BUCKET} WHERE substr(key, 1, ?) = ?",
                    (len(prefix), prefix),
                ).fetchone()
            except sqlite3.Error as e:
                raise StorageError(ErrorCode.E600_STORAGE_ERROR, f"Failed to count envelopes: {e}") from e
        return row[0]

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get store statistics.

        Returns:
            Dictionary with total pending envelopes and recipients
        """
        with self._db_lock:
            conn = self._require_conn()
            try:
                total = conn.execute(f"SELECT COUNT(*) FROM {RELAY_BUCKET}").fetchone()[0]
                recipients = conn.execute(
                    f"SELECT COUNT(DISTINCT substr(key, 1, ?)) FROM {RELAY_BUCKET}",
                    (ID_HEX_LENGTH,),
                ).fetchone()[0]
            except sqlite3.Error as e:
                raise StorageError(ErrorCode.E600_STORAGE_ERROR, f"Failed to read statistics: {e}") from e

        return {"pending": total, "recipients": recipients, "path": str(self.db_path)}

    @staticmethod
    def _check_recipient(recipient_id: str) -> None:
        if not validate_party_id(recipient_id):
            raise ValueError(f"recipient ID must be {ID_HEX_LENGTH} lowercase hex characters")

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        try:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")

    def close(self) -> None:
        """Close database connection."""
        with self._db_lock:
            if self.conn:
                self.conn.close()
                self.conn = None
                logger.debug("Relay store closed")

    def __enter__(self) -> "RelayStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

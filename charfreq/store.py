"""StatStore — SQLite-backed aggregate of character counts.

Rows are keyed by (repository, extension bucket, character). Two write
patterns are supported:

* ``replace_bucket`` drops a bucket's aggregate and installs a new one in a
  single transaction, so readers see either the old or the new counts.
* ``merge_add`` / ``merge_counts`` add to existing counts, for callers that
  stream per-file results straight into storage.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path

from charfreq.errors import StorageError

_SCHEMA = """
CREATE TABLE IF NOT EXISTS repositories (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    url         TEXT UNIQUE NOT NULL,
    created_at  TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS buckets (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    extension   TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS char_frequencies (
    repository_id  INTEGER NOT NULL,
    bucket_id      INTEGER NOT NULL,
    character      TEXT NOT NULL,
    frequency      INTEGER NOT NULL,

    PRIMARY KEY (repository_id, bucket_id, character),
    FOREIGN KEY (repository_id) REFERENCES repositories(id),
    FOREIGN KEY (bucket_id) REFERENCES buckets(id),
    CHECK (frequency >= 0)
);
"""

_UPSERT = """
INSERT INTO char_frequencies (repository_id, bucket_id, character, frequency)
VALUES (?, ?, ?, ?)
ON CONFLICT (repository_id, bucket_id, character)
DO UPDATE SET frequency = frequency + excluded.frequency
"""


class StatStore:
    """Durable (repository, bucket, character) -> count store.

    Every call opens its own connection, so one instance can be shared
    between threads. Writes run in ``BEGIN IMMEDIATE`` transactions;
    ``replace_bucket`` additionally holds a per-bucket lock so two
    recomputations of the same bucket never interleave in this process.
    """

    def __init__(self, path: Path | str, timeout: float = 30.0) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()
        try:
            conn = self._connect()
            try:
                conn.executescript(_SCHEMA)
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot initialise database {self.path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.path), timeout=self.timeout, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside an immediate write transaction.

        Commits on success, rolls back on any exception. ``sqlite3.Error``
        surfaces as ``StorageError``.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open database {self.path}: {exc}") from exc
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            raise StorageError(f"Database write failed: {exc}") from exc
        finally:
            conn.close()

    def _bucket_lock(self, repository: str, bucket: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault((repository, bucket), threading.Lock())

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_repository(conn: sqlite3.Connection, repository: str) -> int:
        conn.execute("INSERT OR IGNORE INTO repositories (url) VALUES (?)", (repository,))
        row = conn.execute("SELECT id FROM repositories WHERE url = ?", (repository,)).fetchone()
        return int(row[0])

    @staticmethod
    def _ensure_bucket(conn: sqlite3.Connection, bucket: str) -> int:
        conn.execute("INSERT OR IGNORE INTO buckets (extension) VALUES (?)", (bucket,))
        row = conn.execute("SELECT id FROM buckets WHERE extension = ?", (bucket,)).fetchone()
        return int(row[0])

    def ensure_repository(self, repository: str) -> int:
        """Return the id of *repository*, creating the row if needed.

        Safe to call concurrently: a caller that loses the insert race
        reads back the winner's row.
        """
        with self._transaction() as conn:
            return self._ensure_repository(conn, repository)

    def ensure_bucket(self, bucket: str) -> int:
        """Return the id of *bucket*, creating the row if needed."""
        with self._transaction() as conn:
            return self._ensure_bucket(conn, bucket)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, repository: str, bucket: str) -> dict[str, int]:
        """Return the aggregate stored for (*repository*, *bucket*).

        An empty dict means nothing has been computed for that pair.

        Raises:
            StorageError: If the database cannot be read.
        """
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    """
                    SELECT f.character, f.frequency
                    FROM char_frequencies f
                    JOIN repositories r ON f.repository_id = r.id
                    JOIN buckets b ON f.bucket_id = b.id
                    WHERE r.url = ? AND b.extension = ?
                    """,
                    (repository, bucket),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StorageError(f"Database read failed: {exc}") from exc
        return {char: int(freq) for char, freq in rows}

    def buckets(self, repository: str) -> list[str]:
        """Return the buckets holding statistics for *repository*, sorted."""
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    """
                    SELECT DISTINCT b.extension
                    FROM char_frequencies f
                    JOIN repositories r ON f.repository_id = r.id
                    JOIN buckets b ON f.bucket_id = b.id
                    WHERE r.url = ?
                    ORDER BY b.extension
                    """,
                    (repository,),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StorageError(f"Database read failed: {exc}") from exc
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def merge_add(self, repository: str, bucket: str, character: str, delta: int) -> None:
        """Add *delta* to the count of *character*, creating it if absent.

        Raises:
            ValueError: If *character* is not a single code point or
                *delta* is negative.
            StorageError: If the write fails.
        """
        self.merge_counts(repository, bucket, {character: delta})

    def merge_counts(self, repository: str, bucket: str, counts: Mapping[str, int]) -> None:
        """Add every count in *counts* to the bucket in one transaction."""
        _validate(counts)
        with self._transaction() as conn:
            repo_id = self._ensure_repository(conn, repository)
            bucket_id = self._ensure_bucket(conn, bucket)
            conn.executemany(
                _UPSERT,
                [(repo_id, bucket_id, char, count) for char, count in counts.items()],
            )

    def replace_bucket(self, repository: str, bucket: str, aggregate: Mapping[str, int]) -> None:
        """Replace the stored aggregate for (*repository*, *bucket*).

        Identity rows are created if missing, the old entries are deleted and
        *aggregate* is inserted, all in one transaction.

        Raises:
            StorageError: If any phase fails; the previous aggregate is kept.
        """
        _validate(aggregate)
        with self._bucket_lock(repository, bucket), self._transaction() as conn:
            repo_id = self._ensure_repository(conn, repository)
            bucket_id = self._ensure_bucket(conn, bucket)
            conn.execute(
                "DELETE FROM char_frequencies WHERE repository_id = ? AND bucket_id = ?",
                (repo_id, bucket_id),
            )
            conn.executemany(
                _UPSERT,
                [(repo_id, bucket_id, char, count) for char, count in aggregate.items()],
            )


def _validate(counts: Mapping[str, int]) -> None:
    for char, count in counts.items():
        if not isinstance(char, str) or len(char) != 1:
            raise ValueError(f"Expected a single character, got {char!r}")
        if count < 0:
            raise ValueError(f"Negative count {count} for {char!r}")

"""DuckDB-backed persistence for StoryChain.

One embedded DuckDB connection holds every durable table (users, rooms,
stories, hearts, themes, featured picks, password analyses). The service
follows the singleton pattern so that the whole process shares a single
connection.

Thread Safety:
    A DuckDB connection is NOT safe for concurrent use. Every statement runs
    under one re-entrant lock, and multi-statement writes go through
    ``transaction()``, which holds the lock for the whole BEGIN/COMMIT span.
    That lock is what serializes per-chain sequence allocation.

Usage:
    db = Database.get_instance()
    with db.transaction() as conn:
        conn.execute("INSERT ...", [...])
    rows = db.fetchall("SELECT ...", [...])
"""
import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

import duckdb

from storychain.config import get_config

logger = logging.getLogger(__name__)

_SCHEMA = [
    "CREATE SEQUENCE IF NOT EXISTS themes_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS featured_picks_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS password_analyses_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS users (
        id                  VARCHAR PRIMARY KEY,
        username            VARCHAR NOT NULL,
        email               VARCHAR NOT NULL,
        password_hash       VARCHAR NOT NULL,
        role                VARCHAR NOT NULL DEFAULT 'community',
        status              VARCHAR NOT NULL DEFAULT 'pending',
        contributions_count INTEGER NOT NULL DEFAULT 0,
        experience_points   INTEGER NOT NULL DEFAULT 0,
        level               INTEGER NOT NULL DEFAULT 1,
        hearts_received     INTEGER NOT NULL DEFAULT 0,
        badges              VARCHAR[],
        created_at          TIMESTAMP NOT NULL,
        updated_at          TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rooms (
        id          VARCHAR PRIMARY KEY,
        name        VARCHAR NOT NULL,
        code        VARCHAR NOT NULL,
        prompt      VARCHAR,
        is_private  BOOLEAN NOT NULL DEFAULT FALSE,
        is_themed   BOOLEAN NOT NULL DEFAULT FALSE,
        theme       VARCHAR,
        creator_id  VARCHAR NOT NULL,
        created_at  TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stories (
        id          VARCHAR PRIMARY KEY,
        chain_id    BIGINT NOT NULL,
        room_id     VARCHAR,
        content     VARCHAR NOT NULL,
        author_id   VARCHAR NOT NULL,
        author_name VARCHAR NOT NULL,
        sequence    BIGINT NOT NULL,
        hearts      INTEGER NOT NULL DEFAULT 0,
        comments    INTEGER NOT NULL DEFAULT 0,
        created_at  TIMESTAMP NOT NULL,
        UNIQUE (chain_id, sequence)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS hearts (
        story_id   VARCHAR NOT NULL,
        user_id    VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL,
        PRIMARY KEY (story_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS themes (
        id          INTEGER DEFAULT nextval('themes_seq') PRIMARY KEY,
        title       VARCHAR NOT NULL,
        prompt      VARCHAR NOT NULL,
        description VARCHAR,
        created_at  TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS featured_picks (
        id         INTEGER DEFAULT nextval('featured_picks_seq') PRIMARY KEY,
        story_id   VARCHAR NOT NULL,
        reason     VARCHAR NOT NULL,
        picked_by  VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS password_analyses (
        id              INTEGER DEFAULT nextval('password_analyses_seq') PRIMARY KEY,
        hashed_password VARCHAR NOT NULL,
        score           INTEGER NOT NULL,
        strength        VARCHAR NOT NULL,
        feedback        VARCHAR[],
        details         VARCHAR NOT NULL,
        created_at      TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_stories_chain ON stories(chain_id)",
    "CREATE INDEX IF NOT EXISTS idx_stories_room ON stories(room_id)",
]


class Database:
    """Singleton owner of the DuckDB connection and schema.

    Attributes:
        _instance: Singleton instance of the database.
        _db_path: Path to the DuckDB database file (or ``:memory:``).
    """

    _instance: Optional["Database"] = None
    _db_path: str = "storychain.duckdb"

    def __init__(self, db_path: Optional[str] = None) -> None:
        if db_path:
            self._db_path = db_path
        self._lock = threading.RLock()
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialize_db()
        logger.info("[Database] Initialized with db=%s", self._db_path)

    @classmethod
    def get_instance(cls, db_path: Optional[str] = None) -> "Database":
        """Get or create the singleton instance.

        Args:
            db_path: Optional database path (only used on first call).
        """
        if cls._instance is None:
            cls._instance = cls(db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Close the connection and forget the singleton (used by tests)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    @property
    def path(self) -> str:
        return self._db_path

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create every table, sequence and index. Idempotent."""
        with self._lock:
            conn = self._get_connection()
            for statement in _SCHEMA:
                conn.execute(statement)

    # -----------------------------------------------------------------------
    # Statement helpers
    # -----------------------------------------------------------------------

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        with self._lock:
            self._get_connection().execute(sql, params or [])

    def fetchone(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[tuple]:
        with self._lock:
            return self._get_connection().execute(sql, params or []).fetchone()

    def fetchall(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[tuple]:
        with self._lock:
            return self._get_connection().execute(sql, params or []).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Run a block of statements atomically.

        Holds the connection lock for the whole transaction, so two callers
        can never interleave their reads and writes. Rolls back and re-raises
        on any exception.
        """
        with self._lock:
            conn = self._get_connection()
            conn.execute("BEGIN TRANSACTION")
            try:
                yield conn
            except Exception:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None


def get_database() -> Database:
    """Return the shared database, opened at the configured path."""
    return Database.get_instance(get_config().database.path)

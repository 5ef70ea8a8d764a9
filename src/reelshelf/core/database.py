"""SQLite persistence for library records, collections and settings."""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, List, Tuple, Union

from reelshelf.models.collection import Collection
from reelshelf.models.record import MetadataRecord
from reelshelf.utils.logger import get_logger

logger = get_logger(__name__)

Entity = Union[MetadataRecord, Collection]


class StorageError(Exception):
    """The database rejected a read or write."""

    pass


class LibraryDatabase:
    """SQLite database backing the collection store.

    Implements the store's persistence contract (``load_all``, ``persist``,
    ``remove``) plus a small key/value table for user preferences.
    """

    def __init__(self, db_path: Path):
        """Initialize database.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS movies (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    year INTEGER,
                    director TEXT,
                    plot TEXT,
                    genre TEXT,
                    actors TEXT,
                    language TEXT,
                    country TEXT,
                    awards TEXT,
                    runtime TEXT,
                    external_ref TEXT,
                    poster_ref TEXT,
                    poster_bytes BLOB,
                    barcode TEXT,
                    date_added TEXT NOT NULL,
                    is_wanted INTEGER NOT NULL DEFAULT 0,
                    user_rating INTEGER,
                    position INTEGER NOT NULL
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS collections (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    date_created TEXT NOT NULL,
                    color TEXT,
                    icon TEXT,
                    movie_ids TEXT NOT NULL DEFAULT '[]',
                    position INTEGER NOT NULL
                )
            """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """
            )

            conn.execute("CREATE INDEX IF NOT EXISTS idx_movies_position ON movies(position)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_movies_barcode ON movies(barcode)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_collections_position ON collections(position)"
            )

            conn.commit()

        logger.info("Library database initialized", db_path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection context manager."""
        try:
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error("Database operation failed", db_path=str(self.db_path), error=str(e))
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def load_all(self) -> Tuple[List[MetadataRecord], List[Collection]]:
        """Load every record and collection in insertion order.

        Returns:
            (records, collections)
        """
        with self._get_connection() as conn:
            movie_rows = conn.execute("SELECT * FROM movies ORDER BY position ASC").fetchall()
            collection_rows = conn.execute(
                "SELECT * FROM collections ORDER BY position ASC"
            ).fetchall()

        records = [MetadataRecord.from_db_dict(_without_position(row)) for row in movie_rows]
        collections = [Collection.from_db_dict(_without_position(row)) for row in collection_rows]

        logger.debug(
            "Loaded library from database",
            records=len(records),
            collections=len(collections),
        )
        return records, collections

    def persist(self, entity: Entity) -> None:
        """Insert or replace a record or collection.

        An existing row keeps its position, so replacing an entity doesn't
        move it in the materialized order.

        Args:
            entity: MetadataRecord or Collection
        """
        if isinstance(entity, MetadataRecord):
            table = "movies"
        elif isinstance(entity, Collection):
            table = "collections"
        else:
            raise TypeError(f"Cannot persist {type(entity).__name__}")

        data = entity.to_db_dict()

        with self._get_connection() as conn:
            row = conn.execute(f"SELECT position FROM {table} WHERE id = ?", (data["id"],)).fetchone()
            if row:
                data["position"] = row["position"]
            else:
                next_row = conn.execute(
                    f"SELECT COALESCE(MAX(position), -1) + 1 AS next FROM {table}"
                ).fetchone()
                data["position"] = next_row["next"]

            columns = ", ".join(data.keys())
            placeholders = ", ".join(["?" for _ in data])
            conn.execute(
                f"INSERT OR REPLACE INTO {table} ({columns}) VALUES ({placeholders})",
                list(data.values()),
            )
            conn.commit()

        logger.debug("Persisted entity", table=table, entity_id=data["id"])

    def remove(self, entity_id: str) -> None:
        """Delete a record or collection by id. Missing ids are ignored.

        Args:
            entity_id: Record or collection id
        """
        with self._get_connection() as conn:
            conn.execute("DELETE FROM movies WHERE id = ?", (entity_id,))
            conn.execute("DELETE FROM collections WHERE id = ?", (entity_id,))
            conn.commit()

        logger.debug("Removed entity", entity_id=entity_id)

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Read a JSON-encoded setting.

        Args:
            key: Setting name
            default: Returned when the key was never saved

        Returns:
            Decoded value or default
        """
        with self._get_connection() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()

        if row is None:
            return default
        return json.loads(row["value"])

    def set_setting(self, key: str, value: Any) -> None:
        """Write a JSON-encodable setting."""
        with self._get_connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, json.dumps(value)),
            )
            conn.commit()

    def get_settings(self) -> dict:
        """Read every saved setting."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT key, value FROM settings").fetchall()
        return {row["key"]: json.loads(row["value"]) for row in rows}


def _without_position(row: sqlite3.Row) -> dict:
    data = dict(row)
    data.pop("position", None)
    return data

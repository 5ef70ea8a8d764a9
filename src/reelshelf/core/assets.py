"""Two-tier cache for poster images keyed by remote URL."""

import sqlite3
import time
from collections import OrderedDict
from pathlib import Path
from typing import Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)


class AssetDiskStore:
    """SQLite blob table used as the durable cache tier (unbounded)."""

    def __init__(self, db_path: Path):
        """Initialize store with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._init_db()
        logger.info("Initialized asset store", db_path=str(self.db_path))

    def _init_db(self):
        """Initialize database schema if not exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS assets (
                    key TEXT PRIMARY KEY,
                    data BLOB NOT NULL,
                    size INTEGER NOT NULL,
                    created_at INTEGER NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[bytes]:
        conn = sqlite3.connect(str(self.db_path))
        try:
            row = conn.execute("SELECT data FROM assets WHERE key = ?", (key,)).fetchone()
            return bytes(row[0]) if row else None
        finally:
            conn.close()

    def put(self, key: str, data: bytes):
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO assets (key, data, size, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (key, sqlite3.Binary(data), len(data), int(time.time())),
            )
            conn.commit()
        finally:
            conn.close()

    def clear(self) -> int:
        """Remove every entry.

        Returns:
            Number of entries removed
        """
        conn = sqlite3.connect(str(self.db_path))
        try:
            cursor = conn.execute("DELETE FROM assets")
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def stats(self) -> dict:
        """Entry count and total size in bytes."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            count, total = conn.execute(
                "SELECT COUNT(*), COALESCE(SUM(size), 0) FROM assets"
            ).fetchone()
            return {"entries": count, "bytes": total}
        finally:
            conn.close()


class AssetCache:
    """Poster cache: bounded in-memory LRU in front of a durable store.

    Reads promote durable hits into memory. Writes go to both tiers. A blob
    bigger than the whole memory budget is only written to disk.
    """

    def __init__(
        self,
        disk: AssetDiskStore,
        max_entries: int = 100,
        max_bytes: int = 50 * 1024 * 1024,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        """Initialize cache.

        Args:
            disk: Durable tier
            max_entries: Memory tier entry limit
            max_bytes: Memory tier byte budget
            client: HTTP client for downloads (created if omitted)
            timeout: Download timeout for the created client
        """
        self.disk = disk
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._memory: "OrderedDict[str, bytes]" = OrderedDict()
        self._memory_bytes = 0
        # Bumped by clear(); downloads started under an older epoch aren't cached
        self._epoch = 0

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    def get(self, key: str) -> Optional[bytes]:
        """Look up a blob in memory, then on disk.

        Args:
            key: Remote URL

        Returns:
            Cached bytes or None on a miss in both tiers
        """
        data = self._memory.get(key)
        if data is not None:
            self._memory.move_to_end(key)
            logger.debug("Asset memory hit", key=key)
            return data

        data = self.disk.get(key)
        if data is not None:
            logger.debug("Asset disk hit", key=key)
            self._remember(key, data)
            return data

        logger.debug("Asset cache miss", key=key)
        return None

    def put(self, key: str, data: bytes):
        """Write a blob to both tiers."""
        self.disk.put(key, data)
        self._remember(key, data)

    async def fetch_and_cache(self, key: Optional[str]) -> Optional[bytes]:
        """Return cached bytes, downloading and caching them on a miss.

        Download failures are logged and return None; a missing poster is
        not an error.

        Args:
            key: Remote URL (None/blank/"N/A" returns None)

        Returns:
            Image bytes or None
        """
        if not key or key.strip() in ("", "N/A"):
            return None

        if (cached := self.get(key)) is not None:
            return cached

        epoch = self._epoch
        try:
            response = await self.client.get(key)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to download poster", url=key, error=str(e))
            return None

        data = response.content
        if epoch != self._epoch:
            logger.debug("Cache cleared during download, not caching", url=key)
            return data

        self.put(key, data)
        logger.info("Downloaded poster", url=key, size=len(data))
        return data

    def clear(self) -> int:
        """Empty both tiers.

        Returns:
            Number of durable entries removed
        """
        self._epoch += 1
        self._memory.clear()
        self._memory_bytes = 0
        removed = self.disk.clear()
        logger.info("Asset cache cleared", removed=removed)
        return removed

    def stats(self) -> dict:
        """Entry counts and byte totals per tier."""
        return {
            "memory": {"entries": len(self._memory), "bytes": self._memory_bytes},
            "disk": self.disk.stats(),
        }

    def _remember(self, key: str, data: bytes):
        """Insert into the memory tier and evict least-recently-used entries."""
        if key in self._memory:
            self._memory_bytes -= len(self._memory.pop(key))

        if len(data) > self.max_bytes:
            return

        self._memory[key] = data
        self._memory_bytes += len(data)

        while len(self._memory) > self.max_entries or self._memory_bytes > self.max_bytes:
            evicted_key, evicted = self._memory.popitem(last=False)
            self._memory_bytes -= len(evicted)
            logger.debug("Evicted asset from memory", key=evicted_key)

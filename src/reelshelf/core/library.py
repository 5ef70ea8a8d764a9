"""Library service: ties lookups, normalization, storage and queries together."""

from typing import List, Optional

import structlog

from reelshelf.config import Config
from reelshelf.core.assets import AssetCache, AssetDiskStore
from reelshelf.core.database import LibraryDatabase
from reelshelf.core.query import LibraryQuery, QueryEngine
from reelshelf.core.store import CollectionStore
from reelshelf.metadata.barcode import BarcodeScan, parse_barcode
from reelshelf.metadata.errors import NotConfiguredError
from reelshelf.metadata.normalizer import RecordNormalizer
from reelshelf.metadata.omdb import OMDBClient
from reelshelf.metadata.tmdb import TMDBClient
from reelshelf.models.provider import MovieSummary
from reelshelf.models.record import MetadataRecord
from reelshelf.models.settings import Preferences

logger = structlog.get_logger(__name__)


class LookupGeneration:
    """Monotonic counter used to drop results of superseded lookups.

    Each lookup takes a token when it starts; when it completes, the caller
    only applies the result if the token is still current.
    """

    def __init__(self):
        self._current = 0

    def next(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current


class LibraryService:
    """Orchestrates the ingestion pipeline and library browsing."""

    def __init__(
        self,
        store: CollectionStore,
        assets: AssetCache,
        omdb_client: Optional[OMDBClient] = None,
        tmdb_client: Optional[TMDBClient] = None,
        normalizer: Optional[RecordNormalizer] = None,
    ):
        """Initialize library service.

        Args:
            store: Record and collection store (loaded by the caller)
            assets: Poster cache
            omdb_client: Title/id lookup provider (None if not available)
            tmdb_client: Search/popularity provider (None if not available)
            normalizer: Record normalizer (default image base URL if omitted)
        """
        self.store = store
        self.assets = assets
        self.omdb_client = omdb_client
        self.tmdb_client = tmdb_client
        self.normalizer = normalizer or RecordNormalizer()
        self.query_engine = QueryEngine()
        self.lookups = LookupGeneration()

    async def close(self):
        """Close every HTTP client owned by the service."""
        for client in (self.omdb_client, self.tmdb_client, self.assets):
            if client is not None:
                await client.close()

    # Stale-result handling

    def begin_lookup(self) -> int:
        """Start a lookup and get its generation token."""
        return self.lookups.next()

    def is_current(self, token: int) -> bool:
        """Whether a lookup started with ``token`` is still the latest."""
        return self.lookups.is_current(token)

    # Remote search

    async def search_remote(self, query: str, page: int = 1) -> List[MovieSummary]:
        return await self._tmdb().search_movies(query, page=page)

    async def popular(self, page: int = 1) -> List[MovieSummary]:
        return await self._tmdb().popular_movies(page=page)

    async def get_remote(self, tmdb_id: int, is_wanted: bool = False) -> MetadataRecord:
        """Fetch a TMDB movie by id and normalize it."""
        summary = await self._tmdb().get_movie(tmdb_id)
        return self.normalizer.normalize(summary, is_wanted=is_wanted)

    def from_summary(self, summary: MovieSummary, is_wanted: bool = False) -> MetadataRecord:
        """Normalize a search/popularity result the user picked."""
        return self.normalizer.normalize(summary, is_wanted=is_wanted)

    # Lookups (provider errors propagate unchanged)

    async def lookup_title(self, title: str, is_wanted: bool = False) -> MetadataRecord:
        """Look up a title on OMDB and normalize the result.

        Args:
            title: Movie title
            is_wanted: Wishlist flag for the new record

        Returns:
            Normalized record, not yet stored
        """
        response = await self._omdb().search_by_title(title)
        return self.normalizer.normalize(response, is_wanted=is_wanted)

    async def lookup_imdb_id(self, imdb_id: str, is_wanted: bool = False) -> MetadataRecord:
        response = await self._omdb().search_by_imdb_id(imdb_id)
        return self.normalizer.normalize(response, is_wanted=is_wanted)

    async def lookup_barcode(
        self,
        code: str,
        title_hint: Optional[str] = None,
        is_wanted: bool = False,
    ) -> MetadataRecord:
        """Build a record for a scanned code.

        With a title hint the title is looked up on OMDB and the barcode is
        stamped on the result. Without one the record is the barcode
        placeholder, which the user can edit later.

        Args:
            code: Scanned code
            title_hint: Title typed or read from the packaging
            is_wanted: Wishlist flag for the new record

        Returns:
            Normalized record, not yet stored

        Raises:
            InvalidBarcodeError: Empty code or bad check digit
        """
        scan: BarcodeScan = parse_barcode(code)

        existing = self.store.find_by_barcode(scan.code)
        if existing:
            logger.info(
                "Barcode already in library",
                barcode=scan.code,
                record_id=existing.id,
                title=existing.title,
            )

        if title_hint and title_hint.strip():
            record = await self.lookup_title(title_hint, is_wanted=is_wanted)
            record.barcode = scan.code
        else:
            record = self.normalizer.normalize(scan, is_wanted=is_wanted)

        logger.info(
            "Resolved barcode",
            barcode=scan.code,
            symbology=scan.symbology.value,
            title=record.title,
        )
        return record

    # Posters

    async def fetch_poster_bytes(self, record: MetadataRecord) -> Optional[bytes]:
        """Download (or read from cache) the poster for a record."""
        return await self.assets.fetch_and_cache(record.poster_ref)

    # Storage

    async def accept(self, record: MetadataRecord, fetch_poster: bool = True) -> MetadataRecord:
        """Store a looked-up record, attaching its poster first if wanted.

        Returns:
            Stored copy

        Raises:
            DuplicateIDError: If the record was already accepted
        """
        if fetch_poster and record.poster_bytes is None and record.poster_ref:
            poster = await self.fetch_poster_bytes(record)
            if poster is not None:
                record = record.model_copy(update={"poster_bytes": poster})

        return self.store.insert(record)

    def browse(self, query: Optional[LibraryQuery] = None) -> List[MetadataRecord]:
        """Run a library query over a fresh snapshot of the store."""
        query = query or LibraryQuery()
        results = self.query_engine.execute(self.store.all_records(), query)
        logger.debug(
            "Browsed library",
            search=query.search,
            filter=query.filter.value,
            sort=query.sort.value,
            result_count=len(results),
        )
        return results

    # Preferences live in the same backend as the library

    def load_preferences(self) -> Preferences:
        return Preferences.load(self.store.persistence)

    def save_preferences(self, preferences: Preferences) -> None:
        """Save preferences; provider changes apply the next time the library opens."""
        preferences.save(self.store.persistence)

    def _omdb(self) -> OMDBClient:
        if self.omdb_client is None:
            raise NotConfiguredError("omdb client not configured")
        return self.omdb_client

    def _tmdb(self) -> TMDBClient:
        if self.tmdb_client is None:
            raise NotConfiguredError("tmdb client not configured")
        return self.tmdb_client


def open_library(config: Config, seed_defaults: bool = True) -> LibraryService:
    """Build a ready-to-use library service from configuration.

    Opens the library database, overlays saved preferences onto the provider
    configuration, loads the store and (optionally) seeds the default
    collections.

    Args:
        config: Application configuration
        seed_defaults: Seed default collections into an empty library

    Returns:
        LibraryService; call ``close()`` when done
    """
    database = LibraryDatabase(config.storage.path)
    config = Preferences.load(database).apply_to(config)

    store = CollectionStore(database)
    store.load()
    if seed_defaults:
        store.seed_default_collections_if_empty()

    assets = AssetCache(
        AssetDiskStore(config.assets.path),
        max_entries=config.assets.max_entries,
        max_bytes=config.assets.max_bytes,
        timeout=config.assets.timeout_seconds,
    )

    logger.info(
        "Opened library",
        database=str(config.storage.path),
        omdb_configured=config.omdb.is_configured,
        tmdb_configured=config.tmdb.is_configured,
    )

    return LibraryService(
        store,
        assets,
        omdb_client=OMDBClient(config.omdb),
        tmdb_client=TMDBClient(config.tmdb),
        normalizer=RecordNormalizer(config.tmdb.image_base_url),
    )

"""In-memory library of records and collections over a persistence backend."""

from typing import Dict, Iterator, List, Optional, Protocol, Tuple, Union

from reelshelf.metadata.barcode import InvalidBarcodeError, parse_barcode
from reelshelf.models.collection import Collection, default_collections
from reelshelf.models.record import MetadataRecord
from reelshelf.utils.logger import get_logger

logger = get_logger(__name__)


class Persistence(Protocol):
    """What the store needs from a storage engine."""

    def load_all(self) -> Tuple[List[MetadataRecord], List[Collection]]: ...

    def persist(self, entity: Union[MetadataRecord, Collection]) -> None: ...

    def remove(self, entity_id: str) -> None: ...


class StoreError(Exception):
    """Base exception for store operations."""

    pass


class DuplicateIDError(StoreError):
    """Insert of an id that is already stored."""

    def __init__(self, entity_id: str):
        super().__init__(f"Duplicate id: {entity_id}")
        self.entity_id = entity_id


class RecordNotFoundError(StoreError):
    """Update or membership change for an id that isn't stored."""

    def __init__(self, entity_id: str):
        super().__init__(f"Not found: {entity_id}")
        self.entity_id = entity_id


def _snapshot(items: Tuple) -> Iterator:
    # Stored objects are replaced, never mutated, so the captured tuple is a
    # consistent view; copies are made as the caller iterates.
    for item in items:
        yield item.model_copy(deep=True)


def _barcode_key(code: str) -> str:
    """Comparable form of a scanned code (GTIN-13 for retail codes)."""
    try:
        scan = parse_barcode(code)
    except InvalidBarcodeError:
        return "".join(code.split())
    return scan.gtin13 or scan.code


class CollectionStore:
    """Canonical set of movie records and collections.

    All calls are expected on one sequential context (the event loop);
    there is no locking. Values go in and come out as copies, so callers
    edit a detached record and hand it back through ``update``.
    """

    def __init__(self, persistence: Persistence):
        """Initialize the store.

        Args:
            persistence: Storage backend (``load_all``/``persist``/``remove``)
        """
        self.persistence = persistence
        self._records: Dict[str, MetadataRecord] = {}
        self._collections: Dict[str, Collection] = {}
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        """Whether ``load`` has completed; distinguishes empty from not-yet-loaded."""
        return self._loaded

    def load(self) -> None:
        """Materialize the library from persistence."""
        records, collections = self.persistence.load_all()
        self._records = {record.id: record for record in records}
        self._collections = {collection.id: collection for collection in collections}
        self._loaded = True
        logger.info(
            "Library loaded",
            records=len(self._records),
            collections=len(self._collections),
        )

    # Records

    def insert(self, record: MetadataRecord) -> MetadataRecord:
        """Add a new record.

        Args:
            record: Record with a caller- or normalizer-assigned id

        Returns:
            Stored copy

        Raises:
            DuplicateIDError: If the id is already present
        """
        if record.id in self._records:
            raise DuplicateIDError(record.id)

        stored = record.model_copy(deep=True)
        self.persistence.persist(stored)
        self._records[stored.id] = stored
        logger.info("Stored movie", record_id=stored.id, title=stored.title)
        return stored.model_copy(deep=True)

    def update(self, record: MetadataRecord) -> MetadataRecord:
        """Replace the stored record with the same id, keeping its position.

        ``date_added`` always keeps the stored value.

        Raises:
            RecordNotFoundError: If no record has this id
        """
        existing = self._records.get(record.id)
        if existing is None:
            raise RecordNotFoundError(record.id)

        stored = record.model_copy(deep=True, update={"date_added": existing.date_added})
        self.persistence.persist(stored)
        self._records[stored.id] = stored
        logger.info("Updated movie", record_id=stored.id, title=stored.title)
        return stored.model_copy(deep=True)

    def delete(self, record_id: str) -> None:
        """Remove a record and drop it from every collection.

        Deleting an unknown id is a no-op.
        """
        if record_id not in self._records:
            logger.debug("Delete of unknown movie ignored", record_id=record_id)
            return

        for collection in list(self._collections.values()):
            if record_id in collection.movie_ids:
                updated = collection.model_copy(
                    deep=True,
                    update={"movie_ids": [m for m in collection.movie_ids if m != record_id]},
                )
                self.persistence.persist(updated)
                self._collections[updated.id] = updated

        self.persistence.remove(record_id)
        del self._records[record_id]
        logger.info("Deleted movie", record_id=record_id)

    def get(self, record_id: str) -> Optional[MetadataRecord]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    def find_by_barcode(self, barcode: str) -> Optional[MetadataRecord]:
        """First record carrying this scanned code, if any.

        UPC and EAN scans of the same product match each other.
        """
        key = _barcode_key(barcode)
        for record in self._records.values():
            if record.barcode and _barcode_key(record.barcode) == key:
                return record.model_copy(deep=True)
        return None

    def all_records(self) -> Iterator[MetadataRecord]:
        """Point-in-time snapshot of every record, in insertion order."""
        return _snapshot(tuple(self._records.values()))

    def counts(self) -> dict:
        """Library totals for badges and stats."""
        records = self._records.values()
        return {
            "total": len(self._records),
            "collected": sum(1 for r in records if not r.is_wanted),
            "wanted": sum(1 for r in records if r.is_wanted),
            "rated": sum(1 for r in records if r.user_rating is not None),
            "collections": len(self._collections),
        }

    # Collections

    def all_collections(self) -> Iterator[Collection]:
        """Point-in-time snapshot of every collection, in insertion order."""
        return _snapshot(tuple(self._collections.values()))

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        collection = self._collections.get(collection_id)
        return collection.model_copy(deep=True) if collection else None

    def insert_collection(self, collection: Collection) -> Collection:
        """Add a new collection.

        Member ids that don't refer to stored records are dropped.

        Raises:
            DuplicateIDError: If the id is already present
        """
        if collection.id in self._collections:
            raise DuplicateIDError(collection.id)

        stored = self._with_known_members(collection)
        self.persistence.persist(stored)
        self._collections[stored.id] = stored
        logger.info("Stored collection", collection_id=stored.id, name=stored.name)
        return stored.model_copy(deep=True)

    def update_collection(self, collection: Collection) -> Collection:
        """Replace a stored collection, keeping ``date_created``.

        Raises:
            RecordNotFoundError: If no collection has this id
        """
        existing = self._collections.get(collection.id)
        if existing is None:
            raise RecordNotFoundError(collection.id)

        stored = self._with_known_members(collection, date_created=existing.date_created)
        self.persistence.persist(stored)
        self._collections[stored.id] = stored
        logger.info("Updated collection", collection_id=stored.id, name=stored.name)
        return stored.model_copy(deep=True)

    def delete_collection(self, collection_id: str) -> None:
        """Remove a collection; its movies stay in the library. Idempotent."""
        if collection_id not in self._collections:
            logger.debug("Delete of unknown collection ignored", collection_id=collection_id)
            return

        self.persistence.remove(collection_id)
        del self._collections[collection_id]
        logger.info("Deleted collection", collection_id=collection_id)

    def add_to_collection(self, collection_id: str, record_id: str) -> Collection:
        """Add a movie to a collection (no-op if already a member).

        Raises:
            RecordNotFoundError: If either id is unknown
        """
        collection = self._require_collection(collection_id)
        if record_id not in self._records:
            raise RecordNotFoundError(record_id)
        if record_id in collection.movie_ids:
            return collection.model_copy(deep=True)

        return self.update_collection(
            collection.model_copy(update={"movie_ids": [*collection.movie_ids, record_id]})
        )

    def remove_from_collection(self, collection_id: str, record_id: str) -> Collection:
        """Remove a movie from a collection (no-op if not a member).

        Raises:
            RecordNotFoundError: If the collection is unknown
        """
        collection = self._require_collection(collection_id)
        if record_id not in collection.movie_ids:
            return collection.model_copy(deep=True)

        return self.update_collection(
            collection.model_copy(
                update={"movie_ids": [m for m in collection.movie_ids if m != record_id]}
            )
        )

    def records_in(self, collection_id: str) -> List[MetadataRecord]:
        """Records belonging to a collection, in membership order."""
        collection = self._require_collection(collection_id)
        return [
            self._records[m].model_copy(deep=True)
            for m in collection.movie_ids
            if m in self._records
        ]

    def collections_for(self, record_id: str) -> List[Collection]:
        """Collections a record belongs to."""
        return [
            c.model_copy(deep=True)
            for c in self._collections.values()
            if record_id in c.movie_ids
        ]

    def seed_default_collections_if_empty(self) -> List[Collection]:
        """Insert the default genre collections when there are none.

        Safe to call on every start: it checks for emptiness, not for a
        first run.

        Returns:
            The collections inserted (empty when nothing was seeded)
        """
        if self._collections:
            return []

        seeded = [self.insert_collection(c) for c in default_collections()]
        logger.info("Seeded default collections", count=len(seeded))
        return seeded

    def _require_collection(self, collection_id: str) -> Collection:
        collection = self._collections.get(collection_id)
        if collection is None:
            raise RecordNotFoundError(collection_id)
        return collection

    def _with_known_members(self, collection: Collection, **update) -> Collection:
        members = [m for m in collection.movie_ids if m in self._records]
        return collection.model_copy(deep=True, update={"movie_ids": members, **update})

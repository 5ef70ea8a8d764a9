"""API routes for movies, lookups and collections."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from reelshelf.api.models import (
    BarcodeLookupRequest,
    CollectionCreate,
    LookupResponse,
    MovieCreate,
    MovieUpdate,
    SummaryAcceptRequest,
    TitleLookupRequest,
)
from reelshelf.core.library import LibraryService
from reelshelf.core.query import FilterOption, LibraryQuery, SortOrder
from reelshelf.models.collection import Collection
from reelshelf.models.record import MetadataRecord
from reelshelf.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["library"])


def get_service(request: Request) -> LibraryService:
    """Dependency to get the library service from app state."""
    service = request.app.state.reelshelf.service
    if service is None:
        raise HTTPException(status_code=503, detail="Library not loaded")
    return service


def _collection_dict(collection: Collection) -> dict:
    data = collection.model_dump(mode="json")
    data["movie_count"] = collection.movie_count
    return data


# Movies


@router.get("/movies")
async def list_movies(
    search: str = Query(default="", description="Title/director/genre/actors substring"),
    filter: FilterOption = Query(default=FilterOption.ALL),
    sort: SortOrder = Query(default=SortOrder.DATE_ADDED),
    service: LibraryService = Depends(get_service),
):
    """Browse the library.

    ``loaded`` is false until the store has been materialized, so an empty
    ``movies`` list with ``loaded`` true means nothing matched.
    """
    movies = service.browse(LibraryQuery(search=search, filter=filter, sort=sort))
    return {
        "loaded": service.store.is_loaded,
        "count": len(movies),
        "movies": [m.to_api_dict() for m in movies],
    }


@router.post("/movies", status_code=201)
async def create_movie(
    payload: MovieCreate,
    service: LibraryService = Depends(get_service),
):
    """Add a manually entered movie."""
    try:
        record = MetadataRecord(**payload.model_dump())
    except ValueError as e:
        logger.warning("Rejected new movie", error=str(e))
        raise HTTPException(status_code=422, detail=str(e)) from e

    return service.store.insert(record).to_api_dict()


@router.get("/movies/{movie_id}")
async def get_movie(movie_id: str, service: LibraryService = Depends(get_service)):
    """Get one movie with the collections it belongs to."""
    record = service.store.get(movie_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Movie not found: {movie_id}")

    data = record.to_api_dict()
    data["collections"] = [c.id for c in service.store.collections_for(movie_id)]
    return data


@router.put("/movies/{movie_id}")
async def update_movie(
    movie_id: str,
    payload: MovieUpdate,
    service: LibraryService = Depends(get_service),
):
    """Edit a stored movie. Only the fields present in the body change."""
    record = service.store.get(movie_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Movie not found: {movie_id}")

    changes = payload.model_dump(exclude_unset=True)
    try:
        edited = MetadataRecord(**{**record.model_dump(), **changes})
    except ValueError as e:
        logger.warning("Rejected movie edit", movie_id=movie_id, error=str(e))
        raise HTTPException(status_code=422, detail=str(e)) from e

    return service.store.update(edited).to_api_dict()


@router.delete("/movies/{movie_id}", status_code=204)
async def delete_movie(movie_id: str, service: LibraryService = Depends(get_service)):
    """Delete a movie (idempotent)."""
    service.store.delete(movie_id)
    return Response(status_code=204)


@router.get("/stats")
async def library_stats(service: LibraryService = Depends(get_service)):
    """Library counts and poster cache usage."""
    return {"library": service.store.counts(), "assets": service.assets.stats()}


# Remote lookups


@router.get("/search")
async def search_remote(
    query: str = Query(..., min_length=1),
    page: int = Query(default=1, ge=1),
    service: LibraryService = Depends(get_service),
):
    """Search TMDB."""
    results = await service.search_remote(query, page=page)
    return {"page": page, "results": [r.model_dump() for r in results]}


@router.get("/popular")
async def popular(
    page: int = Query(default=1, ge=1),
    service: LibraryService = Depends(get_service),
):
    """TMDB popularity listing."""
    results = await service.popular(page=page)
    return {"page": page, "results": [r.model_dump() for r in results]}


@router.post("/lookup/tmdb", response_model=LookupResponse)
async def accept_tmdb(
    payload: SummaryAcceptRequest,
    service: LibraryService = Depends(get_service),
):
    """Store a TMDB movie picked from search or popularity results."""
    record = await service.get_remote(payload.tmdb_id, is_wanted=payload.is_wanted)
    stored = await service.accept(record, fetch_poster=payload.fetch_poster)
    return LookupResponse(stored=True, movie=stored.to_api_dict())


@router.post("/lookup/title", response_model=LookupResponse)
async def lookup_title(
    payload: TitleLookupRequest,
    service: LibraryService = Depends(get_service),
):
    """Look up a movie on OMDB by title or IMDb id."""
    if payload.imdb_id:
        record = await service.lookup_imdb_id(payload.imdb_id, is_wanted=payload.is_wanted)
    else:
        record = await service.lookup_title(payload.title, is_wanted=payload.is_wanted)

    if payload.accept:
        record = await service.accept(record, fetch_poster=payload.fetch_poster)

    return LookupResponse(stored=payload.accept, movie=record.to_api_dict())


@router.post("/lookup/barcode", response_model=LookupResponse)
async def lookup_barcode(
    payload: BarcodeLookupRequest,
    service: LibraryService = Depends(get_service),
):
    """Resolve a scanned barcode."""
    record = await service.lookup_barcode(
        payload.code,
        title_hint=payload.title_hint,
        is_wanted=payload.is_wanted,
    )

    if payload.accept:
        record = await service.accept(record, fetch_poster=payload.fetch_poster)

    return LookupResponse(stored=payload.accept, movie=record.to_api_dict())


# Collections


@router.get("/collections")
async def list_collections(service: LibraryService = Depends(get_service)):
    """List collections."""
    return [_collection_dict(c) for c in service.store.all_collections()]


@router.post("/collections", status_code=201)
async def create_collection(
    payload: CollectionCreate,
    service: LibraryService = Depends(get_service),
):
    """Create a collection."""
    try:
        collection = Collection(**payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return _collection_dict(service.store.insert_collection(collection))


@router.get("/collections/{collection_id}/movies")
async def collection_movies(
    collection_id: str,
    service: LibraryService = Depends(get_service),
) -> List[dict]:
    """Movies in a collection, in membership order."""
    return [m.to_api_dict() for m in service.store.records_in(collection_id)]


@router.delete("/collections/{collection_id}", status_code=204)
async def delete_collection(collection_id: str, service: LibraryService = Depends(get_service)):
    """Delete a collection; its movies stay in the library."""
    service.store.delete_collection(collection_id)
    return Response(status_code=204)


@router.put("/collections/{collection_id}/movies/{movie_id}")
async def add_to_collection(
    collection_id: str,
    movie_id: str,
    service: LibraryService = Depends(get_service),
):
    """Add a movie to a collection."""
    return _collection_dict(service.store.add_to_collection(collection_id, movie_id))


@router.delete("/collections/{collection_id}/movies/{movie_id}")
async def remove_from_collection(
    collection_id: str,
    movie_id: str,
    service: LibraryService = Depends(get_service),
):
    """Remove a movie from a collection."""
    return _collection_dict(service.store.remove_from_collection(collection_id, movie_id))

"""Shared pytest fixtures for ReelShelf tests."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from reelshelf.config import (
    AssetsConfig,
    Config,
    LoggingConfig,
    OMDBConfig,
    StorageConfig,
    TMDBConfig,
)
from reelshelf.core.assets import AssetCache, AssetDiskStore
from reelshelf.core.database import LibraryDatabase
from reelshelf.core.library import LibraryService
from reelshelf.core.store import CollectionStore
from reelshelf.metadata.omdb import OMDBClient
from reelshelf.metadata.tmdb import TMDBClient
from reelshelf.models.record import MetadataRecord

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

POSTER_URL = "https://img.example.com/matrix.jpg"
POSTER_BYTES = b"\x89PNG fake poster"


def mock_client(handler) -> httpx.AsyncClient:
    """HTTP client whose requests are answered by ``handler(request)``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_record(title: str = "The Matrix", minutes: int = 0, **fields) -> MetadataRecord:
    """Record with a deterministic ``date_added`` (BASE_TIME + minutes)."""
    fields.setdefault("date_added", BASE_TIME + timedelta(minutes=minutes))
    return MetadataRecord(title=title, **fields)


@pytest.fixture
def test_config(tmp_path):
    """Configuration with every path under tmp_path and both keys set."""
    return Config(
        omdb=OMDBConfig(api_key="omdb-test-key", retry_attempts=1),
        tmdb=TMDBConfig(api_key="tmdb-test-key", retry_attempts=1),
        storage=StorageConfig(database_path=str(tmp_path / "library.db")),
        assets=AssetsConfig(cache_path=str(tmp_path / "assets.db")),
        logging=LoggingConfig(output=str(tmp_path / "reelshelf.log")),
    )


@pytest.fixture
def database(tmp_path):
    """Empty library database."""
    return LibraryDatabase(tmp_path / "library.db")


@pytest.fixture
def store(database):
    """Loaded, empty store backed by SQLite."""
    store = CollectionStore(database)
    store.load()
    return store


@pytest.fixture
def omdb_payload():
    """OMDB lookup body for The Matrix."""
    return {
        "Title": "The Matrix",
        "Year": "1999",
        "Rated": "R",
        "Released": "31 Mar 1999",
        "Runtime": "136 min",
        "Genre": "Action, Sci-Fi",
        "Director": "Lana Wachowski, Lilly Wachowski",
        "Writer": "Lilly Wachowski, Lana Wachowski",
        "Actors": "Keanu Reeves, Laurence Fishburne, Carrie-Anne Moss",
        "Plot": "A computer hacker learns about the true nature of reality.",
        "Language": "English",
        "Country": "United States, Australia",
        "Awards": "Won 4 Oscars",
        "Poster": POSTER_URL,
        "imdbID": "tt0133093",
        "imdbRating": "8.7",
        "Response": "True",
    }


@pytest.fixture
def tmdb_results():
    """TMDB search/popular body."""
    return {
        "page": 1,
        "results": [
            {
                "id": 603,
                "title": "The Matrix",
                "overview": "Set in the 22nd century...",
                "poster_path": "/f89U3ADr1oiB1s9GkdPOEpXUk5H.jpg",
                "release_date": "1999-03-30",
                "vote_average": 8.2,
                "popularity": 80.1,
            },
            {
                "id": 604,
                "title": "The Matrix Reloaded",
                "overview": "",
                "poster_path": None,
                "release_date": "",
                "vote_average": 7.0,
            },
        ],
        "total_pages": 1,
        "total_results": 2,
    }


@pytest.fixture
def provider_handler(omdb_payload, tmdb_results):
    """Fake for OMDB, TMDB and poster downloads; records every request."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        host = request.url.host

        if host == "www.omdbapi.com":
            if request.url.params.get("t") == "Nothing Here":
                return httpx.Response(
                    200, json={"Response": "False", "Error": "Movie not found!"}
                )
            return httpx.Response(200, json=omdb_payload)

        if host == "api.themoviedb.org":
            if request.url.path.endswith("/movie/603"):
                return httpx.Response(200, json=tmdb_results["results"][0])
            if request.url.path.endswith("/movie/999"):
                return httpx.Response(404, json={"status_message": "not found"})
            return httpx.Response(200, json=tmdb_results)

        if request.url == httpx.URL(POSTER_URL):
            return httpx.Response(200, content=POSTER_BYTES)

        return httpx.Response(404)

    handler.requests = requests
    return handler


@pytest.fixture
def service(test_config, store, tmp_path, provider_handler):
    """Library service wired to the fake providers."""
    assets = AssetCache(
        AssetDiskStore(tmp_path / "assets.db"),
        max_entries=10,
        max_bytes=1024,
        client=mock_client(provider_handler),
    )
    return LibraryService(
        store,
        assets,
        omdb_client=OMDBClient(test_config.omdb, client=mock_client(provider_handler)),
        tmdb_client=TMDBClient(test_config.tmdb, client=mock_client(provider_handler)),
    )


@pytest.fixture
def record_factory():
    """``make_record`` as a fixture."""
    return make_record


@pytest.fixture
def client_factory():
    """``mock_client`` as a fixture."""
    return mock_client

"""Unit tests for the TMDB and OMDB clients."""

import httpx
import pytest

from reelshelf.config import OMDBConfig, TMDBConfig
from reelshelf.metadata.errors import (
    InvalidResponseError,
    NetworkError,
    NotConfiguredError,
    NotFoundError,
)
from reelshelf.metadata.omdb import OMDBClient
from reelshelf.metadata.tmdb import TMDBClient


@pytest.fixture
def omdb(test_config, provider_handler, client_factory):
    return OMDBClient(test_config.omdb, client=client_factory(provider_handler))


@pytest.fixture
def tmdb(test_config, provider_handler, client_factory):
    return TMDBClient(test_config.tmdb, client=client_factory(provider_handler))


def failing_client(client_factory, exc_or_response):
    """Client that raises an exception or returns a fixed response."""
    calls = []

    def handler(request):
        calls.append(request)
        if isinstance(exc_or_response, Exception):
            raise exc_or_response
        return exc_or_response

    client = client_factory(handler)
    client.calls = calls
    return client


class TestOMDBClient:
    """Test OMDBClient."""

    @pytest.mark.asyncio
    async def test_search_by_title(self, omdb, provider_handler):
        response = await omdb.search_by_title("The Matrix")

        assert response.found
        assert response.title == "The Matrix"
        assert response.imdb_id == "tt0133093"

        params = provider_handler.requests[-1].url.params
        assert params["t"] == "The Matrix"
        assert params["apikey"] == "omdb-test-key"
        assert params["plot"] == "full"

    @pytest.mark.asyncio
    async def test_search_by_imdb_id(self, omdb, provider_handler):
        await omdb.search_by_imdb_id(" tt0133093 ")

        params = provider_handler.requests[-1].url.params
        assert params["i"] == "tt0133093"
        assert "t" not in params

    @pytest.mark.asyncio
    async def test_response_false_is_not_found(self, omdb):
        with pytest.raises(NotFoundError, match="Movie not found!"):
            await omdb.search_by_title("Nothing Here")

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self, client_factory):
        client = failing_client(client_factory, httpx.Response(200, json={}))
        omdb = OMDBClient(OMDBConfig(api_key=""), client=client)

        with pytest.raises(NotConfiguredError):
            await omdb.search_by_title("The Matrix")

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_empty_title_rejected(self, omdb):
        with pytest.raises(ValueError):
            await omdb.search_by_title("  ")

    @pytest.mark.asyncio
    async def test_non_json_is_invalid_response(self, client_factory):
        client = failing_client(client_factory, httpx.Response(200, text="<html>oops</html>"))
        omdb = OMDBClient(OMDBConfig(api_key="k"), client=client)

        with pytest.raises(InvalidResponseError):
            await omdb.search_by_title("The Matrix")

    @pytest.mark.asyncio
    async def test_wrong_shape_is_invalid_response(self, client_factory):
        client = failing_client(client_factory, httpx.Response(200, json={"Title": "x"}))
        omdb = OMDBClient(OMDBConfig(api_key="k"), client=client)

        with pytest.raises(InvalidResponseError):
            await omdb.search_by_title("The Matrix")

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self, client_factory):
        client = failing_client(client_factory, httpx.ConnectError("connection refused"))
        omdb = OMDBClient(OMDBConfig(api_key="k", retry_attempts=1), client=client)

        with pytest.raises(NetworkError) as exc_info:
            await omdb.search_by_title("The Matrix")

        assert "connection refused" in exc_info.value.description
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_network_error(self, client_factory):
        client = failing_client(client_factory, httpx.Response(503))
        omdb = OMDBClient(OMDBConfig(api_key="k"), client=client)

        with pytest.raises(NetworkError, match="HTTP 503"):
            await omdb.search_by_title("The Matrix")

        # Only transport failures are retried
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_transport_failure_retried(self, client_factory, omdb_payload):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("flaky")
            return httpx.Response(200, json=omdb_payload)

        omdb = OMDBClient(
            OMDBConfig(api_key="k", retry_attempts=2), client=client_factory(handler)
        )

        response = await omdb.search_by_title("The Matrix")

        assert response.title == "The Matrix"
        assert len(calls) == 2


class TestTMDBClient:
    """Test TMDBClient."""

    @pytest.mark.asyncio
    async def test_search_movies(self, tmdb, provider_handler):
        results = await tmdb.search_movies("matrix", page=2)

        assert [m.id for m in results] == [603, 604]
        assert results[0].release_year == "1999"

        request = provider_handler.requests[-1]
        assert request.url.path == "/3/search/movie"
        assert request.url.params["query"] == "matrix"
        assert request.url.params["page"] == "2"
        assert request.url.params["api_key"] == "tmdb-test-key"

    @pytest.mark.asyncio
    async def test_empty_query_makes_no_request(self, tmdb, provider_handler):
        assert await tmdb.search_movies("   ") == []
        assert provider_handler.requests == []

    @pytest.mark.asyncio
    async def test_popular_movies(self, tmdb, provider_handler):
        results = await tmdb.popular_movies()

        assert len(results) == 2
        assert provider_handler.requests[-1].url.path == "/3/movie/popular"

    @pytest.mark.asyncio
    async def test_get_movie(self, tmdb):
        movie = await tmdb.get_movie(603)

        assert movie.title == "The Matrix"

    @pytest.mark.asyncio
    async def test_get_movie_404(self, tmdb):
        with pytest.raises(NotFoundError):
            await tmdb.get_movie(999)

    @pytest.mark.asyncio
    async def test_missing_key(self, client_factory):
        client = failing_client(client_factory, httpx.Response(200, json={"results": []}))
        tmdb = TMDBClient(TMDBConfig(api_key=None), client=client)

        with pytest.raises(NotConfiguredError):
            await tmdb.popular_movies()

        assert client.calls == []

    @pytest.mark.asyncio
    async def test_bad_results_shape(self, client_factory):
        client = failing_client(client_factory, httpx.Response(200, json={"results": "nope"}))
        tmdb = TMDBClient(TMDBConfig(api_key="k"), client=client)

        with pytest.raises(InvalidResponseError):
            await tmdb.search_movies("matrix")

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, client_factory):
        client = failing_client(client_factory, httpx.Response(200, json={"results": []}))

        async with TMDBClient(TMDBConfig(api_key="k"), client=client):
            pass

        assert client.is_closed

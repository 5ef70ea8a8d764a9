"""TMDB API client for movie search and popularity listings."""

from typing import Optional

import httpx
import structlog
from pydantic import ValidationError

from reelshelf.config import TMDBConfig
from reelshelf.metadata.base import BaseProviderClient
from reelshelf.metadata.errors import InvalidResponseError
from reelshelf.models.provider import MovieSearchResponse, MovieSummary

logger = structlog.get_logger(__name__)


class TMDBClient(BaseProviderClient):
    """TMDB API client."""

    provider_name = "tmdb"

    def __init__(self, config: TMDBConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config, client)
        self.base_url = config.base_url.rstrip("/")

    async def search_movies(self, query: str, page: int = 1) -> list[MovieSummary]:
        """Search for movies on TMDB.

        Args:
            query: Search query (movie title)
            page: Result page, starting at 1

        Returns:
            List of movie search results (may be empty)
        """
        query = query.strip()
        if not query:
            return []

        data = await self._get_json(
            f"{self.base_url}/search/movie",
            {"api_key": self._require_key(), "query": query, "page": page},
        )
        results = self._parse_results(data)
        logger.info(
            "Searched TMDB for movie",
            query=query,
            page=page,
            result_count=len(results),
        )
        return results

    async def popular_movies(self, page: int = 1) -> list[MovieSummary]:
        """Get the current popularity listing.

        Args:
            page: Result page, starting at 1

        Returns:
            List of popular movies
        """
        data = await self._get_json(
            f"{self.base_url}/movie/popular",
            {"api_key": self._require_key(), "page": page},
        )
        results = self._parse_results(data)
        logger.info("Fetched popular movies from TMDB", page=page, result_count=len(results))
        return results

    async def get_movie(self, tmdb_id: int) -> MovieSummary:
        """Get movie details from TMDB.

        Args:
            tmdb_id: TMDB movie ID

        Returns:
            Movie summary

        Raises:
            NotFoundError: If TMDB has no movie with this id
        """
        data = await self._get_json(
            f"{self.base_url}/movie/{tmdb_id}",
            {"api_key": self._require_key()},
        )
        try:
            movie = MovieSummary.model_validate(data)
        except ValidationError as e:
            logger.error("Unexpected TMDB movie payload", tmdb_id=tmdb_id, error=str(e))
            raise InvalidResponseError(f"tmdb: invalid movie payload for {tmdb_id}") from e

        logger.info("Fetched movie from TMDB", tmdb_id=tmdb_id, title=movie.title)
        return movie

    @staticmethod
    def _parse_results(data) -> list[MovieSummary]:
        try:
            return MovieSearchResponse.model_validate(data).results
        except ValidationError as e:
            logger.error("Unexpected TMDB result payload", error=str(e))
            raise InvalidResponseError("tmdb: invalid result list") from e

"""OMDB API client for title and IMDb id lookups."""

from typing import Optional

import httpx
import structlog
from pydantic import ValidationError

from reelshelf.config import OMDBConfig
from reelshelf.metadata.base import BaseProviderClient
from reelshelf.metadata.errors import InvalidResponseError, NotFoundError
from reelshelf.models.provider import OMDBResponse

logger = structlog.get_logger(__name__)


class OMDBClient(BaseProviderClient):
    """OMDB API client.

    OMDB answers every lookup with HTTP 200; a miss is signalled in the body
    with ``"Response": "False"`` and is raised here as ``NotFoundError``.
    """

    provider_name = "omdb"

    def __init__(self, config: OMDBConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config, client)

    async def search_by_title(self, title: str) -> OMDBResponse:
        """Look up a movie by exact title.

        Args:
            title: Movie title

        Returns:
            OMDB payload for the best title match
        """
        title = title.strip()
        if not title:
            raise ValueError("title must not be empty")
        return await self._lookup({"t": title}, requested_title=title)

    async def search_by_imdb_id(self, imdb_id: str) -> OMDBResponse:
        """Look up a movie by IMDb id (e.g. tt0133093).

        Args:
            imdb_id: IMDb identifier

        Returns:
            OMDB payload
        """
        imdb_id = imdb_id.strip()
        if not imdb_id:
            raise ValueError("imdb_id must not be empty")
        return await self._lookup({"i": imdb_id}, requested_id=imdb_id)

    async def _lookup(self, query: dict, **log_context) -> OMDBResponse:
        params = {"apikey": self._require_key(), "plot": "full", **query}
        data = await self._get_json(self.config.base_url, params)

        try:
            response = OMDBResponse.model_validate(data)
        except ValidationError as e:
            logger.error("Unexpected OMDB payload", error=str(e), **log_context)
            raise InvalidResponseError("omdb: invalid lookup payload") from e

        if not response.found:
            logger.info("Movie not found on OMDB", reason=response.error, **log_context)
            raise NotFoundError(response.error or "Movie not found")

        logger.info(
            "Fetched movie from OMDB",
            title=response.title,
            imdb_id=response.imdb_id,
            **log_context,
        )
        return response

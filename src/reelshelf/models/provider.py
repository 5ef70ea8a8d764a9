"""Pydantic models for metadata provider responses."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MovieSummary(BaseModel):
    """A movie as returned by TMDB search, popularity and detail calls."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: float = 0.0

    @property
    def release_year(self) -> Optional[str]:
        """Year part of the release date (TMDB uses YYYY-MM-DD)."""
        if self.release_date:
            return self.release_date[:4]
        return None


class MovieSearchResponse(BaseModel):
    """TMDB paged result list."""

    model_config = ConfigDict(extra="ignore")

    page: int = 1
    results: List[MovieSummary] = Field(default_factory=list)
    total_pages: Optional[int] = None
    total_results: Optional[int] = None


class OMDBResponse(BaseModel):
    """OMDB title/id lookup payload.

    OMDB uses capitalised keys and the literal string "N/A" for missing
    values. ``Response`` is "True" or "False"; on "False" the ``Error`` key
    explains why.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = Field(default=None, alias="Title")
    year: Optional[str] = Field(default=None, alias="Year")
    rated: Optional[str] = Field(default=None, alias="Rated")
    released: Optional[str] = Field(default=None, alias="Released")
    runtime: Optional[str] = Field(default=None, alias="Runtime")
    genre: Optional[str] = Field(default=None, alias="Genre")
    director: Optional[str] = Field(default=None, alias="Director")
    writer: Optional[str] = Field(default=None, alias="Writer")
    actors: Optional[str] = Field(default=None, alias="Actors")
    plot: Optional[str] = Field(default=None, alias="Plot")
    language: Optional[str] = Field(default=None, alias="Language")
    country: Optional[str] = Field(default=None, alias="Country")
    awards: Optional[str] = Field(default=None, alias="Awards")
    poster: Optional[str] = Field(default=None, alias="Poster")
    imdb_id: Optional[str] = Field(default=None, alias="imdbID")
    imdb_rating: Optional[str] = Field(default=None, alias="imdbRating")
    response: str = Field(..., alias="Response")
    error: Optional[str] = Field(default=None, alias="Error")

    @property
    def found(self) -> bool:
        return self.response.lower() == "true"

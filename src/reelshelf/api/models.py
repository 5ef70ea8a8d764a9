"""Pydantic models for API requests and responses."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class MovieCreate(BaseModel):
    """Manually entered movie."""

    title: str = Field(..., min_length=1)
    year: Optional[int] = None
    director: Optional[str] = None
    plot: Optional[str] = None
    genre: Optional[str] = None
    actors: Optional[str] = None
    language: Optional[str] = None
    country: Optional[str] = None
    awards: Optional[str] = None
    runtime: Optional[str] = None
    external_ref: Optional[str] = None
    poster_ref: Optional[str] = None
    barcode: Optional[str] = None
    is_wanted: bool = False
    user_rating: Optional[int] = None


class MovieUpdate(BaseModel):
    """Partial edit of a stored movie; only fields that are sent change."""

    title: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = None
    director: Optional[str] = None
    plot: Optional[str] = None
    genre: Optional[str] = None
    actors: Optional[str] = None
    language: Optional[str] = None
    country: Optional[str] = None
    awards: Optional[str] = None
    runtime: Optional[str] = None
    poster_ref: Optional[str] = None
    is_wanted: Optional[bool] = None
    user_rating: Optional[int] = None


class TitleLookupRequest(BaseModel):
    """Look up a movie by title or IMDb id, optionally storing it."""

    title: Optional[str] = None
    imdb_id: Optional[str] = None
    is_wanted: bool = False
    accept: bool = Field(default=False, description="Store the result")
    fetch_poster: bool = Field(default=True, description="Attach poster bytes when storing")

    @field_validator("title", "imdb_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_target(self):
        if not (self.title or self.imdb_id):
            raise ValueError("Either title or imdb_id is required")
        return self


class BarcodeLookupRequest(BaseModel):
    """Resolve a scanned code, optionally storing the result."""

    code: str
    title_hint: Optional[str] = None
    is_wanted: bool = False
    accept: bool = False
    fetch_poster: bool = True


class SummaryAcceptRequest(BaseModel):
    """Store a TMDB search/popularity result by its TMDB id."""

    tmdb_id: int
    is_wanted: bool = False
    fetch_poster: bool = True


class CollectionCreate(BaseModel):
    """New collection."""

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    movie_ids: List[str] = Field(default_factory=list)


class LookupResponse(BaseModel):
    """Lookup result; ``stored`` tells whether it was added to the library."""

    stored: bool
    movie: dict


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    uptime_seconds: float
    library_loaded: bool
    checks: Dict[str, bool]

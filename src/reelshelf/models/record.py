"""Movie record model."""

import base64
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

PLACEHOLDER_TITLE = "Unknown Movie"
MIN_RATING = 1
MAX_RATING = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return str(uuid4())


class MetadataRecord(BaseModel):
    """A movie in the library.

    Only ``id`` and ``title`` are required. ``date_added`` is fixed when the
    record is built and can't be reassigned afterwards.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_record_id)
    title: str = Field(..., description="Display title, never empty")
    year: Optional[int] = Field(default=None)

    # Free-text provider fields
    director: Optional[str] = Field(default=None)
    plot: Optional[str] = Field(default=None)
    genre: Optional[str] = Field(default=None)
    actors: Optional[str] = Field(default=None)
    language: Optional[str] = Field(default=None)
    country: Optional[str] = Field(default=None)
    awards: Optional[str] = Field(default=None)
    runtime: Optional[str] = Field(default=None)

    external_ref: Optional[str] = Field(default=None, description="Provider cross-reference")
    poster_ref: Optional[str] = Field(default=None, description="Remote poster URL")
    poster_bytes: Optional[bytes] = Field(default=None, repr=False)
    barcode: Optional[str] = Field(default=None)

    date_added: datetime = Field(default_factory=utcnow, frozen=True)
    is_wanted: bool = Field(default=False, description="Wishlist rather than owned")
    user_rating: Optional[int] = Field(default=None, description="1-10")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject blank titles."""
        if not v or not v.strip():
            raise ValueError("title must not be empty")
        return v

    @field_validator("user_rating")
    @classmethod
    def clamp_rating(cls, v: Optional[int]) -> Optional[int]:
        """Clamp ratings into the 1-10 scale."""
        if v is None:
            return None
        return max(MIN_RATING, min(MAX_RATING, v))

    @field_validator("date_added")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        # Naive timestamps are treated as UTC so they compare with aware ones
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def has_local_poster(self) -> bool:
        return self.poster_bytes is not None

    @property
    def display_year(self) -> str:
        return str(self.year) if self.year is not None else "Unknown"

    @property
    def display_genre(self) -> str:
        return self.genre if self.genre else "Unknown"

    @property
    def display_rating(self) -> str:
        if self.user_rating is None:
            return "Not Rated"
        return f"{self.user_rating}/10"

    def __str__(self) -> str:
        """Human-readable representation."""
        year_part = f" ({self.year})" if self.year is not None else ""
        wanted_part = " [wanted]" if self.is_wanted else ""
        return f"{self.title}{year_part}{wanted_part}"

    def to_db_dict(self) -> dict:
        """Convert to dictionary for database storage."""
        data = self.model_dump(exclude={"date_added", "is_wanted"})
        data["date_added"] = self.date_added.isoformat()
        data["is_wanted"] = int(self.is_wanted)
        return data

    @classmethod
    def from_db_dict(cls, data: dict) -> "MetadataRecord":
        """Create a record from a database row."""
        data = dict(data)
        data["date_added"] = datetime.fromisoformat(data["date_added"])
        data["is_wanted"] = bool(data["is_wanted"])
        return cls(**data)

    def to_api_dict(self) -> dict:
        """JSON-friendly representation with the poster base64 encoded."""
        data = self.model_dump(mode="json", exclude={"poster_bytes"})
        data["poster_base64"] = (
            base64.b64encode(self.poster_bytes).decode("ascii") if self.poster_bytes else None
        )
        return data

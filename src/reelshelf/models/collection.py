"""Collection model and the default genre collections."""

import json
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reelshelf.models.record import new_record_id, utcnow

DEFAULT_ICON = "folder.fill"


class Collection(BaseModel):
    """A named group of movies.

    Membership is kept as an ordered list of movie ids. Removing a collection
    never touches the movies it references.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_record_id)
    name: str = Field(..., description="Collection name")
    description: Optional[str] = Field(default=None)
    date_created: datetime = Field(default_factory=utcnow, frozen=True)
    color: Optional[str] = Field(default=None, description="Color token, e.g. #FF6B6B")
    icon: Optional[str] = Field(default=None, description="Icon token")
    movie_ids: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is not blank."""
        v = v.strip()
        if not v:
            raise ValueError("Collection name must not be empty")
        return v

    @field_validator("description", "color", "icon")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("movie_ids")
    @classmethod
    def dedupe_members(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))

    @field_validator("date_created")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def movie_count(self) -> int:
        return len(self.movie_ids)

    @property
    def display_description(self) -> str:
        return self.description or "No description"

    @property
    def display_icon(self) -> str:
        return self.icon or DEFAULT_ICON

    def __str__(self) -> str:
        return f"{self.name} ({self.movie_count} movies)"

    def to_db_dict(self) -> dict:
        """Convert to dictionary for database storage."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "date_created": self.date_created.isoformat(),
            "color": self.color,
            "icon": self.icon,
            "movie_ids": json.dumps(self.movie_ids),
        }

    @classmethod
    def from_db_dict(cls, data: dict) -> "Collection":
        """Create a collection from a database row."""
        data = dict(data)
        data["date_created"] = datetime.fromisoformat(data["date_created"])
        data["movie_ids"] = json.loads(data.get("movie_ids") or "[]")
        return cls(**data)


def default_collections() -> List[Collection]:
    """Build the genre collections seeded into an empty library."""
    return [
        Collection(
            name="Action",
            description="High-octane action movies",
            color="#FF6B6B",
            icon="bolt.fill",
        ),
        Collection(
            name="Comedy",
            description="Light-hearted and funny movies",
            color="#4ECDC4",
            icon="face.smiling.fill",
        ),
        Collection(
            name="Drama",
            description="Serious and emotional storytelling",
            color="#45B7D1",
            icon="theatermasks.fill",
        ),
        Collection(
            name="Horror",
            description="Scary and thrilling movies",
            color="#96CEB4",
            icon="eye.trianglebadge.exclamationmark.fill",
        ),
        Collection(
            name="Sci-Fi",
            description="Science fiction and futuristic movies",
            color="#FFEAA7",
            icon="sparkles",
        ),
        Collection(
            name="Romance",
            description="Love stories and romantic movies",
            color="#FD79A8",
            icon="heart.fill",
        ),
    ]

"""User preferences persisted alongside the library."""

from typing import Any, Protocol

from pydantic import BaseModel, Field, field_validator

from reelshelf.config import DEFAULT_OMDB_URL, Config
from reelshelf.utils.logger import get_logger

logger = get_logger(__name__)

SETTINGS_PREFIX = "preferences."

# Never leaves the device through export()
SECRET_FIELDS = {"omdb_api_key"}


class SettingsBackend(Protocol):
    def get_settings(self) -> dict: ...

    def set_setting(self, key: str, value: Any) -> None: ...


class Preferences(BaseModel):
    """Settings the user edits at runtime.

    These are loaded from and saved to the persistence backend explicitly;
    nothing is written when a field is assigned.
    """

    omdb_api_key: str = Field(default="", description="OMDB API key")
    omdb_base_url: str = Field(default=DEFAULT_OMDB_URL, description="OMDB endpoint")
    auto_save_to_photos: bool = Field(default=False)
    default_movie_rating: int = Field(default=5, description="Rating pre-selected when editing")
    enable_barcode_sound: bool = Field(default=True)
    show_movie_count: bool = Field(default=True)

    @field_validator("default_movie_rating")
    @classmethod
    def validate_rating(cls, v: int) -> int:
        # Unset/zero in older saves means "use the default"
        if v == 0:
            return 5
        return max(1, min(10, v))

    @property
    def is_api_configured(self) -> bool:
        return bool(self.omdb_api_key) and bool(self.omdb_base_url)

    @property
    def has_valid_api_key(self) -> bool:
        """OMDB keys are at least eight characters."""
        return len(self.omdb_api_key) >= 8

    @classmethod
    def load(cls, backend: SettingsBackend) -> "Preferences":
        """Read preferences, falling back to defaults for missing keys."""
        stored = {
            key[len(SETTINGS_PREFIX):]: value
            for key, value in backend.get_settings().items()
            if key.startswith(SETTINGS_PREFIX)
        }
        known = {k: v for k, v in stored.items() if k in cls.model_fields}
        logger.debug("Loaded preferences", keys=sorted(known))
        return cls(**known)

    def save(self, backend: SettingsBackend) -> None:
        """Write every preference to the backend."""
        for key, value in self.model_dump().items():
            backend.set_setting(f"{SETTINGS_PREFIX}{key}", value)
        logger.info("Saved preferences")

    @classmethod
    def reset_to_defaults(cls) -> "Preferences":
        return cls()

    def export(self) -> dict:
        """Shareable settings; the API key is left out."""
        return self.model_dump(exclude=SECRET_FIELDS)

    def import_(self, data: dict) -> "Preferences":
        """Return a copy with recognised, non-secret keys from ``data`` applied."""
        allowed = {
            k: v for k, v in data.items() if k in self.model_fields and k not in SECRET_FIELDS
        }
        return self.model_validate({**self.model_dump(), **allowed})

    def apply_to(self, config: Config) -> Config:
        """Overlay the lookup provider key and endpoint onto a config.

        Values left empty, or at the public default, keep what the config
        file says.
        """
        omdb_update = {}
        if self.omdb_api_key:
            omdb_update["api_key"] = self.omdb_api_key
        if self.omdb_base_url and self.omdb_base_url != DEFAULT_OMDB_URL:
            omdb_update["base_url"] = self.omdb_base_url
        if not omdb_update:
            return config
        return config.model_copy(
            update={"omdb": config.omdb.model_copy(update=omdb_update)}
        )

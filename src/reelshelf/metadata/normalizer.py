"""Normalization of provider payloads into library records."""

import re
from typing import Optional, Union

import structlog

from reelshelf.config import DEFAULT_TMDB_IMAGE_URL
from reelshelf.metadata.barcode import BarcodeScan
from reelshelf.models.provider import MovieSummary, OMDBResponse
from reelshelf.models.record import PLACEHOLDER_TITLE, MetadataRecord

logger = structlog.get_logger(__name__)

# OMDB's marker for a field it has no value for
SENTINEL = "N/A"

ProviderPayload = Union[MovieSummary, OMDBResponse, BarcodeScan]


def clean_text(value: Optional[str]) -> Optional[str]:
    """Return the value, or None when it is missing, blank or the sentinel."""
    if value is None:
        return None
    value = value.strip()
    if not value or value == SENTINEL:
        return None
    return value


def parse_year(value: Optional[str]) -> Optional[int]:
    """Parse the leading number of a free-text year.

    "1999" -> 1999, "2010–2013" -> 2010, "1994-09-23" -> 1994,
    "N/A" / "" / None -> None.
    """
    value = clean_text(value)
    if value is None:
        return None
    if match := re.match(r"\d+", value):
        return int(match.group(0))
    return None


class RecordNormalizer:
    """Turns provider responses into fresh ``MetadataRecord`` values.

    Every record gets a new local id and the current time as
    ``date_added``; provider keys only ever land in ``external_ref``.
    Normalization never fails.
    """

    def __init__(self, image_base_url: str = DEFAULT_TMDB_IMAGE_URL):
        self.image_base_url = image_base_url.rstrip("/")

    def normalize(self, response: ProviderPayload, is_wanted: bool = False) -> MetadataRecord:
        """Normalize any supported provider payload.

        Args:
            response: TMDB summary, OMDB lookup, or barcode scan
            is_wanted: Mark the record as wishlist rather than owned

        Returns:
            New record, not yet stored
        """
        if isinstance(response, OMDBResponse):
            record = self.from_omdb(response, is_wanted)
        elif isinstance(response, MovieSummary):
            record = self.from_summary(response, is_wanted)
        elif isinstance(response, BarcodeScan):
            record = self.from_barcode(response, is_wanted)
        else:
            raise TypeError(f"Unsupported provider payload: {type(response).__name__}")

        logger.debug(
            "Normalized provider payload",
            payload_type=type(response).__name__,
            record_id=record.id,
            title=record.title,
        )
        return record

    def from_summary(self, summary: MovieSummary, is_wanted: bool = False) -> MetadataRecord:
        poster_path = clean_text(summary.poster_path)
        return MetadataRecord(
            title=clean_text(summary.title) or PLACEHOLDER_TITLE,
            year=parse_year(summary.release_date),
            plot=clean_text(summary.overview),
            external_ref=f"tmdb:{summary.id}",
            poster_ref=self.poster_url(poster_path) if poster_path else None,
            is_wanted=is_wanted,
        )

    def from_omdb(self, response: OMDBResponse, is_wanted: bool = False) -> MetadataRecord:
        return MetadataRecord(
            title=clean_text(response.title) or PLACEHOLDER_TITLE,
            year=parse_year(response.year),
            director=clean_text(response.director),
            plot=clean_text(response.plot),
            genre=clean_text(response.genre),
            actors=clean_text(response.actors),
            language=clean_text(response.language),
            country=clean_text(response.country),
            awards=clean_text(response.awards),
            runtime=clean_text(response.runtime),
            external_ref=clean_text(response.imdb_id),
            poster_ref=clean_text(response.poster),
            is_wanted=is_wanted,
        )

    def from_barcode(self, scan: BarcodeScan, is_wanted: bool = False) -> MetadataRecord:
        """Placeholder for a scan no provider could resolve."""
        return MetadataRecord(
            title=PLACEHOLDER_TITLE,
            plot=f"Added via barcode scan: {scan.code}",
            barcode=scan.code,
            is_wanted=is_wanted,
        )

    def poster_url(self, poster_path: str) -> str:
        if poster_path.startswith(("http://", "https://")):
            return poster_path
        return f"{self.image_base_url}/{poster_path.lstrip('/')}"

"""Metadata lookup components for ReelShelf.

This package contains the provider clients (TMDB search, OMDB title lookup),
barcode parsing, and the normalizer that turns provider payloads into
library records.
"""

from reelshelf.metadata.errors import (
    InvalidResponseError,
    NetworkError,
    NotConfiguredError,
    NotFoundError,
    ProviderError,
)
from reelshelf.metadata.normalizer import RecordNormalizer
from reelshelf.metadata.omdb import OMDBClient
from reelshelf.metadata.tmdb import TMDBClient

__all__ = [
    "InvalidResponseError",
    "NetworkError",
    "NotConfiguredError",
    "NotFoundError",
    "OMDBClient",
    "ProviderError",
    "RecordNormalizer",
    "TMDBClient",
]

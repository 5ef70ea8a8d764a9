"""Errors raised by the metadata provider clients."""


class ProviderError(Exception):
    """Base exception for metadata provider failures."""

    pass


class NotFoundError(ProviderError):
    """The provider has no match for the request."""

    pass


class NotConfiguredError(ProviderError):
    """The provider credential is missing, so no request was made."""

    pass


class InvalidResponseError(ProviderError):
    """The provider payload could not be parsed into the expected shape."""

    pass


class NetworkError(ProviderError):
    """Transport-level failure talking to the provider."""

    def __init__(self, description: str):
        super().__init__(f"Network error: {description}")
        self.description = description

"""Shared HTTP plumbing for the metadata provider clients."""

from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from reelshelf.config import ProviderConfig
from reelshelf.metadata.errors import (
    InvalidResponseError,
    NetworkError,
    NotConfiguredError,
    NotFoundError,
)

logger = structlog.get_logger(__name__)


class BaseProviderClient:
    """Async HTTP client with retry and error mapping for one provider."""

    provider_name = "provider"

    def __init__(self, config: ProviderConfig, client: Optional[httpx.AsyncClient] = None):
        """Initialize provider client.

        Args:
            config: Provider configuration (endpoint, key, timeout, retries)
            client: Optional pre-built HTTP client, mostly for tests
        """
        self.config = config
        self.client = client or httpx.AsyncClient(timeout=config.timeout_seconds)
        logger.info(
            "Initialized provider client",
            provider=self.provider_name,
            base_url=config.base_url,
            configured=config.is_configured,
        )

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _require_key(self) -> str:
        """Return the API key or refuse to make a request without one."""
        if not self.config.api_key:
            logger.warning("Provider API key not configured", provider=self.provider_name)
            raise NotConfiguredError(f"{self.provider_name} API key not configured")
        return self.config.api_key

    async def _send(self, url: str, params: dict) -> httpx.Response:
        """GET with retries on transport failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.retry_attempts),
            wait=wait_exponential(min=1, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self.client.get(url, params=params)

    async def _get_json(self, url: str, params: dict) -> Any:
        """Fetch a JSON document, mapping failures onto provider errors.

        Args:
            url: Endpoint URL
            params: Query parameters (including the credential)

        Returns:
            Decoded JSON body

        Raises:
            NotFoundError: HTTP 404
            NetworkError: Transport failure or any other non-2xx status
            InvalidResponseError: Body is not JSON
        """
        try:
            response = await self._send(url, params)
        except httpx.HTTPError as e:
            logger.error(
                "Provider request failed",
                provider=self.provider_name,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise NetworkError(str(e) or type(e).__name__) from e

        if response.status_code == 404:
            logger.warning("Provider returned 404", provider=self.provider_name, url=url)
            raise NotFoundError(f"{self.provider_name}: not found")

        if response.is_error:
            logger.error(
                "Provider API error",
                provider=self.provider_name,
                status_code=response.status_code,
            )
            raise NetworkError(f"HTTP {response.status_code} from {self.provider_name}")

        try:
            return response.json()
        except ValueError as e:
            logger.error("Provider returned non-JSON body", provider=self.provider_name)
            raise InvalidResponseError(f"{self.provider_name}: response is not JSON") from e

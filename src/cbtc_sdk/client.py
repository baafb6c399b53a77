"""
CBTC Python SDK client.

One client talks to the three services a CBTC transfer touches: the
identity provider (Keycloak), the token-standard registry, and the
Canton ledger JSON API.

Example usage:
    ```python
    from cbtc_sdk import CbtcClient, get_settings

    async with CbtcClient.from_settings(get_settings()) as client:
        token = await client.identity.login(settings.grant())
        holdings = await client.ledger.active_contracts(party, token.access_token, ...)
    ```
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx

from .constants import Defaults
from .logging_utils import mask_headers, truncate_body
from .models.errors import TransportError
from .resources.identity import IdentityResource
from .resources.ledger import LedgerResource
from .resources.registry import RegistryResource

if TYPE_CHECKING:
    from .config import CbtcSettings

logger = logging.getLogger(__name__)


class CbtcClient:
    """
    CBTC services client.

    Provides access to:
    - identity: password, refresh and client-credentials token grants
    - registry: transfer-factory and transfer-instruction choice contexts
    - ledger: command submission, ledger end and active contracts

    Args:
        ledger_host: Ledger JSON API base URL
        registry_url: Token-standard registry base URL
        token_url: Identity provider token endpoint
        timeout: Request timeout in seconds (default: 30)
        max_retries: Attempts for idempotent requests (default: 3)
        transport: Optional httpx transport, used by tests
        backoff_base: Base delay in seconds for exponential backoff
    """

    DEFAULT_TIMEOUT = Defaults.HTTP_TIMEOUT
    DEFAULT_MAX_RETRIES = Defaults.MAX_RETRIES
    MAX_RETRY_AFTER = 30.0

    def __init__(
        self,
        ledger_host: str,
        registry_url: str,
        token_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_base: float = 1.0,
    ):
        self.ledger_host = ledger_host.rstrip("/")
        self.registry_url = registry_url.rstrip("/")
        self.token_url = token_url
        self._timeout = timeout
        self._max_retries = max(max_retries, 1)
        self._transport = transport
        self._backoff_base = backoff_base
        self._client: Optional[httpx.AsyncClient] = None

        self.identity = IdentityResource(self)
        self.registry = RegistryResource(self)
        self.ledger = LedgerResource(self)

    @classmethod
    def from_settings(
        cls,
        settings: "CbtcSettings",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "CbtcClient":
        return cls(
            ledger_host=settings.ledger_host,
            registry_url=settings.registry_url,
            token_url=settings.token_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            transport=transport,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": Defaults.USER_AGENT},
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[Any] = None,
        data: Optional[dict[str, str]] = None,
        headers: Optional[dict[str, str]] = None,
        retry: bool = True,
    ) -> httpx.Response:
        """Make an HTTP request, retrying timeouts, transport errors and 429.

        The response is returned whatever its status; resources map
        non-2xx statuses to their own error types. Requests with
        ``retry=False`` get exactly one attempt.
        """
        client = await self._get_client()
        attempts = self._max_retries if retry else 1

        logger.debug("%s %s headers=%s", method, url, mask_headers(headers or {}))

        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json,
                    data=data,
                    headers=headers,
                )
            except httpx.TimeoutException as e:
                logger.warning("%s %s timed out (attempt %d/%d)", method, url, attempt + 1, attempts)
                if not is_last:
                    await asyncio.sleep(self._backoff_base * 2 ** attempt)
                    continue
                raise TransportError(f"Request timed out: {e}", url=url) from e
            except httpx.RequestError as e:
                logger.warning("%s %s failed: %s (attempt %d/%d)", method, url, e, attempt + 1, attempts)
                if not is_last:
                    await asyncio.sleep(self._backoff_base * 2 ** attempt)
                    continue
                raise TransportError(f"Request failed: {e}", url=url) from e

            if response.status_code == 429 and not is_last:
                retry_after = _retry_after_seconds(response, self._backoff_base * 2 ** attempt)
                logger.warning("%s %s rate limited, retrying in %.1fs", method, url, retry_after)
                await asyncio.sleep(min(retry_after, self.MAX_RETRY_AFTER))
                continue

            if response.status_code >= 400:
                logger.debug(
                    "%s %s -> %d: %s",
                    method,
                    url,
                    response.status_code,
                    truncate_body(response.text),
                )
            return response

        raise RuntimeError("Unexpected error in request retry loop")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CbtcClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _retry_after_seconds(response: httpx.Response, fallback: float) -> float:
    try:
        return float(response.headers.get("Retry-After", fallback))
    except ValueError:
        return fallback

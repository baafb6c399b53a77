"""
Base resource class for the CBTC SDK.

Resources are thin wrappers over ``CbtcClient._request`` that know their
service's URLs and map failures to the SDK error taxonomy.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Type

import httpx

from ..models.errors import TransportError, _HTTPFailure

if TYPE_CHECKING:
    from ..client import CbtcClient


def bearer(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


class AsyncBaseResource:
    """Base class for async service resources.

    Attributes:
        _client: The client instance
        error_cls: Error raised for non-2xx responses and transport failures
    """

    error_cls: Type[_HTTPFailure]

    def __init__(self, client: "CbtcClient") -> None:
        self._client = client

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        retry: bool = True,
        error_cls: Optional[Type[_HTTPFailure]] = None,
    ) -> httpx.Response:
        """Send a request and return the 2xx response.

        Raises:
            error_cls: On a non-2xx status or a transport failure
        """
        error_cls = error_cls or self.error_cls
        try:
            response = await self._client._request(
                method,
                url,
                json=json,
                params=params,
                headers=headers,
                retry=retry,
            )
        except TransportError as e:
            raise error_cls(e.message) from e

        if not response.is_success:
            raise error_cls(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def _get(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Make a GET request and decode the JSON body."""
        response = await self._send("GET", url, params=params, headers=headers)
        return self._decode(response)

    async def _post(
        self,
        url: str,
        data: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Make a POST request and decode the JSON body."""
        response = await self._send("POST", url, json=data, headers=headers)
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise self.error_cls(
                f"Response from {response.request.url} is not valid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from e


__all__ = ["AsyncBaseResource", "bearer"]
